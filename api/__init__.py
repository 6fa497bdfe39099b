"""
Contribution API Package.

FastAPI router and schemas for ingestion triggers and claims.
"""
