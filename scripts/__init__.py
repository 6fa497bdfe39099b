"""
Scripts Package.

This package contains operational scripts for the contribution engine.

Scripts:
- bootstrap_db: Database initialization and wallet registration
- run_ingestion: Scan configured chains once
- verify_claim: Verify a single claimed transaction
"""

# Scripts are meant to be run directly, not imported
