"""
Storage Package.

This package manages contribution persistence.

Modules:
- database: Engine, sessions and schema bootstrap
- models/: ORM models
- repositories/: Data access layer
"""

from storage.database import (
    create_all_tables,
    create_database_engine,
    create_session_factory,
    get_session_factory,
    session_scope,
)


__all__ = [
    "create_all_tables",
    "create_database_engine",
    "create_session_factory",
    "get_session_factory",
    "session_scope",
]
