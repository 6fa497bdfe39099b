"""
Repository Layer Package.

============================================================
PURPOSE
============================================================
Typed access to the three tables of the contribution store. The
caller owns the session and the commit (storage.database.session_scope).

Contributions are insert-only; amount_usd and note can each be set
once afterwards. Cursors only move forward unless explicitly reset.

============================================================
REPOSITORIES
============================================================
- WalletRepository: Project wallets (read-mostly)
- ContributionRepository: Recorded contributions
- CursorRepository: Per-chain scan cursors

============================================================
"""

# =============================================================
# EXCEPTIONS
# =============================================================
from storage.repositories.exceptions import (
    ConnectionError,
    DuplicateRecordError,
    IntegrityError,
    QueryError,
    RecordNotFoundError,
    RepositoryException,
    StoreFailure,
    TransactionError,
    ValidationError,
)

# =============================================================
# REPOSITORIES
# =============================================================
from storage.repositories.base import BaseRepository, is_unique_violation
from storage.repositories.contributions import ContributionRepository
from storage.repositories.cursors import CursorRepository
from storage.repositories.wallets import WalletRepository


__all__ = [
    "ConnectionError",
    "DuplicateRecordError",
    "IntegrityError",
    "QueryError",
    "RecordNotFoundError",
    "RepositoryException",
    "StoreFailure",
    "TransactionError",
    "ValidationError",
    "BaseRepository",
    "is_unique_violation",
    "ContributionRepository",
    "CursorRepository",
    "WalletRepository",
]
