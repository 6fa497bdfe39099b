"""
Storage Models Package.

ORM models for the contribution store.

============================================================
MODEL ORGANIZATION
============================================================
- base.py: Declarative base, TimestampMixin, ExactDecimal
- contributions.py: Wallet, Contribution, ScanCursor

============================================================
"""

from storage.models.base import Base, ExactDecimal, TimestampMixin, decimal_to_str
from storage.models.contributions import (
    NOTE_MAX_LENGTH,
    Contribution,
    ScanCursor,
    Wallet,
)


__all__ = [
    "Base",
    "ExactDecimal",
    "TimestampMixin",
    "decimal_to_str",
    "NOTE_MAX_LENGTH",
    "Contribution",
    "ScanCursor",
    "Wallet",
]
