"""
Base ORM Model, Mixins and Column Types.

============================================================
PURPOSE
============================================================
Shared pieces of the wallets, contributions and scan_cursors
tables.

============================================================
COMPONENTS
============================================================
- Base: declarative base with aware datetimes
- TimestampMixin: created_at / updated_at
- ExactDecimal: Lossless decimal column (NUMERIC on PostgreSQL,
  canonical text on SQLite)

============================================================
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import DateTime, Numeric, String, func
from sqlalchemy.engine import Dialect
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


def decimal_to_str(value: Optional[Decimal]) -> Optional[str]:
    """Canonical text for a stored decimal: no exponent, no trailing zeros."""
    if value is None:
        return None
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


class ExactDecimal(TypeDecorator):
    """
    Decimal column that never passes through float.

    PostgreSQL stores NUMERIC(78, 18), wide enough for any native
    amount at exponent 18. SQLite has no exact numeric type, so the
    canonical decimal string is stored instead.
    """

    impl = Numeric(78, 18)
    cache_ok = True

    def load_dialect_impl(self, dialect: Dialect) -> Any:
        if dialect.name == "sqlite":
            return dialect.type_descriptor(String(100))
        return dialect.type_descriptor(Numeric(78, 18, asdecimal=True))

    def process_bind_param(self, value: Any, dialect: Dialect) -> Any:
        if value is None:
            return None
        value = value if isinstance(value, Decimal) else Decimal(str(value))
        if dialect.name == "sqlite":
            return decimal_to_str(value)
        return value

    def process_result_value(self, value: Any, dialect: Dialect) -> Optional[Decimal]:
        if value is None:
            return None
        return value if isinstance(value, Decimal) else Decimal(str(value))


class Base(DeclarativeBase):
    """Declarative base; every datetime column is timezone-aware."""

    type_annotation_map = {
        datetime: DateTime(timezone=True),
    }


class TimestampMixin:
    """created_at / updated_at maintained by the database clock."""

    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )
