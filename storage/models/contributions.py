"""
Contribution Store ORM Models.

============================================================
TABLES
============================================================
- wallets: Project-owned receiving addresses
- contributions: One row per (tx_hash, wallet_id), append-only
- scan_cursors: Last scanned height per canonical chain

============================================================
INVARIANTS
============================================================
- (tx_hash, wallet_id) is unique
- amount, tx_hash and wallet_id never change after insert
- amount_usd and note are attached at most once
- Contributions are never deleted

============================================================
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import uuid4

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storage.models.base import Base, ExactDecimal, TimestampMixin, decimal_to_str


NOTE_MAX_LENGTH = 280


class Wallet(Base, TimestampMixin):
    """
    A project-owned receiving address.

    `chain` is stored as entered by operators and may be a vendor
    alias ("ethereum", "matic"); readers canonicalize it.
    """

    __tablename__ = "wallets"

    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    chain: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    address: Mapped[str] = mapped_column(String(128), nullable=False)
    label: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    contributions: Mapped[list["Contribution"]] = relationship(back_populates="wallet")

    __table_args__ = (
        UniqueConstraint("chain", "address", name="uq_wallets_chain_address"),
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "chain": self.chain,
            "address": self.address,
            "label": self.label,
            "is_active": self.is_active,
        }

    def __repr__(self) -> str:
        return f"<Wallet(id={self.id}, chain={self.chain}, address={self.address})>"


class Contribution(Base):
    """A recorded incoming transfer to a project wallet."""

    __tablename__ = "contributions"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    wallet_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("wallets.id"),
        nullable=False,
    )
    chain: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment="Canonical chain slug",
    )
    tx_hash: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        comment="Canonical transaction id",
    )
    amount: Mapped[Decimal] = mapped_column(ExactDecimal, nullable=False)
    amount_usd: Mapped[Optional[Decimal]] = mapped_column(ExactDecimal, nullable=True)
    priced_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    block_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    block_height: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    note: Mapped[Optional[str]] = mapped_column(String(NOTE_MAX_LENGTH), nullable=True)
    source: Mapped[str] = mapped_column(String(16), nullable=False, default="scanner")
    inserted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    wallet: Mapped[Wallet] = relationship(back_populates="contributions")

    __table_args__ = (
        UniqueConstraint("tx_hash", "wallet_id", name="uq_contributions_tx_wallet"),
        CheckConstraint(
            f"note IS NULL OR length(note) <= {NOTE_MAX_LENGTH}",
            name="ck_contributions_note_length",
        ),
        Index("ix_contributions_chain_tx", "chain", "tx_hash"),
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "wallet_id": self.wallet_id,
            "chain": self.chain,
            "tx_hash": self.tx_hash,
            "amount": decimal_to_str(self.amount),
            "amount_usd": decimal_to_str(self.amount_usd),
            "block_time": self.block_time.isoformat() if self.block_time else None,
            "block_height": self.block_height,
            "note": self.note,
            "source": self.source,
        }

    def __repr__(self) -> str:
        return f"<Contribution(chain={self.chain}, tx={self.tx_hash}, amount={self.amount})>"


class ScanCursor(Base):
    """Last fully committed height for one chain."""

    __tablename__ = "scan_cursors"

    chain: Mapped[str] = mapped_column(String(16), primary_key=True)
    last_scanned_height: Mapped[int] = mapped_column(BigInteger, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "chain": self.chain,
            "last_scanned_height": self.last_scanned_height,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
