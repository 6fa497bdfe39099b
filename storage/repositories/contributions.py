"""
Contribution Repository.

============================================================
PURPOSE
============================================================
Append-only access to the contributions table.

- Inserts flush immediately so unique violations surface as
  DuplicateRecordError at the call site
- amount_usd and note are set-once (guarded UPDATE ... IS NULL)
- There is no delete and no amount update

============================================================
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from storage.models.contributions import NOTE_MAX_LENGTH, Contribution
from storage.repositories.base import BaseRepository
from storage.repositories.exceptions import ValidationError


class ContributionRepository(BaseRepository[Contribution]):
    """Repository for recorded contributions."""

    def __init__(self, session: Session) -> None:
        super().__init__(session, Contribution, "ContributionRepository")

    # =========================================================
    # READS
    # =========================================================

    def exists(self, tx_hash: str, wallet_id: str) -> bool:
        stmt = select(Contribution.id).where(
            Contribution.tx_hash == tx_hash,
            Contribution.wallet_id == wallet_id,
        )
        return self._execute_scalar(stmt.limit(1)) is not None

    def exists_tx(self, tx_hash: str, chain: Optional[str] = None) -> bool:
        """True if any wallet already has a row for this tx."""
        stmt = select(Contribution.id).where(Contribution.tx_hash == tx_hash)
        if chain:
            stmt = stmt.where(Contribution.chain == chain)
        return self._execute_scalar(stmt.limit(1)) is not None

    def get(self, tx_hash: str, wallet_id: str) -> Optional[Contribution]:
        stmt = select(Contribution).where(
            Contribution.tx_hash == tx_hash,
            Contribution.wallet_id == wallet_id,
        )
        return self._execute_scalar(stmt)

    def list_by_tx(self, tx_hash: str) -> List[Contribution]:
        stmt = select(Contribution).where(Contribution.tx_hash == tx_hash).order_by(Contribution.id)
        return self._execute_query(stmt)

    def list_recent(self, chain: Optional[str] = None, limit: int = 50) -> List[Contribution]:
        stmt = select(Contribution).order_by(Contribution.id.desc()).limit(limit)
        if chain:
            stmt = stmt.where(Contribution.chain == chain)
        return self._execute_query(stmt)

    def count_for_chain(self, chain: str) -> int:
        return self._count(Contribution.chain == chain)

    def list_unpriced(self, limit: int = 100) -> List[Contribution]:
        stmt = (
            select(Contribution)
            .where(Contribution.amount_usd.is_(None))
            .order_by(Contribution.id)
            .limit(limit)
        )
        return self._execute_query(stmt)

    def total_rows(self) -> int:
        return self._execute_scalar(select(func.count(Contribution.id))) or 0

    # =========================================================
    # WRITES
    # =========================================================

    def create(
        self,
        wallet_id: str,
        chain: str,
        tx_hash: str,
        amount: Decimal,
        block_time: Optional[datetime] = None,
        block_height: Optional[int] = None,
        note: Optional[str] = None,
        source: str = "scanner",
    ) -> Contribution:
        """
        Insert one contribution.

        Raises:
            ValidationError: Non-positive amount or note too long
            DuplicateRecordError: (tx_hash, wallet_id) already recorded
        """
        if amount is None or amount <= 0:
            raise ValidationError(self._repository_name, "create", "amount", "must be positive")
        if note is not None and len(note) > NOTE_MAX_LENGTH:
            raise ValidationError(
                self._repository_name, "create", "note", f"longer than {NOTE_MAX_LENGTH} chars"
            )

        contribution = Contribution(
            wallet_id=wallet_id,
            chain=chain,
            tx_hash=tx_hash,
            amount=amount,
            block_time=block_time,
            block_height=block_height,
            note=note,
            source=source,
        )
        return self._add(
            contribution,
            unique_field="tx_hash",
            context={"tx_hash": tx_hash, "wallet_id": wallet_id},
        )

    def attach_usd(self, contribution_id: int, amount_usd: Decimal) -> bool:
        """
        Set amount_usd once.

        Returns:
            False when the row already carries a USD value
        """
        stmt = (
            update(Contribution)
            .where(Contribution.id == contribution_id, Contribution.amount_usd.is_(None))
            .values(amount_usd=amount_usd, priced_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        return self._execute_update(stmt, "attach_usd") == 1

    def attach_note(self, contribution_id: int, note: str) -> bool:
        """Set note once; False when a note is already present."""
        if len(note) > NOTE_MAX_LENGTH:
            raise ValidationError(
                self._repository_name, "attach_note", "note", f"longer than {NOTE_MAX_LENGTH} chars"
            )
        stmt = (
            update(Contribution)
            .where(Contribution.id == contribution_id, Contribution.note.is_(None))
            .values(note=note)
            .execution_options(synchronize_session=False)
        )
        return self._execute_update(stmt, "attach_note") == 1
