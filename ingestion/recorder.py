"""
Contribution Recorder.

============================================================
RESPONSIBILITY
============================================================
The single write path for contributions. Scanner and claim
verifier both hand candidates to record().

- Validates the candidate (amount, tx id, wallet, note)
- Inserts in its own transaction
- Maps the (tx_hash, wallet_id) unique violation to ALREADY_RECORDED
- Optionally attaches a USD value after the insert

============================================================
DESIGN PRINCIPLES
============================================================
- At-most-once: the database constraint is the arbiter, the
  existence check only saves a round trip
- Expected outcomes are values, store failures raise StoreError
- Pricing never changes the record outcome

============================================================
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Iterable, Optional

from sqlalchemy.orm import sessionmaker

from core.amounts import to_decimal
from core.chains import ChainSlug, get_profile
from core.exceptions import InvalidAmountError, InvalidTxIdError, StoreError
from core.tx_ids import canonical_tx_id
from pricing.ports import PricingPort
from storage.database import session_scope
from storage.models.contributions import NOTE_MAX_LENGTH
from storage.repositories import (
    ContributionRepository,
    DuplicateRecordError,
    RepositoryException,
    ValidationError,
    WalletRepository,
)


logger = logging.getLogger(__name__)

USD_QUANTUM = Decimal("0.01")


class RecordStatus(Enum):
    INSERTED = "inserted"
    ALREADY_RECORDED = "already_recorded"
    REJECTED = "rejected"


@dataclass
class ContributionCandidate:
    """A transfer to a project wallet, ready to be recorded."""
    chain: ChainSlug
    wallet_id: str
    tx_hash: str
    native_amount: int
    block_time: Optional[datetime] = None
    block_height: Optional[int] = None
    note: Optional[str] = None
    source: str = "scanner"


@dataclass
class RecordResult:
    status: RecordStatus
    candidate: ContributionCandidate
    reason: Optional[str] = None
    contribution_id: Optional[int] = None
    amount: Optional[Decimal] = None
    amount_usd: Optional[Decimal] = None

    @property
    def inserted(self) -> bool:
        return self.status == RecordStatus.INSERTED

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "chain": self.candidate.chain.value,
            "tx_hash": self.candidate.tx_hash,
            "wallet_id": self.candidate.wallet_id,
            "reason": self.reason,
            "contribution_id": self.contribution_id,
            "amount": str(self.amount) if self.amount is not None else None,
            "amount_usd": str(self.amount_usd) if self.amount_usd is not None else None,
        }


@dataclass
class RecordSummary:
    inserted: int = 0
    already_recorded: int = 0
    rejected: int = 0
    results: list[RecordResult] = field(default_factory=list)

    def add(self, result: RecordResult) -> None:
        self.results.append(result)
        if result.status == RecordStatus.INSERTED:
            self.inserted += 1
        elif result.status == RecordStatus.ALREADY_RECORDED:
            self.already_recorded += 1
        else:
            self.rejected += 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "inserted": self.inserted,
            "already_recorded": self.already_recorded,
            "rejected": self.rejected,
        }


class ContributionRecorder:
    """
    At-most-once contribution writer.

    Usage:
        recorder = ContributionRecorder(session_factory, pricing=prices)
        result = await recorder.record(candidate)
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        pricing: Optional[PricingPort] = None,
    ) -> None:
        self._session_factory = session_factory
        self._pricing = pricing

    # =========================================================
    # READS
    # =========================================================

    def exists_tx(self, chain: ChainSlug, tx_hash: str) -> bool:
        """True if the tx is recorded for any wallet."""
        try:
            with session_scope(self._session_factory) as session:
                return ContributionRepository(session).exists_tx(tx_hash, chain.value)
        except RepositoryException as e:
            raise StoreError(f"exists_tx failed: {e.message}", context=e.to_dict(), cause=e) from e

    # =========================================================
    # WRITES
    # =========================================================

    def _validate(self, candidate: ContributionCandidate) -> tuple[Optional[str], Optional[Decimal]]:
        """Returns (reject_reason, amount)."""
        try:
            amount = to_decimal(candidate.native_amount, get_profile(candidate.chain).decimals)
        except InvalidAmountError:
            return "invalid_amount", None
        try:
            if canonical_tx_id(candidate.chain, candidate.tx_hash) != candidate.tx_hash:
                return "non_canonical_tx_hash", None
        except InvalidTxIdError as e:
            return e.reason, None
        if not candidate.wallet_id:
            return "unknown_wallet", None
        if candidate.note is not None and len(candidate.note) > NOTE_MAX_LENGTH:
            return "note_too_long", None
        return None, amount

    def _insert(self, candidate: ContributionCandidate, amount: Decimal) -> RecordResult:
        try:
            with session_scope(self._session_factory) as session:
                if WalletRepository(session).get_by_id(candidate.wallet_id) is None:
                    return RecordResult(RecordStatus.REJECTED, candidate, reason="unknown_wallet")

                repo = ContributionRepository(session)
                if repo.exists(candidate.tx_hash, candidate.wallet_id):
                    return RecordResult(RecordStatus.ALREADY_RECORDED, candidate, amount=amount)

                row = repo.create(
                    wallet_id=candidate.wallet_id,
                    chain=candidate.chain.value,
                    tx_hash=candidate.tx_hash,
                    amount=amount,
                    block_time=candidate.block_time,
                    block_height=candidate.block_height,
                    note=candidate.note,
                    source=candidate.source,
                )
                return RecordResult(
                    RecordStatus.INSERTED,
                    candidate,
                    contribution_id=row.id,
                    amount=amount,
                )
        except DuplicateRecordError:
            logger.debug(f"[{candidate.chain.value}] Lost insert race for {candidate.tx_hash}")
            return RecordResult(RecordStatus.ALREADY_RECORDED, candidate, amount=amount)
        except ValidationError as e:
            return RecordResult(RecordStatus.REJECTED, candidate, reason=e.reason)
        except RepositoryException as e:
            raise StoreError(
                f"Failed to record {candidate.tx_hash}: {e.message}",
                context=e.to_dict(),
                cause=e,
            ) from e

    async def record(self, candidate: ContributionCandidate) -> RecordResult:
        """
        Record one contribution.

        Returns:
            RecordResult with INSERTED, ALREADY_RECORDED or REJECTED

        Raises:
            StoreError: Store unreachable or statement failed
        """
        reason, amount = self._validate(candidate)
        if reason:
            logger.warning(
                f"[{candidate.chain.value}] Rejected {candidate.tx_hash!r} "
                f"-> {candidate.wallet_id}: {reason}"
            )
            return RecordResult(RecordStatus.REJECTED, candidate, reason=reason)

        result = self._insert(candidate, amount)
        if result.inserted:
            logger.info(
                f"[{candidate.chain.value}] Recorded {candidate.tx_hash} "
                f"-> {candidate.wallet_id}: {amount} ({candidate.source})"
            )
            result.amount_usd = await self._attach_usd(result)
        return result

    async def record_many(self, candidates: Iterable[ContributionCandidate]) -> RecordSummary:
        """Record candidates in order; a StoreError stops the batch."""
        summary = RecordSummary()
        for candidate in candidates:
            summary.add(await self.record(candidate))
        return summary

    # =========================================================
    # PRICING POST-STEP
    # =========================================================

    async def _attach_usd(self, result: RecordResult) -> Optional[Decimal]:
        if self._pricing is None or result.contribution_id is None:
            return None
        chain = result.candidate.chain
        symbol = get_profile(chain).symbol
        try:
            price = await self._pricing.get_usd_price(symbol)
            if price is None:
                logger.debug(f"[{chain.value}] No USD price for {symbol}")
                return None
            amount_usd = (result.amount * price).quantize(USD_QUANTUM, rounding=ROUND_HALF_UP)
            with session_scope(self._session_factory) as session:
                attached = ContributionRepository(session).attach_usd(result.contribution_id, amount_usd)
            return amount_usd if attached else None
        except Exception as e:
            logger.warning(
                f"[{chain.value}] USD valuation failed for contribution "
                f"{result.contribution_id}: {e}"
            )
            return None
