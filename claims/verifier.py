"""
Claim Verifier.

============================================================
RESPONSIBILITY
============================================================
Verifies a user-submitted transaction and records it when it pays
a project wallet.

    VALIDATE -> DEDUPE -> FETCH -> CONFIRM -> MATCH -> PERSIST

============================================================
DESIGN PRINCIPLES
============================================================
- Input errors stop before any network or store access
- Every path ends in a ClaimOutcome; infrastructure failures are
  mapped, never raised
- Pending transactions are reported, never cached
- One row per distinct destination wallet

============================================================
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from chain_adapters.exceptions import (
    ChainAdapterError,
    ChainNotSupportedError,
    TxLookupNotSupportedError,
)
from chain_adapters.models import TxLookup, TxStatus
from chain_adapters.registry import AdapterRegistry
from core.chains import ChainSlug, canonical_chain, normalize_address
from core.exceptions import InvalidChainError, InvalidTxIdError, StoreError
from core.tx_ids import canonical_tx_id
from ingestion.recorder import ContributionCandidate, ContributionRecorder, RecordStatus
from ingestion.wallet_directory import DirectoryEntry, WalletDirectory
from storage.models.contributions import NOTE_MAX_LENGTH


logger = logging.getLogger(__name__)


class ClaimOutcome(str, Enum):
    INSERTED = "inserted"
    DUPLICATE = "duplicate"
    TX_NOT_FOUND = "tx_not_found"
    TX_PENDING = "tx_pending"
    NOT_PROJECT_WALLET = "not_project_wallet"
    INVALID_PAYLOAD = "invalid_payload"
    RPC_UNAVAILABLE = "rpc_error"
    STORE_ERROR = "db_error"


class ClaimState(Enum):
    VALIDATE = "validate"
    DEDUPE = "dedupe"
    FETCH = "fetch"
    CONFIRM = "confirm"
    MATCH = "match"
    PERSIST = "persist"


OUTCOME_MESSAGES: dict[ClaimOutcome, str] = {
    ClaimOutcome.INSERTED: "The transaction was successfully recorded on our project.",
    ClaimOutcome.DUPLICATE: "The transaction has already been recorded in our project before.",
    ClaimOutcome.TX_NOT_FOUND: "The hash of this transaction does not exist on the blockchain.",
    ClaimOutcome.TX_PENDING: "Transaction is not yet confirmed on-chain.",
    ClaimOutcome.NOT_PROJECT_WALLET: (
        "The transaction is not directed to our project. "
        "The wallet address does not belong to this project."
    ),
    ClaimOutcome.INVALID_PAYLOAD: "Invalid transaction hash format.",
    ClaimOutcome.RPC_UNAVAILABLE: "An error occurred while fetching the transaction.",
    ClaimOutcome.STORE_ERROR: "Database write error.",
}

# Reasons
REASON_UNSUPPORTED_CHAIN = "unsupported_chain"
REASON_NOTE_TOO_LONG = "note_too_long"
REASON_TX_FAILED = "tx_failed"
REASON_BELOW_FLOOR = "below_confirmation_floor"


@dataclass
class ClaimResult:
    """Final state of one claim."""
    outcome: ClaimOutcome
    chain: Optional[str] = None
    tx_hash: Optional[str] = None
    reason: Optional[str] = None
    state: Optional[ClaimState] = None
    rows: list[dict[str, Any]] = field(default_factory=list)

    @property
    def code(self) -> str:
        return self.outcome.value

    @property
    def message(self) -> str:
        return OUTCOME_MESSAGES[self.outcome]

    @property
    def ok(self) -> bool:
        return self.outcome in (ClaimOutcome.INSERTED, ClaimOutcome.DUPLICATE)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "code": self.code,
            "message": self.message,
            "reason": self.reason,
            "chain": self.chain,
            "tx": self.tx_hash,
            "rows": self.rows,
        }


class ClaimVerifier:
    """
    Claim verification state machine.

    Usage:
        verifier = ClaimVerifier(registry, directory, recorder)
        result = await verifier.verify("eth", "0xabc...", note="thanks")
    """

    def __init__(
        self,
        registry: AdapterRegistry,
        directory: WalletDirectory,
        recorder: ContributionRecorder,
    ) -> None:
        self._registry = registry
        self._directory = directory
        self._recorder = recorder

    async def verify(self, chain: Any, tx_identifier: Any, note: Optional[str] = None) -> ClaimResult:
        """
        Verify and record one claimed transaction.

        Returns:
            ClaimResult; never raises for input, network or store errors
        """
        # VALIDATE
        try:
            slug = canonical_chain(chain)
        except InvalidChainError:
            return self._finish(ClaimOutcome.INVALID_PAYLOAD, ClaimState.VALIDATE,
                                chain=str(chain), reason=REASON_UNSUPPORTED_CHAIN)
        try:
            tx_hash = canonical_tx_id(slug, tx_identifier)
        except InvalidTxIdError as e:
            return self._finish(ClaimOutcome.INVALID_PAYLOAD, ClaimState.VALIDATE,
                                chain=slug.value, reason=e.reason)

        note = note.strip() if isinstance(note, str) else None
        note = note or None
        if note is not None and len(note) > NOTE_MAX_LENGTH:
            return self._finish(ClaimOutcome.INVALID_PAYLOAD, ClaimState.VALIDATE,
                                chain=slug.value, tx_hash=tx_hash, reason=REASON_NOTE_TOO_LONG)

        try:
            adapter = self._registry.get(slug)
        except ChainNotSupportedError:
            return self._finish(ClaimOutcome.INVALID_PAYLOAD, ClaimState.VALIDATE,
                                chain=slug.value, tx_hash=tx_hash, reason=REASON_UNSUPPORTED_CHAIN)
        if not adapter.SUPPORTS_TX_LOOKUP:
            return self._finish(ClaimOutcome.INVALID_PAYLOAD, ClaimState.VALIDATE,
                                chain=slug.value, tx_hash=tx_hash, reason=REASON_UNSUPPORTED_CHAIN)

        # DEDUPE
        try:
            if self._recorder.exists_tx(slug, tx_hash):
                return self._finish(ClaimOutcome.DUPLICATE, ClaimState.DEDUPE,
                                    chain=slug.value, tx_hash=tx_hash)
        except StoreError as e:
            return self._finish(ClaimOutcome.STORE_ERROR, ClaimState.DEDUPE,
                                chain=slug.value, tx_hash=tx_hash, reason=e.code)

        # FETCH
        try:
            lookup = await adapter.get_transaction(tx_hash)
        except TxLookupNotSupportedError:
            return self._finish(ClaimOutcome.INVALID_PAYLOAD, ClaimState.FETCH,
                                chain=slug.value, tx_hash=tx_hash, reason=REASON_UNSUPPORTED_CHAIN)
        except ChainAdapterError as e:
            logger.warning(f"[{slug.value}] Claim lookup failed for {tx_hash}: {e}")
            return self._finish(ClaimOutcome.RPC_UNAVAILABLE, ClaimState.FETCH,
                                chain=slug.value, tx_hash=tx_hash, reason=e.code)

        # CONFIRM
        negative = self._confirm(lookup, adapter.profile.min_confirmations)
        if negative is not None:
            outcome, reason = negative
            return self._finish(outcome, ClaimState.CONFIRM,
                                chain=slug.value, tx_hash=tx_hash, reason=reason)

        # MATCH
        try:
            totals = self._match(slug, lookup)
        except StoreError as e:
            return self._finish(ClaimOutcome.STORE_ERROR, ClaimState.MATCH,
                                chain=slug.value, tx_hash=tx_hash, reason=e.code)
        if not totals:
            return self._finish(ClaimOutcome.NOT_PROJECT_WALLET, ClaimState.MATCH,
                                chain=slug.value, tx_hash=tx_hash)

        # PERSIST
        return await self._persist(slug, tx_hash, lookup, totals, note)

    # ─────────────────────────────────────────────────────────────
    # Steps
    # ─────────────────────────────────────────────────────────────

    @staticmethod
    def _confirm(lookup: TxLookup, min_confirmations: int) -> Optional[tuple[ClaimOutcome, Optional[str]]]:
        if lookup.status == TxStatus.NOT_FOUND:
            return ClaimOutcome.TX_NOT_FOUND, None
        if lookup.status == TxStatus.FAILED:
            return ClaimOutcome.TX_NOT_FOUND, REASON_TX_FAILED
        if lookup.status == TxStatus.PENDING:
            return ClaimOutcome.TX_PENDING, None
        if lookup.confirmations is not None and lookup.confirmations < min_confirmations:
            return ClaimOutcome.TX_PENDING, REASON_BELOW_FLOOR
        return None

    def _match(self, slug: ChainSlug, lookup: TxLookup) -> dict[str, tuple[DirectoryEntry, int]]:
        wallets = self._directory.wallets_for(slug)
        totals: dict[str, tuple[DirectoryEntry, int]] = {}
        for transfer in lookup.transfers:
            if not transfer.success or transfer.native_amount <= 0:
                continue
            entry = wallets.get(normalize_address(slug, transfer.destination))
            if entry is None:
                continue
            _, amount = totals.get(entry.wallet_id, (entry, 0))
            totals[entry.wallet_id] = (entry, amount + transfer.native_amount)
        return totals

    async def _persist(
        self,
        slug: ChainSlug,
        tx_hash: str,
        lookup: TxLookup,
        totals: dict[str, tuple[DirectoryEntry, int]],
        note: Optional[str],
    ) -> ClaimResult:
        statuses: list[RecordStatus] = []
        rows: list[dict[str, Any]] = []
        reject_reason: Optional[str] = None

        for wallet_id, (entry, native_amount) in totals.items():
            candidate = ContributionCandidate(
                chain=slug,
                wallet_id=wallet_id,
                tx_hash=tx_hash,
                native_amount=native_amount,
                block_time=lookup.block_time,
                block_height=lookup.height,
                note=note,
                source="claim",
            )
            try:
                record = await self._recorder.record(candidate)
            except StoreError as e:
                return self._finish(ClaimOutcome.STORE_ERROR, ClaimState.PERSIST,
                                    chain=slug.value, tx_hash=tx_hash, reason=e.code, rows=rows)
            statuses.append(record.status)
            if record.status == RecordStatus.REJECTED:
                reject_reason = reject_reason or record.reason
            rows.append({
                "wallet_id": wallet_id,
                "address": entry.address,
                "amount": str(record.amount) if record.amount is not None else None,
                "status": record.status.value,
            })

        if RecordStatus.INSERTED in statuses:
            outcome, reason = ClaimOutcome.INSERTED, None
        elif RecordStatus.ALREADY_RECORDED in statuses:
            outcome, reason = ClaimOutcome.DUPLICATE, None
        else:
            outcome, reason = ClaimOutcome.INVALID_PAYLOAD, reject_reason
        return self._finish(outcome, ClaimState.PERSIST,
                            chain=slug.value, tx_hash=tx_hash, reason=reason, rows=rows)

    @staticmethod
    def _finish(
        outcome: ClaimOutcome,
        state: ClaimState,
        chain: Optional[str] = None,
        tx_hash: Optional[str] = None,
        reason: Optional[str] = None,
        rows: Optional[list[dict[str, Any]]] = None,
    ) -> ClaimResult:
        result = ClaimResult(
            outcome=outcome,
            chain=chain,
            tx_hash=tx_hash,
            reason=reason,
            state=state,
            rows=rows or [],
        )
        log = logger.warning if outcome in (ClaimOutcome.RPC_UNAVAILABLE, ClaimOutcome.STORE_ERROR) else logger.info
        log(f"[{chain}] Claim {tx_hash}: {outcome.value} at {state.value}"
            + (f" ({reason})" if reason else ""))
        return result
