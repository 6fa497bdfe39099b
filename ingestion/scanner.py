"""
Block Scanner.

============================================================
RESPONSIBILITY
============================================================
Walks a confirmed height range of one chain, finds native transfers
to project wallets and records them.

    IDLE -> DETERMINE_RANGE -> SCANNING -> COMMITTING -> IDLE
                                  ^             |
                                  +-- next batch+

============================================================
DESIGN PRINCIPLES
============================================================
- One scanner for every chain, parameterized by ChainProfile
- The cursor advances only after a batch is recorded
- Any adapter or store failure aborts the rest of the range and
  leaves the cursor at the last committed height
- Overlap re-scans are harmless: the recorder is idempotent

============================================================
"""

import logging
import math
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional

from sqlalchemy.orm import sessionmaker

from chain_adapters.base import BaseChainAdapter
from chain_adapters.exceptions import ChainAdapterError
from chain_adapters.models import Transfer
from core.chains import ChainProfile, normalize_address
from core.exceptions import InvalidTxIdError, StoreError
from core.tx_ids import canonical_tx_id
from ingestion.recorder import ContributionCandidate, ContributionRecorder
from ingestion.wallet_directory import DirectoryEntry, WalletDirectory
from storage.database import session_scope
from storage.repositories import CursorRepository, RepositoryException


logger = logging.getLogger(__name__)


class ScanState(Enum):
    IDLE = "idle"
    DETERMINE_RANGE = "determine_range"
    SCANNING = "scanning"
    COMMITTING = "committing"


# Range reasons
REASON_SINCE_HEIGHT = "since_height"
REASON_SINCE_HOURS = "since_hours"
REASON_CURSOR = "cursor"
REASON_FALLBACK = "fallback_window"
REASON_WAITING = "waiting_for_confirmations"
REASON_NO_WALLETS = "no_active_wallets"


@dataclass
class ScanRange:
    start: int
    end: int
    reason: str
    tip: int
    safe_tip: int

    @property
    def is_empty(self) -> bool:
        return self.end < self.start


def plan_range(
    profile: ChainProfile,
    tip: int,
    cursor: Optional[int],
    since_height: Optional[int] = None,
    since_hours: Optional[float] = None,
) -> ScanRange:
    """
    Compute the height range for one run.

    Start priority: since_height, since_hours, cursor - overlap + 1,
    then the first-run fallback window below the safe tip. The range
    never exceeds max_blocks and never passes the confirmation floor.
    """
    safe_tip = max(0, tip - profile.min_confirmations)

    if since_height is not None:
        start = max(0, since_height)
        reason = REASON_SINCE_HEIGHT
    elif since_hours is not None:
        lookback = math.floor(since_hours * 3600 / profile.avg_block_seconds)
        start = max(0, safe_tip - lookback)
        reason = REASON_SINCE_HOURS
    elif cursor is not None:
        start = max(0, cursor - profile.overlap + 1)
        reason = REASON_CURSOR
    else:
        start = max(0, safe_tip - min(profile.fallback_window, profile.max_blocks) + 1)
        reason = REASON_FALLBACK

    end = min(safe_tip, start + profile.max_blocks - 1)
    if end < start:
        reason = REASON_WAITING
    return ScanRange(start=start, end=end, reason=reason, tip=tip, safe_tip=safe_tip)


@dataclass
class ScanResult:
    """Outcome of one scanner run."""
    chain: str
    reason: str
    tip: Optional[int] = None
    safe_tip: Optional[int] = None
    start: Optional[int] = None
    end: Optional[int] = None
    scanned: int = 0
    matched: int = 0
    inserted: int = 0
    duplicates: int = 0
    rejected: int = 0
    last_committed_height: Optional[int] = None
    aborted: bool = False
    budget_exhausted: bool = False
    error: Optional[str] = None
    error_detail: Optional[str] = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    duration_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return not self.aborted and self.error is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "chain": self.chain,
            "reason": self.reason,
            "tip": self.tip,
            "safe_tip": self.safe_tip,
            "start": self.start,
            "end": self.end,
            "scanned": self.scanned,
            "matched": self.matched,
            "inserted": self.inserted,
            "duplicates": self.duplicates,
            "rejected": self.rejected,
            "last_committed_height": self.last_committed_height,
            "aborted": self.aborted,
            "budget_exhausted": self.budget_exhausted,
            "error": self.error,
            "error_detail": self.error_detail,
            "started_at": self.started_at.isoformat(),
            "duration_ms": round(self.duration_ms, 1),
        }


class BlockScanner:
    """
    Scanner for one chain.

    Usage:
        scanner = BlockScanner(adapter, directory, recorder, session_factory)
        result = await scanner.run(since_hours=6)
    """

    def __init__(
        self,
        adapter: BaseChainAdapter,
        directory: WalletDirectory,
        recorder: ContributionRecorder,
        session_factory: sessionmaker,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._adapter = adapter
        self._directory = directory
        self._recorder = recorder
        self._session_factory = session_factory
        self._clock = clock
        self._state = ScanState.IDLE

    @property
    def state(self) -> ScanState:
        return self._state

    @property
    def chain(self) -> str:
        return self._adapter.chain.value

    # ─────────────────────────────────────────────────────────────
    # Cursor access
    # ─────────────────────────────────────────────────────────────

    def _read_cursor(self) -> Optional[int]:
        try:
            with session_scope(self._session_factory) as session:
                return CursorRepository(session).get(self.chain)
        except RepositoryException as e:
            raise StoreError(f"Cursor read failed: {e.message}", context=e.to_dict(), cause=e) from e

    def _advance_cursor(self, height: int) -> int:
        try:
            with session_scope(self._session_factory) as session:
                return CursorRepository(session).advance(self.chain, height)
        except RepositoryException as e:
            raise StoreError(f"Cursor advance failed: {e.message}", context=e.to_dict(), cause=e) from e

    # ─────────────────────────────────────────────────────────────
    # Run
    # ─────────────────────────────────────────────────────────────

    async def run(
        self,
        since_height: Optional[int] = None,
        since_hours: Optional[float] = None,
        overlap: Optional[int] = None,
        max_blocks: Optional[int] = None,
        min_confirmations: Optional[int] = None,
        time_budget_seconds: Optional[float] = None,
    ) -> ScanResult:
        """
        Scan one range and record matches.

        Never raises for adapter or store failures; they are reported
        in the result with aborted=True.
        """
        started = self._clock()
        profile = self._adapter.profile.with_overrides(
            overlap=overlap,
            max_blocks=max_blocks,
            min_confirmations=min_confirmations,
        )
        result = ScanResult(chain=self.chain, reason=REASON_FALLBACK)

        try:
            self._state = ScanState.DETERMINE_RANGE
            wallets = self._directory.wallets_for(profile.slug)
            if not wallets:
                result.reason = REASON_NO_WALLETS
                logger.info(f"[{self.chain}] No active wallets, skipping scan")
                return result

            tip = await self._adapter.get_tip()
            scan_range = plan_range(
                profile,
                tip,
                self._read_cursor(),
                since_height=since_height,
                since_hours=since_hours,
            )
            result.reason = scan_range.reason
            result.tip = scan_range.tip
            result.safe_tip = scan_range.safe_tip
            result.start = scan_range.start
            result.end = scan_range.end

            if scan_range.is_empty:
                logger.info(
                    f"[{self.chain}] Waiting for confirmations: start={scan_range.start} "
                    f"safe_tip={scan_range.safe_tip}"
                )
                return result

            logger.info(
                f"[{self.chain}] Scanning {scan_range.start}..{scan_range.end} "
                f"(tip={tip}, reason={scan_range.reason})"
            )

            for batch_start in range(scan_range.start, scan_range.end + 1, profile.batch_size):
                if time_budget_seconds is not None and self._clock() - started >= time_budget_seconds:
                    result.budget_exhausted = True
                    logger.warning(
                        f"[{self.chain}] Time budget exhausted before height {batch_start}"
                    )
                    break

                batch_end = min(scan_range.end, batch_start + profile.batch_size - 1)

                self._state = ScanState.SCANNING
                candidates, scanned = await self._scan_batch(batch_start, batch_end, wallets)
                result.scanned += scanned
                result.matched += len(candidates)

                self._state = ScanState.COMMITTING
                summary = await self._recorder.record_many(candidates)
                result.inserted += summary.inserted
                result.duplicates += summary.already_recorded
                result.rejected += summary.rejected

                self._advance_cursor(batch_end)
                result.last_committed_height = batch_end

        except ChainAdapterError as e:
            result.aborted = True
            result.error = e.code
            result.error_detail = e.message
            logger.warning(f"[{self.chain}] Scan aborted: {e}")
        except StoreError as e:
            result.aborted = True
            result.error = e.code
            result.error_detail = e.message
            logger.error(f"[{self.chain}] Scan aborted on store error: {e.message}")
        finally:
            self._state = ScanState.IDLE
            result.duration_ms = (self._clock() - started) * 1000

        logger.info(
            f"[{self.chain}] Scan done: scanned={result.scanned} matched={result.matched} "
            f"inserted={result.inserted} duplicates={result.duplicates} "
            f"cursor={result.last_committed_height} aborted={result.aborted}"
        )
        return result

    async def _scan_batch(
        self,
        start: int,
        end: int,
        wallets: dict[str, DirectoryEntry],
    ) -> tuple[list[ContributionCandidate], int]:
        """Fetch start..end and build one candidate per (tx, wallet)."""
        chain = self._adapter.chain
        matched: list[tuple[Transfer, DirectoryEntry, int, Optional[datetime]]] = []
        scanned = 0

        for height in range(start, end + 1):
            block = await self._adapter.get_block(height)
            scanned += 1
            for transfer in block.transfers:
                if transfer.native_amount <= 0:
                    continue
                entry = wallets.get(normalize_address(chain, transfer.destination))
                if entry is not None:
                    matched.append((transfer, entry, block.height, block.timestamp))

        if not matched:
            return [], scanned

        successful = set(await self._adapter.filter_successful([m[0] for m in matched]))

        # Several outputs of one tx to the same wallet become one row.
        totals: dict[tuple[str, str], ContributionCandidate] = {}
        for transfer, entry, height, timestamp in matched:
            if transfer not in successful:
                continue
            try:
                tx_hash = canonical_tx_id(chain, transfer.tx_id)
            except InvalidTxIdError as e:
                logger.warning(f"[{chain.value}] Skipping transfer with bad tx id {transfer.tx_id!r}: {e.reason}")
                continue
            key = (tx_hash, entry.wallet_id)
            candidate = totals.get(key)
            if candidate is None:
                totals[key] = ContributionCandidate(
                    chain=chain,
                    wallet_id=entry.wallet_id,
                    tx_hash=tx_hash,
                    native_amount=transfer.native_amount,
                    block_time=timestamp,
                    block_height=height,
                    source="scanner",
                )
            else:
                candidate.native_amount += transfer.native_amount

        return list(totals.values()), scanned
