"""
Base Chain Adapter.

An adapter turns one provider API family into three questions the
engine asks of every chain:

- get_tip(): how far can we scan
- get_block(h): which native transfers happened at height h
- get_transaction(id): what happened to this one transaction

Rules every adapter follows:
- Every request goes through the chain's RpcRouter (_rpc / _rest)
- Amounts are integers in the smallest unit, never floats
- Unknown, pending and failed transactions are TxLookup values
- Exhausted endpoints and unreadable payloads are raised
"""

import logging
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from chain_adapters.exceptions import (
    ChainAdapterError,
    NormalizationError,
    RpcResponseError,
    TxLookupNotSupportedError,
)
from chain_adapters.models import AdapterHealth, AdapterStatus, BlockData, Transfer, TxLookup
from chain_adapters.router import RpcRouter
from core.chains import ChainProfile, ChainSlug


logger = logging.getLogger(__name__)


class BaseChainAdapter(ABC):
    """
    Abstract base class for chain adapters.

    Subclasses set provider_name and implement get_tip / get_block.
    Providers without a by-id lookup set SUPPORTS_TX_LOOKUP = False
    and inherit the raising get_transaction.
    """

    SUPPORTS_TX_LOOKUP = True

    # Consecutive failures before the status changes
    DEGRADED_AFTER = 3
    UNAVAILABLE_AFTER = 5

    def __init__(self, profile: ChainProfile, router: RpcRouter) -> None:
        self._profile = profile
        self._router = router
        self._health = AdapterHealth()

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider family, e.g. "evm_rpc"."""

    @property
    def name(self) -> str:
        return f"{self.provider_name}:{self.chain.value}"

    @property
    def chain(self) -> ChainSlug:
        return self._profile.slug

    @property
    def profile(self) -> ChainProfile:
        return self._profile

    @property
    def router(self) -> RpcRouter:
        return self._router

    # ─────────────────────────────────────────────────────────────
    # Chain operations
    # ─────────────────────────────────────────────────────────────

    @abstractmethod
    async def get_tip(self) -> int:
        """
        Latest height the provider reports.

        Where the provider exposes a finalized or validated head this
        returns it, and the chain profile scans with
        min_confirmations=0.
        """

    @abstractmethod
    async def get_block(self, height: int) -> BlockData:
        """
        One block (ledger, slot) with its native-asset transfers.

        Skipped or empty heights yield an empty transfer list.

        Raises:
            RpcUnavailableError: Router exhausted
            NormalizationError: Malformed payload
        """

    async def get_transaction(self, tx_id: str) -> TxLookup:
        """
        Look up one transaction by canonical id.

        Raises:
            TxLookupNotSupportedError: Provider has no by-id lookup
        """
        raise TxLookupNotSupportedError(
            f"{self.provider_name} cannot look up transactions by id",
            adapter_name=self.name,
            chain=self.chain.value,
        )

    async def filter_successful(self, transfers: list[Transfer]) -> list[Transfer]:
        """
        Keep transfers whose transaction succeeded on-chain.

        The scanner calls this with matched transfers only, so
        providers needing a call per tx (EVM receipts) stay cheap.
        """
        return [t for t in transfers if t.success]

    async def health_check(self) -> AdapterHealth:
        """Read the tip and record latency."""
        started = time.monotonic()
        try:
            self._health.tip_height = await self.get_tip()
        except ChainAdapterError as e:
            logger.warning(f"[{self.name}] Health check failed: {e.message}")
        else:
            self._health.latency_ms = round((time.monotonic() - started) * 1000, 1)
        self._health.checked_at = datetime.now(timezone.utc)
        return self._health

    # ─────────────────────────────────────────────────────────────
    # Network helpers
    # ─────────────────────────────────────────────────────────────

    async def _rpc(
        self,
        method: str,
        params: Optional[list[Any]] = None,
        passthrough_codes: Iterable[int] = (),
    ) -> Any:
        """JSON-RPC call through the router."""
        try:
            result = await self._router.call(method, params, passthrough_codes=passthrough_codes)
        except RpcResponseError:
            # The node answered; only the request was refused.
            self._record_success()
            raise
        except ChainAdapterError as e:
            self._record_failure(e)
            raise
        self._record_success()
        return result

    async def _rest(
        self,
        http_method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        json_body: Optional[Any] = None,
        not_found_ok: bool = False,
        as_text: bool = False,
    ) -> Any:
        """REST call through the router."""
        try:
            result = await self._router.request(
                http_method,
                path,
                params=params,
                json_body=json_body,
                not_found_ok=not_found_ok,
                as_text=as_text,
            )
        except ChainAdapterError as e:
            self._record_failure(e)
            raise
        self._record_success()
        return result

    async def _confirmations_at(self, height: Optional[int]) -> Optional[int]:
        """Confirmations of the block at height; the block itself counts as one."""
        if height is None:
            return None
        tip = await self.get_tip()
        return max(0, tip - height + 1)

    def _malformed(self, message: str, raw: Any = None, field_name: Optional[str] = None) -> NormalizationError:
        return NormalizationError(
            message,
            adapter_name=self.name,
            chain=self.chain.value,
            raw_data=raw,
            field_name=field_name,
        )

    # ─────────────────────────────────────────────────────────────
    # Health
    # ─────────────────────────────────────────────────────────────

    def _record_success(self) -> None:
        health = self._health
        if health.status in (AdapterStatus.DEGRADED, AdapterStatus.UNAVAILABLE):
            logger.info(f"[{self.name}] Healthy again after {health.consecutive_failures} failures")
        health.status = AdapterStatus.HEALTHY
        health.consecutive_failures = 0
        used = self._router.last_used
        if used:
            health.last_endpoint = used["endpoint"]

    def _record_failure(self, error: ChainAdapterError) -> None:
        health = self._health
        health.consecutive_failures += 1
        health.total_failures += 1
        health.last_error = str(error)
        health.last_error_at = datetime.now(timezone.utc)

        if health.consecutive_failures >= self.UNAVAILABLE_AFTER:
            new_status = AdapterStatus.UNAVAILABLE
        elif health.consecutive_failures >= self.DEGRADED_AFTER:
            new_status = AdapterStatus.DEGRADED
        else:
            new_status = health.status
        if new_status != health.status:
            logger.warning(f"[{self.name}] {health.status.value} -> {new_status.value}: {error.message}")
            health.status = new_status
        else:
            logger.debug(f"[{self.name}] {error.code}: {error.message}")

    def get_health(self) -> AdapterHealth:
        return self._health

    # ─────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────

    async def close(self) -> None:
        await self._router.close()

    async def __aenter__(self) -> "BaseChainAdapter":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name} {self._health.status.value}>"
