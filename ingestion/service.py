"""
Ingestion Service - Entry point for scans and claims.

============================================================
RESPONSIBILITY
============================================================
Wires adapters, wallet directory, recorder and claim verifier
together and exposes the two triggers:

- run_ingestion(chain, **overrides) -> ScanResult
- verify_and_record(chain, tx, note) -> ClaimResult

Scans are single-flight per chain: a second run for a chain that
is already scanning returns at once with error "scan_in_progress".

============================================================
USAGE
============================================================
    service = IngestionService.from_config(EngineConfig.from_env())
    try:
        result = await service.run_ingestion("btc", since_hours=6)
    finally:
        await service.close()

============================================================
"""

import asyncio
import logging
from typing import Any, Optional, Union

from sqlalchemy.orm import sessionmaker

from chain_adapters.registry import AdapterRegistry
from claims.verifier import ClaimResult, ClaimVerifier
from core.cache import TTLCache
from core.chains import ChainSlug, canonical_chain
from core.config import EngineConfig
from core.exceptions import StoreError
from ingestion.recorder import ContributionRecorder
from ingestion.scanner import BlockScanner, ScanResult
from ingestion.wallet_directory import WalletDirectory
from pricing import build_price_source
from pricing.ports import PricingPort
from storage.database import create_database_engine, create_session_factory, session_scope
from storage.repositories import CursorRepository, RepositoryException


logger = logging.getLogger(__name__)

SCAN_IN_PROGRESS = "scan_in_progress"


class IngestionService:
    """
    Facade over scanner and claim verifier.

    All collaborators are injected; from_config() builds the
    production wiring.
    """

    def __init__(
        self,
        registry: AdapterRegistry,
        session_factory: sessionmaker,
        directory: Optional[WalletDirectory] = None,
        recorder: Optional[ContributionRecorder] = None,
        pricing: Optional[PricingPort] = None,
    ) -> None:
        self._registry = registry
        self._session_factory = session_factory
        self._directory = directory or WalletDirectory(session_factory)
        self._pricing = pricing
        self._recorder = recorder or ContributionRecorder(session_factory, pricing=pricing)
        self._verifier = ClaimVerifier(registry, self._directory, self._recorder)
        self._scanners: dict[ChainSlug, BlockScanner] = {}
        self._locks: dict[ChainSlug, asyncio.Lock] = {}

    @classmethod
    def from_config(
        cls,
        config: EngineConfig,
        session_factory: Optional[sessionmaker] = None,
    ) -> "IngestionService":
        if session_factory is None:
            session_factory = create_session_factory(create_database_engine(config.database_url))
        directory = WalletDirectory(
            session_factory,
            TTLCache(max_entries=4, ttl_seconds=config.wallet_cache_ttl_seconds),
        )
        return cls(
            registry=AdapterRegistry.from_config(config),
            session_factory=session_factory,
            directory=directory,
            pricing=build_price_source(config.pricing),
        )

    @property
    def registry(self) -> AdapterRegistry:
        return self._registry

    @property
    def directory(self) -> WalletDirectory:
        return self._directory

    def _scanner(self, chain: ChainSlug) -> BlockScanner:
        scanner = self._scanners.get(chain)
        if scanner is None:
            scanner = BlockScanner(
                self._registry.get(chain),
                self._directory,
                self._recorder,
                self._session_factory,
            )
            self._scanners[chain] = scanner
        return scanner

    async def run_ingestion(self, chain: Union[str, ChainSlug], **overrides: Any) -> ScanResult:
        """
        Scan one chain.

        Args:
            chain: Chain slug or alias
            **overrides: since_height, since_hours, overlap, max_blocks,
                min_confirmations, time_budget_seconds

        Raises:
            InvalidChainError: Unknown chain name
            ChainNotSupportedError: No endpoints configured for the chain
        """
        slug = canonical_chain(chain)
        scanner = self._scanner(slug)
        lock = self._locks.setdefault(slug, asyncio.Lock())
        if lock.locked():
            logger.warning(f"[{slug.value}] Scan already running, skipping")
            return ScanResult(chain=slug.value, reason=SCAN_IN_PROGRESS, error=SCAN_IN_PROGRESS)

        async with lock:
            # Directory changes become visible on the next run.
            self._directory.refresh()
            return await scanner.run(**overrides)

    async def verify_and_record(
        self,
        chain: Any,
        tx_identifier: Any,
        note: Optional[str] = None,
    ) -> ClaimResult:
        return await self._verifier.verify(chain, tx_identifier, note)

    def list_cursors(self) -> list[dict[str, Any]]:
        """Current scan cursors for diagnostics."""
        try:
            with session_scope(self._session_factory) as session:
                return [c.to_dict() for c in CursorRepository(session).list_all()]
        except RepositoryException as e:
            raise StoreError(f"Cursor listing failed: {e.message}", context=e.to_dict(), cause=e) from e

    def scanner_states(self) -> dict[str, str]:
        return {slug.value: scanner.state.value for slug, scanner in self._scanners.items()}

    async def close(self) -> None:
        await self._registry.close()
        close = getattr(self._pricing, "close", None)
        if close is not None:
            await close()
