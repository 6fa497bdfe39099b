"""
Wallet Directory - Active project wallets keyed by canonical chain.

Rows may spell their chain as a vendor alias ("ethereum", "matic");
the directory canonicalizes them so scanner and claim lookups only
ever deal in ChainSlug values. Addresses compare in
normalize_address() form.

The snapshot is held in an injected TTLCache, so new wallets become
visible after at most one TTL (or immediately after refresh()).
"""

import logging
from dataclasses import dataclass
from typing import Optional, Union

from sqlalchemy.orm import sessionmaker

from core.cache import TTLCache
from core.chains import ChainSlug, canonical_chain, normalize_address, try_canonical_chain
from core.exceptions import StoreError
from storage.database import session_scope
from storage.repositories import RepositoryException, WalletRepository


logger = logging.getLogger(__name__)

SNAPSHOT_KEY = "active_wallets"


@dataclass(frozen=True)
class DirectoryEntry:
    """A project wallet as seen by the matching code."""
    wallet_id: str
    chain: ChainSlug
    address: str
    label: Optional[str] = None


class WalletDirectory:
    """
    Read-only view of active project wallets.

    Usage:
        directory = WalletDirectory(session_factory, TTLCache(ttl_seconds=60))
        entry = directory.lookup("ethereum", "0xAbC...")
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        cache: Optional[TTLCache] = None,
    ) -> None:
        self._session_factory = session_factory
        self._cache = cache or TTLCache(max_entries=4, ttl_seconds=60.0)

    def _load(self) -> dict[ChainSlug, dict[str, DirectoryEntry]]:
        try:
            with session_scope(self._session_factory) as session:
                rows = WalletRepository(session).list_active()
                snapshot: dict[ChainSlug, dict[str, DirectoryEntry]] = {}
                for row in rows:
                    slug = try_canonical_chain(row.chain)
                    if slug is None:
                        logger.warning(f"Skipping wallet {row.id}: unknown chain {row.chain!r}")
                        continue
                    key = normalize_address(slug, row.address)
                    if not key:
                        continue
                    by_address = snapshot.setdefault(slug, {})
                    if key in by_address:
                        logger.warning(
                            f"Wallet {row.id} duplicates {by_address[key].wallet_id} on {slug.value}, ignored"
                        )
                        continue
                    by_address[key] = DirectoryEntry(
                        wallet_id=row.id,
                        chain=slug,
                        address=row.address.strip(),
                        label=row.label,
                    )
        except RepositoryException as e:
            raise StoreError(
                f"Failed to load wallet directory: {e.message}",
                context=e.to_dict(),
                cause=e,
            ) from e

        total = sum(len(v) for v in snapshot.values())
        logger.debug(f"Loaded {total} active wallets across {len(snapshot)} chains")
        return snapshot

    def _snapshot(self) -> dict[ChainSlug, dict[str, DirectoryEntry]]:
        snapshot = self._cache.get(SNAPSHOT_KEY)
        if snapshot is None:
            snapshot = self._load()
            self._cache.set(SNAPSHOT_KEY, snapshot)
        return snapshot

    def refresh(self) -> None:
        """Drop the cached snapshot; the next read reloads."""
        self._cache.invalidate(SNAPSHOT_KEY)

    def wallets_for(self, chain: Union[str, ChainSlug]) -> dict[str, DirectoryEntry]:
        """Active wallets of one chain keyed by normalized address."""
        return dict(self._snapshot().get(canonical_chain(chain), {}))

    def lookup(self, chain: Union[str, ChainSlug], address: Optional[str]) -> Optional[DirectoryEntry]:
        """The project wallet receiving at address, or None."""
        if not address:
            return None
        slug = canonical_chain(chain)
        return self._snapshot().get(slug, {}).get(normalize_address(slug, address))

    def chains(self) -> list[ChainSlug]:
        return sorted(self._snapshot().keys(), key=lambda s: s.value)
