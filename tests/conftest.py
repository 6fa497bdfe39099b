"""
Shared test fixtures.

- In-memory SQLite store with the full schema
- Wallet factory
- FakeChainAdapter: in-memory blocks and transactions behind the
  real BaseChainAdapter interface
"""

import asyncio
from typing import Optional

import pytest

from chain_adapters.base import BaseChainAdapter
from chain_adapters.exceptions import RpcUnavailableError
from chain_adapters.models import BlockData, Transfer, TxLookup
from chain_adapters.registry import AdapterRegistry
from chain_adapters.router import RpcRouter
from core.chains import ChainProfile, get_profile
from storage.database import (
    create_all_tables,
    create_database_engine,
    create_session_factory,
    session_scope,
)
from storage.repositories import WalletRepository


# ============================================================
# STORE
# ============================================================

@pytest.fixture
def engine():
    engine = create_database_engine("sqlite://")
    create_all_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def make_wallet(session_factory):
    """Insert a wallet and return its id."""

    def _make(chain: str, address: str, is_active: bool = True, wallet_id: Optional[str] = None) -> str:
        with session_scope(session_factory) as session:
            wallet = WalletRepository(session).create(
                chain, address, is_active=is_active, wallet_id=wallet_id
            )
            return wallet.id

    return _make


# ============================================================
# FAKE ADAPTER
# ============================================================

class FakeChainAdapter(BaseChainAdapter):
    """
    Adapter serving canned data.

    Set `fail_at` to a height to make get_block raise
    RpcUnavailableError there; set `tx_gate` to an asyncio.Event to
    suspend get_transaction until it is set.
    """

    def __init__(self, profile: ChainProfile, tip: int = 0, supports_tx_lookup: bool = True) -> None:
        super().__init__(profile, RpcRouter(profile.name, ["http://127.0.0.1:9"]))
        self.tip = tip
        self.blocks: dict[int, BlockData] = {}
        self.transactions: dict[str, TxLookup] = {}
        self.failed_txs: set[str] = set()
        self.fail_at: Optional[int] = None
        self.tx_gate: Optional[asyncio.Event] = None
        self.fetched_heights: list[int] = []
        self.tx_calls = 0
        self.SUPPORTS_TX_LOOKUP = supports_tx_lookup

    @property
    def provider_name(self) -> str:
        return "fake"

    def add_transfer(self, height: int, tx_id: str, destination: str, native_amount: int) -> None:
        block = self.blocks.setdefault(height, BlockData(height=height, timestamp=None))
        block.transfers.append(Transfer(tx_id=tx_id, destination=destination, native_amount=native_amount))

    async def get_tip(self) -> int:
        return self.tip

    async def get_block(self, height: int) -> BlockData:
        if self.fail_at is not None and height >= self.fail_at:
            raise RpcUnavailableError(
                message=f"All RPC endpoints failed for block {height}",
                chain=self.chain.value,
            )
        self.fetched_heights.append(height)
        return self.blocks.get(height, BlockData(height=height, timestamp=None))

    async def filter_successful(self, transfers: list[Transfer]) -> list[Transfer]:
        return [t for t in transfers if t.tx_id not in self.failed_txs]

    async def get_transaction(self, tx_id: str) -> TxLookup:
        self.tx_calls += 1
        if not self.SUPPORTS_TX_LOOKUP:
            return await super().get_transaction(tx_id)
        if self.tx_gate is not None:
            await self.tx_gate.wait()
        lookup = self.transactions.get(tx_id)
        if isinstance(lookup, Exception):
            raise lookup
        return lookup or TxLookup.not_found(tx_id)


@pytest.fixture
def fake_adapter():
    """Factory for FakeChainAdapter by chain name."""

    def _make(chain: str, tip: int = 0, **profile_overrides) -> FakeChainAdapter:
        return FakeChainAdapter(get_profile(chain).with_overrides(**profile_overrides), tip=tip)

    return _make


@pytest.fixture
def registry_with():
    def _make(*adapters: BaseChainAdapter) -> AdapterRegistry:
        registry = AdapterRegistry()
        for adapter in adapters:
            registry.register(adapter)
        return registry

    return _make
