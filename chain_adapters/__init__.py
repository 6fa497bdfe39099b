"""
Chain Adapters Package - Uniform block/transaction access per chain.

Every chain family maps its native RPC or REST payloads onto the
same BlockData / TxLookup types, and every network call goes through
an RpcRouter with endpoint fallback and auth variants.

Quick Start:
    from chain_adapters import AdapterRegistry
    from core.config import EngineConfig

    async def latest_eth_height():
        registry = AdapterRegistry.from_config(EngineConfig.from_env())
        try:
            return await registry.get("eth").get_tip()
        finally:
            await registry.close()

Adding New Adapters:
    class NewAdapter(BaseChainAdapter):
        @property
        def provider_name(self) -> str:
            return "new_provider"

        async def get_tip(self): ...
        async def get_block(self, height): ...
        async def get_transaction(self, tx_id): ...
"""

from chain_adapters.auth import DEFAULT_AUTH_STRATEGIES, NO_KEY, AuthStrategy
from chain_adapters.base import BaseChainAdapter
from chain_adapters.exceptions import (
    ChainAdapterError,
    ChainNotSupportedError,
    FetchError,
    NormalizationError,
    RateLimitError,
    RpcResponseError,
    RpcUnavailableError,
    TxLookupNotSupportedError,
)
from chain_adapters.models import (
    AdapterHealth,
    AdapterStatus,
    BlockData,
    Transfer,
    TxLookup,
    TxStatus,
)
from chain_adapters.registry import AdapterRegistry, build_adapter
from chain_adapters.router import RpcRouter


__all__ = [
    # Auth
    "AuthStrategy",
    "DEFAULT_AUTH_STRATEGIES",
    "NO_KEY",

    # Base
    "BaseChainAdapter",
    "RpcRouter",

    # Models
    "AdapterHealth",
    "AdapterStatus",
    "BlockData",
    "Transfer",
    "TxLookup",
    "TxStatus",

    # Exceptions
    "ChainAdapterError",
    "ChainNotSupportedError",
    "FetchError",
    "NormalizationError",
    "RateLimitError",
    "RpcResponseError",
    "RpcUnavailableError",
    "TxLookupNotSupportedError",

    # Registry
    "AdapterRegistry",
    "build_adapter",
]
