"""
Chain Adapter Registry - One adapter per canonical chain.

Features:
- Adapter registration keyed by ChainSlug
- Construction from EngineConfig (endpoint pools, provider override)
- Aggregated health for diagnostics
- Single close() for every router session
"""

import logging
from typing import Any, Optional, Union

from chain_adapters.base import BaseChainAdapter
from chain_adapters.exceptions import ChainNotSupportedError
from chain_adapters.providers import (
    BlockfrostAdapter,
    CosmosLcdAdapter,
    EsploraAdapter,
    EvmRpcAdapter,
    PolkadotSidecarAdapter,
    SolanaAdapter,
    StellarHorizonAdapter,
    TronAdapter,
    UtxoRpcAdapter,
    XrpLedgerAdapter,
)
from chain_adapters.router import RpcRouter
from core.chains import ChainFamily, ChainSlug, canonical_chain
from core.config import ChainRpcConfig, EngineConfig
from core.exceptions import ConfigurationError


logger = logging.getLogger(__name__)


# Chains with exactly one provider family
DEDICATED_ADAPTERS: dict[ChainSlug, type[BaseChainAdapter]] = {
    ChainSlug.XRP: XrpLedgerAdapter,
    ChainSlug.XLM: StellarHorizonAdapter,
    ChainSlug.SOL: SolanaAdapter,
    ChainSlug.TRX: TronAdapter,
    ChainSlug.DOT: PolkadotSidecarAdapter,
    ChainSlug.ATOM: CosmosLcdAdapter,
    ChainSlug.ADA: BlockfrostAdapter,
}


def adapter_class_for(chain_config: ChainRpcConfig) -> type[BaseChainAdapter]:
    """Pick the adapter class for a chain and its provider override."""
    profile = chain_config.profile
    if profile.family == ChainFamily.EVM:
        return EvmRpcAdapter
    dedicated = DEDICATED_ADAPTERS.get(profile.slug)
    if dedicated is not None:
        return dedicated
    if chain_config.provider == "esplora":
        return EsploraAdapter
    if chain_config.provider not in (None, "rpc", "node"):
        raise ConfigurationError(
            f"Unknown provider {chain_config.provider!r} for {profile.name}",
            config_key=f"{profile.name.upper()}_PROVIDER",
        )
    return UtxoRpcAdapter


def build_adapter(chain_config: ChainRpcConfig, engine_config: EngineConfig) -> BaseChainAdapter:
    """Create the router and adapter for one configured chain."""
    adapter_class = adapter_class_for(chain_config)
    profile = chain_config.profile
    router = RpcRouter.from_config(
        profile.name,
        chain_config.endpoints,
        engine_config.router,
        timeout=profile.timeout_seconds,
        parse_float_as_decimal=adapter_class is UtxoRpcAdapter,
    )
    return adapter_class(profile, router)


class AdapterRegistry:
    """
    Registry of chain adapters.

    Usage:
        registry = AdapterRegistry.from_config(EngineConfig.from_env())
        adapter = registry.get("ethereum")
        tip = await adapter.get_tip()
    """

    def __init__(self) -> None:
        self._adapters: dict[ChainSlug, BaseChainAdapter] = {}

    @classmethod
    def from_config(cls, config: EngineConfig) -> "AdapterRegistry":
        registry = cls()
        for slug in config.enabled_chains():
            registry.register(build_adapter(config.chain(slug), config))
        if not registry.list_chains():
            logger.warning("No chain endpoints configured; set {CHAIN}_RPC_POOL")
        return registry

    def register(self, adapter: BaseChainAdapter) -> None:
        if adapter.chain in self._adapters:
            logger.warning(f"Adapter for '{adapter.chain.value}' already registered, replacing")
        self._adapters[adapter.chain] = adapter
        logger.info(f"Registered chain adapter '{adapter.name}'")

    def unregister(self, chain: Union[str, ChainSlug]) -> Optional[BaseChainAdapter]:
        return self._adapters.pop(canonical_chain(chain), None)

    def get(self, chain: Union[str, ChainSlug]) -> BaseChainAdapter:
        """
        Adapter for a chain name or alias.

        Raises:
            InvalidChainError: Unknown chain name
            ChainNotSupportedError: Known chain without configured endpoints
        """
        slug = canonical_chain(chain)
        adapter = self._adapters.get(slug)
        if adapter is None:
            raise ChainNotSupportedError(
                message=f"No adapter configured for {slug.value}",
                chain=slug.value,
                configured_chains=[c.value for c in self.list_chains()],
            )
        return adapter

    def has(self, chain: Union[str, ChainSlug]) -> bool:
        return canonical_chain(chain) in self._adapters

    def list_chains(self) -> list[ChainSlug]:
        return list(self._adapters.keys())

    async def health_check_all(self) -> dict[str, dict[str, Any]]:
        return {
            slug.value: (await adapter.health_check()).to_dict()
            for slug, adapter in self._adapters.items()
        }

    def get_status_summary(self) -> dict[str, Any]:
        return {
            slug.value: {
                "adapter": adapter.name,
                "health": adapter.get_health().to_dict(),
                "router": adapter.router.last_used,
            }
            for slug, adapter in self._adapters.items()
        }

    async def close(self) -> None:
        for adapter in self._adapters.values():
            await adapter.close()
