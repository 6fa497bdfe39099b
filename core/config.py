"""
Core Module - Configuration.

============================================================
RESPONSIBILITY
============================================================
Loads engine configuration from the environment (.env aware).

- Database URL
- RPC endpoint pools and shared credential per chain
- Per-chain profile overrides
- Pricing source settings

============================================================
ENVIRONMENT
============================================================
DATABASE_URL                 SQLAlchemy URL
RPC_API_KEY                  Shared RPC credential (NOWNODES_API_KEY fallback)
RPC_EXTRA_PASSES             Full retry passes after the first (default 2)
RPC_BACKOFF_SECONDS          Base backoff between passes (default 0.4)
SCAN_BATCH_SIZE              Heights committed together
WALLET_CACHE_TTL_SECONDS     Wallet directory refresh interval
{CHAIN}_RPC_POOL             Comma/newline separated endpoints
{CHAIN}_RPC_URL              Single endpoint, appended to the pool
{CHAIN}_PUBLIC_RPC_URL       Keyless endpoint, appended last
{CHAIN}_PROVIDER             Provider override (btc/ltc/doge: "esplora")
{CHAIN}_TIMEOUT              Per-attempt timeout in seconds
{CHAIN}_MIN_CONF / _OVERLAP / _MAX_BLOCKS / _FALLBACK_WINDOW
PRICING_ENABLED              Attach USD value after insert (default true)
COINGECKO_API_BASE / COINGECKO_API_KEY / PRICE_CACHE_TTL_SECONDS

============================================================
"""

import os
import re
from dataclasses import dataclass, field
from typing import Any, Optional

from dotenv import load_dotenv

from core.chains import DEFAULT_PROFILES, ChainProfile, ChainSlug
from core.exceptions import ConfigurationError


load_dotenv()


def _env_int(name: str, default: Optional[int] = None) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer", config_key=name, cause=e) from e


def _env_float(name: str, default: Optional[float] = None) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number", config_key=name, cause=e) from e


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def parse_endpoint_pool(*values: Optional[str]) -> list[str]:
    """
    Merge endpoint lists into an ordered, de-duplicated pool.

    Entries are split on commas and newlines, trimmed, and stripped of
    trailing slashes. First occurrence wins.
    """
    pool: list[str] = []
    for value in values:
        if not value:
            continue
        for item in re.split(r"[,\n]", value):
            url = item.strip().rstrip("/")
            if url and url not in pool:
                pool.append(url)
    return pool


@dataclass
class ChainRpcConfig:
    """Endpoint pool and provider choice for one chain."""
    chain: ChainSlug
    endpoints: list[str] = field(default_factory=list)
    provider: Optional[str] = None
    profile: Optional[ChainProfile] = None

    def __post_init__(self):
        if self.profile is None:
            self.profile = DEFAULT_PROFILES[self.chain]

    @property
    def enabled(self) -> bool:
        return bool(self.endpoints)

    def to_dict(self) -> dict[str, Any]:
        return {
            "chain": self.chain.value,
            "endpoints": len(self.endpoints),
            "provider": self.provider,
            "profile": self.profile.to_dict() if self.profile else None,
        }


@dataclass
class RouterConfig:
    """Retry policy shared by every RPC router."""
    api_key: Optional[str] = None
    extra_passes: int = 2
    backoff_seconds: float = 0.4
    variant_pause_seconds: float = 0.2


@dataclass
class PricingConfig:
    enabled: bool = True
    base_url: str = "https://api.coingecko.com/api/v3"
    api_key: Optional[str] = None
    cache_ttl_seconds: float = 300.0
    timeout_seconds: float = 10.0


@dataclass
class EngineConfig:
    """
    Top-level configuration.

    Build with EngineConfig.from_env() in production; tests construct
    it directly.
    """
    database_url: str = "sqlite:///contributions.db"
    router: RouterConfig = field(default_factory=RouterConfig)
    chains: dict[ChainSlug, ChainRpcConfig] = field(default_factory=dict)
    pricing: PricingConfig = field(default_factory=PricingConfig)
    wallet_cache_ttl_seconds: float = 60.0

    def chain(self, slug: ChainSlug) -> ChainRpcConfig:
        config = self.chains.get(slug)
        if config is None:
            config = ChainRpcConfig(chain=slug)
            self.chains[slug] = config
        return config

    def enabled_chains(self) -> list[ChainSlug]:
        return [slug for slug, cfg in self.chains.items() if cfg.enabled]

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Read configuration from the process environment."""
        router = RouterConfig(
            api_key=os.getenv("RPC_API_KEY") or os.getenv("NOWNODES_API_KEY") or None,
            extra_passes=_env_int("RPC_EXTRA_PASSES", 2),
            backoff_seconds=_env_float("RPC_BACKOFF_SECONDS", 0.4),
            variant_pause_seconds=_env_float("RPC_VARIANT_PAUSE_SECONDS", 0.2),
        )
        batch_size = _env_int("SCAN_BATCH_SIZE")

        chains: dict[ChainSlug, ChainRpcConfig] = {}
        for slug, default_profile in DEFAULT_PROFILES.items():
            prefix = slug.value.upper()
            endpoints = parse_endpoint_pool(
                os.getenv(f"{prefix}_RPC_POOL"),
                os.getenv(f"{prefix}_RPC_URL"),
                os.getenv(f"{prefix}_PUBLIC_RPC_URL"),
            )
            profile = default_profile.with_overrides(
                timeout_seconds=_env_float(f"{prefix}_TIMEOUT"),
                min_confirmations=_env_int(f"{prefix}_MIN_CONF"),
                overlap=_env_int(f"{prefix}_OVERLAP"),
                max_blocks=_env_int(f"{prefix}_MAX_BLOCKS"),
                fallback_window=_env_int(f"{prefix}_FALLBACK_WINDOW"),
                batch_size=batch_size,
            )
            provider = (os.getenv(f"{prefix}_PROVIDER") or "").strip().lower() or None
            chains[slug] = ChainRpcConfig(
                chain=slug,
                endpoints=endpoints,
                provider=provider,
                profile=profile,
            )

        pricing = PricingConfig(
            enabled=_env_bool("PRICING_ENABLED", True),
            base_url=os.getenv("COINGECKO_API_BASE", PricingConfig.base_url).rstrip("/"),
            api_key=os.getenv("COINGECKO_API_KEY") or None,
            cache_ttl_seconds=_env_float("PRICE_CACHE_TTL_SECONDS", 300.0),
        )

        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            router=router,
            chains=chains,
            pricing=pricing,
            wallet_cache_ttl_seconds=_env_float("WALLET_CACHE_TTL_SECONDS", 60.0),
        )
