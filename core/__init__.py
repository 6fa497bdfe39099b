"""
Core Module Package.

Shared primitives that every other package depends on.

Components:
- chains: Canonical chain registry and scanning profiles
- amounts: Native integer to decimal conversion
- tx_ids: Transaction identifier validation
- cache: Bounded TTL cache
- config: Environment-driven configuration
- exceptions: Engine exception hierarchy
"""

from core.amounts import normalize, to_decimal, to_native
from core.cache import TTLCache
from core.chains import (
    CHAIN_ALIASES,
    DEFAULT_PROFILES,
    ChainFamily,
    ChainProfile,
    ChainSlug,
    TxIdFormat,
    canonical_chain,
    get_profile,
    normalize_address,
    try_canonical_chain,
)
from core.exceptions import (
    ConfigurationError,
    ContributionEngineError,
    InputError,
    InvalidAmountError,
    InvalidChainError,
    InvalidTxIdError,
    StoreError,
)
from core.tx_ids import canonical_tx_id, is_valid_tx_id


__all__ = [
    "normalize",
    "to_decimal",
    "to_native",
    "TTLCache",
    "CHAIN_ALIASES",
    "DEFAULT_PROFILES",
    "ChainFamily",
    "ChainProfile",
    "ChainSlug",
    "TxIdFormat",
    "canonical_chain",
    "get_profile",
    "normalize_address",
    "try_canonical_chain",
    "ConfigurationError",
    "ContributionEngineError",
    "InputError",
    "InvalidAmountError",
    "InvalidChainError",
    "InvalidTxIdError",
    "StoreError",
    "canonical_tx_id",
    "is_valid_tx_id",
]
