"""
Core Module - Chain Registry.

============================================================
RESPONSIBILITY
============================================================
Single source of truth for the supported chains.

- Closed enumeration of canonical chain slugs
- Alias resolution for vendor/legacy names
- Per-chain scanning profile (decimals, confirmations, windows)

============================================================
DESIGN PRINCIPLES
============================================================
- Aliases are resolved at every boundary, never stored
- Profiles are immutable data; overrides create new profiles
- One generic scanner is parameterized by ChainProfile

============================================================
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Optional, Union

from core.exceptions import InvalidChainError


class ChainSlug(str, Enum):
    """Canonical chain identifiers."""
    ETH = "eth"
    ARB = "arb"
    AVAX = "avax"
    OP = "op"
    POL = "pol"
    BSC = "bsc"
    BTC = "btc"
    LTC = "ltc"
    DOGE = "doge"
    XRP = "xrp"
    XLM = "xlm"
    SOL = "sol"
    TRX = "trx"
    DOT = "dot"
    ATOM = "atom"
    ADA = "ada"


class ChainFamily(str, Enum):
    """Transfer model of a chain."""
    EVM = "evm"
    UTXO = "utxo"
    ACCOUNT = "account"


class TxIdFormat(str, Enum):
    """Accepted transaction identifier shape."""
    HEX64_0X = "hex64_0x"
    HEX64 = "hex64"
    BASE58_SIGNATURE = "base58_signature"


CHAIN_ALIASES: dict[str, ChainSlug] = {
    "ethereum": ChainSlug.ETH,
    "arbitrum": ChainSlug.ARB,
    "avalanche": ChainSlug.AVAX,
    "optimism": ChainSlug.OP,
    "polygon": ChainSlug.POL,
    "matic": ChainSlug.POL,
    "bnb": ChainSlug.BSC,
    "binance": ChainSlug.BSC,
    "bitcoin": ChainSlug.BTC,
    "litecoin": ChainSlug.LTC,
    "dogecoin": ChainSlug.DOGE,
    "ripple": ChainSlug.XRP,
    "stellar": ChainSlug.XLM,
    "solana": ChainSlug.SOL,
    "tron": ChainSlug.TRX,
    "polkadot": ChainSlug.DOT,
    "cosmos": ChainSlug.ATOM,
    "cardano": ChainSlug.ADA,
}


def canonical_chain(value: Union[str, ChainSlug, None]) -> ChainSlug:
    """
    Resolve a chain name or alias to its canonical slug.

    Matching is case- and whitespace-insensitive.

    Raises:
        InvalidChainError: If the value names no supported chain
    """
    if isinstance(value, ChainSlug):
        return value
    if not isinstance(value, str):
        raise InvalidChainError(value)

    key = value.strip().lower()
    try:
        return ChainSlug(key)
    except ValueError:
        pass

    slug = CHAIN_ALIASES.get(key)
    if slug is None:
        raise InvalidChainError(value)
    return slug


def try_canonical_chain(value: Any) -> Optional[ChainSlug]:
    """Like canonical_chain() but returns None for unknown names."""
    try:
        return canonical_chain(value)
    except InvalidChainError:
        return None


@dataclass(frozen=True)
class ChainProfile:
    """
    Scanning and validation parameters for one chain.

    Attributes:
        slug: Canonical chain id
        family: Transfer model
        symbol: Native asset ticker used for pricing
        decimals: Decimal exponent of the smallest native unit
        avg_block_seconds: Used to convert an hours lookback into heights
        min_confirmations: Heights below tip that are not yet scanned
        overlap: Heights re-scanned behind the cursor on each run
        max_blocks: Upper bound on heights scanned per run
        fallback_window: Heights scanned on the very first run
        tx_id_format: Accepted transaction identifier shape
        timeout_seconds: Per-attempt network timeout
        batch_size: Heights committed together
    """
    slug: ChainSlug
    family: ChainFamily
    symbol: str
    decimals: int
    avg_block_seconds: float
    min_confirmations: int
    overlap: int
    max_blocks: int
    fallback_window: int
    tx_id_format: TxIdFormat
    timeout_seconds: float = 20.0
    batch_size: int = 25

    @property
    def name(self) -> str:
        return self.slug.value

    def with_overrides(self, **overrides: Any) -> "ChainProfile":
        """Return a copy with the non-None overrides applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes) if changes else self

    def to_dict(self) -> dict[str, Any]:
        return {
            "chain": self.slug.value,
            "family": self.family.value,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "avg_block_seconds": self.avg_block_seconds,
            "min_confirmations": self.min_confirmations,
            "overlap": self.overlap,
            "max_blocks": self.max_blocks,
            "fallback_window": self.fallback_window,
            "timeout_seconds": self.timeout_seconds,
            "batch_size": self.batch_size,
        }


def _evm(slug: ChainSlug, symbol: str, avg: float, conf: int, overlap: int = 100,
         fallback: int = 250, timeout: float = 20.0) -> ChainProfile:
    return ChainProfile(
        slug=slug,
        family=ChainFamily.EVM,
        symbol=symbol,
        decimals=18,
        avg_block_seconds=avg,
        min_confirmations=conf,
        overlap=overlap,
        max_blocks=2000,
        fallback_window=fallback,
        tx_id_format=TxIdFormat.HEX64_0X,
        timeout_seconds=timeout,
    )


DEFAULT_PROFILES: dict[ChainSlug, ChainProfile] = {
    ChainSlug.ETH: _evm(ChainSlug.ETH, "ETH", 12, 12),
    ChainSlug.ARB: _evm(ChainSlug.ARB, "ARB", 1, 6, fallback=500),
    ChainSlug.OP: _evm(ChainSlug.OP, "OP", 2, 12),
    ChainSlug.AVAX: _evm(ChainSlug.AVAX, "AVAX", 2, 12),
    ChainSlug.POL: _evm(ChainSlug.POL, "POL", 2, 64, overlap=200, fallback=500),
    ChainSlug.BSC: _evm(ChainSlug.BSC, "BSC", 3, 15, fallback=500),
    ChainSlug.BTC: ChainProfile(
        slug=ChainSlug.BTC, family=ChainFamily.UTXO, symbol="BTC", decimals=8,
        avg_block_seconds=600, min_confirmations=2, overlap=6, max_blocks=50,
        fallback_window=12, tx_id_format=TxIdFormat.HEX64, batch_size=5,
    ),
    ChainSlug.LTC: ChainProfile(
        slug=ChainSlug.LTC, family=ChainFamily.UTXO, symbol="LTC", decimals=8,
        avg_block_seconds=150, min_confirmations=2, overlap=12, max_blocks=200,
        fallback_window=50, tx_id_format=TxIdFormat.HEX64, batch_size=10,
    ),
    ChainSlug.DOGE: ChainProfile(
        slug=ChainSlug.DOGE, family=ChainFamily.UTXO, symbol="DOGE", decimals=8,
        avg_block_seconds=60, min_confirmations=2, overlap=50, max_blocks=1200,
        fallback_window=300, tx_id_format=TxIdFormat.HEX64,
    ),
    ChainSlug.XRP: ChainProfile(
        slug=ChainSlug.XRP, family=ChainFamily.ACCOUNT, symbol="XRP", decimals=6,
        avg_block_seconds=4, min_confirmations=0, overlap=50, max_blocks=2000,
        fallback_window=500, tx_id_format=TxIdFormat.HEX64,
    ),
    ChainSlug.XLM: ChainProfile(
        slug=ChainSlug.XLM, family=ChainFamily.ACCOUNT, symbol="XLM", decimals=7,
        avg_block_seconds=6, min_confirmations=0, overlap=50, max_blocks=2000,
        fallback_window=500, tx_id_format=TxIdFormat.HEX64,
    ),
    ChainSlug.SOL: ChainProfile(
        slug=ChainSlug.SOL, family=ChainFamily.ACCOUNT, symbol="SOL", decimals=9,
        avg_block_seconds=0.4, min_confirmations=32, overlap=150, max_blocks=500,
        fallback_window=150, tx_id_format=TxIdFormat.BASE58_SIGNATURE,
    ),
    ChainSlug.TRX: ChainProfile(
        slug=ChainSlug.TRX, family=ChainFamily.ACCOUNT, symbol="TRX", decimals=6,
        avg_block_seconds=3, min_confirmations=20, overlap=100, max_blocks=500,
        fallback_window=500, tx_id_format=TxIdFormat.HEX64,
    ),
    ChainSlug.DOT: ChainProfile(
        slug=ChainSlug.DOT, family=ChainFamily.ACCOUNT, symbol="DOT", decimals=10,
        avg_block_seconds=6, min_confirmations=0, overlap=50, max_blocks=500,
        fallback_window=500, tx_id_format=TxIdFormat.HEX64_0X,
    ),
    ChainSlug.ATOM: ChainProfile(
        slug=ChainSlug.ATOM, family=ChainFamily.ACCOUNT, symbol="ATOM", decimals=6,
        avg_block_seconds=6, min_confirmations=3, overlap=300, max_blocks=1800,
        fallback_window=1200, tx_id_format=TxIdFormat.HEX64,
    ),
    ChainSlug.ADA: ChainProfile(
        slug=ChainSlug.ADA, family=ChainFamily.UTXO, symbol="ADA", decimals=6,
        avg_block_seconds=20, min_confirmations=10, overlap=30, max_blocks=300,
        fallback_window=180, tx_id_format=TxIdFormat.HEX64, batch_size=10,
    ),
}


def get_profile(chain: Union[str, ChainSlug]) -> ChainProfile:
    """Get the default profile for a chain name or alias."""
    return DEFAULT_PROFILES[canonical_chain(chain)]


# Addresses on these chains compare lowercased on both sides.
CASE_INSENSITIVE_ADDRESS_CHAINS = frozenset({
    ChainSlug.ETH, ChainSlug.ARB, ChainSlug.AVAX, ChainSlug.OP,
    ChainSlug.POL, ChainSlug.BSC, ChainSlug.ATOM,
})

# Human-readable parts of segwit (bech32) addresses, which are case-insensitive.
# Legacy base58 addresses on the same chains are case-sensitive.
BECH32_PREFIXES: dict[ChainSlug, tuple[str, ...]] = {
    ChainSlug.BTC: ("bc1", "tb1", "bcrt1"),
    ChainSlug.LTC: ("ltc1", "tltc1", "rltc1"),
    ChainSlug.ADA: ("addr1", "addr_test1", "stake1", "stake_test1"),
}


def normalize_address(chain: Union[str, ChainSlug], address: str) -> str:
    """
    Canonical comparison form of an address.

    EVM and Cosmos addresses compare lowercased, as do bech32
    BTC/LTC/ADA addresses. Base58 encodings (legacy UTXO, Byron,
    Solana, Tron) and Stellar, XRP and Polkadot addresses are kept
    as-is.
    """
    slug = canonical_chain(chain)
    address = (address or "").strip()
    if slug in CASE_INSENSITIVE_ADDRESS_CHAINS:
        return address.lower()
    lowered = address.lower()
    if lowered.startswith(BECH32_PREFIXES.get(slug, ())):
        return lowered
    return address
