"""
Core Module - Transaction Identifier Validation.

Validates the shape of a transaction identifier for its chain and
returns its canonical storage form. Rejection happens before any
network or store access.

Canonical forms:
- EVM and Polkadot: 0x-prefixed lowercase hex
- XRP and Cosmos: uppercase hex
- BTC, LTC, DOGE, TRX, XLM, ADA: lowercase hex
- Solana: base58 signature as given
"""

import re
from typing import Union

from core.chains import ChainFamily, ChainSlug, TxIdFormat, canonical_chain, get_profile
from core.exceptions import InvalidTxIdError


HEX64_RE = re.compile(r"^[0-9a-fA-F]{64}$")
HEX64_0X_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")
BASE58_SIGNATURE_RE = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{43,88}$")

UPPERCASE_HEX_CHAINS = frozenset({ChainSlug.XRP, ChainSlug.ATOM})

REASON_EMPTY = "empty"
REASON_0X64 = "expect_0x64_hex"
REASON_HEX64 = "expect_64_hex"
REASON_BASE58 = "expect_base58_signature"


def canonical_tx_id(chain: Union[str, ChainSlug], tx_id: str) -> str:
    """
    Validate and canonicalize a transaction identifier.

    Args:
        chain: Chain slug or alias
        tx_id: Raw identifier as supplied by a user or provider

    Returns:
        Canonical identifier

    Raises:
        InvalidChainError: Unknown chain
        InvalidTxIdError: Identifier has the wrong shape
    """
    slug = canonical_chain(chain)
    profile = get_profile(slug)
    raw = (tx_id or "").strip() if isinstance(tx_id, str) else ""
    if not raw:
        raise InvalidTxIdError(slug.value, tx_id, REASON_EMPTY)

    fmt = profile.tx_id_format

    if fmt == TxIdFormat.HEX64_0X:
        if HEX64_0X_RE.match(raw):
            return raw.lower()
        # Explorers often drop the prefix on EVM hashes.
        if profile.family == ChainFamily.EVM and HEX64_RE.match(raw):
            return "0x" + raw.lower()
        raise InvalidTxIdError(slug.value, tx_id, REASON_0X64)

    if fmt == TxIdFormat.HEX64:
        if not HEX64_RE.match(raw):
            raise InvalidTxIdError(slug.value, tx_id, REASON_HEX64)
        return raw.upper() if slug in UPPERCASE_HEX_CHAINS else raw.lower()

    if not BASE58_SIGNATURE_RE.match(raw):
        raise InvalidTxIdError(slug.value, tx_id, REASON_BASE58)
    return raw


def is_valid_tx_id(chain: Union[str, ChainSlug], tx_id: str) -> bool:
    try:
        canonical_tx_id(chain, tx_id)
    except InvalidTxIdError:
        return False
    return True
