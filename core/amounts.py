"""
Core Module - Amount Normalizer.

============================================================
RESPONSIBILITY
============================================================
Converts native integer units (wei, satoshi, drops, lamports,
sun, planck, uatom, stroops) into canonical decimal strings
and back.

============================================================
DESIGN PRINCIPLES
============================================================
- Integer arithmetic only, no float anywhere on the path
- Canonical output: no exponent notation, no trailing zeros,
  no trailing decimal point
- Zero and negative amounts are rejected

============================================================
USAGE
============================================================
    normalize(150_000_000, 8)          # "1.5"
    to_native("1.5", 8)                # 150000000
    to_decimal(10**18 + 1, 18)         # Decimal("1.000000000000000001")

============================================================
"""

import re
from decimal import Decimal
from typing import Union

from core.exceptions import InvalidAmountError


_DECIMAL_RE = re.compile(r"^(\d+)(?:\.(\d*))?$")


def normalize(native: int, exponent: int) -> str:
    """
    Convert a positive native integer amount into a decimal string.

    Args:
        native: Amount in the chain's smallest unit
        exponent: Number of decimal places of the native unit

    Returns:
        Canonical decimal string

    Raises:
        InvalidAmountError: If the amount is not a positive integer
    """
    if isinstance(native, bool) or not isinstance(native, int):
        raise InvalidAmountError(native, "amount must be an integer")
    if native <= 0:
        raise InvalidAmountError(native)
    if exponent < 0:
        raise ValueError(f"exponent must be >= 0, got {exponent}")

    if exponent == 0:
        return str(native)

    whole, frac = divmod(native, 10 ** exponent)
    frac_str = str(frac).rjust(exponent, "0").rstrip("0")
    if not frac_str:
        return str(whole)
    return f"{whole}.{frac_str}"


def to_native(value: Union[str, Decimal, int], exponent: int) -> int:
    """
    Parse a non-negative decimal amount into native integer units.

    Inverse of normalize(). Also used for providers that report
    amounts as decimal strings (bitcoind, Horizon).

    Raises:
        InvalidAmountError: On malformed input or more fractional
            digits than the exponent allows
    """
    if isinstance(value, bool):
        raise InvalidAmountError(value, "amount must be numeric")
    if isinstance(value, int):
        text = str(value)
    elif isinstance(value, Decimal):
        if not value.is_finite():
            raise InvalidAmountError(value, "amount must be finite")
        text = format(value, "f")
    elif isinstance(value, str):
        text = value.strip()
    else:
        raise InvalidAmountError(value, "amount must be a decimal string")

    match = _DECIMAL_RE.match(text)
    if not match:
        raise InvalidAmountError(value, "not a plain non-negative decimal")

    whole, frac = match.group(1), (match.group(2) or "").rstrip("0")
    if len(frac) > exponent:
        raise InvalidAmountError(value, f"more than {exponent} fractional digits")

    return int(whole) * 10 ** exponent + (int(frac.ljust(exponent, "0")) if frac else 0)


def to_decimal(native: int, exponent: int) -> Decimal:
    """Exact Decimal for a native amount, built from the canonical string."""
    return Decimal(normalize(native, exponent))
