"""
Unit conversion between integer on-chain amounts and decimal strings.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Union


TOKEN_DECIMALS = 18
USD_PRICE_DECIMALS = 8
MAX_UINT256 = 2**256 - 1


def format_units(value: int, decimals: int = TOKEN_DECIMALS) -> str:
    """
    Format an integer amount as a decimal string.

    Always keeps at least one fractional digit:
        format_units(10 * 10**18) -> "10.0"
        format_units(15 * 10**17) -> "1.5"
    """
    sign = "-" if value < 0 else ""
    whole, frac = divmod(abs(int(value)), 10**decimals)
    frac_str = str(frac).rjust(decimals, "0").rstrip("0") or "0"
    return f"{sign}{whole}.{frac_str}"


def parse_units(value: Union[str, int, Decimal], decimals: int = TOKEN_DECIMALS) -> int:
    """Parse a decimal amount into its integer on-chain representation."""
    return int(Decimal(str(value)).scaleb(decimals))


def format_decimal(value: Decimal) -> str:
    """Plain (non-exponent) string for a Decimal with trailing zeros dropped."""
    normalized = value.normalize()
    return format(normalized, "f")
