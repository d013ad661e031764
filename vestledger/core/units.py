"""
vestledger/core/units.py

Fixed-point unit conversion.

Every amount the ledger accounts in is a NORMALIZED amount: a Python int
scaled by 10**NORMALIZED_DECIMALS, regardless of the native precision of the
asset it is eventually paid in.

CONTRACT — Rounding
    normalize()   is exact for decimals <= 18, floors for decimals > 18
    denormalize() floors for decimals <= 18, is exact for decimals > 18
    Neither function ever rounds up. Paying out denormalize(x) native units
    can therefore never exceed x normalized units.

No floats anywhere in this module. Text input goes through Decimal.
"""

from decimal import Decimal, InvalidOperation, localcontext

NORMALIZED_DECIMALS = 18

# ERC-20 style precision field is a uint8; 10**77 is the largest power
# that still fits a uint256.
MAX_DECIMALS = 77


def _check_amount(amount: int, name: str = "amount") -> None:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise TypeError(f"{name} must be int, got {type(amount).__name__}")
    if amount < 0:
        raise ValueError(f"{name} must be non-negative, got {amount}")


def _check_decimals(decimals: int) -> None:
    if isinstance(decimals, bool) or not isinstance(decimals, int):
        raise TypeError(f"decimals must be int, got {type(decimals).__name__}")
    if not 0 <= decimals <= MAX_DECIMALS:
        raise ValueError(f"decimals must be in [0, {MAX_DECIMALS}], got {decimals}")


def normalize(native_amount: int, decimals: int) -> int:
    """Convert a native amount of a `decimals`-precision asset to normalized units."""
    _check_amount(native_amount, "native_amount")
    _check_decimals(decimals)
    if decimals <= NORMALIZED_DECIMALS:
        return native_amount * 10 ** (NORMALIZED_DECIMALS - decimals)
    return native_amount // 10 ** (decimals - NORMALIZED_DECIMALS)


def denormalize(normalized_amount: int, decimals: int) -> int:
    """Convert normalized units to native units, flooring any sub-unit remainder."""
    _check_amount(normalized_amount, "normalized_amount")
    _check_decimals(decimals)
    if decimals <= NORMALIZED_DECIMALS:
        return normalized_amount // 10 ** (NORMALIZED_DECIMALS - decimals)
    return normalized_amount * 10 ** (decimals - NORMALIZED_DECIMALS)


def parse_units(text, decimals: int = NORMALIZED_DECIMALS) -> int:
    """
    Parse a human decimal amount ("5000", "123.456789") into base units.

    Accepts str, int or Decimal. Rejects floats, negatives and any value with
    more fractional digits than `decimals` can represent.
    """
    _check_decimals(decimals)
    if isinstance(text, float):
        raise TypeError("parse_units does not accept float; pass a decimal string")
    if isinstance(text, bool):
        raise TypeError("parse_units does not accept bool")
    try:
        value = Decimal(str(text).strip())
    except InvalidOperation:
        raise ValueError(f"not a decimal amount: {text!r}")
    if not value.is_finite():
        raise ValueError(f"not a finite amount: {text!r}")
    if value < 0:
        raise ValueError(f"amount must be non-negative, got {text!r}")

    with localcontext() as ctx:
        ctx.prec = 200
        scaled = value.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise ValueError(
            f"{text!r} has more than {decimals} fractional digits"
        )
    return int(scaled)


def format_units(amount: int, decimals: int = NORMALIZED_DECIMALS) -> str:
    """Render base units as a plain decimal string, trailing zeros stripped."""
    _check_amount(amount)
    _check_decimals(decimals)
    if decimals == 0:
        return str(amount)
    whole, frac = divmod(amount, 10 ** decimals)
    frac_str = f"{frac:0{decimals}d}".rstrip("0")
    return f"{whole}.{frac_str}" if frac_str else str(whole)
