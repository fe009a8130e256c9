"""
Fixed-point conversion between ledger minor units and human decimals.

The ledger only ever sees integers. Decimals appear at the CLI boundary.
"""

from decimal import Decimal, InvalidOperation


def parse_units(value: str | int | Decimal, decimals: int = 18) -> int:
    """Convert a human decimal amount ("1.5") into integer minor units.

    Raises:
        ValueError: if the value is not a number or carries more fractional
            digits than ``decimals`` allows.
    """
    if isinstance(value, float):
        raise TypeError("Use str or Decimal for amounts, not float")
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError(f"Invalid amount: {value!r}") from exc
    if not amount.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")

    scaled = amount.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"Amount {value!r} has more than {decimals} decimal places")
    return int(scaled)


def format_units(value: int, decimals: int = 18) -> str:
    """Convert integer minor units into a human decimal string ("1.5")."""
    sign = "-" if value < 0 else ""
    whole, frac = divmod(abs(value), 10**decimals)
    if decimals == 0 or frac == 0:
        return f"{sign}{whole}.0" if decimals else f"{sign}{whole}"
    frac_str = str(frac).rjust(decimals, "0").rstrip("0")
    return f"{sign}{whole}.{frac_str}"
