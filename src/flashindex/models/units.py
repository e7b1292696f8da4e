"""Base-unit integer -> decimal string rendering."""

from __future__ import annotations


def format_units(value: int, decimals: int = 18) -> str:
    """Render an integer amount in base units as a decimal string.

    Always keeps at least one fractional digit and drops trailing zeros
    (10**18 -> "1.0", 15 * 10**17 -> "1.5", 1 -> "0.000000000000000001").
    """
    if decimals < 0:
        raise ValueError("decimals must be >= 0")
    sign = "-" if value < 0 else ""
    whole, frac = divmod(abs(int(value)), 10**decimals)
    frac_str = str(frac).rjust(decimals, "0").rstrip("0") if decimals else ""
    return f"{sign}{whole}.{frac_str or '0'}"
