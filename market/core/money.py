"""
Monetary amounts cross the remote boundary in minor units (10^8 per major unit).
Only this fixed factor is applied; no currency conversion happens in the client.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

MINOR_UNITS_PER_MAJOR = 100_000_000
UINT64_MAX = 2**64 - 1

_FACTOR = Decimal(MINOR_UNITS_PER_MAJOR)


def to_minor_units(major: Decimal | float | int | str) -> int:
    """1.23 -> 123000000. Floats go through str() so 1.23 stays 1.23."""
    if isinstance(major, float):
        major = str(major)
    try:
        amount = Decimal(major)
    except (InvalidOperation, TypeError) as e:
        raise ValueError(f"Invalid amount: {major!r}") from e
    if not amount.is_finite():
        raise ValueError(f"Invalid amount: {major!r}")
    scaled = amount * _FACTOR
    if scaled < 0 or scaled > UINT64_MAX:
        raise ValueError(f"Amount out of range: {major}")
    return min(int(scaled.quantize(Decimal(1), rounding=ROUND_HALF_UP)), UINT64_MAX)


def to_major_units(minor: int) -> Decimal:
    if minor < 0:
        raise ValueError(f"Amount cannot be negative: {minor}")
    return Decimal(minor) / _FACTOR


def format_amount(minor: int | None, places: int = 8) -> str:
    """Display string for a minor-unit amount, e.g. 50000000 -> '0.50000000'."""
    if minor is None:
        return f"{Decimal(0):.{places}f}"
    quantum = Decimal(1).scaleb(-places)
    return f"{to_major_units(minor).quantize(quantum, rounding=ROUND_HALF_UP):.{places}f}"
