# gateway/money.py
# ============================================================================
# CZK <-> haléře conversion and display
# ============================================================================

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional, Union

Number = Union[int, float, Decimal, str]

CENTS = Decimal("0.01")
HUNDRED = Decimal(100)


def parse_amount(value: Any) -> Optional[Decimal]:
    """Parse a user supplied amount. Returns None when it is not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip().replace(" ", "").replace("\u00a0", "").replace(",", ".")
        if not value:
            return None
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount


def to_minor_units(amount: Number) -> int:
    """Major units (CZK) to integer minor units (haléře), half-up rounded."""
    parsed = parse_amount(amount)
    if parsed is None:
        raise ValueError(f"not a finite amount: {amount!r}")
    return int((parsed * HUNDRED).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def from_minor_units(minor: int) -> Decimal:
    return (Decimal(minor) / HUNDRED).quantize(CENTS)


def format_czk(minor: int) -> str:
    """Czech display form, e.g. 125000 -> '1 250,00 Kč'."""
    amount = from_minor_units(minor)
    sign = "-" if amount < 0 else ""
    whole, _, fraction = f"{abs(amount):.2f}".partition(".")
    groups = []
    while len(whole) > 3:
        groups.insert(0, whole[-3:])
        whole = whole[:-3]
    groups.insert(0, whole)
    return f"{sign}{' '.join(groups)},{fraction} Kč"
