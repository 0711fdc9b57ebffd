from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional


def format_idr(amount: Optional[Decimal | float | int]) -> str:
    """Format an amount as Indonesian Rupiah without decimals: 'Rp 1.500.000'."""
    value = Decimal(str(amount or 0)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    digits = f"{abs(int(value)):,}".replace(",", ".")
    return f"{sign}Rp {digits}"
