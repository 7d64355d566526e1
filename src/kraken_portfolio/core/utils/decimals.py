# src/kraken_portfolio/core/utils/decimals.py
from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Optional


def parse_decimal(x: Any) -> Optional[Decimal]:
    """Kraken sends amounts and prices as strings. None for anything that is not a finite number."""
    if x is None or isinstance(x, bool):
        return None
    try:
        d = Decimal(str(x).strip())
    except (InvalidOperation, ValueError):
        return None
    if not d.is_finite():
        return None
    return d
