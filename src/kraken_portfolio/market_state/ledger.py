# src/kraken_portfolio/market_state/ledger.py
from __future__ import annotations

import threading
from decimal import Decimal
from typing import Dict, Tuple

ZERO = Decimal(0)


class PriceLedger:
    """
    Last price per pair plus the one before it (one-step lag, not a history).
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._current: Dict[str, Decimal] = {}
        self._previous: Dict[str, Decimal] = {}

    def update(self, pair: str, price: Decimal) -> None:
        with self._lock:
            self._previous[pair] = self._current.get(pair, ZERO)
            self._current[pair] = price

    def read(self, pair: str) -> Tuple[Decimal, Decimal]:
        with self._lock:
            return self._current.get(pair, ZERO), self._previous.get(pair, ZERO)

    def price(self, pair: str) -> Decimal:
        return self.read(pair)[0]
