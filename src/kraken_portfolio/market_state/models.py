# src/kraken_portfolio/market_state/models.py
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict

from src.kraken_portfolio.core.errors import ConfigError


HoldingsMap = Dict[str, Decimal]


@dataclass(frozen=True)
class Credentials:
    api_key: str
    api_secret: str  # base64

    def __post_init__(self) -> None:
        if not (self.api_key or "").strip():
            raise ConfigError("KRAKEN_API_KEY is not set")
        if not (self.api_secret or "").strip():
            raise ConfigError("KRAKEN_API_SECRET is not set")

    def __repr__(self) -> str:
        return f"Credentials(api_key={self.api_key[:4]}..., api_secret=<redacted>)"


@dataclass(frozen=True, slots=True)
class AssetValuation:
    asset: str          # display symbol: ETH, XBT, USD ...
    balance: Decimal
    price: Decimal
    prev_price: Decimal
    usd_value: Decimal

    @property
    def direction(self) -> int:
        """+1 price went up since previous tick, -1 down, 0 unchanged."""
        if self.price > self.prev_price:
            return 1
        if self.price < self.prev_price:
            return -1
        return 0


@dataclass(frozen=True, slots=True)
class ParsedTick:
    pair: str
    price: Decimal


@dataclass(frozen=True, slots=True)
class IgnoredFrame:
    reason: str
