# src/kraken_portfolio/exchanges/kraken/instruments.py
from __future__ import annotations

from typing import Dict, Iterable, List, Optional


# Kraken balance symbol -> websocket pair (or fiat code for the unit-value asset)
ASSET_MAPPING: Dict[str, str] = {
    "XETH": "ETH/USD",
    "SOL": "SOL/USD",
    "XXBT": "XBT/USD",
    "ZUSD": "USD",
}

FIAT_SYMBOL = "ZUSD"
FIAT_CODE = ASSET_MAPPING[FIAT_SYMBOL]


def is_fiat(asset: str) -> bool:
    return asset == FIAT_SYMBOL


def pair_for(asset: str) -> Optional[str]:
    """Pair to subscribe for `asset`; None for the fiat asset and unknown assets."""
    if is_fiat(asset):
        return None
    return ASSET_MAPPING.get(asset)


def display_symbol(asset: str) -> str:
    """
    Kraken prefixes legacy assets with X (crypto) / Z (fiat):
      XETH -> ETH, XXBT -> XBT, ZUSD -> USD, SOL -> SOL
    """
    if is_fiat(asset):
        return FIAT_CODE
    s = asset[1:] if asset.startswith("X") else asset
    s = s[1:] if s.startswith("Z") else s
    return s


def pairs_for_holdings(assets: Iterable[str]) -> List[str]:
    out: List[str] = []
    for a in assets:
        p = pair_for(a)
        if p and p not in out:
            out.append(p)
    return out
