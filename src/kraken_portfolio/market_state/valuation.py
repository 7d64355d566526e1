# src/kraken_portfolio/market_state/valuation.py
from __future__ import annotations

from decimal import Decimal
from typing import Iterable, List

from src.kraken_portfolio.exchanges.kraken.instruments import (
    ASSET_MAPPING,
    FIAT_CODE,
    display_symbol,
    is_fiat,
)
from src.kraken_portfolio.market_state.ledger import PriceLedger
from src.kraken_portfolio.market_state.models import AssetValuation, HoldingsMap

ONE = Decimal(1)


def valuate(holdings: HoldingsMap, ledger: PriceLedger) -> List[AssetValuation]:
    """
    One record per held asset that has a price source.
    Order follows `holdings`; sorting is the renderer's job.
    """
    out: List[AssetValuation] = []
    for asset, balance in holdings.items():
        if is_fiat(asset):
            out.append(AssetValuation(
                asset=FIAT_CODE,
                balance=balance,
                price=ONE,
                prev_price=ONE,
                usd_value=balance,
            ))
            continue

        pair = ASSET_MAPPING.get(asset)
        if pair is None:
            continue

        price, prev = ledger.read(pair)
        out.append(AssetValuation(
            asset=display_symbol(asset),
            balance=balance,
            price=price,
            prev_price=prev,
            usd_value=balance * price,
        ))
    return out


def total_value(assets: Iterable[AssetValuation]) -> Decimal:
    return sum((a.usd_value for a in assets), Decimal(0))
