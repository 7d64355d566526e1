# src/kraken_portfolio/exchanges/kraken/parsers/ticker.py
from __future__ import annotations

import json
from typing import Any, Union

from src.kraken_portfolio.core.utils.decimals import parse_decimal
from src.kraken_portfolio.market_state.models import IgnoredFrame, ParsedTick

Frame = Union[ParsedTick, IgnoredFrame]


def decode_frame(raw: Union[str, bytes, Any]) -> Frame:
    """
    Kraken v1 ticker frame:
      [channelID, {"a": [...], "b": [...], "c": ["<last price>", "<lot volume>"], ...}, "ticker", "ETH/USD"]

    Everything else on the socket (heartbeat, systemStatus, subscriptionStatus)
    is an object, so it falls through to IgnoredFrame.
    """
    if isinstance(raw, (str, bytes, bytearray)):
        try:
            data = json.loads(raw)
        except ValueError:
            return IgnoredFrame("invalid json")
    else:
        data = raw

    if not isinstance(data, list):
        event = data.get("event") if isinstance(data, dict) else None
        return IgnoredFrame(f"event:{event}" if event else "not an array")
    if len(data) < 4:
        return IgnoredFrame("short array")

    payload = data[1]
    if not isinstance(payload, dict):
        return IgnoredFrame("payload is not an object")

    close = payload.get("c")
    if not isinstance(close, list) or not close:
        return IgnoredFrame("no close price")
    if not isinstance(close[0], str):
        return IgnoredFrame("close price is not a string")

    pair = data[3]
    if not isinstance(pair, str) or not pair:
        return IgnoredFrame("no pair")

    price = parse_decimal(close[0])
    if price is None or price < 0:
        return IgnoredFrame(f"bad price {close[0]!r}")

    return ParsedTick(pair=pair, price=price)
