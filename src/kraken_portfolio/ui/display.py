# src/kraken_portfolio/ui/display.py
from __future__ import annotations

import shutil
import sys
from decimal import Decimal
from typing import List, Optional, TextIO, Tuple

from src.kraken_portfolio.exchanges.kraken.instruments import FIAT_CODE
from src.kraken_portfolio.market_state.models import AssetValuation
from src.kraken_portfolio.market_state.valuation import total_value

COLOR_RESET = "\033[0m"
COLOR_RED = "\033[31m"
COLOR_GREEN = "\033[32m"
COLOR_CYAN = "\033[36m"
COLOR_GRAY = "\033[37m"
BG_BLACK = "\033[40m"
CLEAR_SCREEN = "\033[H\033[2J"

MIN_WIDTH = 60
MAX_WIDTH = 100

ASSET_W = 6
BALANCE_W = 10
PRICE_W = 12
VALUE_W = 12

TITLE = "KRAKEN PORTFOLIO"


def calculate_width(requested: int) -> int:
    return max(MIN_WIDTH, min(MAX_WIDTH, requested))


def price_color(direction: int) -> str:
    if direction > 0:
        return COLOR_GREEN
    if direction < 0:
        return COLOR_RED
    return COLOR_RESET


def format_price(price: Decimal, color: str) -> str:
    return f"{color}${price:.2f}{COLOR_RESET}"


def format_balance(balance: Decimal) -> str:
    if balance >= 1000:
        return f"{balance:.2f}"
    return f"{balance:.8f}"


def split_assets(assets: List[AssetValuation]) -> Tuple[List[AssetValuation], Optional[AssetValuation]]:
    """Crypto rows sorted by USD value (desc) and the fiat row, if any."""
    crypto = [a for a in assets if a.asset != FIAT_CODE]
    usd = next((a for a in assets if a.asset == FIAT_CODE), None)
    crypto.sort(key=lambda a: a.usd_value, reverse=True)
    return crypto, usd


class Display:
    """Full-screen boxed table, redrawn on every tick."""

    def __init__(self, writer: Optional[TextIO] = None, width: Optional[int] = None):
        self.writer = writer or sys.stdout
        if width is None:
            width = shutil.get_terminal_size(fallback=(80, 24)).columns
        self.width = calculate_width(width)

    def render_portfolio(self, assets: List[AssetValuation]) -> None:
        w = self.writer
        w.write(CLEAR_SCREEN)
        self._header()

        crypto, usd = split_assets(assets)
        for a in crypto:
            self._crypto_row(a)

        if usd is not None:
            self._line("╟", "─", "╢")
            self._usd_row(usd)

        self._footer(total_value(assets))
        w.flush()

    __call__ = render_portfolio

    # ------------------------------------------------------------------

    def _line(self, left: str, fill: str, right: str, prefix: str = "") -> None:
        self.writer.write(f"{prefix}{COLOR_CYAN}{left}{fill * self.width}{right}{COLOR_RESET}\n")

    def _header(self) -> None:
        pad = (self.width - len(TITLE)) // 2
        self._line("╔", "═", "╗", prefix=BG_BLACK)
        self.writer.write(
            f"{COLOR_CYAN}║{' ' * pad}{TITLE}{' ' * (self.width - len(TITLE) - pad)}║{COLOR_RESET}\n"
        )
        self._line("╠", "═", "╣")
        self.writer.write(
            f"{COLOR_CYAN}║ {'ASSET':<{ASSET_W}} {'BALANCE':<{BALANCE_W}} "
            f"{'PRICE':<{PRICE_W}} {'VALUE (USD)':<{VALUE_W}} ║{COLOR_RESET}\n"
        )
        self._line("╠", "═", "╣")

    def _crypto_row(self, a: AssetValuation) -> None:
        price = format_price(a.price, price_color(a.direction))
        self.writer.write(
            f"{COLOR_CYAN}║ {a.asset:<{ASSET_W}} {format_balance(a.balance):<{BALANCE_W}} "
            f"{price:<{PRICE_W}} {a.usd_value:<{VALUE_W}.2f} ║{COLOR_RESET}\n"
        )

    def _usd_row(self, a: AssetValuation) -> None:
        self.writer.write(
            f"{COLOR_CYAN}║ {a.asset:<{ASSET_W}} {a.balance:<{BALANCE_W}.2f} "
            f"{'-':<{PRICE_W}} {a.usd_value:<{VALUE_W}.2f} ║{COLOR_RESET}\n"
        )

    def _footer(self, total: Decimal) -> None:
        self._line("╠", "═", "╣")
        self.writer.write(f"{COLOR_CYAN}║ TOTAL VALUE: ${total:<{self.width - 15}.2f} ║{COLOR_RESET}\n")
        self._line("╚", "═", "╝")
        self.writer.write(f"{COLOR_GRAY}Press Ctrl+C to exit{COLOR_RESET}\n")
