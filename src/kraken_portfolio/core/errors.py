# src/kraken_portfolio/core/errors.py
from __future__ import annotations

from typing import List, Optional


class PortfolioError(RuntimeError):
    """Base class for every failure raised by the portfolio client."""


class ConfigError(PortfolioError):
    """Missing or malformed credentials / configuration."""


class AuthError(PortfolioError):
    """Kraken rejected the private request (non-empty `error` list)."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__(f"kraken API error: {', '.join(self.errors)}")


class TransportError(PortfolioError):
    """HTTP / socket failure while talking to Kraken."""


class DecodeError(PortfolioError):
    """A response that had to be well-formed JSON was not."""

    def __init__(self, msg: str, *, body: Optional[str] = None):
        self.body = body
        super().__init__(msg)


class StreamError(PortfolioError):
    """Read failure after streaming started. Not retried."""
