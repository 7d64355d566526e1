# src/kraken_portfolio/exchanges/kraken/signer.py
from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import threading
import time

from src.kraken_portfolio.core.errors import ConfigError


class KrakenSigner:
    """
    Kraken private REST signature:

        API-Sign = b64( HMAC_SHA512( b64decode(secret), path + SHA256(nonce + postdata) ) )
    """

    def __init__(self, api_secret: str):
        try:
            self._key = base64.b64decode(api_secret, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ConfigError(f"KRAKEN_API_SECRET is not valid base64: {e}") from e

        self._nonce_lock = threading.Lock()
        self._last_nonce = 0

    def make_nonce(self) -> int:
        # ns wall clock, bumped so two calls in the same ns never repeat
        with self._nonce_lock:
            n = max(time.time_ns(), self._last_nonce + 1)
            self._last_nonce = n
            return n

    def sign(self, path: str, body: str, nonce: int | str) -> str:
        sha256 = hashlib.sha256((str(nonce) + body).encode("utf-8")).digest()
        mac = hmac.new(self._key, path.encode("utf-8") + sha256, hashlib.sha512)
        return base64.b64encode(mac.digest()).decode("ascii")
