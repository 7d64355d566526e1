# src/kraken_portfolio/exchanges/kraken/rest.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import requests

from src.kraken_portfolio.core.errors import AuthError, DecodeError, TransportError
from src.kraken_portfolio.core.utils.decimals import parse_decimal
from src.kraken_portfolio.exchanges.kraken.signer import KrakenSigner
from src.kraken_portfolio.market_state.models import Credentials, HoldingsMap

BASE_URL = "https://api.kraken.com"
BALANCE_PATH = "/0/private/Balance"

log = logging.getLogger("kraken_portfolio.exchanges.kraken.rest")


def parse_balance_result(result: Dict[str, Any]) -> HoldingsMap:
    """
    {"XETH": "2.5", "SOL": "0", ...} -> {"XETH": Decimal("2.5")}
    Unparsable and non-positive entries are dropped.
    """
    out: HoldingsMap = {}
    for asset, raw in result.items():
        bal = parse_decimal(raw)
        if bal is None:
            log.debug("[KRAKEN REST] skip %s: unparsable balance %r", asset, raw)
            continue
        if bal > 0:
            out[str(asset)] = bal
    return out


class KrakenREST:
    """
    Kraken spot REST client, private endpoints only.
    No retries: a failed request is reported to the caller as is.
    """

    def __init__(
        self,
        credentials: Credentials,
        *,
        base_url: str = BASE_URL,
        timeout: float = 10.0,
        signer: Optional[KrakenSigner] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = float(timeout)
        self._api_key = credentials.api_key
        self._signer = signer or KrakenSigner(credentials.api_secret)

        self.sess = session or requests.Session()

    # ---------------------------------------------------------------------
    # CORE REQUEST
    # ---------------------------------------------------------------------

    def _private_post(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        nonce = self._signer.make_nonce()
        data: Dict[str, Any] = {"nonce": nonce}
        data.update(params or {})
        body = urlencode(data)

        headers = {
            "API-Key": self._api_key,
            "API-Sign": self._signer.sign(path, body, nonce),
            "Content-Type": "application/x-www-form-urlencoded",
        }
        url = f"{self.base_url}{path}"
        log.debug("[KRAKEN REST] POST %s nonce=%s", path, nonce)

        try:
            r = self.sess.post(url, data=body, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise TransportError(f"kraken POST {path} failed: {e!r}") from e

        if r.status_code >= 400:
            raise TransportError(f"kraken HTTP {r.status_code} POST {path}: {r.text[:500]}")

        try:
            payload = r.json()
        except ValueError as e:
            raise DecodeError(f"kraken POST {path}: response is not JSON", body=r.text[:500]) from e

        if not isinstance(payload, dict):
            raise DecodeError(f"kraken POST {path}: unexpected payload type {type(payload).__name__}")

        errors = payload.get("error") or []
        if not isinstance(errors, list):
            raise DecodeError(f"kraken POST {path}: `error` is not a list")
        if errors:
            raise AuthError([str(e) for e in errors])

        return payload.get("result")

    # ---------------------------------------------------------------------
    # API METHODS
    # ---------------------------------------------------------------------

    def fetch_balances(self) -> HoldingsMap:
        result = self._private_post(BALANCE_PATH)
        if not isinstance(result, dict):
            raise DecodeError(f"kraken balance: `result` is not an object ({type(result).__name__})")
        holdings = parse_balance_result(result)
        log.info("[KRAKEN REST] balances loaded: %d asset(s) with positive balance", len(holdings))
        return holdings

    def close(self) -> None:
        self.sess.close()
