# src/kraken_portfolio/core/client.py
from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Callable, List, Optional

from src.kraken_portfolio.core.errors import PortfolioError, StreamError
from src.kraken_portfolio.exchanges.kraken.instruments import pairs_for_holdings
from src.kraken_portfolio.exchanges.kraken.rest import BASE_URL, KrakenREST
from src.kraken_portfolio.exchanges.kraken.ws import WS_PUBLIC_URL, KrakenTickerStream
from src.kraken_portfolio.market_state.ledger import PriceLedger
from src.kraken_portfolio.market_state.models import AssetValuation, Credentials, HoldingsMap
from src.kraken_portfolio.market_state.valuation import valuate

log = logging.getLogger("kraken_portfolio.core.client")

PortfolioSink = Callable[[List[AssetValuation]], None]


class ClientState(str, Enum):
    IDLE = "IDLE"
    BALANCES_LOADED = "BALANCES_LOADED"
    CONNECTED = "CONNECTED"
    SUBSCRIBED = "SUBSCRIBED"
    STREAMING = "STREAMING"
    CLOSED = "CLOSED"
    ERROR = "ERROR"


TERMINAL: set[ClientState] = {ClientState.CLOSED, ClientState.ERROR}


class PortfolioClient:
    """
    Kraken portfolio facade: balances → ws connect → ticker subscribe → stream.

    Every accepted tick re-valuates the whole portfolio and hands the result to
    the sink on the streaming thread. close() may be called from any thread.
    """

    def __init__(
        self,
        credentials: Credentials,
        *,
        rest_url: str = BASE_URL,
        ws_url: str = WS_PUBLIC_URL,
        timeout_sec: float = 10.0,
        rest: Optional[KrakenREST] = None,
        stream: Optional[KrakenTickerStream] = None,
        ledger: Optional[PriceLedger] = None,
    ):
        self.credentials = credentials
        if ledger is None:
            ledger = stream.ledger if stream is not None else PriceLedger()
        elif stream is not None and stream.ledger is not ledger:
            raise PortfolioError("stream session must write to the client ledger")
        self.ledger = ledger
        self.rest = rest if rest is not None else KrakenREST(credentials, base_url=rest_url, timeout=timeout_sec)
        self.stream_session = stream if stream is not None else KrakenTickerStream(self.ledger, url=ws_url)

        self.holdings: HoldingsMap = {}
        self.pairs: List[str] = []

        self._state = ClientState.IDLE
        self._state_lock = threading.Lock()

    # ------------------------------------------------------------------
    # state
    # ------------------------------------------------------------------

    @property
    def state(self) -> ClientState:
        return self._state

    def _move(self, frm: ClientState, to: ClientState) -> None:
        with self._state_lock:
            if self._state != frm:
                raise PortfolioError(f"invalid transition {self._state.value} -> {to.value} (expected {frm.value})")
            self._state = to
        log.debug("state %s -> %s", frm.value, to.value)

    def _fail(self) -> None:
        with self._state_lock:
            if self._state not in TERMINAL:
                self._state = ClientState.ERROR
        self._release()

    # ------------------------------------------------------------------
    # startup
    # ------------------------------------------------------------------

    def connect(self) -> None:
        """Load balances, open the websocket and subscribe. Any failure is fatal."""
        try:
            holdings = self.rest.fetch_balances()
            self.holdings = holdings
            self._move(ClientState.IDLE, ClientState.BALANCES_LOADED)

            self.stream_session.connect()
            self._move(ClientState.BALANCES_LOADED, ClientState.CONNECTED)

            self.pairs = pairs_for_holdings(self.holdings)
            self.stream_session.subscribe(self.pairs)
            self._move(ClientState.CONNECTED, ClientState.SUBSCRIBED)
        except Exception:
            self._fail()
            raise

    # ------------------------------------------------------------------
    # streaming
    # ------------------------------------------------------------------

    def asset_values(self) -> List[AssetValuation]:
        return valuate(self.holdings, self.ledger)

    def stream(self, sink: PortfolioSink) -> None:
        """
        Blocks until close() (returns) or a read failure (raises StreamError).
        One tick -> one sink call. The client is closed however the loop ends.
        """
        if self._state == ClientState.CLOSED:
            return
        self._move(ClientState.SUBSCRIBED, ClientState.STREAMING)
        log.info("streaming %d pair(s)", len(self.pairs))
        try:
            for tick in self.stream_session.iter_ticks():
                log.debug("tick %s %s", tick.pair, tick.price)
                sink(self.asset_values())
        except StreamError as e:
            log.error("stream terminated: %s", e)
            raise
        finally:
            self.close()

    # ------------------------------------------------------------------
    # shutdown
    # ------------------------------------------------------------------

    def close(self) -> None:
        with self._state_lock:
            if self._state in TERMINAL:
                already = True
            else:
                already = False
                self._state = ClientState.CLOSED
        if already:
            return
        self._release()

    def _release(self) -> None:
        try:
            self.stream_session.close()
        finally:
            self.rest.close()

    def __enter__(self) -> "PortfolioClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
