# src/kraken_portfolio/exchanges/kraken/ws.py
from __future__ import annotations

import json
import logging
import threading
from typing import Iterator, List, Optional

import websocket

from src.kraken_portfolio.core.errors import StreamError, TransportError
from src.kraken_portfolio.exchanges.kraken.parsers.ticker import Frame, decode_frame
from src.kraken_portfolio.market_state.ledger import PriceLedger
from src.kraken_portfolio.market_state.models import ParsedTick

log = logging.getLogger("kraken_portfolio.exchanges.kraken.ws")

WS_PUBLIC_URL = "wss://ws.kraken.com"


def subscribe_message(pairs: List[str]) -> dict:
    return {
        "event": "subscribe",
        "pair": list(pairs),
        "subscription": {"name": "ticker"},
    }


class KrakenTickerStream:
    """
    Blocking ticker session on the public Kraken websocket.

    One reader thread calls next_message() / iter_ticks(); any other thread may
    call close(), which aborts the socket so a pending recv() returns at once.
    No read timeout, no reconnect.
    """

    def __init__(self, ledger: PriceLedger, *, url: str = WS_PUBLIC_URL, name: str = "KrakenWS"):
        self.url = url
        self.name = name
        self.ledger = ledger

        self._ws: Optional[websocket.WebSocket] = None
        self._lock = threading.Lock()
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------

    def connect(self) -> None:
        log.info("[%s] connecting → %s", self.name, self.url)
        try:
            ws = websocket.create_connection(self.url)
        except (websocket.WebSocketException, OSError) as e:
            raise TransportError(f"websocket connect failed ({self.url}): {e!r}") from e

        with self._lock:
            if self._closed.is_set():
                # close() won the race while we were dialing
                _shutdown_quietly(ws)
                raise TransportError("websocket closed during connect")
            self._ws = ws
        log.info("[%s] WS CONNECTED", self.name)

    def subscribe(self, pairs: List[str]) -> bool:
        """False (and nothing sent) when there is nothing to watch."""
        if not pairs:
            log.info("[%s] no pairs to subscribe, skipping", self.name)
            return False
        ws = self._require_ws()
        msg = subscribe_message(pairs)
        try:
            ws.send(json.dumps(msg))
        except (websocket.WebSocketException, OSError) as e:
            raise TransportError(f"websocket subscribe failed: {e!r}") from e
        log.info("[%s] subscribed ticker: %s", self.name, ", ".join(pairs))
        return True

    def close(self) -> None:
        with self._lock:
            if self._closed.is_set():
                return
            self._closed.set()
            ws = self._ws

        if ws is None:
            return
        log.info("[%s] closing", self.name)
        try:
            ws.send_close()
        except (websocket.WebSocketException, OSError) as e:
            log.debug("[%s] close frame not sent: %s", self.name, e)
        _shutdown_quietly(ws)
        log.warning("[%s] WS CLOSED", self.name)

    # ------------------------------------------------------------------
    # reading
    # ------------------------------------------------------------------

    def next_message(self) -> Optional[Frame]:
        """
        Read and classify one frame.
          ParsedTick   - ledger already updated
          IgnoredFrame - heartbeat / status / anything not a ticker
          None         - session closed locally
        Raises StreamError on any other read failure.
        """
        if self.closed:
            return None
        ws = self._require_ws()

        try:
            raw = ws.recv()
        except (websocket.WebSocketException, OSError) as e:
            if self.closed:
                return None
            raise StreamError(f"websocket read failed: {e!r}") from e

        if raw == "" or raw == b"":
            # recv() returns empty on a close frame
            if self.closed:
                return None
            raise StreamError("websocket closed by server")

        frame = decode_frame(raw)
        if isinstance(frame, ParsedTick):
            self.ledger.update(frame.pair, frame.price)
        else:
            log.debug("[%s] ignored frame (%s)", self.name, frame.reason)
        return frame

    def iter_ticks(self) -> Iterator[ParsedTick]:
        while True:
            frame = self.next_message()
            if frame is None:
                return
            if isinstance(frame, ParsedTick):
                yield frame

    def _require_ws(self) -> websocket.WebSocket:
        ws = self._ws
        if ws is None:
            raise StreamError("websocket is not connected")
        return ws


def _shutdown_quietly(ws: websocket.WebSocket) -> None:
    # abort() wakes a thread blocked in recv(); shutdown() releases the socket
    try:
        ws.abort()
    except OSError as e:
        log.debug("ws abort: %s", e)
    try:
        ws.shutdown()
    except OSError as e:
        log.debug("ws shutdown: %s", e)
