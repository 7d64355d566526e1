import base64
import queue
import threading

import pytest
import websocket

from src.kraken_portfolio.market_state.models import Credentials

_ABORT = object()


class FakeWebSocket:
    """
    Stand-in for websocket.WebSocket.

    recv() pops scripted frames; once they run out it blocks until abort()
    (like a real idle socket) and then raises the closed exception.
    An Exception instance in the script is raised from recv().
    """

    def __init__(self, frames=()):
        self._q: "queue.Queue" = queue.Queue()
        for f in frames:
            self._q.put(f)
        self.sent = []
        self.connected = True
        self.close_frames = 0
        self.aborted = threading.Event()
        self.recv_waiting = threading.Event()

    def push(self, frame):
        self._q.put(frame)

    def send(self, payload):
        if not self.connected:
            raise websocket.WebSocketConnectionClosedException("socket is already closed.")
        self.sent.append(payload)

    def recv(self):
        if not self.connected:
            raise websocket.WebSocketConnectionClosedException("socket is already closed.")
        if self._q.empty():
            self.recv_waiting.set()
        item = self._q.get()
        if item is _ABORT:
            raise websocket.WebSocketConnectionClosedException("Connection to remote host was lost.")
        if isinstance(item, Exception):
            raise item
        return item

    def send_close(self):
        self.close_frames += 1

    def abort(self):
        self.aborted.set()
        self._q.put(_ABORT)

    def shutdown(self):
        self.connected = False


@pytest.fixture
def fake_ws():
    return FakeWebSocket()


@pytest.fixture
def patch_create_connection(monkeypatch):
    """Route websocket.create_connection in ws.py to a FakeWebSocket; returns the list of urls dialed."""
    dialed = []

    def _install(ws):
        def _create(url, *a, **kw):
            dialed.append(url)
            return ws
        monkeypatch.setattr("src.kraken_portfolio.exchanges.kraken.ws.websocket.create_connection", _create)
        return dialed

    return _install


@pytest.fixture
def credentials():
    return Credentials("test-key", base64.b64encode(b"test-secret").decode())
