"""Tests for the Kraken ticker websocket session."""

import json
import threading
from decimal import Decimal

import pytest
import websocket

from src.kraken_portfolio.core.errors import StreamError, TransportError
from src.kraken_portfolio.exchanges.kraken.ws import KrakenTickerStream, subscribe_message
from src.kraken_portfolio.market_state.ledger import PriceLedger
from src.kraken_portfolio.market_state.models import IgnoredFrame, ParsedTick

from conftest import FakeWebSocket

TICK = '[0, {"c":["3050.5","1.2"]}, "ticker", "ETH/USD"]'


def _session(patch_create_connection, frames=()):
    ws = FakeWebSocket(frames)
    dialed = patch_create_connection(ws)
    ledger = PriceLedger()
    s = KrakenTickerStream(ledger, url="wss://example.test")
    s.connect()
    return s, ws, ledger, dialed


class TestConnectSubscribe:

    def test_connect_dials_url(self, patch_create_connection):
        s, _, _, dialed = _session(patch_create_connection)
        assert dialed == ["wss://example.test"]
        assert not s.closed

    def test_connect_failure_is_transport_error(self, monkeypatch):
        def _boom(url, *a, **kw):
            raise ConnectionRefusedError("nope")
        monkeypatch.setattr("src.kraken_portfolio.exchanges.kraken.ws.websocket.create_connection", _boom)

        with pytest.raises(TransportError):
            KrakenTickerStream(PriceLedger()).connect()

    def test_subscribe_message(self, patch_create_connection):
        s, ws, _, _ = _session(patch_create_connection)

        assert s.subscribe(["ETH/USD", "SOL/USD"]) is True

        assert [json.loads(m) for m in ws.sent] == [{
            "event": "subscribe",
            "pair": ["ETH/USD", "SOL/USD"],
            "subscription": {"name": "ticker"},
        }]

    def test_empty_subscription_sends_nothing(self, patch_create_connection):
        s, ws, _, _ = _session(patch_create_connection)
        assert s.subscribe([]) is False
        assert ws.sent == []

    def test_subscribe_send_failure_is_transport_error(self, patch_create_connection):
        s, ws, _, _ = _session(patch_create_connection)
        ws.connected = False
        with pytest.raises(TransportError):
            s.subscribe(["ETH/USD"])

    def test_subscribe_message_shape(self):
        assert subscribe_message(["XBT/USD"])["subscription"] == {"name": "ticker"}


class TestNextMessage:

    def test_tick_updates_ledger(self, patch_create_connection):
        s, _, ledger, _ = _session(patch_create_connection, [TICK])

        frame = s.next_message()

        assert frame == ParsedTick("ETH/USD", Decimal("3050.5"))
        assert ledger.read("ETH/USD") == (Decimal("3050.5"), Decimal(0))

    def test_non_ticker_frame_leaves_ledger_alone(self, patch_create_connection):
        s, _, ledger, _ = _session(patch_create_connection, [
            '{"event":"heartbeat"}',
            '[0, {"a":["1"]}, "ticker", "ETH/USD"]',
        ])

        assert isinstance(s.next_message(), IgnoredFrame)
        assert isinstance(s.next_message(), IgnoredFrame)
        assert ledger.read("ETH/USD") == (Decimal(0), Decimal(0))

    def test_read_failure_is_stream_error(self, patch_create_connection):
        s, _, _, _ = _session(patch_create_connection, [
            websocket.WebSocketConnectionClosedException("Connection to remote host was lost."),
        ])
        with pytest.raises(StreamError):
            s.next_message()

    def test_server_close_frame_is_stream_error(self, patch_create_connection):
        s, _, _, _ = _session(patch_create_connection, [""])
        with pytest.raises(StreamError):
            s.next_message()

    def test_iter_ticks_skips_ignored_frames(self, patch_create_connection):
        s, ws, _, _ = _session(patch_create_connection, [
            '{"event":"systemStatus","status":"online"}',
            TICK,
            '{"event":"heartbeat"}',
            '[0, {"c":["3100"]}, "ticker", "ETH/USD"]',
        ])
        ticks = []
        for t in s.iter_ticks():
            ticks.append(t)
            if len(ticks) == 2:
                s.close()

        assert [t.price for t in ticks] == [Decimal("3050.5"), Decimal("3100")]


class TestClose:

    def test_close_is_idempotent(self, patch_create_connection):
        s, ws, _, _ = _session(patch_create_connection)
        s.close()
        s.close()
        assert s.closed
        assert ws.close_frames == 1
        assert not ws.connected

    def test_close_before_connect(self):
        s = KrakenTickerStream(PriceLedger())
        s.close()
        assert s.closed
        assert s.next_message() is None

    def test_close_from_other_thread_unblocks_reader(self, patch_create_connection):
        s, ws, _, _ = _session(patch_create_connection)
        result = {}

        def _reader():
            result["frame"] = s.next_message()

        t = threading.Thread(target=_reader)
        t.start()
        assert ws.recv_waiting.wait(timeout=5)

        s.close()
        t.join(timeout=5)

        assert not t.is_alive()
        assert ws.aborted.is_set()
        assert result["frame"] is None
