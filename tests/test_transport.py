"""WebSocketTransport over a real Starlette WebSocket driven by in-memory ASGI callables."""
import asyncio
import json
from types import SimpleNamespace

import pytest
from pydantic import ValidationError
from starlette.websockets import WebSocket

from strangers.core.broker import Broker
from strangers.core.websocket.routes import websocket_endpoint
from strangers.core.websocket.transport import FrameKind, FrameTooLargeError, WebSocketTransport

SCOPE = {"type": "websocket", "path": "/", "headers": [], "query_string": b""}


class ASGIChannel:
    """Feeds queued ASGI messages to the app and records what it sends back."""

    def __init__(self, *inbound):
        self.inbound = [{"type": "websocket.connect"}, *inbound]
        self.sent = []

    async def receive(self):
        return self.inbound.pop(0)

    async def send(self, message):
        self.sent.append(message)

    def of_type(self, message_type):
        return [m for m in self.sent if m["type"] == message_type]


def text(data):
    return {"type": "websocket.receive", "text": data if isinstance(data, str) else json.dumps(data)}


async def _accepted(channel, max_frame_size=256 * 1024):
    transport = WebSocketTransport(WebSocket(SCOPE, channel.receive, channel.send), max_frame_size=max_frame_size)
    await transport.accept()
    return transport


def test_ping_is_sent_as_envelope():
    async def scenario():
        channel = ASGIChannel()
        transport = await _accepted(channel)
        await transport.send_ping()

        sent = channel.of_type("websocket.send")
        assert len(sent) == 1
        ping = json.loads(sent[0]["text"])
        assert ping["type"] == "PING"
        assert ping["payload"] == {}
        assert ping["id"]

    asyncio.run(scenario())


def test_pong_envelope_becomes_pong_frame():
    async def scenario():
        channel = ASGIChannel(text({"type": "PONG"}))
        transport = await _accepted(channel)
        frame = await transport.receive()
        assert frame.kind is FrameKind.PONG

    asyncio.run(scenario())


def test_text_frame_carries_parsed_envelope():
    async def scenario():
        event = {"type": "PAIR", "payload": {"user": {"genderKey": "M", "filter": {"genderKey": "A"}}}}
        channel = ASGIChannel(text(event))
        transport = await _accepted(channel)
        frame = await transport.receive()
        assert frame.kind is FrameKind.TEXT
        assert json.loads(frame.text) == event
        assert frame.envelope.type == "PAIR"
        assert frame.envelope.payload["user"]["genderKey"] == "M"

    asyncio.run(scenario())


def test_binary_frame_is_decoded():
    async def scenario():
        raw = json.dumps({"type": "SEND", "payload": {}}).encode("utf-8")
        channel = ASGIChannel({"type": "websocket.receive", "bytes": raw})
        transport = await _accepted(channel)
        frame = await transport.receive()
        assert frame.kind is FrameKind.TEXT
        assert frame.envelope.type == "SEND"

    asyncio.run(scenario())


def test_frame_limit_counts_bytes():
    async def scenario():
        # 30 characters, 90 bytes once encoded
        channel = ASGIChannel(text("☃" * 30))
        transport = await _accepted(channel, max_frame_size=64)
        with pytest.raises(FrameTooLargeError, match="90 bytes"):
            await transport.receive()

    asyncio.run(scenario())


def test_malformed_json_raises_validation_error():
    async def scenario():
        channel = ASGIChannel(text("{not json"))
        transport = await _accepted(channel)
        with pytest.raises(ValidationError):
            await transport.receive()

    asyncio.run(scenario())


def test_disconnect_becomes_close_frame():
    async def scenario():
        channel = ASGIChannel({"type": "websocket.disconnect", "code": 1001})
        transport = await _accepted(channel)
        frame = await transport.receive()
        assert frame.kind is FrameKind.CLOSE
        assert transport.is_closed

        await transport.close()
        assert channel.of_type("websocket.close") == []

    asyncio.run(scenario())


def test_close_is_sent_once():
    async def scenario():
        channel = ASGIChannel()
        transport = await _accepted(channel)
        assert not transport.is_closed

        await transport.close()
        await transport.close()
        assert transport.is_closed
        assert len(channel.of_type("websocket.close")) == 1

    asyncio.run(scenario())


class RefusingWebSocket:
    """Fails the handshake and records how the route rejects it."""

    def __init__(self, broker, close_error=None):
        self.app = SimpleNamespace(state=SimpleNamespace(broker=broker))
        self.close_codes = []
        self._close_error = close_error

    async def accept(self):
        raise ConnectionError("handshake failed")

    async def close(self, code=1000, reason=None):
        self.close_codes.append(code)
        if self._close_error is not None:
            raise self._close_error


def test_failed_accept_rejects_upgrade():
    broker = Broker()
    websocket = RefusingWebSocket(broker)
    asyncio.run(websocket_endpoint(websocket))

    assert websocket.close_codes == [1002]
    assert len(broker.registry) == 0
    assert broker.metrics.get_connection_stats()["rejected"] == 1


def test_failed_reject_is_not_raised():
    broker = Broker()
    websocket = RefusingWebSocket(broker, close_error=RuntimeError("already closed"))
    asyncio.run(websocket_endpoint(websocket))

    assert websocket.close_codes == [1002]
    assert len(broker.registry) == 0
