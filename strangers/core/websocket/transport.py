"""
Transport boundary: a duplex, message-framed connection.

The relay only needs accept/send text/send ping/receive/close. ASGI WebSockets do not
expose ping/pong control frames, so the heartbeat runs as PING/PONG envelopes and the
adapter turns an inbound PONG envelope into a pong frame.
"""
import json
import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

from starlette.websockets import WebSocket, WebSocketState

from strangers.core.models import PING, PONG, Envelope
from strangers.core.websocket.events import parse_envelope

logger = logging.getLogger(__name__)


class FrameTooLargeError(ValueError):
    """Raised when an inbound text frame exceeds the configured size."""
    pass


class FrameKind(str, Enum):
    TEXT = "text"
    PONG = "pong"
    CLOSE = "close"


@dataclass
class Frame:
    kind: FrameKind
    text: Optional[str] = None
    envelope: Optional[Envelope] = None  # parsed text, when the transport already did it


class Transport(Protocol):
    """What the registry and session need from a connection."""

    async def accept(self) -> None: ...

    async def send_text(self, text: str) -> None: ...

    async def send_ping(self) -> None: ...

    async def receive(self) -> Frame: ...

    async def close(self) -> None: ...

    @property
    def is_closed(self) -> bool: ...


class WebSocketTransport:
    """Starlette/FastAPI WebSocket adapter."""

    def __init__(self, websocket: WebSocket, max_frame_size: int = 256 * 1024) -> None:
        self._ws = websocket
        self._max_frame_size = max_frame_size
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return (
            self._closed
            or self._ws.client_state == WebSocketState.DISCONNECTED
            or self._ws.application_state == WebSocketState.DISCONNECTED
        )

    async def accept(self) -> None:
        await self._ws.accept()

    async def send_text(self, text: str) -> None:
        await self._ws.send_text(text)

    async def send_ping(self) -> None:
        await self._ws.send_text(json.dumps({"id": str(uuid.uuid4()), "type": PING, "payload": {}}))

    async def receive(self) -> Frame:
        """Next inbound frame. Text is parsed once here; bad JSON raises ValidationError."""
        message = await self._ws.receive()
        if message["type"] == "websocket.disconnect":
            self._closed = True
            return Frame(FrameKind.CLOSE)
        text = message.get("text")
        if text is None:
            raw = message.get("bytes") or b""
            text = raw.decode("utf-8")
        size = len(text.encode("utf-8"))
        if size > self._max_frame_size:
            raise FrameTooLargeError(f"Frame too large: {size} bytes (limit {self._max_frame_size})")
        envelope = parse_envelope(text)
        if envelope.type == PONG:
            return Frame(FrameKind.PONG)
        return Frame(FrameKind.TEXT, text, envelope)

    async def close(self) -> None:
        if self.is_closed:
            self._closed = True
            return
        self._closed = True
        await self._ws.close()
