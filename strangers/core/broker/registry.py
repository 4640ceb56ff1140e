"""
Connection registry: maps connection id to transport, sends events, drives cascading teardown.
"""
import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from strangers.core.observability.metrics import RelayMetrics
from strangers.core.websocket.transport import Transport

logger = logging.getLogger(__name__)

# Called with the id being removed; may return a related id (the partner) to remove as well.
TeardownHook = Callable[[str], Optional[str]]


class AcceptError(Exception):
    """Raised when the transport upgrade fails. Nothing is registered."""
    pass


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass
class Connection:
    id: str
    transport: Transport
    state: ConnectionState = ConnectionState.CONNECTING
    opened_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def age_seconds(self) -> float:
        return (datetime.now(timezone.utc) - self.opened_at).total_seconds()


def new_id() -> str:
    return str(uuid.uuid4())


class ConnectionRegistry:
    """Owns every live connection. All derived state is dropped through teardown hooks."""

    def __init__(self, metrics: Optional[RelayMetrics] = None) -> None:
        self._connections: Dict[str, Connection] = {}
        self._teardown_hooks: List[TeardownHook] = []
        self._metrics = metrics or RelayMetrics()

    def add_teardown_hook(self, hook: TeardownHook) -> None:
        self._teardown_hooks.append(hook)

    async def accept(self, transport: Transport) -> str:
        """Upgrade the transport and register it. Raises AcceptError on failure."""
        conn = Connection(id=new_id(), transport=transport)
        try:
            await transport.accept()
        except Exception as e:
            logger.error("Failed to accept the socket: %s", e)
            self._metrics.record_accept(False)
            raise AcceptError(str(e)) from e
        conn.state = ConnectionState.OPEN
        self._connections[conn.id] = conn
        self._metrics.record_accept(True)
        logger.info("Connection accepted: %s", conn.id)
        return conn.id

    def get(self, conn_id: Optional[str]) -> Optional[Connection]:
        if conn_id is None:
            return None
        return self._connections.get(conn_id)

    def is_open(self, conn_id: str) -> bool:
        conn = self._connections.get(conn_id)
        return conn is not None and conn.state == ConnectionState.OPEN and not conn.transport.is_closed

    def __contains__(self, conn_id: object) -> bool:
        return conn_id in self._connections

    def __len__(self) -> int:
        return len(self._connections)

    def ids(self) -> List[str]:
        return list(self._connections)

    async def send(self, conn_id: Optional[str], event: Dict[str, Any]) -> bool:
        """Stamp a fresh event id and send. Failures are logged, never raised."""
        conn = self.get(conn_id)
        if conn is None:
            logger.warning("Failed to send the event: no connection with id %s", conn_id)
            return False
        payload = {**event, "id": new_id()}
        try:
            await conn.transport.send_text(json.dumps(payload))
            return True
        except Exception as e:
            logger.warning("Failed to send the event to %s: %s", conn_id, e)
            return False

    async def ping(self, conn_id: str) -> bool:
        conn = self.get(conn_id)
        if conn is None:
            return False
        try:
            await conn.transport.send_ping()
            return True
        except Exception as e:
            logger.warning("Ping to %s failed: %s", conn_id, e)
            return False

    async def close(self, conn_id: str) -> None:
        """
        Close a connection and, through the teardown hooks, its partner.

        Derived state of every affected connection is removed before the first await,
        so no other task can observe a half torn-down pairing. Unknown ids are a no-op.
        """
        if conn_id not in self._connections:
            logger.debug("Close ignored, no connection with id %s", conn_id)
            return
        detached = self._detach(conn_id)
        for conn in detached:
            await self._close_transport(conn)

    def _detach(self, conn_id: str) -> List[Connection]:
        pending = [conn_id]
        detached: List[Connection] = []
        while pending:
            current = pending.pop(0)
            conn = self._connections.pop(current, None)
            if conn is None:
                continue
            conn.state = ConnectionState.CLOSING
            detached.append(conn)
            for hook in self._teardown_hooks:
                related = hook(current)
                if related is not None and related in self._connections:
                    logger.info("Cascading close from %s to %s", current, related)
                    pending.append(related)
        return detached

    async def _close_transport(self, conn: Connection) -> None:
        logger.info("Closing connection %s after %.1fs", conn.id, conn.age_seconds())
        try:
            await conn.transport.close()
        except Exception as e:
            logger.warning("Failed to close the socket %s: %s", conn.id, e)
        finally:
            conn.state = ConnectionState.CLOSED
            self._metrics.record_close()
