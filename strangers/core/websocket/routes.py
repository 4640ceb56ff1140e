"""
WebSocket route: accept, register, run the session loop until the connection closes.
"""
import logging

from fastapi import WebSocket, status

from strangers.core.broker.broker import Broker
from strangers.core.broker.registry import AcceptError
from strangers.core.websocket.session import Session
from strangers.core.websocket.transport import WebSocketTransport

logger = logging.getLogger(__name__)


def get_broker(websocket: WebSocket) -> Broker:
    return websocket.app.state.broker


async def websocket_endpoint(websocket: WebSocket) -> None:
    """Upgrade, register with the broker and run the session; reject the upgrade on failure."""
    broker = get_broker(websocket)
    transport = WebSocketTransport(websocket, max_frame_size=broker.max_frame_size)
    try:
        conn_id = await broker.registry.accept(transport)
    except AcceptError:
        try:
            await websocket.close(code=status.WS_1002_PROTOCOL_ERROR)
        except RuntimeError as e:
            logger.debug("Reject after failed accept: %s", e)
        return
    logger.info("Sock connected: %s", conn_id)
    await Session(broker, conn_id).run()
