"""
Message relay: forwards chat messages to the receiver named in the event.
"""
import logging
from typing import Optional

from strangers.core.broker.registry import ConnectionRegistry
from strangers.core.models import TEXT, ChatMessage, TextPayload
from strangers.core.websocket.events import received_event

logger = logging.getLogger(__name__)


class MessageRelay:
    """Best-effort delivery; the sender is never told about failures."""

    def __init__(self, registry: ConnectionRegistry) -> None:
        self._registry = registry

    async def relay(self, sender_id: Optional[str], receiver_id: Optional[str], message: ChatMessage) -> bool:
        """Send RECEIVED to receiver_id for TEXT messages. Returns True if sent."""
        if message.type != TEXT:
            logger.debug("Ignoring message of kind %s from %s", message.type, sender_id)
            return False
        text = TextPayload.model_validate(message.payload).text
        if receiver_id not in self._registry:
            logger.warning("Dropping message from %s: unknown receiver %s", sender_id, receiver_id)
            return False
        return await self._registry.send(receiver_id, received_event(sender_id, receiver_id, text))
