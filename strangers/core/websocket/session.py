"""
Per-connection session loop: read frames, feed the heartbeat, dispatch PAIR and SEND.

Any exception while reading or handling a frame ends the session; the connection
(and its partner) is always closed on the way out.
"""
import logging

from pydantic import ValidationError

from strangers.core.broker.broker import Broker
from strangers.core.models import PAIR, SEND, Envelope, PairPayload, SendPayload
from strangers.core.websocket.events import paired_event, parse_envelope
from strangers.core.websocket.transport import Frame, FrameKind, FrameTooLargeError

logger = logging.getLogger(__name__)


class Session:
    """Drives one accepted connection until it is closed."""

    def __init__(self, broker: Broker, conn_id: str) -> None:
        self.broker = broker
        self.conn_id = conn_id

    async def run(self) -> None:
        registry = self.broker.registry
        conn = registry.get(self.conn_id)
        if conn is None:
            logger.warning("Session for unknown connection %s", self.conn_id)
            return
        self.broker.heartbeat.touch(self.conn_id)
        try:
            while registry.is_open(self.conn_id):
                frame = await conn.transport.receive()
                if frame.kind is FrameKind.CLOSE:
                    logger.info("Disconnected: %s", self.conn_id)
                    break
                self.broker.heartbeat.touch(self.conn_id)
                if frame.kind is FrameKind.PONG:
                    self.broker.heartbeat.pong(self.conn_id)
                    continue
                await self.handle_frame(frame)
        except (ValidationError, FrameTooLargeError) as e:
            logger.warning("Malformed event from %s, closing: %s", self.conn_id, e)
            self.broker.metrics.record_session_error(type(e).__name__)
        except Exception as e:
            logger.error("Failed to read the event from %s: %s", self.conn_id, e, exc_info=True)
            self.broker.metrics.record_session_error(type(e).__name__)
        finally:
            await registry.close(self.conn_id)

    async def handle_frame(self, frame: Frame) -> None:
        envelope = frame.envelope if frame.envelope is not None else parse_envelope(frame.text or "")
        await self.handle_envelope(envelope)

    async def handle_envelope(self, envelope: Envelope) -> None:
        if envelope.type == PAIR:
            await self.handle_pair(envelope)
        elif envelope.type == SEND:
            await self.handle_send(envelope)
        else:
            logger.debug("Ignoring event type %s from %s", envelope.type, self.conn_id)

    async def handle_pair(self, envelope: Envelope) -> None:
        user = PairPayload.model_validate(envelope.payload).user
        partner_id = self.broker.matchmaking.request_pairing(self.conn_id, user)
        if partner_id is None:
            return
        self.broker.metrics.record_pairing()
        partner_user = self.broker.profiles.get(partner_id)
        registry = self.broker.registry
        await registry.send(self.conn_id, paired_event(self.conn_id, partner_id, partner_user))
        await registry.send(partner_id, paired_event(partner_id, self.conn_id, user))

    async def handle_send(self, envelope: Envelope) -> None:
        message = SendPayload.model_validate(envelope.payload).message
        delivered = await self.broker.relay.relay(envelope.senderSockId, envelope.receiverSockId, message)
        self.broker.metrics.record_relay(delivered)
