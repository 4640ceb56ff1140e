"""
Simple in-memory metrics for the relay: connections, pairings, relayed messages, heartbeat timeouts.
"""
import logging
from typing import Dict

logger = logging.getLogger("strangers.relay.metrics")


class RelayMetrics:
    """In-memory counters for one broker."""

    def __init__(self) -> None:
        self._connections_accepted = 0
        self._connections_rejected = 0
        self._connections_closed = 0
        self._pairings = 0
        self._messages_relayed = 0
        self._messages_dropped = 0
        self._heartbeat_timeouts = 0
        self._session_errors: Dict[str, int] = {}

    def record_accept(self, success: bool) -> None:
        if success:
            self._connections_accepted += 1
        else:
            self._connections_rejected += 1

    def record_close(self) -> None:
        self._connections_closed += 1

    def record_pairing(self) -> None:
        self._pairings += 1

    def record_relay(self, delivered: bool) -> None:
        if delivered:
            self._messages_relayed += 1
        else:
            self._messages_dropped += 1

    def record_heartbeat_timeout(self) -> None:
        self._heartbeat_timeouts += 1
        logger.debug("heartbeat_timeouts=%d", self._heartbeat_timeouts)

    def record_session_error(self, kind: str) -> None:
        self._session_errors[kind] = self._session_errors.get(kind, 0) + 1

    def get_connection_stats(self) -> Dict[str, int]:
        return {
            "accepted": self._connections_accepted,
            "rejected": self._connections_rejected,
            "closed": self._connections_closed,
        }

    def get_relay_stats(self) -> Dict[str, int]:
        return {
            "pairings": self._pairings,
            "messages_relayed": self._messages_relayed,
            "messages_dropped": self._messages_dropped,
            "heartbeat_timeouts": self._heartbeat_timeouts,
        }

    def get_session_errors(self) -> Dict[str, int]:
        return dict(self._session_errors)

    def snapshot(self) -> Dict[str, object]:
        return {
            "connections": self.get_connection_stats(),
            "relay": self.get_relay_stats(),
            "session_errors": self.get_session_errors(),
        }
