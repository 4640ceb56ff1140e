"""
Relay state: connection registry, profiles, matchmaking pools, heartbeat timers, message relay.
"""
from strangers.core.broker.broker import Broker
from strangers.core.broker.registry import AcceptError, ConnectionState

__all__ = ["Broker", "AcceptError", "ConnectionState"]
