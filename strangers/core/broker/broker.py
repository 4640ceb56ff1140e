"""
Broker: owns the registry, profile store, matchmaking, heartbeat and relay for one process.
"""
import logging
import random
from typing import Optional

from strangers.core.broker.heartbeat import INACTIVITY_TIMEOUT, PONG_TIMEOUT, HeartbeatSupervisor
from strangers.core.broker.matchmaking import MatchmakingEngine
from strangers.core.broker.profiles import ProfileStore
from strangers.core.broker.registry import ConnectionRegistry
from strangers.core.broker.relay import MessageRelay
from strangers.core.config import Settings
from strangers.core.observability.metrics import RelayMetrics

logger = logging.getLogger(__name__)


class Broker:
    """All in-memory relay state. One instance per app; tests build a fresh one each."""

    def __init__(
        self,
        inactivity_timeout: float = INACTIVITY_TIMEOUT,
        pong_timeout: float = PONG_TIMEOUT,
        max_frame_size: int = 256 * 1024,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.metrics = RelayMetrics()
        self.registry = ConnectionRegistry(metrics=self.metrics)
        self.profiles = ProfileStore()
        self.matchmaking = MatchmakingEngine(self.profiles, rng=rng)
        self.heartbeat = HeartbeatSupervisor(
            self.registry,
            inactivity_timeout=inactivity_timeout,
            pong_timeout=pong_timeout,
            metrics=self.metrics,
        )
        self.relay = MessageRelay(self.registry)
        self.max_frame_size = max_frame_size

        # Matchmaking first: it reports the partner to cascade to.
        self.registry.add_teardown_hook(self.matchmaking.forget)
        self.registry.add_teardown_hook(self.profiles.discard)
        self.registry.add_teardown_hook(self.heartbeat.stop)

    @classmethod
    def from_settings(cls, settings: Settings) -> "Broker":
        logger.info(
            "Broker heartbeat: inactivity=%.1fs pong_timeout=%.1fs",
            settings.heartbeat_inactivity_seconds,
            settings.heartbeat_pong_timeout_seconds,
        )
        return cls(
            inactivity_timeout=settings.heartbeat_inactivity_seconds,
            pong_timeout=settings.heartbeat_pong_timeout_seconds,
            max_frame_size=settings.max_frame_size,
        )

    def status(self) -> dict:
        return {
            "connections": len(self.registry),
            "profiles": len(self.profiles),
            "waiting": self.matchmaking.pool_sizes(),
            "paired": self.matchmaking.paired_count,
            "metrics": self.metrics.snapshot(),
        }
