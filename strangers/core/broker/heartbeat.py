"""
Heartbeat: per-connection inactivity and pong-deadline timers.

Any inbound frame re-arms the inactivity timer. When it expires the connection is
pinged; if no pong arrives before the deadline the connection is closed, which
cascades to its partner.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Set

from strangers.core.broker.registry import ConnectionRegistry
from strangers.core.observability.metrics import RelayMetrics

logger = logging.getLogger(__name__)

INACTIVITY_TIMEOUT = 3.0  # seconds of silence before a ping
PONG_TIMEOUT = 1.0        # seconds to answer a ping


@dataclass
class HeartbeatTimer:
    inactivity: Optional[asyncio.Task] = None
    pong_deadline: Optional[asyncio.Task] = None
    pinging: Optional[asyncio.Task] = None  # expired inactivity task still sending its ping

    def cancel(self) -> None:
        for task in (self.inactivity, self.pong_deadline, self.pinging):
            if task is not None and not task.done() and task is not asyncio.current_task():
                task.cancel()
        self.inactivity = None
        self.pong_deadline = None
        self.pinging = None


class HeartbeatSupervisor:
    """At most one inactivity timer and one pong deadline per connection."""

    def __init__(
        self,
        registry: ConnectionRegistry,
        inactivity_timeout: float = INACTIVITY_TIMEOUT,
        pong_timeout: float = PONG_TIMEOUT,
        metrics: Optional[RelayMetrics] = None,
    ) -> None:
        self._registry = registry
        self._inactivity_timeout = inactivity_timeout
        self._pong_timeout = pong_timeout
        self._metrics = metrics or RelayMetrics()
        self._timers: Dict[str, HeartbeatTimer] = {}
        self._tasks: Set[asyncio.Task] = set()

    def touch(self, conn_id: str) -> None:
        """Inbound activity: restart the inactivity timer."""
        if conn_id not in self._registry:
            return
        timer = self._timers.setdefault(conn_id, HeartbeatTimer())
        if timer.inactivity is not None and not timer.inactivity.done():
            timer.inactivity.cancel()
        timer.inactivity = self._spawn(self._await_inactivity(conn_id, timer))

    def pong(self, conn_id: str) -> None:
        timer = self._timers.get(conn_id)
        if timer is None or timer.pong_deadline is None:
            return
        timer.pong_deadline.cancel()
        timer.pong_deadline = None
        logger.debug("Pong from %s", conn_id)

    def stop(self, conn_id: str) -> None:
        """Cancel both timers; used as a registry teardown hook."""
        timer = self._timers.pop(conn_id, None)
        if timer is not None:
            timer.cancel()

    def is_armed(self, conn_id: str) -> bool:
        timer = self._timers.get(conn_id)
        return timer is not None and (timer.inactivity is not None or timer.pong_deadline is not None)

    def awaiting_pong(self, conn_id: str) -> bool:
        timer = self._timers.get(conn_id)
        return timer is not None and timer.pong_deadline is not None

    async def _await_inactivity(self, conn_id: str, timer: HeartbeatTimer) -> None:
        await asyncio.sleep(self._inactivity_timeout)
        if self._timers.get(conn_id) is not timer:
            return
        # Sleeping is over: a new frame re-arms instead of cancelling the ping below.
        timer.inactivity = None
        if not self._registry.is_open(conn_id):
            return
        if timer.pong_deadline is None:
            timer.pong_deadline = self._spawn(self._await_pong(conn_id, timer))
        logger.debug("Ping %s", conn_id)
        timer.pinging = asyncio.current_task()
        try:
            await self._registry.ping(conn_id)
        finally:
            if timer.pinging is asyncio.current_task():
                timer.pinging = None

    async def _await_pong(self, conn_id: str, timer: HeartbeatTimer) -> None:
        await asyncio.sleep(self._pong_timeout)
        if self._timers.get(conn_id) is not timer:
            return
        # Detach before closing: stop() must not cancel the task that is doing the close.
        # The task stays referenced from self._tasks until it finishes.
        timer.pong_deadline = None
        logger.info("No pong received from %s, closing", conn_id)
        self._metrics.record_heartbeat_timeout()
        await self._registry.close(conn_id)

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task
