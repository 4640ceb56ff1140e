"""
Matchmaking: per-category FIFO waiting pools and the symmetric pairing table.

Contract:
- a connection is paired XOR waiting in exactly one pool XOR neither
- pools are keyed by concrete category only; a waiter sits in the pool of its own genderKey
- a wildcard requester resolves to the only non-empty pool, otherwise to a random one
- compatible waiter: its filter is the wildcard, or its filter equals the requester's own genderKey
"""
import logging
import random
from typing import Dict, List, Optional, Sequence

from strangers.core.broker.profiles import ProfileStore
from strangers.core.models import CATEGORY_KEYS, UserProfile

logger = logging.getLogger(__name__)


class MatchmakingEngine:
    """Pairs waiting connections. Methods never await: pool and pairing updates complete in one step."""

    def __init__(
        self,
        profiles: ProfileStore,
        categories: Sequence[str] = CATEGORY_KEYS,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._profiles = profiles
        self._categories = tuple(categories)
        # dict keys keep insertion order: an ordered set per pool
        self._pools: Dict[str, Dict[str, None]] = {key: {} for key in self._categories}
        self._pairs: Dict[str, str] = {}
        self._rng = rng or random.Random()

    def request_pairing(self, conn_id: str, profile: UserProfile) -> Optional[str]:
        """
        Store the profile and try to pair. Returns the partner id, or None after enqueuing.

        A PAIR from an already paired connection is ignored.
        """
        if conn_id in self._pairs:
            logger.info("PAIR ignored, %s is already paired with %s", conn_id, self._pairs[conn_id])
            return None
        self._profiles.set(conn_id, profile)
        self._withdraw(conn_id)

        target = self._resolve_target(profile)
        pool = self._pools[target]
        logger.debug("Pairing %s against pool %s (%d waiting)", conn_id, target, len(pool))
        partner_id = None
        for waiting_id in pool:
            waiting = self._profiles.get(waiting_id)
            if waiting is not None and self._is_compatible(profile, waiting):
                partner_id = waiting_id
                break

        if partner_id is None:
            self._pools[profile.genderKey][conn_id] = None
            logger.info("%s waiting in pool %s", conn_id, profile.genderKey)
            return None

        del pool[partner_id]
        self._pairs[conn_id] = partner_id
        self._pairs[partner_id] = conn_id
        logger.info("Paired %s with %s", conn_id, partner_id)
        return partner_id

    def forget(self, conn_id: str) -> Optional[str]:
        """Drop the connection from pools and pairing table. Returns the former partner."""
        self._withdraw(conn_id)
        partner_id = self._pairs.pop(conn_id, None)
        if partner_id is not None and self._pairs.get(partner_id) == conn_id:
            del self._pairs[partner_id]
        return partner_id

    def partner_of(self, conn_id: str) -> Optional[str]:
        return self._pairs.get(conn_id)

    def is_waiting(self, conn_id: str) -> bool:
        return any(conn_id in pool for pool in self._pools.values())

    def waiting_ids(self, category: str) -> List[str]:
        return list(self._pools[category])

    def pool_sizes(self) -> Dict[str, int]:
        return {key: len(pool) for key, pool in self._pools.items()}

    @property
    def paired_count(self) -> int:
        return len(self._pairs)

    def _withdraw(self, conn_id: str) -> None:
        for pool in self._pools.values():
            pool.pop(conn_id, None)

    def _resolve_target(self, profile: UserProfile) -> str:
        if not profile.wants_anyone:
            return profile.filter.genderKey
        non_empty = [key for key in self._categories if self._pools[key]]
        if len(non_empty) == 1:
            return non_empty[0]
        return self._rng.choice(self._categories)

    @staticmethod
    def _is_compatible(requester: UserProfile, waiting: UserProfile) -> bool:
        # Only the waiter's filter is checked; the requester's filter was applied by pool choice.
        return waiting.wants_anyone or waiting.filter.genderKey == requester.genderKey
