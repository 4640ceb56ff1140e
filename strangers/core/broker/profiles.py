"""
Profile store: the declared UserProfile per connection id.
"""
from typing import Dict, Optional

from strangers.core.models import UserProfile


class ProfileStore:
    """A connection appears here only after its first PAIR."""

    def __init__(self) -> None:
        self._profiles: Dict[str, UserProfile] = {}

    def set(self, conn_id: str, profile: UserProfile) -> None:
        self._profiles[conn_id] = profile

    def get(self, conn_id: str) -> Optional[UserProfile]:
        return self._profiles.get(conn_id)

    def discard(self, conn_id: str) -> None:
        self._profiles.pop(conn_id, None)

    def __contains__(self, conn_id: object) -> bool:
        return conn_id in self._profiles

    def __len__(self) -> int:
        return len(self._profiles)
