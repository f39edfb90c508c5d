"""In-memory user profile repository."""

from typing import Dict, Iterable, Optional

from nutridecode.domain.profile.models import UserProfile


class InMemoryProfileRepository:
    """Read-only profile store, seeded at construction."""

    def __init__(self, profiles: Iterable[UserProfile] = ()) -> None:
        self._storage: Dict[str, UserProfile] = {p.user_id: p for p in profiles}

    async def get(self, user_id: str) -> Optional[UserProfile]:
        return self._storage.get(user_id)

    def add(self, profile: UserProfile) -> None:
        self._storage[profile.user_id] = profile
