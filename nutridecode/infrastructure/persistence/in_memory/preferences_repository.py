"""In-memory user preferences repository."""

from typing import Dict, Optional

from nutridecode.domain.preferences.models import UserPreferences
from nutridecode.domain.shared.errors import DuplicateSubmissionError, NotFoundError


class InMemoryPreferencesRepository:
    """Dictionary keyed by user_id; at most one row per user."""

    def __init__(self) -> None:
        self._storage: Dict[str, UserPreferences] = {}

    async def get(self, user_id: str) -> Optional[UserPreferences]:
        return self._storage.get(user_id)

    async def insert(self, preferences: UserPreferences) -> UserPreferences:
        if preferences.user_id in self._storage:
            raise DuplicateSubmissionError(
                f"Preferences already exist for user {preferences.user_id}"
            )
        self._storage[preferences.user_id] = preferences
        return preferences

    async def replace(self, preferences: UserPreferences) -> UserPreferences:
        if preferences.user_id not in self._storage:
            raise NotFoundError(f"No preferences for user {preferences.user_id}")
        self._storage[preferences.user_id] = preferences
        return preferences

    def clear(self) -> None:
        self._storage.clear()
