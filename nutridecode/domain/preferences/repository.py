"""
User preferences repository interface.
"""

from typing import Optional, Protocol, runtime_checkable

from nutridecode.domain.preferences.models import UserPreferences


@runtime_checkable
class IPreferencesRepository(Protocol):
    """
    Repository interface for per-user preferences.

    Implementations must provide:
    - At most one row per user_id
    - insert() failing with DuplicateSubmissionError when a row exists
      (concurrent lazy creation)
    """

    async def get(self, user_id: str) -> Optional[UserPreferences]:
        """Return the user's preferences or None if never created."""
        ...

    async def insert(self, preferences: UserPreferences) -> UserPreferences:
        """
        Insert a new preferences row.

        Raises:
            DuplicateSubmissionError: If the user already has a row
        """
        ...

    async def replace(self, preferences: UserPreferences) -> UserPreferences:
        """
        Overwrite the user's existing row.

        Raises:
            NotFoundError: If the user has no row
        """
        ...
