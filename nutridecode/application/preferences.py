"""
User preferences service.

Lazily creates the default row on first read and merges partial updates.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import structlog
from pydantic import ValidationError as PydanticValidationError

from nutridecode.domain.preferences.models import UserPreferences
from nutridecode.domain.preferences.repository import IPreferencesRepository
from nutridecode.domain.shared.errors import (
    DuplicateSubmissionError,
    NotFoundError,
    ValidationError,
)

logger = structlog.get_logger(__name__)


class PreferencesService:
    """
    Example:
        >>> service = PreferencesService(InMemoryPreferencesRepository())
        >>> prefs = await service.get("user_1")
        >>> prefs.daily_calorie_target
        2000
    """

    def __init__(self, repository: IPreferencesRepository):
        self.repository = repository

    async def find(self, user_id: str) -> Optional[UserPreferences]:
        """Stored preferences without creating defaults."""
        return await self.repository.get(user_id)

    async def get(self, user_id: str) -> UserPreferences:
        """
        Return the user's preferences, creating the default row on first read.

        A concurrent first read may win the insert; the conflict is
        resolved by re-reading the row it created.
        """
        existing = await self.repository.get(user_id)
        if existing is not None:
            return existing

        defaults = UserPreferences.defaults(user_id)
        try:
            created = await self.repository.insert(defaults)
        except DuplicateSubmissionError:
            logger.debug("preferences_create_conflict", user_id=user_id)
            winner = await self.repository.get(user_id)
            if winner is None:
                raise
            return winner

        logger.info("preferences_created", user_id=user_id)
        return created

    async def update(self, user_id: str, changes: Dict[str, Any]) -> UserPreferences:
        """
        Merge partial changes into the user's preferences.

        Raises:
            ValidationError: Unknown field names or invalid values
        """
        unknown = sorted(set(changes) - UserPreferences.editable_fields())
        if unknown:
            raise ValidationError(f"Unknown preference fields: {', '.join(unknown)}")

        current = await self.get(user_id)
        try:
            updated = current.merged_with(changes)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid preference values: {e}") from e

        try:
            saved = await self.repository.replace(updated)
        except NotFoundError:
            # Row vanished between read and write
            saved = await self.repository.insert(updated)

        logger.info("preferences_updated", user_id=user_id, fields=sorted(changes))
        return saved
