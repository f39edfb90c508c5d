"""
MongoDB user preferences repository.

One document per user, _id = user_id (the unique key enforces at most
one row per user under concurrent lazy creation).
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pymongo.errors import DuplicateKeyError

from nutridecode.domain.preferences.models import UserPreferences
from nutridecode.domain.shared.errors import DuplicateSubmissionError, NotFoundError
from nutridecode.infrastructure.persistence.mongodb.base import MongoBaseRepository


class MongoPreferencesRepository(MongoBaseRepository[UserPreferences]):
    collection_name = "user_preferences"

    def to_document(self, entity: UserPreferences) -> Dict[str, Any]:
        doc = entity.model_dump(mode="python")
        doc["_id"] = doc.pop("user_id")
        return doc

    def from_document(self, doc: Dict[str, Any]) -> UserPreferences:
        data = dict(doc)
        data["user_id"] = data.pop("_id")
        for key in ("created_at", "updated_at"):
            if data.get(key) is not None:
                data[key] = self.ensure_utc(data[key])
        return UserPreferences.model_validate(data)

    async def get(self, user_id: str) -> Optional[UserPreferences]:
        doc = await self._find_one({"_id": user_id})
        return self.from_document(doc) if doc else None

    async def insert(self, preferences: UserPreferences) -> UserPreferences:
        try:
            await self._insert_one(self.to_document(preferences))
        except DuplicateKeyError as e:
            raise DuplicateSubmissionError(
                f"Preferences already exist for user {preferences.user_id}"
            ) from e
        return preferences

    async def replace(self, preferences: UserPreferences) -> UserPreferences:
        matched = await self._replace_one(
            {"_id": preferences.user_id}, self.to_document(preferences)
        )
        if matched == 0:
            raise NotFoundError(f"No preferences for user {preferences.user_id}")
        return preferences
