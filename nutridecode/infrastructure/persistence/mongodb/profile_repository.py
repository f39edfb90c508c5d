"""MongoDB user profile repository (read-only)."""

from __future__ import annotations

from typing import Any, Dict, Optional

from nutridecode.domain.profile.models import UserProfile
from nutridecode.infrastructure.persistence.mongodb.base import MongoBaseRepository


class MongoProfileRepository(MongoBaseRepository[UserProfile]):
    collection_name = "profiles"

    def to_document(self, entity: UserProfile) -> Dict[str, Any]:
        doc = entity.model_dump(mode="python")
        doc["_id"] = doc.pop("user_id")
        return doc

    def from_document(self, doc: Dict[str, Any]) -> UserProfile:
        data = dict(doc)
        data["user_id"] = data.pop("_id")
        if data.get("created_at") is not None:
            data["created_at"] = self.ensure_utc(data["created_at"])
        return UserProfile.model_validate(data)

    async def get(self, user_id: str) -> Optional[UserProfile]:
        doc = await self._find_one({"_id": user_id})
        return self.from_document(doc) if doc else None
