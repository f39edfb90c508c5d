"""
MongoDB waitlist repository.

_id is the normalized email, so a second submission with the same
address fails on the unique key instead of overwriting.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pymongo.errors import DuplicateKeyError

from nutridecode.domain.shared.errors import DuplicateSubmissionError
from nutridecode.domain.waitlist.models import WaitlistEntry
from nutridecode.infrastructure.persistence.mongodb.base import MongoBaseRepository


class MongoWaitlistRepository(MongoBaseRepository[WaitlistEntry]):
    collection_name = "waitlist"

    def to_document(self, entity: WaitlistEntry) -> Dict[str, Any]:
        doc = entity.model_dump(mode="python")
        doc["_id"] = entity.email
        return doc

    def from_document(self, doc: Dict[str, Any]) -> WaitlistEntry:
        data = {k: v for k, v in doc.items() if k != "_id"}
        for key in ("created_at", "updated_at"):
            if data.get(key) is not None:
                data[key] = self.ensure_utc(data[key])
        return WaitlistEntry.model_validate(data)

    async def find_by_email(self, email: str) -> Optional[WaitlistEntry]:
        doc = await self._find_one({"_id": email.strip().lower()})
        return self.from_document(doc) if doc else None

    async def insert(self, entry: WaitlistEntry) -> WaitlistEntry:
        try:
            await self._insert_one(self.to_document(entry))
        except DuplicateKeyError as e:
            raise DuplicateSubmissionError(
                f"Email {entry.email} is already on the waitlist"
            ) from e
        return entry
