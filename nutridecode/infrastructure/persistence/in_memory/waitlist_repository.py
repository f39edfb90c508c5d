"""In-memory waitlist repository."""

from typing import Dict, Optional

from nutridecode.domain.shared.errors import DuplicateSubmissionError
from nutridecode.domain.waitlist.models import WaitlistEntry


class InMemoryWaitlistRepository:
    def __init__(self) -> None:
        self._storage: Dict[str, WaitlistEntry] = {}

    async def find_by_email(self, email: str) -> Optional[WaitlistEntry]:
        return self._storage.get(email.strip().lower())

    async def insert(self, entry: WaitlistEntry) -> WaitlistEntry:
        if entry.email in self._storage:
            raise DuplicateSubmissionError(f"Email {entry.email} is already on the waitlist")
        self._storage[entry.email] = entry
        return entry

    def count(self) -> int:
        return len(self._storage)
