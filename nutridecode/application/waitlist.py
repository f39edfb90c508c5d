"""
Waitlist and profile services.
"""

from __future__ import annotations

from typing import Optional

import structlog

from nutridecode.domain.profile.models import UserProfile
from nutridecode.domain.profile.repository import IProfileRepository
from nutridecode.domain.shared.errors import DuplicateSubmissionError
from nutridecode.domain.waitlist.models import WaitlistEntry
from nutridecode.domain.waitlist.repository import IWaitlistRepository

logger = structlog.get_logger(__name__)


class WaitlistService:
    """
    Example:
        >>> service = WaitlistService(InMemoryWaitlistRepository())
        >>> await service.submit(WaitlistEntry(full_name="Ada", email="ada@example.com"))
    """

    def __init__(self, repository: IWaitlistRepository):
        self.repository = repository

    async def submit(self, entry: WaitlistEntry) -> WaitlistEntry:
        """
        Register a new waitlist entry with status "pending".

        Raises:
            DuplicateSubmissionError: Email already registered (never overwritten)
        """
        if await self.repository.find_by_email(entry.email) is not None:
            logger.info("waitlist_duplicate", email_domain=entry.email.split("@")[-1])
            raise DuplicateSubmissionError("This email is already registered for the waitlist")

        pending = entry.model_copy(update={"status": "pending"})
        saved = await self.repository.insert(pending)
        logger.info("waitlist_joined", email_domain=saved.email.split("@")[-1])
        return saved


class ProfileService:
    def __init__(self, repository: IProfileRepository):
        self.repository = repository

    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        return await self.repository.get(user_id)
