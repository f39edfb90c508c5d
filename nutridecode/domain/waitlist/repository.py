"""
Waitlist repository interface.
"""

from typing import Optional, Protocol, runtime_checkable

from nutridecode.domain.waitlist.models import WaitlistEntry


@runtime_checkable
class IWaitlistRepository(Protocol):
    """
    Repository interface for waitlist entries, keyed by normalized email.
    """

    async def find_by_email(self, email: str) -> Optional[WaitlistEntry]:
        """Entry registered with this (normalized) email, if any."""
        ...

    async def insert(self, entry: WaitlistEntry) -> WaitlistEntry:
        """
        Store a new entry.

        Raises:
            DuplicateSubmissionError: If the email is already registered
        """
        ...
