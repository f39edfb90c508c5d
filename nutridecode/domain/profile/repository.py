"""
User profile repository interface.
"""

from typing import Optional, Protocol, runtime_checkable

from nutridecode.domain.profile.models import UserProfile


@runtime_checkable
class IProfileRepository(Protocol):
    async def get(self, user_id: str) -> Optional[UserProfile]:
        """Profile for this user, or None."""
        ...
