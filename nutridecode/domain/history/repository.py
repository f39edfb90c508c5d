"""
Saved analysis repository interface.

Protocol for user-scoped storage of StoredAnalysis records.
"""

from datetime import datetime
from typing import List, Optional, Protocol, runtime_checkable

from nutridecode.domain.history.models import AnalysisFilters, StoredAnalysis


@runtime_checkable
class IAnalysisRepository(Protocol):
    """
    Repository interface for saved analyses.

    Implementations must provide:
    - Insert-only records (no in-place update)
    - Owner-scoped delete that reports whether a row was removed
    - A privileged delete path used when the owner-scoped one is blocked

    Example:
        >>> repository = InMemoryAnalysisRepository()
        >>> await repository.insert(stored)
        >>> await repository.get(stored.id)
    """

    async def insert(self, stored: StoredAnalysis) -> StoredAnalysis:
        """Persist a new record and return it."""
        ...

    async def get(self, analysis_id: str) -> Optional[StoredAnalysis]:
        """Fetch by id regardless of owner (ownership is checked by callers)."""
        ...

    async def find_recent_by_product(
        self, user_id: str, product_name: str, since: datetime
    ) -> Optional[StoredAnalysis]:
        """Newest record of this product saved by this user at or after `since`."""
        ...

    async def list(self, user_id: str, filters: AnalysisFilters) -> List[StoredAnalysis]:
        """User's records, filtered and sorted as requested."""
        ...

    async def delete(self, analysis_id: str, user_id: str) -> bool:
        """
        Owner-scoped delete.

        Returns:
            True if removed, False if nothing was removed (missing or blocked)
        """
        ...

    async def force_delete(self, analysis_id: str, user_id: str) -> bool:
        """
        Privileged delete bypassing the normal access policy.

        Returns:
            True if the privileged path reports success
        """
        ...
