"""In-memory saved-analysis repository.

Dictionary-backed implementation of IAnalysisRepository for tests and
the default local backend. Data is lost on process restart.
"""

from datetime import datetime
from typing import Dict, List, Optional, Set

from nutridecode.domain.history.models import (
    AnalysisFilters,
    SortField,
    SortOrder,
    StoredAnalysis,
)
from nutridecode.domain.shared.errors import DatabaseError


def sort_stored(records: List[StoredAnalysis], filters: AnalysisFilters) -> List[StoredAnalysis]:
    """Sort records as requested by the filters."""
    reverse = filters.sort_order is SortOrder.DESC
    if filters.sort_by is SortField.HEALTH_SCORE:
        return sorted(records, key=lambda r: r.health_score, reverse=reverse)
    if filters.sort_by is SortField.PRODUCT_NAME:
        return sorted(records, key=lambda r: r.product_name.lower(), reverse=reverse)
    return sorted(records, key=lambda r: r.created_at, reverse=reverse)


class InMemoryAnalysisRepository:
    """
    In-memory implementation of IAnalysisRepository.

    `block_normal_delete(analysis_id)` makes the owner-scoped delete
    report nothing removed for that id, standing in for a row-level
    access policy that rejects it; force_delete() still removes it.

    Example:
        >>> repository = InMemoryAnalysisRepository()
        >>> await repository.insert(stored)
        >>> await repository.delete(stored.id, stored.user_id)
        True
    """

    def __init__(self) -> None:
        self._storage: Dict[str, StoredAnalysis] = {}
        self._blocked: Set[str] = set()
        self._undeletable: Set[str] = set()

    async def insert(self, stored: StoredAnalysis) -> StoredAnalysis:
        if stored.id in self._storage:
            raise DatabaseError(f"Analysis {stored.id} already exists")
        self._storage[stored.id] = stored
        return stored

    async def get(self, analysis_id: str) -> Optional[StoredAnalysis]:
        return self._storage.get(analysis_id)

    async def find_recent_by_product(
        self, user_id: str, product_name: str, since: datetime
    ) -> Optional[StoredAnalysis]:
        matches = [
            r
            for r in self._storage.values()
            if r.user_id == user_id and r.product_name == product_name and r.created_at >= since
        ]
        if not matches:
            return None
        return max(matches, key=lambda r: r.created_at)

    async def list(self, user_id: str, filters: AnalysisFilters) -> List[StoredAnalysis]:
        records = [
            r for r in self._storage.values() if r.user_id == user_id and filters.matches(r)
        ]
        return sort_stored(records, filters)

    async def delete(self, analysis_id: str, user_id: str) -> bool:
        stored = self._storage.get(analysis_id)
        if stored is None or stored.user_id != user_id or analysis_id in self._blocked:
            return False
        del self._storage[analysis_id]
        return True

    async def force_delete(self, analysis_id: str, user_id: str) -> bool:
        stored = self._storage.get(analysis_id)
        if stored is None or stored.user_id != user_id:
            return False
        if analysis_id in self._undeletable:
            # Reports success without removing, like a privileged call
            # that silently no-ops
            return True
        del self._storage[analysis_id]
        return True

    # Test helpers

    def block_normal_delete(self, analysis_id: str) -> None:
        self._blocked.add(analysis_id)

    def make_undeletable(self, analysis_id: str) -> None:
        self._blocked.add(analysis_id)
        self._undeletable.add(analysis_id)

    def clear(self) -> None:
        self._storage.clear()
        self._blocked.clear()
        self._undeletable.clear()

    def count(self) -> int:
        return len(self._storage)
