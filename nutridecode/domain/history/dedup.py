"""
Display-level de-duplication of analysis history.

Repeated saves of the same product within a short window collapse into
the first one encountered in the current sort order.
"""

from datetime import timedelta
from typing import Iterable, List, Optional, Set

from nutridecode.domain.history.models import StoredAnalysis


def collapse_near_duplicates(
    records: Iterable[StoredAnalysis],
    window: timedelta = timedelta(minutes=1),
    exclude_ids: Optional[Set[str]] = None,
) -> List[StoredAnalysis]:
    """
    Drop records that repeat an already-kept product name within `window`.

    Args:
        records: History in display order
        window: Saves closer than this are considered the same scan
        exclude_ids: Ids already deleted by the caller, skipped outright

    Returns:
        Records to display, order preserved
    """
    excluded = exclude_ids or set()
    kept: List[StoredAnalysis] = []
    for record in records:
        if record.id in excluded:
            continue
        is_duplicate = any(
            other.product_name == record.product_name
            and abs(other.created_at - record.created_at) < window
            for other in kept
        )
        if not is_duplicate:
            kept.append(record)
    return kept
