"""
Analysis history service.

Save, delete, list, analytics and export for a user's saved analyses.
"""

from __future__ import annotations

import csv
import io
import json
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, List, Optional, Set

import structlog

from nutridecode.domain.history.dedup import collapse_near_duplicates
from nutridecode.domain.history.models import (
    AnalysisFilters,
    AnalyticsSummary,
    StoredAnalysis,
)
from nutridecode.domain.history.repository import IAnalysisRepository
from nutridecode.domain.label.models import AnalysisResult
from nutridecode.domain.scoring.health_score import PERSISTED_POLICY, health_score
from nutridecode.domain.shared.errors import (
    DatabaseError,
    DuplicateSubmissionError,
    NotFoundError,
    OwnershipError,
    ValidationError,
)

logger = structlog.get_logger(__name__)

EXPORT_FORMATS = ("csv", "json")

CSV_COLUMNS = (
    "id",
    "date",
    "time",
    "product_name",
    "health_score",
    "ingredients",
    "preservatives",
    "additives",
    "declared_allergens",
    "may_contain_allergens",
    "health_claims",
    "packaging_materials",
    "recycling_info",
    "sustainability_claims",
    "certifications",
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _csv_row(stored: StoredAnalysis) -> Dict[str, str]:
    a = stored.analysis

    def joined(items: Iterable[str]) -> str:
        return "; ".join(items)

    return {
        "id": stored.id,
        "date": stored.created_at.date().isoformat(),
        "time": stored.created_at.time().replace(microsecond=0).isoformat(),
        "product_name": stored.product_name,
        "health_score": str(stored.health_score),
        "ingredients": joined(a.ingredients.items),
        "preservatives": joined(a.ingredients.preservatives),
        "additives": joined(a.ingredients.additives),
        "declared_allergens": joined(a.allergens.declared),
        "may_contain_allergens": joined(a.allergens.may_contain),
        "health_claims": joined(a.health_claims),
        "packaging_materials": joined(a.packaging.materials),
        "recycling_info": a.packaging.recycling_info,
        "sustainability_claims": joined(a.packaging.sustainability_claims),
        "certifications": joined(a.packaging.certifications),
    }


def to_csv(records: List[StoredAnalysis]) -> str:
    """Header line, then one fully quoted row per record."""
    buffer = io.StringIO()
    buffer.write(",".join(CSV_COLUMNS) + "\n")
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for stored in records:
        row = _csv_row(stored)
        writer.writerow([row[column] for column in CSV_COLUMNS])
    return buffer.getvalue().rstrip("\n")


def to_json(records: List[StoredAnalysis]) -> str:
    return json.dumps(
        [
            {
                "id": r.id,
                "user_id": r.user_id,
                "image_url": r.image_url,
                "product_name": r.product_name,
                "health_score": r.health_score,
                "analysis_result": r.analysis.to_payload(),
                "created_at": r.created_at.isoformat(),
            }
            for r in records
        ],
        indent=2,
    )


class AnalysisHistoryService:
    """
    User-scoped history of saved analyses.

    Example:
        >>> service = AnalysisHistoryService(InMemoryAnalysisRepository())
        >>> stored = await service.save("user_1", analysis, image_url="")
        >>> await service.history("user_1")
    """

    def __init__(
        self,
        repository: IAnalysisRepository,
        duplicate_window: timedelta = timedelta(minutes=60),
        dedup_window: timedelta = timedelta(seconds=60),
        clock: Callable[[], datetime] = _utcnow,
    ):
        """
        Args:
            repository: Saved analysis storage
            duplicate_window: Same product saved again within this window is rejected
            dedup_window: Same product shown again within this window is hidden
            clock: UTC time source (injectable for tests)
        """
        self.repository = repository
        self.duplicate_window = duplicate_window
        self.dedup_window = dedup_window
        self._clock = clock

    async def save(
        self, user_id: str, analysis: AnalysisResult, image_url: str = ""
    ) -> StoredAnalysis:
        """
        Persist an analysis with its health score.

        Raises:
            DuplicateSubmissionError: Same product saved by this user within
                the duplicate window
        """
        now = self._clock()
        recent = await self.repository.find_recent_by_product(
            user_id, analysis.product_name, since=now - self.duplicate_window
        )
        if recent is not None:
            logger.info(
                "duplicate_save_rejected",
                user_id=user_id,
                product_name=analysis.product_name,
                existing_id=recent.id,
            )
            raise DuplicateSubmissionError(
                f"{analysis.product_name or 'This product'} was already saved "
                f"at {recent.created_at.isoformat()}"
            )

        stored = StoredAnalysis(
            user_id=user_id,
            image_url=image_url,
            health_score=health_score(analysis, PERSISTED_POLICY),
            analysis=analysis,
            created_at=now,
        )
        await self.repository.insert(stored)
        logger.info(
            "analysis_saved",
            user_id=user_id,
            analysis_id=stored.id,
            health_score=stored.health_score,
        )
        return stored

    async def _owned(self, user_id: str, analysis_id: str) -> StoredAnalysis:
        stored = await self.repository.get(analysis_id)
        if stored is None:
            raise NotFoundError(f"Analysis {analysis_id} not found")
        if stored.user_id != user_id:
            logger.warning("analysis_access_denied", user_id=user_id, analysis_id=analysis_id)
            raise OwnershipError(f"Analysis {analysis_id} does not belong to this user")
        return stored

    async def get(self, user_id: str, analysis_id: str) -> StoredAnalysis:
        """
        Raises:
            NotFoundError: No such record
            OwnershipError: Record owned by another user
        """
        return await self._owned(user_id, analysis_id)

    async def delete(self, user_id: str, analysis_id: str) -> None:
        """
        Delete an owned analysis.

        Tries the normal owner-scoped delete, falls back to the
        privileged path when that is blocked, then verifies the row is gone.

        Raises:
            NotFoundError: No such record
            OwnershipError: Record owned by another user (left untouched)
            DatabaseError: Row still present after both attempts
        """
        await self._owned(user_id, analysis_id)

        if not await self.repository.delete(analysis_id, user_id):
            logger.warning("normal_delete_blocked", user_id=user_id, analysis_id=analysis_id)
            if not await self.repository.force_delete(analysis_id, user_id):
                raise DatabaseError(f"Failed to delete analysis {analysis_id}")

        if await self.repository.get(analysis_id) is not None:
            logger.error("delete_not_applied", user_id=user_id, analysis_id=analysis_id)
            raise DatabaseError(f"Analysis {analysis_id} still present after delete")

        logger.info("analysis_deleted", user_id=user_id, analysis_id=analysis_id)

    async def history(
        self,
        user_id: str,
        filters: Optional[AnalysisFilters] = None,
        exclude_ids: Optional[Set[str]] = None,
    ) -> List[StoredAnalysis]:
        """
        Filtered, sorted and de-duplicated history.

        Args:
            user_id: Owner
            filters: Date/score/name filters and sort (newest first by default)
            exclude_ids: Ids the caller already deleted locally
        """
        records = await self.repository.list(user_id, filters or AnalysisFilters())
        return collapse_near_duplicates(records, self.dedup_window, exclude_ids)

    async def analytics(
        self, user_id: str, filters: Optional[AnalysisFilters] = None
    ) -> AnalyticsSummary:
        """Totals, success/error rate and average processing time."""
        records = await self.repository.list(user_id, filters or AnalysisFilters())
        total = len(records)
        if total == 0:
            return AnalyticsSummary()

        failed = sum(1 for r in records if r.analysis.metadata.error)
        return AnalyticsSummary(
            total_queries=total,
            successful_queries=total - failed,
            average_processing_time_ms=sum(
                r.analysis.metadata.processing_time_ms for r in records
            )
            / total,
            error_rate=failed / total * 100,
            average_health_score=sum(r.health_score for r in records) / total,
        )

    async def export(
        self, user_id: str, fmt: str = "csv", filters: Optional[AnalysisFilters] = None
    ) -> str:
        """
        Export the user's history.

        Raises:
            ValidationError: Unsupported format
        """
        fmt = fmt.lower()
        if fmt not in EXPORT_FORMATS:
            raise ValidationError(f"Unsupported export format: {fmt}")
        records = await self.history(user_id, filters)
        return to_csv(records) if fmt == "csv" else to_json(records)
