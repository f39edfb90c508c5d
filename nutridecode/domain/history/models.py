"""
Domain models for saved analyses.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from nutridecode.domain.label.models import AnalysisResult
from nutridecode.domain.shared.value_objects import AnalysisId


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(v: Optional[datetime]) -> Optional[datetime]:
    if v is not None and v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v


class StoredAnalysis(BaseModel):
    """
    Persisted AnalysisResult plus its computed health score.

    Owned by exactly one user; created on explicit save, deletable by its
    owner, never updated in place.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: AnalysisId.generate().value)
    user_id: str = Field(..., min_length=1)
    image_url: str = ""
    health_score: int = Field(..., ge=0, le=100)
    analysis: AnalysisResult
    created_at: datetime = Field(default_factory=_utcnow)

    @field_validator("created_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Naive datetimes are assumed to be UTC."""
        return _as_utc(v)  # type: ignore[return-value]

    @property
    def product_name(self) -> str:
        return self.analysis.product_name


class SortField(str, Enum):
    CREATED_AT = "created_at"
    HEALTH_SCORE = "health_score"
    PRODUCT_NAME = "product_name"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class AnalysisFilters(BaseModel):
    """
    History query filters.

    Example:
        >>> AnalysisFilters(health_score_min=60, sort_by="health_score")
    """

    model_config = ConfigDict(frozen=True)

    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    health_score_min: Optional[int] = Field(None, ge=0, le=100)
    health_score_max: Optional[int] = Field(None, ge=0, le=100)
    product_name: Optional[str] = None
    sort_by: SortField = SortField.CREATED_AT
    sort_order: SortOrder = SortOrder.DESC

    @field_validator("start_date", "end_date")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v)

    @model_validator(mode="after")
    def check_ranges(self) -> AnalysisFilters:
        if (
            self.health_score_min is not None
            and self.health_score_max is not None
            and self.health_score_min > self.health_score_max
        ):
            raise ValueError("health_score_min cannot exceed health_score_max")
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date cannot be after end_date")
        return self

    def matches(self, stored: StoredAnalysis) -> bool:
        """Apply the filters to one record (in-memory backends)."""
        if self.start_date and stored.created_at < self.start_date:
            return False
        if self.end_date and stored.created_at > self.end_date:
            return False
        if self.health_score_min is not None and stored.health_score < self.health_score_min:
            return False
        if self.health_score_max is not None and stored.health_score > self.health_score_max:
            return False
        if self.product_name and self.product_name.lower() not in stored.product_name.lower():
            return False
        return True


class AnalyticsSummary(BaseModel):
    """Aggregate view of a user's saved analyses."""

    model_config = ConfigDict(frozen=True)

    total_queries: int = 0
    successful_queries: int = 0
    average_processing_time_ms: float = 0.0
    error_rate: float = 0.0
    average_health_score: float = 0.0
