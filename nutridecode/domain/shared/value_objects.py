"""
Shared value objects.

Immutable, validated domain primitives.
"""

from __future__ import annotations

import uuid
from pydantic import BaseModel, ConfigDict, Field


class AnalysisId(BaseModel):
    """
    Stored analysis ID value object.

    Format: "analysis_<12_hex_chars>"

    Example:
        >>> analysis_id = AnalysisId.generate()
        >>> assert analysis_id.value.startswith("analysis_")
    """

    model_config = ConfigDict(frozen=True)

    value: str = Field(
        ...,
        pattern=r"^analysis_[a-f0-9]{12}$",
        description="Analysis identifier",
    )

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return f"AnalysisId('{self.value}')"

    def __hash__(self) -> int:
        return hash(self.value)

    @classmethod
    def generate(cls) -> AnalysisId:
        """Generate new analysis ID from a random UUID."""
        random_part = uuid.uuid4().hex[:12]
        return cls(value=f"analysis_{random_part}")

    @classmethod
    def from_string(cls, s: str) -> AnalysisId:
        """Create from string."""
        return cls(value=s)
