"""
Waitlist domain model.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WaitlistEntry(BaseModel):
    """
    One waitlist submission.

    Email is stored lower-cased and trimmed so duplicate detection is
    case-insensitive. Status is always "pending" on creation.

    Example:
        >>> entry = WaitlistEntry(full_name="Ada", email=" Ada@Example.com ")
        >>> entry.email
        'ada@example.com'
    """

    model_config = ConfigDict(frozen=True)

    full_name: str = Field(..., min_length=1)
    email: str
    phone_number: Optional[str] = None
    occupation: Optional[str] = None
    dietary_preferences: List[str] = Field(default_factory=list)
    health_goals: List[str] = Field(default_factory=list)
    reason_for_joining: Optional[str] = None
    how_did_you_hear: Optional[str] = None
    newsletter_opt_in: bool = False
    status: str = "pending"
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Lower-case and trim, then check the basic address shape."""
        normalized = str(v).strip().lower()
        if not _EMAIL_RE.match(normalized):
            raise ValueError(f"Invalid email address: {v!r}")
        return normalized

    @field_validator("full_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("full_name cannot be empty")
        return v.strip()
