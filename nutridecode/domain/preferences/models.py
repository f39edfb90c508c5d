"""
Domain models for user dietary preferences.

One record per user, created lazily with defaults on first read and
changed only through a merging update.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AllergenSensitivity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class MacroPreferences(BaseModel):
    """Target macro split in percent of daily calories."""

    model_config = ConfigDict(frozen=True)

    protein: float = Field(30, ge=0, le=100)
    carbs: float = Field(40, ge=0, le=100)
    fats: float = Field(30, ge=0, le=100)


class NotificationPreferences(BaseModel):
    model_config = ConfigDict(frozen=True)

    allergen_alerts: bool = True
    health_insights: bool = True
    sustainability_tips: bool = True
    weekly_summary: bool = True


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserPreferences(BaseModel):
    """
    Stored dietary preferences for one user.

    Example:
        >>> prefs = UserPreferences.defaults("user_123")
        >>> prefs.allergen_sensitivity
        <AllergenSensitivity.MEDIUM: 'medium'>
        >>> prefs.daily_calorie_target
        2000
    """

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., min_length=1)
    preferred_language: str = "en"
    dietary_restrictions: List[str] = Field(default_factory=list)
    preferred_diets: List[str] = Field(default_factory=list)
    allergen_alerts: List[str] = Field(default_factory=list)
    allergen_sensitivity: AllergenSensitivity = AllergenSensitivity.MEDIUM
    health_goals: List[str] = Field(default_factory=list)
    daily_calorie_target: Optional[int] = Field(2000, ge=0)
    macro_preferences: MacroPreferences = Field(default_factory=MacroPreferences)
    nutrients_to_track: List[str] = Field(default_factory=list)
    nutrients_to_avoid: List[str] = Field(default_factory=list)
    ingredients_to_avoid: List[str] = Field(default_factory=list)
    preferred_ingredients: List[str] = Field(default_factory=list)
    eco_conscious: bool = False
    packaging_preferences: List[str] = Field(default_factory=list)
    notification_preferences: NotificationPreferences = Field(
        default_factory=NotificationPreferences
    )
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @field_validator("created_at", "updated_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Naive datetimes are assumed to be UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @classmethod
    def defaults(cls, user_id: str) -> UserPreferences:
        """Default preferences row for a user seen for the first time."""
        return cls(user_id=user_id)

    @classmethod
    def editable_fields(cls) -> frozenset[str]:
        """Fields a partial update may touch."""
        return frozenset(cls.model_fields) - {"user_id", "created_at", "updated_at"}

    def merged_with(self, changes: Dict[str, Any]) -> UserPreferences:
        """
        Return a copy with partial changes merged in.

        Nested objects (macro_preferences, notification_preferences) are
        merged one level deep, so {"macro_preferences": {"protein": 35}}
        keeps the stored carbs and fats.
        """
        current = self.model_dump()
        for key, value in changes.items():
            if isinstance(value, BaseModel):
                value = value.model_dump()
            if isinstance(value, dict) and isinstance(current.get(key), dict):
                current[key] = {**current[key], **value}
            else:
                current[key] = value
        current["user_id"] = self.user_id
        current["created_at"] = self.created_at
        current["updated_at"] = _utcnow()
        return UserPreferences.model_validate(current)

    def to_prompt_payload(self) -> Dict[str, Any]:
        """Preference fields relevant to an LLM prompt (no timestamps)."""
        return self.model_dump(mode="json", exclude={"created_at", "updated_at"})


# ═══════════════════════════════════════════════════════════
# CATALOGUES (choices offered by the preferences form)
# ═══════════════════════════════════════════════════════════

DIETARY_RESTRICTIONS = [
    "Vegetarian",
    "Vegan",
    "Gluten-Free",
    "Dairy-Free",
    "Kosher",
    "Halal",
    "Nut-Free",
    "Low-Carb",
    "Keto",
    "Paleo",
]

COMMON_ALLERGENS = [
    "Milk",
    "Eggs",
    "Fish",
    "Shellfish",
    "Tree Nuts",
    "Peanuts",
    "Wheat",
    "Soybeans",
]

HEALTH_GOALS = [
    "Weight Loss",
    "Weight Gain",
    "Muscle Building",
    "Heart Health",
    "Better Sleep",
    "More Energy",
    "Digestive Health",
    "Blood Sugar Control",
]

NUTRIENTS_TO_TRACK = [
    "Protein",
    "Fiber",
    "Vitamin D",
    "Calcium",
    "Iron",
    "Potassium",
    "Omega-3",
    "Antioxidants",
]

PACKAGING_PREFERENCES = [
    "Recyclable",
    "Biodegradable",
    "Minimal Packaging",
    "Plastic-Free",
    "Reusable Container",
]
