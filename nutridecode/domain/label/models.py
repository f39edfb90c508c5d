"""
Domain models for food label analysis.

The LLM emits camelCase JSON; fields carry those keys as aliases so
`AnalysisResult.model_validate(payload)` doubles as the structural
validator for extraction responses. Missing or null values coerce to
empty defaults so downstream arithmetic never sees a missing number.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Annotated, Any, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


_NUMBER_RE = re.compile(r"-?\d+(?:,\d{3}(?!\d))*(?:[.,]\d+)?")
# A comma before exactly three digits groups thousands; any other comma is decimal
_THOUSANDS_RE = re.compile(r",(?=\d{3}(?!\d))")


def _coerce_number(value: Any) -> float:
    """Coerce LLM nutrient values ("12.5g", "1,880 kJ", "<0.5", null) to float."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        match = _NUMBER_RE.search(value)
        if not match:
            return 0.0
        return float(_THOUSANDS_RE.sub("", match.group(0)).replace(",", "."))
    raise ValueError(f"Expected a number, got {type(value).__name__}")


def _coerce_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value if item is not None]
    raise ValueError(f"Expected a list of strings, got {type(value).__name__}")


def _coerce_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return "; ".join(str(item) for item in value if item is not None)
    if isinstance(value, dict):
        raise ValueError("Expected text, got an object")
    return str(value)


def none_as_empty(value: Any) -> Any:
    return {} if value is None else value


Number = Annotated[float, BeforeValidator(_coerce_number)]
StrList = Annotated[List[str], BeforeValidator(_coerce_str_list)]
Text = Annotated[str, BeforeValidator(_coerce_text)]


class LabelModel(BaseModel):
    """Base for label models: immutable, alias-aware, tolerant of extra keys."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class Fats(LabelModel):
    total: Number = 0.0
    saturated: Number = 0.0


class NutrientValues(LabelModel):
    """One column of the nutrition table (per serving or per 100g)."""

    calories: Number = 0.0
    protein: Number = 0.0
    carbs: Number = 0.0
    fats: Annotated[Fats, BeforeValidator(none_as_empty)] = Field(default_factory=Fats)
    sugar: Number = 0.0
    salt: Number = 0.0
    omega3: Number = 0.0


class NutritionalInfo(LabelModel):
    serving_size: Text = Field("", alias="servingSize")
    per_serving: Annotated[NutrientValues, BeforeValidator(none_as_empty)] = Field(
        default_factory=NutrientValues, alias="perServing"
    )
    per_100g: Annotated[NutrientValues, BeforeValidator(none_as_empty)] = Field(
        default_factory=NutrientValues, alias="per100g"
    )


class Ingredients(LabelModel):
    """Categorized ingredient lists; every list is always present."""

    items: StrList = Field(default_factory=list, alias="list")
    preservatives: StrList = Field(default_factory=list)
    additives: StrList = Field(default_factory=list)
    antioxidants: StrList = Field(default_factory=list)
    stabilizers: StrList = Field(default_factory=list)


class Allergens(LabelModel):
    declared: StrList = Field(default_factory=list)
    may_contain: StrList = Field(default_factory=list, alias="mayContain")


class Packaging(LabelModel):
    materials: StrList = Field(default_factory=list)
    recycling_info: Text = Field("", alias="recyclingInfo")
    sustainability_claims: StrList = Field(default_factory=list, alias="sustainabilityClaims")
    certifications: StrList = Field(default_factory=list)


class Storage(LabelModel):
    instructions: StrList = Field(default_factory=list)
    best_before: Text = Field("", alias="bestBefore")


class Manufacturer(LabelModel):
    name: Text = ""
    address: Text = ""
    contact: Text = ""


class AnalysisMetadata(LabelModel):
    """Request metadata attached by the label analysis client."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    model: str = ""
    temperature: float = 0.0
    query_type: str = Field("food-label-analysis", alias="queryType")
    processing_time_ms: int = Field(0, ge=0, alias="processingTimeMs")
    error: Optional[str] = None
    warning: Optional[str] = None


class AnalysisResult(LabelModel):
    """
    One scanned product, as extracted from its label.

    Immutable once returned; enrichment produces a superset copy
    (PreferenceBasedAnalysis) instead of mutating it.

    Example:
        >>> result = AnalysisResult.model_validate(
        ...     {
        ...         "productName": "Hummus Chips",
        ...         "ingredients": {"list": ["Chickpeas (40%)"]},
        ...     }
        ... )
        >>> result.ingredients.preservatives
        []
        >>> result.nutritional_info.per_100g.calories
        0.0
    """

    product_name: Text = Field("", alias="productName")
    ingredients: Annotated[Ingredients, BeforeValidator(none_as_empty)] = Field(
        default_factory=Ingredients
    )
    allergens: Annotated[Allergens, BeforeValidator(none_as_empty)] = Field(
        default_factory=Allergens
    )
    nutritional_info: Annotated[NutritionalInfo, BeforeValidator(none_as_empty)] = Field(
        default_factory=NutritionalInfo, alias="nutritionalInfo"
    )
    health_claims: StrList = Field(default_factory=list, alias="healthClaims")
    packaging: Annotated[Packaging, BeforeValidator(none_as_empty)] = Field(
        default_factory=Packaging
    )
    storage: Annotated[Storage, BeforeValidator(none_as_empty)] = Field(
        default_factory=Storage
    )
    manufacturer: Annotated[Manufacturer, BeforeValidator(none_as_empty)] = Field(
        default_factory=Manufacturer
    )
    metadata: Annotated[AnalysisMetadata, BeforeValidator(none_as_empty)] = Field(
        default_factory=AnalysisMetadata
    )

    def all_ingredients(self) -> List[str]:
        """Every ingredient mentioned, across all categories, in label order."""
        ing = self.ingredients
        return [
            *ing.items,
            *ing.preservatives,
            *ing.additives,
            *ing.antioxidants,
            *ing.stabilizers,
        ]

    def to_payload(self) -> dict[str, Any]:
        """camelCase JSON-ready dict, the shape the LLM and frontends use."""
        return self.model_dump(mode="json", by_alias=True)
