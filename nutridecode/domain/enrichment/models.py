"""
Domain models for preference-based enrichment.

A PreferenceBasedAnalysis is an AnalysisResult plus the LLM's
assessment against one user's preferences.
"""

from __future__ import annotations

from typing import Annotated, Any, Dict, List

from pydantic import BeforeValidator, Field

from nutridecode.domain.label.models import (
    AnalysisResult,
    LabelModel,
    StrList,
    none_as_empty,
)


class DietaryCompliance(LabelModel):
    compliant: bool = True
    violations: StrList = Field(default_factory=list)
    warnings: StrList = Field(default_factory=list)


class AllergenSafety(LabelModel):
    safe: bool = True
    detected_allergens: StrList = Field(default_factory=list, alias="detectedAllergens")
    cross_contamination_risks: StrList = Field(
        default_factory=list, alias="crossContaminationRisks"
    )


class NutritionalAlignment(LabelModel):
    aligned: bool = True
    concerns: StrList = Field(default_factory=list)
    recommendations: StrList = Field(default_factory=list)


class SustainabilityMatch(LabelModel):
    matches: bool = True
    positive_aspects: StrList = Field(default_factory=list, alias="positiveAspects")
    improvements: StrList = Field(default_factory=list)


class PreferencesMatch(LabelModel):
    """The four sub-reports; each is always present, possibly empty."""

    dietary_compliance: Annotated[DietaryCompliance, BeforeValidator(none_as_empty)] = Field(
        default_factory=DietaryCompliance, alias="dietaryCompliance"
    )
    allergen_safety: Annotated[AllergenSafety, BeforeValidator(none_as_empty)] = Field(
        default_factory=AllergenSafety, alias="allergenSafety"
    )
    nutritional_alignment: Annotated[
        NutritionalAlignment, BeforeValidator(none_as_empty)
    ] = Field(default_factory=NutritionalAlignment, alias="nutritionalAlignment")
    sustainability_match: Annotated[
        SustainabilityMatch, BeforeValidator(none_as_empty)
    ] = Field(default_factory=SustainabilityMatch, alias="sustainabilityMatch")


class PreferenceReport(LabelModel):
    """Shape the enrichment prompt asks the LLM to return."""

    preferences_match: Annotated[PreferencesMatch, BeforeValidator(none_as_empty)] = Field(
        default_factory=PreferencesMatch, alias="preferencesMatch"
    )
    personalized_recommendations: StrList = Field(
        default_factory=list, alias="personalizedRecommendations"
    )
    alternative_products: StrList = Field(default_factory=list, alias="alternativeProducts")


class PreferenceBasedAnalysis(AnalysisResult):
    """
    AnalysisResult annotated with a preference report.

    Example:
        >>> enriched = PreferenceBasedAnalysis.from_parts(analysis, report)
        >>> enriched.preferences_match.allergen_safety.safe
        True
    """

    preferences_match: Annotated[PreferencesMatch, BeforeValidator(none_as_empty)] = Field(
        default_factory=PreferencesMatch, alias="preferencesMatch"
    )
    personalized_recommendations: StrList = Field(
        default_factory=list, alias="personalizedRecommendations"
    )
    alternative_products: StrList = Field(default_factory=list, alias="alternativeProducts")

    @classmethod
    def from_parts(
        cls, analysis: AnalysisResult, report: PreferenceReport
    ) -> PreferenceBasedAnalysis:
        """Merge a report into a copy of the analysis."""
        data: Dict[str, Any] = {
            name: getattr(analysis, name) for name in AnalysisResult.model_fields
        }
        data.update(
            preferences_match=report.preferences_match,
            personalized_recommendations=list(report.personalized_recommendations),
            alternative_products=list(report.alternative_products),
        )
        return cls(**data)

    def flagged_allergens(self) -> List[str]:
        return list(self.preferences_match.allergen_safety.detected_allergens)
