"""
Preference-based enrichment service.

Annotates an AnalysisResult with an LLM assessment against one user's
preferences, then backs the allergen part with a deterministic
case-insensitive cross-check so a declared allergen is never missed.
"""

from __future__ import annotations

from typing import Iterable, List, Optional

import structlog
from pydantic import ValidationError as PydanticValidationError

from nutridecode.application.preferences import PreferencesService
from nutridecode.domain.enrichment.models import (
    AllergenSafety,
    PreferenceBasedAnalysis,
    PreferenceReport,
)
from nutridecode.domain.enrichment.prompts import build_enrichment_messages
from nutridecode.domain.label.models import AnalysisResult
from nutridecode.domain.preferences.models import UserPreferences
from nutridecode.domain.shared.errors import ParseError, PreferencesMissingError
from nutridecode.infrastructure.ai.openai_client import OpenAIClient

logger = structlog.get_logger(__name__)

TEMPERATURE = 0.4
MAX_TOKENS = 2000


def _mentions(alert: str, texts: Iterable[str]) -> bool:
    needle = alert.strip().lower()
    return bool(needle) and any(needle in text.lower() for text in texts)


def _union(existing: List[str], extra: Iterable[str]) -> List[str]:
    seen = {item.lower() for item in existing}
    merged = list(existing)
    for item in extra:
        if item.lower() not in seen:
            seen.add(item.lower())
            merged.append(item)
    return merged


def cross_check_allergens(
    analysis: AnalysisResult, preferences: UserPreferences, safety: AllergenSafety
) -> AllergenSafety:
    """
    Match the user's allergen alerts against the label, ignoring case.

    Alerts found in declared allergens or the ingredient list join
    detected_allergens; alerts found only in may-contain warnings join
    cross_contamination_risks. Any match forces safe=False.

    Example:
        >>> # alert "peanuts", label declares "PEANUTS"
        >>> cross_check_allergens(analysis, prefs, AllergenSafety()).safe
        False
    """
    contains = [*analysis.allergens.declared, *analysis.all_ingredients()]
    detected = [a for a in preferences.allergen_alerts if _mentions(a, contains)]
    risks = [
        a
        for a in preferences.allergen_alerts
        if a not in detected and _mentions(a, analysis.allergens.may_contain)
    ]
    if not detected and not risks:
        return safety

    return safety.model_copy(
        update={
            "safe": False,
            "detected_allergens": _union(list(safety.detected_allergens), detected),
            "cross_contamination_risks": _union(
                list(safety.cross_contamination_risks), risks
            ),
        }
    )


class PreferenceEnrichmentService:
    """
    Example:
        >>> service = PreferenceEnrichmentService(openai_client, preferences_service)
        >>> enriched = await service.enrich(analysis, "user_1")
        >>> enriched.preferences_match.allergen_safety.safe
    """

    def __init__(
        self,
        openai_client: OpenAIClient,
        preferences_service: Optional[PreferencesService] = None,
    ):
        self.openai_client = openai_client
        self.preferences_service = preferences_service

    async def _resolve_preferences(
        self, user_id: str, preferences: Optional[UserPreferences]
    ) -> UserPreferences:
        if preferences is not None:
            return preferences
        if self.preferences_service is not None:
            found = await self.preferences_service.find(user_id)
            if found is not None:
                return found
        raise PreferencesMissingError(f"User preferences not found for {user_id}")

    async def enrich(
        self,
        analysis: AnalysisResult,
        user_id: str,
        preferences: Optional[UserPreferences] = None,
    ) -> PreferenceBasedAnalysis:
        """
        Assess an analysis against a user's preferences.

        Args:
            analysis: Extracted label; not modified
            user_id: Owner of the preferences
            preferences: Supplied preferences (fetched when None)

        Raises:
            PreferencesMissingError: No preferences available
            ParseError: Reply not JSON or not the expected shape
            ServiceError: Classified remote failure
        """
        prefs = await self._resolve_preferences(user_id, preferences)

        payload = await self.openai_client.complete_json(
            messages=build_enrichment_messages(analysis.to_payload(), prefs.to_prompt_payload()),
            temperature=TEMPERATURE,
            max_tokens=MAX_TOKENS,
        )
        try:
            report = PreferenceReport.model_validate(payload)
        except PydanticValidationError as e:
            raise ParseError(f"Invalid preference analysis structure: {e}") from e

        match = report.preferences_match
        safety = cross_check_allergens(analysis, prefs, match.allergen_safety)
        if safety is not match.allergen_safety:
            report = report.model_copy(
                update={"preferences_match": match.model_copy(update={"allergen_safety": safety})}
            )

        enriched = PreferenceBasedAnalysis.from_parts(analysis, report)
        logger.info(
            "analysis_enriched",
            user_id=user_id,
            allergen_safe=enriched.preferences_match.allergen_safety.safe,
            recommendations=len(enriched.personalized_recommendations),
        )
        return enriched
