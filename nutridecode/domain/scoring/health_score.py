"""
Health score heuristic.

Deterministic pure function mapping an AnalysisResult to an integer in
[0, 100]: start at a base value, apply an ordered list of additive or
subtractive rules, clamp, round half-up.

Two rule sets exist and are deliberately kept apart:

- PERSISTED_POLICY: small weights on per-100g values; this is the score
  stored with a saved analysis.
- LABEL_VIEW_POLICY: large weights on per-serving values; this is the
  score shown on a freshly scanned result.

They disagree for the same product. Which one is authoritative is an
open product decision, so neither is derived from the other.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Iterable, List, Tuple

from nutridecode.domain.label.models import AnalysisResult

MIN_SCORE = 0
MAX_SCORE = 100

HEALTHY_OILS = ("rapeseed oil", "olive oil", "sunflower oil")
CHELATING_AGENTS = ("edta",)


@dataclass(frozen=True)
class ScoreRule:
    """One adjustment: `delta` is applied when `applies(analysis)` is true."""

    name: str
    delta: float
    applies: Callable[[AnalysisResult], bool]


@dataclass(frozen=True)
class ScorePolicy:
    name: str
    base: float
    rules: Tuple[ScoreRule, ...]


def _mentions(items: Iterable[str], needles: Iterable[str]) -> bool:
    lowered = [item.lower() for item in items]
    return any(needle in item for needle in needles for item in lowered)


# ═══════════════════════════════════════════════════════════
# PREDICATES
# ═══════════════════════════════════════════════════════════


def _has_healthy_oil(oils: Tuple[str, ...]) -> Callable[[AnalysisResult], bool]:
    def check(a: AnalysisResult) -> bool:
        return _mentions(a.ingredients.items, oils)

    return check


def _no_allergens(a: AnalysisResult) -> bool:
    # Only credited when an ingredient list was actually read.
    if not a.ingredients.items:
        return False
    return not a.allergens.declared and not a.allergens.may_contain


def _has_preservative(a: AnalysisResult) -> bool:
    return bool(a.ingredients.preservatives)


def _has_preservative_or_chelator(a: AnalysisResult) -> bool:
    return _has_preservative(a) or _mentions(a.ingredients.items, CHELATING_AGENTS)


def _per_100g_calories_above(limit: float) -> Callable[[AnalysisResult], bool]:
    def check(a: AnalysisResult) -> bool:
        return a.nutritional_info.per_100g.calories > limit

    return check


def _per_serving_calories_above(limit: float) -> Callable[[AnalysisResult], bool]:
    def check(a: AnalysisResult) -> bool:
        return a.nutritional_info.per_serving.calories > limit

    return check


def _per_100g_sugar_or_salt_above(
    sugar: float, salt: float
) -> Callable[[AnalysisResult], bool]:
    def check(a: AnalysisResult) -> bool:
        per_100g = a.nutritional_info.per_100g
        return per_100g.sugar > sugar or per_100g.salt > salt

    return check


def _per_serving_sugar_above(limit: float) -> Callable[[AnalysisResult], bool]:
    def check(a: AnalysisResult) -> bool:
        return a.nutritional_info.per_serving.sugar > limit

    return check


def _recycling_or_sustainability(a: AnalysisResult) -> bool:
    return bool(a.packaging.recycling_info.strip()) or bool(a.packaging.sustainability_claims)


def _sustainability_claim_keyword(a: AnalysisResult) -> bool:
    return _mentions(a.packaging.sustainability_claims, ("recycled", "sustainable"))


def _has_certification(a: AnalysisResult) -> bool:
    return bool(a.packaging.certifications)


def _omega_claim(a: AnalysisResult) -> bool:
    return _mentions(a.health_claims, ("omega",))


def _clear_ingredient_list(a: AnalysisResult) -> bool:
    items = a.ingredients.items
    return bool(items) and all(item for item in items)


# ═══════════════════════════════════════════════════════════
# POLICIES
# ═══════════════════════════════════════════════════════════

PERSISTED_POLICY = ScorePolicy(
    name="persisted",
    base=65,
    rules=(
        ScoreRule("healthy_fats", 1.5, _has_healthy_oil(HEALTHY_OILS)),
        ScoreRule("minimal_allergens", 1, _no_allergens),
        ScoreRule("preservatives", -1, _has_preservative_or_chelator),
        ScoreRule("high_calories", -1, _per_100g_calories_above(300)),
        ScoreRule("eco_packaging", 1, _recycling_or_sustainability),
        ScoreRule("sugar_or_salt", -0.5, _per_100g_sugar_or_salt_above(5, 1.5)),
        ScoreRule("ingredient_clarity", 0.5, _clear_ingredient_list),
    ),
)

LABEL_VIEW_POLICY = ScorePolicy(
    name="label_view",
    base=65,
    rules=(
        ScoreRule("healthy_fats", 15, _has_healthy_oil(("rapeseed oil",))),
        ScoreRule("preservatives", -10, _has_preservative),
        ScoreRule("high_calories", -10, _per_serving_calories_above(100)),
        ScoreRule("eco_packaging", 10, _sustainability_claim_keyword),
        ScoreRule("certifications", 5, _has_certification),
        ScoreRule("omega_claim", 5, _omega_claim),
        ScoreRule("sugar", -5, _per_serving_sugar_above(0)),
    ),
)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def score_breakdown(
    analysis: AnalysisResult, policy: ScorePolicy = PERSISTED_POLICY
) -> List[Tuple[str, float]]:
    """Rules that fired for this analysis, in policy order."""
    return [(rule.name, rule.delta) for rule in policy.rules if rule.applies(analysis)]


def health_score(analysis: AnalysisResult, policy: ScorePolicy = PERSISTED_POLICY) -> int:
    """
    Score a product from 0 (avoid) to 100 (healthy).

    Example:
        >>> health_score(AnalysisResult())
        65
    """
    raw = policy.base + sum(delta for _, delta in score_breakdown(analysis, policy))
    return max(MIN_SCORE, min(MAX_SCORE, _round_half_up(raw)))
