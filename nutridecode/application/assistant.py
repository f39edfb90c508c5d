"""
Nutrition assistant.

Free-text LLM helpers around an analysis: spoken summary, short chat
replies and per-ingredient or per-nutrient insight.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import structlog

from nutridecode.domain.label.models import AnalysisResult
from nutridecode.domain.label.prompts import (
    build_chat_messages,
    build_ingredient_messages,
    build_nutrient_messages,
    build_summary_messages,
)
from nutridecode.domain.preferences.models import UserPreferences
from nutridecode.domain.shared.errors import ParseError
from nutridecode.infrastructure.ai.openai_client import OpenAIClient

logger = structlog.get_logger(__name__)


class InsightKind(str, Enum):
    INGREDIENT = "ingredient"
    NUTRIENT = "nutrient"


NutrientItem = Tuple[str, float]


class NutritionAssistant:
    """
    Text-completion helpers.

    Example:
        >>> assistant = NutritionAssistant(openai_client)
        >>> summary = await assistant.summarize(analysis)
    """

    def __init__(self, openai_client: OpenAIClient):
        self.openai_client = openai_client

    async def _text(self, messages: List[Dict[str, Any]], temperature: float, max_tokens: int) -> str:
        response = await self.openai_client.complete(
            messages=messages, temperature=temperature, max_tokens=max_tokens
        )
        content = response["content"].strip()
        if not content:
            raise ParseError("No response content received")
        return content

    async def summarize(self, analysis: AnalysisResult) -> str:
        """Spoken-style summary of an analysis."""
        return await self._text(
            build_summary_messages(analysis.to_payload()), temperature=0.7, max_tokens=500
        )

    async def chat(self, message: str) -> str:
        """Short nutrition-assistant reply."""
        return await self._text(build_chat_messages(message), temperature=0.7, max_tokens=150)

    async def ingredient_details(
        self, ingredient: str, preferences: Optional[UserPreferences] = None
    ) -> str:
        """Explanation of one ingredient, personalised when preferences are given."""
        payload = preferences.to_prompt_payload() if preferences else None
        return await self._text(
            build_ingredient_messages(ingredient, payload), temperature=0.3, max_tokens=500
        )

    async def nutrient_details(
        self, nutrient: str, amount: float, preferences: Optional[UserPreferences] = None
    ) -> str:
        payload = preferences.to_prompt_payload() if preferences else None
        return await self._text(
            build_nutrient_messages(nutrient, amount, payload), temperature=0.3, max_tokens=500
        )

    async def categorize_items(
        self,
        items: Sequence[Union[str, NutrientItem]],
        kind: InsightKind,
        preferences: Optional[UserPreferences] = None,
    ) -> Dict[str, str]:
        """
        Insight for every item, one request at a time in input order.

        Args:
            items: Ingredient names, or (nutrient, amount per 100g) pairs
            kind: Which prompt to use
            preferences: Optional personalisation

        Returns:
            Item name -> insight text, in input order
        """
        insights: Dict[str, str] = {}
        for item in items:
            if kind is InsightKind.NUTRIENT:
                name, amount = item if isinstance(item, tuple) else (item, 0.0)
                insights[name] = await self.nutrient_details(name, amount, preferences)
            else:
                name = item if isinstance(item, str) else item[0]
                insights[name] = await self.ingredient_details(name, preferences)
        logger.info("items_categorized", kind=kind.value, count=len(insights))
        return insights
