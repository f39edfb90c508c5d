"""
Unit tests for label domain models.

Tests coercion of LLM output into AnalysisResult.
"""

from typing import Any, Dict

import pytest
from pydantic import ValidationError as PydanticValidationError

from nutridecode.domain.label.models import AnalysisResult


class TestAnalysisResult:
    """Test suite for AnalysisResult parsing."""

    def test_empty_payload_gets_defaults(self) -> None:
        """Every list is present and every nutrient is zero."""
        result = AnalysisResult.model_validate({})

        assert result.product_name == ""
        assert result.ingredients.items == []
        assert result.ingredients.stabilizers == []
        assert result.allergens.may_contain == []
        assert result.nutritional_info.per_100g.calories == 0.0
        assert result.nutritional_info.per_serving.fats.saturated == 0.0
        assert result.metadata.query_type == "food-label-analysis"

    def test_camel_case_aliases(self, hummus_chips_payload: Dict[str, Any]) -> None:
        """LLM camelCase keys populate snake_case fields."""
        result = AnalysisResult.model_validate(hummus_chips_payload)

        assert result.product_name == "Hummus Chips"
        assert result.ingredients.items == ["Chickpeas (40%)", "Rapeseed oil (15%)"]
        assert result.nutritional_info.per_100g.calories == 454
        assert result.nutritional_info.per_100g.salt == pytest.approx(1.07)
        assert result.nutritional_info.serving_size == "30g"

    def test_nulls_coerce_to_defaults(self) -> None:
        """null sections and values do not break parsing."""
        result = AnalysisResult.model_validate(
            {
                "productName": None,
                "ingredients": None,
                "allergens": {"declared": None, "mayContain": "Milk"},
                "nutritionalInfo": {"per100g": {"calories": None, "fats": None}},
            }
        )

        assert result.product_name == ""
        assert result.ingredients.preservatives == []
        assert result.allergens.declared == []
        assert result.allergens.may_contain == ["Milk"]
        assert result.nutritional_info.per_100g.calories == 0.0
        assert result.nutritional_info.per_100g.fats.total == 0.0

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("12.5g", 12.5),
            ("<0.5 g", 0.5),
            ("1,2", 1.2),
            ("2,50 g", 2.5),
            ("1,880", 1880.0),
            ("1,880 kJ", 1880.0),
            ("1,880.5", 1880.5),
            ("12,345,678", 12345678.0),
            ("1,8800", 1.88),
            ("trace", 0.0),
            (7, 7.0),
        ],
    )
    def test_numeric_strings_coerce(self, raw: Any, expected: float) -> None:
        result = AnalysisResult.model_validate({"nutritionalInfo": {"per100g": {"sugar": raw}}})
        assert result.nutritional_info.per_100g.sugar == pytest.approx(expected)

    def test_thousands_separator_keeps_calories_high(self) -> None:
        result = AnalysisResult.model_validate(
            {"nutritionalInfo": {"per100g": {"calories": "1,880"}}}
        )
        assert result.nutritional_info.per_100g.calories == 1880.0

    def test_wrong_structure_rejected(self) -> None:
        """An object where a list is expected is a structural error."""
        with pytest.raises(PydanticValidationError):
            AnalysisResult.model_validate({"ingredients": {"list": {"a": 1}}})

    def test_all_ingredients_spans_categories(self) -> None:
        result = AnalysisResult.model_validate(
            {
                "ingredients": {
                    "list": ["Water"],
                    "preservatives": ["E202"],
                    "additives": ["E415"],
                }
            }
        )
        assert result.all_ingredients() == ["Water", "E202", "E415"]

    def test_to_payload_uses_aliases(self, hummus_chips: AnalysisResult) -> None:
        payload = hummus_chips.to_payload()

        assert payload["productName"] == "Hummus Chips"
        assert payload["ingredients"]["list"][0] == "Chickpeas (40%)"
        assert "per100g" in payload["nutritionalInfo"]
        assert AnalysisResult.model_validate(payload) == hummus_chips

    def test_is_immutable(self, hummus_chips: AnalysisResult) -> None:
        with pytest.raises(PydanticValidationError):
            hummus_chips.product_name = "Other"  # type: ignore[misc]
