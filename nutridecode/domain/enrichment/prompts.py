"""
OpenAI prompts for preference-based enrichment.
"""

import json
from typing import Any, Dict, List


ENRICHMENT_SYSTEM_PROMPT = (
    "You are a personalized nutrition analysis expert. Analyze food products "
    "based on user preferences and provide detailed recommendations."
)

ENRICHMENT_OUTPUT_SHAPE = """{
  "preferencesMatch": {
    "dietaryCompliance": {
      "compliant": boolean,
      "violations": ["list any violations of dietary restrictions"],
      "warnings": ["list any potential concerns"]
    },
    "allergenSafety": {
      "safe": boolean,
      "detectedAllergens": ["list allergens that match user's alerts"],
      "crossContaminationRisks": ["list potential cross-contamination risks"]
    },
    "nutritionalAlignment": {
      "aligned": boolean,
      "concerns": ["list nutritional concerns based on health goals"],
      "recommendations": ["provide specific recommendations"]
    },
    "sustainabilityMatch": {
      "matches": boolean,
      "positiveAspects": ["list matching sustainability features"],
      "improvements": ["suggest sustainability improvements"]
    }
  },
  "personalizedRecommendations": [
    "List of specific recommendations based on user preferences"
  ],
  "alternativeProducts": [
    "Suggest alternative products if there are significant mismatches"
  ]
}"""


def build_enrichment_prompt(
    analysis_payload: Dict[str, Any], preferences_payload: Dict[str, Any]
) -> str:
    """Serialize analysis and preferences into the enrichment instruction."""
    return (
        "Analyze this food product based on the following user preferences "
        "and provide personalized insights:\n\n"
        f"Product Analysis:\n{json.dumps(analysis_payload, indent=2)}\n\n"
        f"User Preferences:\n{json.dumps(preferences_payload, indent=2)}\n\n"
        "Provide a detailed analysis in JSON format with the following structure:\n"
        f"{ENRICHMENT_OUTPUT_SHAPE}\n\n"
        "Focus on:\n"
        "1. Strict compliance with dietary restrictions\n"
        "2. Detailed allergen analysis including cross-contamination risks "
        "(match allergens case-insensitively)\n"
        "3. Alignment with health goals and nutritional preferences\n"
        "4. Sustainability preferences\n"
        "5. Practical recommendations for alternatives if needed"
    )


def build_enrichment_messages(
    analysis_payload: Dict[str, Any], preferences_payload: Dict[str, Any]
) -> List[Dict[str, Any]]:
    return [
        {"role": "system", "content": ENRICHMENT_SYSTEM_PROMPT},
        {
            "role": "user",
            "content": build_enrichment_prompt(analysis_payload, preferences_payload),
        },
    ]
