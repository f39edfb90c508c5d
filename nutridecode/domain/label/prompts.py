"""
OpenAI prompts for food label analysis and the nutrition assistant.

IMPORTANT: System prompts are cacheable by OpenAI.
Keep static instructions in the SYSTEM prompts and dynamic content in user messages.
"""

import json
from typing import Any, Dict, List, Optional


# ═══════════════════════════════════════════════════════════
# SYSTEM PROMPTS (Cacheable - static instructions)
# ═══════════════════════════════════════════════════════════

LABEL_ANALYSIS_SYSTEM_PROMPT = """You are a food label analysis expert. Analyze the food label image and extract ONLY information that is explicitly stated on the label. Be extremely precise and thorough in your analysis. Format the response as a JSON object with the following structure:
{
  "productName": "exact product name from label",
  "ingredients": {
    "list": ["all ingredients with exact percentages as shown (e.g., 'Rapeseed oil (78%)')"],
    "preservatives": ["identified preservatives with E-numbers and full names"],
    "additives": ["identified additives with full names"],
    "antioxidants": ["identified antioxidants with full chemical names"],
    "stabilizers": ["identified stabilizers"]
  },
  "allergens": {
    "declared": ["explicitly declared allergens in CAPS"],
    "mayContain": ["may contain warnings"]
  },
  "nutritionalInfo": {
    "servingSize": "stated serving size with exact measurements",
    "perServing": {
      "calories": number, "protein": number, "carbs": number,
      "fats": {"total": number, "saturated": number},
      "sugar": number, "salt": number, "omega3": number
    },
    "per100g": {
      "calories": number, "protein": number, "carbs": number,
      "fats": {"total": number, "saturated": number},
      "sugar": number, "salt": number, "omega3": number
    }
  },
  "healthClaims": ["all health-related claims exactly as written"],
  "packaging": {
    "materials": ["packaging materials with specifications"],
    "recyclingInfo": "complete recycling instructions",
    "sustainabilityClaims": ["all sustainability claims exactly as written"],
    "certifications": ["all certification marks and symbols shown"]
  },
  "storage": {
    "instructions": ["storage instructions exactly as written"],
    "bestBefore": "exact date format as shown"
  },
  "manufacturer": {
    "name": "company name",
    "address": "full address as shown",
    "contact": "contact information if provided"
  }
}
IMPORTANT:
1. Capture ALL ingredients with their exact percentages when shown
2. Identify and classify preservatives, additives, and antioxidants
3. Maintain exact wording and numerical values as shown on the label
4. Include all percentages, measurements, and units exactly as displayed
5. Capture all certification marks, symbols, and recycling information
6. Note any specific dietary certifications (e.g., vegetarian, vegan)
7. Extract all health claims and sustainability statements verbatim
8. Use 0 for any nutrient value not printed on the label and [] for empty lists"""

LABEL_ANALYSIS_USER_PROMPT = (
    "Analyze this food label and provide only the information "
    "that is explicitly shown on the packaging."
)

SUMMARY_SYSTEM_PROMPT = (
    "You are a nutrition expert summarizing food product analysis. "
    "Create clear, concise summaries that are easy to understand when spoken aloud. "
    "Focus on the most important health aspects and any concerns."
)

CHAT_SYSTEM_PROMPT = (
    "You are NutriDecode, a friendly and knowledgeable nutrition assistant. "
    "Keep responses concise and focused on nutrition, health, and food-related topics."
)

ITEM_INSIGHT_SYSTEM_PROMPT = (
    "You are a nutrition expert providing personalized ingredient and nutrient "
    "analysis based on user preferences."
)


# ═══════════════════════════════════════════════════════════
# USER MESSAGE BUILDERS (Dynamic - not cached)
# ═══════════════════════════════════════════════════════════


def build_label_messages(image_data_uri: str) -> List[Dict[str, Any]]:
    """Build vision messages for label extraction.

    Args:
        image_data_uri: Validated data:image/... URI

    Returns:
        Chat messages (system + user with image)
    """
    return [
        {"role": "system", "content": LABEL_ANALYSIS_SYSTEM_PROMPT},
        {
            "role": "user",
            "content": [
                {
                    "type": "image_url",
                    "image_url": {"url": image_data_uri, "detail": "high"},
                },
                {"type": "text", "text": LABEL_ANALYSIS_USER_PROMPT},
            ],
        },
    ]


def build_summary_messages(analysis_payload: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Build messages asking for a spoken-style summary of an analysis."""
    return [
        {"role": "system", "content": SUMMARY_SYSTEM_PROMPT},
        {
            "role": "user",
            "content": (
                "Create a concise, conversational summary of this food analysis "
                "that would sound natural when spoken:\n"
                f"{json.dumps(analysis_payload, indent=2)}"
            ),
        },
    ]


def build_chat_messages(message: str) -> List[Dict[str, Any]]:
    return [
        {"role": "system", "content": CHAT_SYSTEM_PROMPT},
        {"role": "user", "content": message},
    ]


def build_ingredient_messages(
    ingredient: str, preferences_payload: Optional[Dict[str, Any]]
) -> List[Dict[str, Any]]:
    """Build messages for a personalised single-ingredient explanation."""
    return [
        {"role": "system", "content": ITEM_INSIGHT_SYSTEM_PROMPT},
        {
            "role": "user",
            "content": (
                f"Analyze this ingredient: {ingredient}\n\n"
                f"User Preferences: {json.dumps(preferences_payload, indent=2)}\n\n"
                "Provide detailed information about:\n"
                "1. What it is and its source\n"
                "2. Nutritional value and health benefits\n"
                "3. Any concerns based on user's dietary restrictions or allergens\n"
                "4. How it aligns with user's health goals\n"
                "5. Sustainability aspects\n"
                "6. Alternative ingredients if it doesn't match preferences"
            ),
        },
    ]


def build_nutrient_messages(
    nutrient: str, amount: float, preferences_payload: Optional[Dict[str, Any]]
) -> List[Dict[str, Any]]:
    """Build messages for a personalised single-nutrient explanation."""
    return [
        {"role": "system", "content": ITEM_INSIGHT_SYSTEM_PROMPT},
        {
            "role": "user",
            "content": (
                f"Analyze this nutrient: {nutrient} ({amount} per 100g)\n\n"
                f"User Preferences: {json.dumps(preferences_payload, indent=2)}\n\n"
                "Explain in a few sentences whether this amount is low, moderate "
                "or high, what it means for the user's health goals, and what to "
                "watch out for."
            ),
        },
    ]
