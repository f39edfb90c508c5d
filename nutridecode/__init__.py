"""
NutriDecode+ service layer.

Food label analysis backed by a vision LLM, enriched against user dietary
preferences, scored, persisted and optionally read aloud.

Structure:
- domain/: Models, prompts, scoring and repository ports
- infrastructure/: External concerns (OpenAI, ElevenLabs, MongoDB)
- application/: Use cases orchestrating domain and infrastructure
- app.py: Composition root wiring one instance of everything
"""

__version__ = "1.0.0"
