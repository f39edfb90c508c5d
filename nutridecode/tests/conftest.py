"""
Shared fixtures for NutriDecode tests.

Mock SDK clients, fake clocks, sample label payloads and services wired
to in-memory repositories.
"""

import base64
import json
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List
from unittest.mock import AsyncMock, MagicMock

import pytest

from nutridecode.application.history import AnalysisHistoryService
from nutridecode.application.preferences import PreferencesService
from nutridecode.domain.label.models import AnalysisResult
from nutridecode.domain.preferences.models import UserPreferences
from nutridecode.infrastructure.ai.dispatcher import RateLimitedDispatcher
from nutridecode.infrastructure.ai.openai_client import OpenAIClient
from nutridecode.infrastructure.persistence.in_memory.analysis_repository import (
    InMemoryAnalysisRepository,
)
from nutridecode.infrastructure.persistence.in_memory.preferences_repository import (
    InMemoryPreferencesRepository,
)


# ═══════════════════════════════════════════════════════════
# TIME
# ═══════════════════════════════════════════════════════════


class FakeClock:
    """Monotonic clock advanced only by the fake sleep."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeUtcClock:
    """Settable UTC wall clock for history tests."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def utc_clock() -> FakeUtcClock:
    return FakeUtcClock(datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc))


# ═══════════════════════════════════════════════════════════
# IMAGE / LABEL FIXTURES
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def jpeg_data_uri() -> str:
    """Small, well-formed JPEG data URI."""
    payload = base64.b64encode(b"\xff\xd8\xff\xe0" + b"\x00" * 256).decode()
    return f"data:image/jpeg;base64,{payload}"


@pytest.fixture
def hummus_chips_payload() -> Dict[str, Any]:
    """camelCase label extraction reply for Hummus Chips."""
    return {
        "productName": "Hummus Chips",
        "ingredients": {
            "list": ["Chickpeas (40%)", "Rapeseed oil (15%)"],
            "preservatives": [],
            "additives": [],
            "antioxidants": [],
            "stabilizers": [],
        },
        "allergens": {"declared": [], "mayContain": []},
        "nutritionalInfo": {
            "servingSize": "30g",
            "perServing": {
                "calories": 136,
                "protein": 2.1,
                "carbs": 16.2,
                "fats": {"total": 6.6, "saturated": 0.5},
                "sugar": 0.9,
                "salt": 0.32,
                "omega3": 0,
            },
            "per100g": {
                "calories": 454,
                "protein": 7,
                "carbs": 54,
                "fats": {"total": 22, "saturated": 1.7},
                "sugar": 3,
                "salt": 1.07,
                "omega3": 0,
            },
        },
        "healthClaims": ["Source of fibre"],
        "packaging": {
            "materials": ["Plastic film"],
            "recyclingInfo": "",
            "sustainabilityClaims": [],
            "certifications": [],
        },
        "storage": {"instructions": ["Store in a cool, dry place"], "bestBefore": ""},
        "manufacturer": {"name": "Snack Co", "address": "", "contact": ""},
    }


@pytest.fixture
def hummus_chips(hummus_chips_payload: Dict[str, Any]) -> AnalysisResult:
    return AnalysisResult.model_validate(hummus_chips_payload)


@pytest.fixture
def peanut_bar() -> AnalysisResult:
    return AnalysisResult.model_validate(
        {
            "productName": "Crunchy Bar",
            "ingredients": {"list": ["Oats", "Sugar", "Peanut butter"]},
            "allergens": {"declared": ["PEANUTS"], "mayContain": ["Tree nuts"]},
        }
    )


@pytest.fixture
def peanut_allergic_preferences() -> UserPreferences:
    return UserPreferences.defaults("user_123").model_copy(
        update={"allergen_alerts": ["peanuts", "tree nuts"]}
    )


# ═══════════════════════════════════════════════════════════
# MOCK OPENAI FIXTURES
# ═══════════════════════════════════════════════════════════


def make_completion(content: str, finish_reason: str = "stop") -> MagicMock:
    """Mock ChatCompletion with a single choice."""
    response = MagicMock()
    choice = MagicMock()
    choice.message.content = content
    choice.finish_reason = finish_reason
    usage = MagicMock()
    usage.prompt_tokens = 100
    usage.completion_tokens = 50
    usage.total_tokens = 150
    response.choices = [choice]
    response.usage = usage
    return response


def make_json_completion(data: Dict[str, Any]) -> MagicMock:
    return make_completion(json.dumps(data))


@pytest.fixture
def completion() -> Callable[..., MagicMock]:
    """Factory for mock ChatCompletion objects with text content."""
    return make_completion


@pytest.fixture
def json_completion() -> Callable[[Dict[str, Any]], MagicMock]:
    """Factory for mock ChatCompletion objects with JSON content."""
    return make_json_completion


@pytest.fixture
def mock_openai_sdk() -> AsyncMock:
    """Mock AsyncOpenAI client; set chat.completions.create per test."""
    client = AsyncMock()
    client.close = AsyncMock()
    client.chat.completions.create = AsyncMock(return_value=make_completion("{}"))
    return client


@pytest.fixture
def dispatcher(fake_clock: FakeClock) -> RateLimitedDispatcher:
    return RateLimitedDispatcher(
        tokens_per_minute=30000,
        max_retries=3,
        base_delay_s=1.0,
        clock=fake_clock,
        sleep=fake_clock.sleep,
    )


@pytest.fixture
def openai_client(
    mock_openai_sdk: AsyncMock, dispatcher: RateLimitedDispatcher
) -> OpenAIClient:
    """OpenAIClient wired to the mock SDK; already usable without `async with`."""
    return OpenAIClient(client=mock_openai_sdk, dispatcher=dispatcher)


# ═══════════════════════════════════════════════════════════
# SERVICE FIXTURES
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def analysis_repository() -> InMemoryAnalysisRepository:
    return InMemoryAnalysisRepository()


@pytest.fixture
def history_service(
    analysis_repository: InMemoryAnalysisRepository, utc_clock: FakeUtcClock
) -> AnalysisHistoryService:
    return AnalysisHistoryService(analysis_repository, clock=utc_clock)


@pytest.fixture
def preferences_repository() -> InMemoryPreferencesRepository:
    return InMemoryPreferencesRepository()


@pytest.fixture
def preferences_service(
    preferences_repository: InMemoryPreferencesRepository,
) -> PreferencesService:
    return PreferencesService(preferences_repository)
