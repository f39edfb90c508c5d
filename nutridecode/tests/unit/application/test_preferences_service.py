"""
Unit tests for PreferencesService, WaitlistService and ProfileService.
"""

from unittest.mock import AsyncMock

import pytest

from nutridecode.application.preferences import PreferencesService
from nutridecode.application.waitlist import ProfileService, WaitlistService
from nutridecode.domain.preferences.models import UserPreferences
from nutridecode.domain.profile.models import UserProfile
from nutridecode.domain.shared.errors import DuplicateSubmissionError, ValidationError
from nutridecode.domain.waitlist.models import WaitlistEntry
from nutridecode.infrastructure.persistence.in_memory.preferences_repository import (
    InMemoryPreferencesRepository,
)
from nutridecode.infrastructure.persistence.in_memory.profile_repository import (
    InMemoryProfileRepository,
)
from nutridecode.infrastructure.persistence.in_memory.waitlist_repository import (
    InMemoryWaitlistRepository,
)


class TestPreferencesService:
    @pytest.mark.asyncio
    async def test_first_read_creates_defaults(
        self,
        preferences_service: PreferencesService,
        preferences_repository: InMemoryPreferencesRepository,
    ) -> None:
        assert await preferences_service.find("user_1") is None

        prefs = await preferences_service.get("user_1")

        assert prefs.daily_calorie_target == 2000
        assert await preferences_repository.get("user_1") == prefs
        assert await preferences_service.get("user_1") == prefs

    @pytest.mark.asyncio
    async def test_concurrent_first_read_resolves_to_existing_row(self) -> None:
        winner = UserPreferences.defaults("user_1")
        repository = AsyncMock()
        repository.get = AsyncMock(side_effect=[None, winner])
        repository.insert = AsyncMock(side_effect=DuplicateSubmissionError("exists"))

        prefs = await PreferencesService(repository).get("user_1")

        assert prefs is winner

    @pytest.mark.asyncio
    async def test_update_merges_partial_changes(
        self, preferences_service: PreferencesService
    ) -> None:
        await preferences_service.update("user_1", {"macro_preferences": {"protein": 40}})
        prefs = await preferences_service.update("user_1", {"allergen_alerts": ["peanuts"]})

        assert prefs.allergen_alerts == ["peanuts"]
        assert prefs.macro_preferences.protein == 40
        assert prefs.macro_preferences.carbs == 40
        assert (await preferences_service.get("user_1")) == prefs

    @pytest.mark.asyncio
    async def test_unknown_fields_rejected(self, preferences_service: PreferencesService) -> None:
        with pytest.raises(ValidationError, match="favourite_colour"):
            await preferences_service.update("user_1", {"favourite_colour": "green"})

    @pytest.mark.asyncio
    async def test_identity_fields_rejected(self, preferences_service: PreferencesService) -> None:
        with pytest.raises(ValidationError, match="user_id"):
            await preferences_service.update("user_1", {"user_id": "user_2"})

    @pytest.mark.asyncio
    async def test_invalid_values_rejected(self, preferences_service: PreferencesService) -> None:
        with pytest.raises(ValidationError, match="Invalid preference values"):
            await preferences_service.update("user_1", {"daily_calorie_target": -5})


class TestWaitlistService:
    @pytest.mark.asyncio
    async def test_submit_registers_pending(self) -> None:
        repository = InMemoryWaitlistRepository()
        service = WaitlistService(repository)

        saved = await service.submit(
            WaitlistEntry(
                full_name="Ada Lovelace",
                email="Ada@Example.com",
                health_goals=["Heart Health"],
                status="approved",
            )
        )

        assert saved.status == "pending"
        assert saved.email == "ada@example.com"
        assert repository.count() == 1

    @pytest.mark.asyncio
    async def test_duplicate_email_rejected_without_overwrite(self) -> None:
        repository = InMemoryWaitlistRepository()
        service = WaitlistService(repository)
        first = await service.submit(WaitlistEntry(full_name="Ada", email="ada@example.com"))

        with pytest.raises(DuplicateSubmissionError, match="already registered"):
            await service.submit(WaitlistEntry(full_name="Other", email=" ADA@example.com "))

        assert await repository.find_by_email("ada@example.com") == first


class TestProfileService:
    @pytest.mark.asyncio
    async def test_get_profile(self) -> None:
        profile = UserProfile(user_id="user_1", full_name="Ada")
        service = ProfileService(InMemoryProfileRepository([profile]))

        assert await service.get_profile("user_1") == profile
        assert await service.get_profile("user_2") is None
