"""
Unit tests for AnalysisHistoryService.
"""

import csv
import io
import json
from datetime import timedelta

import pytest

from nutridecode.application.history import CSV_COLUMNS, AnalysisHistoryService
from nutridecode.domain.history.models import AnalysisFilters, SortField, SortOrder
from nutridecode.domain.label.models import AnalysisResult
from nutridecode.domain.scoring.health_score import PERSISTED_POLICY, health_score
from nutridecode.domain.shared.errors import (
    DatabaseError,
    DuplicateSubmissionError,
    NotFoundError,
    OwnershipError,
    ValidationError,
)
from nutridecode.infrastructure.persistence.in_memory.analysis_repository import (
    InMemoryAnalysisRepository,
)


def _product(name: str, **extra) -> AnalysisResult:
    return AnalysisResult.model_validate({"productName": name, **extra})


class TestSave:
    @pytest.mark.asyncio
    async def test_save_scores_with_persisted_policy(
        self, history_service: AnalysisHistoryService, hummus_chips: AnalysisResult, utc_clock
    ) -> None:
        stored = await history_service.save("user_1", hummus_chips, image_url="img.jpg")

        assert stored.health_score == health_score(hummus_chips, PERSISTED_POLICY) == 67
        assert stored.created_at == utc_clock.now
        assert stored.image_url == "img.jpg"
        assert await history_service.get("user_1", stored.id) == stored

    @pytest.mark.asyncio
    async def test_same_product_within_window_rejected(
        self, history_service: AnalysisHistoryService, hummus_chips: AnalysisResult, utc_clock
    ) -> None:
        await history_service.save("user_1", hummus_chips)
        utc_clock.advance(timedelta(minutes=59))

        with pytest.raises(DuplicateSubmissionError, match="Hummus Chips"):
            await history_service.save("user_1", hummus_chips)

    @pytest.mark.asyncio
    async def test_same_product_after_window_accepted(
        self,
        history_service: AnalysisHistoryService,
        analysis_repository: InMemoryAnalysisRepository,
        hummus_chips: AnalysisResult,
        utc_clock,
    ) -> None:
        await history_service.save("user_1", hummus_chips)
        utc_clock.advance(timedelta(minutes=61))

        await history_service.save("user_1", hummus_chips)

        assert analysis_repository.count() == 2

    @pytest.mark.asyncio
    async def test_duplicate_window_is_per_user(
        self,
        history_service: AnalysisHistoryService,
        analysis_repository: InMemoryAnalysisRepository,
        hummus_chips: AnalysisResult,
    ) -> None:
        await history_service.save("user_1", hummus_chips)
        await history_service.save("user_2", hummus_chips)

        assert analysis_repository.count() == 2


class TestOwnershipAndDelete:
    @pytest.mark.asyncio
    async def test_get_missing(self, history_service: AnalysisHistoryService) -> None:
        with pytest.raises(NotFoundError):
            await history_service.get("user_1", "analysis_000000000000")

    @pytest.mark.asyncio
    async def test_other_users_record_denied(
        self,
        history_service: AnalysisHistoryService,
        analysis_repository: InMemoryAnalysisRepository,
        hummus_chips: AnalysisResult,
    ) -> None:
        stored = await history_service.save("user_1", hummus_chips)

        with pytest.raises(OwnershipError):
            await history_service.get("user_2", stored.id)
        with pytest.raises(OwnershipError):
            await history_service.delete("user_2", stored.id)

        assert analysis_repository.count() == 1

    @pytest.mark.asyncio
    async def test_delete(
        self,
        history_service: AnalysisHistoryService,
        analysis_repository: InMemoryAnalysisRepository,
        hummus_chips: AnalysisResult,
    ) -> None:
        stored = await history_service.save("user_1", hummus_chips)

        await history_service.delete("user_1", stored.id)

        assert analysis_repository.count() == 0

    @pytest.mark.asyncio
    async def test_blocked_delete_falls_back_to_privileged_path(
        self,
        history_service: AnalysisHistoryService,
        analysis_repository: InMemoryAnalysisRepository,
        hummus_chips: AnalysisResult,
    ) -> None:
        stored = await history_service.save("user_1", hummus_chips)
        analysis_repository.block_normal_delete(stored.id)

        await history_service.delete("user_1", stored.id)

        assert await analysis_repository.get(stored.id) is None

    @pytest.mark.asyncio
    async def test_unverified_delete_raises(
        self,
        history_service: AnalysisHistoryService,
        analysis_repository: InMemoryAnalysisRepository,
        hummus_chips: AnalysisResult,
    ) -> None:
        stored = await history_service.save("user_1", hummus_chips)
        analysis_repository.make_undeletable(stored.id)

        with pytest.raises(DatabaseError, match="still present"):
            await history_service.delete("user_1", stored.id)


class TestHistoryQueries:
    @pytest.mark.asyncio
    async def test_history_newest_first_and_collapsed(
        self,
        analysis_repository: InMemoryAnalysisRepository,
        utc_clock,
    ) -> None:
        # No save-time duplicate window so rapid re-saves reach storage
        service = AnalysisHistoryService(
            analysis_repository, duplicate_window=timedelta(0), clock=utc_clock
        )
        first = await service.save("user_1", _product("Oat Milk"))
        utc_clock.advance(timedelta(seconds=20))
        await service.save("user_1", _product("Oat Milk"))
        utc_clock.advance(timedelta(minutes=5))
        crisps = await service.save("user_1", _product("Crisps"))

        history = await service.history("user_1")

        assert [r.product_name for r in history] == ["Crisps", "Oat Milk"]
        assert history[0] == crisps
        assert history[1].id != first.id
        assert analysis_repository.count() == 3

    @pytest.mark.asyncio
    async def test_history_excludes_locally_deleted(
        self, history_service: AnalysisHistoryService, utc_clock
    ) -> None:
        a = await history_service.save("user_1", _product("A"))
        b = await history_service.save("user_1", _product("B"))

        history = await history_service.history("user_1", exclude_ids={a.id})

        assert history == [b]

    @pytest.mark.asyncio
    async def test_history_filters_and_sort(
        self, history_service: AnalysisHistoryService, hummus_chips: AnalysisResult
    ) -> None:
        await history_service.save("user_1", hummus_chips)
        await history_service.save("user_1", _product("Plain"))

        filters = AnalysisFilters(
            sort_by=SortField.HEALTH_SCORE, sort_order=SortOrder.ASC, health_score_min=66
        )
        history = await history_service.history("user_1", filters)

        assert [r.product_name for r in history] == ["Hummus Chips"]

    @pytest.mark.asyncio
    async def test_analytics(self, history_service: AnalysisHistoryService) -> None:
        await history_service.save(
            "user_1", _product("A", metadata={"processingTimeMs": 1000})
        )
        await history_service.save(
            "user_1",
            _product("B", metadata={"processingTimeMs": 3000, "error": "timeout"}),
        )

        summary = await history_service.analytics("user_1")

        assert summary.total_queries == 2
        assert summary.successful_queries == 1
        assert summary.error_rate == 50.0
        assert summary.average_processing_time_ms == 2000.0
        assert summary.average_health_score == 65.0

    @pytest.mark.asyncio
    async def test_analytics_empty(self, history_service: AnalysisHistoryService) -> None:
        summary = await history_service.analytics("nobody")
        assert summary.total_queries == 0
        assert summary.error_rate == 0.0


class TestExport:
    @pytest.mark.asyncio
    async def test_csv_export(
        self, history_service: AnalysisHistoryService, hummus_chips: AnalysisResult
    ) -> None:
        stored = await history_service.save("user_1", hummus_chips)

        exported = await history_service.export("user_1", "csv")

        header, row = exported.split("\n")
        assert header == ",".join(CSV_COLUMNS)
        assert row.startswith('"')
        values = next(csv.reader(io.StringIO(row)))
        record = dict(zip(CSV_COLUMNS, values))
        assert record["id"] == stored.id
        assert record["date"] == "2025-03-01"
        assert record["time"] == "12:00:00"
        assert record["health_score"] == "67"
        assert record["ingredients"] == "Chickpeas (40%); Rapeseed oil (15%)"

    @pytest.mark.asyncio
    async def test_csv_export_empty_has_header_only(
        self, history_service: AnalysisHistoryService
    ) -> None:
        assert await history_service.export("user_1", "CSV") == ",".join(CSV_COLUMNS)

    @pytest.mark.asyncio
    async def test_json_export(
        self, history_service: AnalysisHistoryService, hummus_chips: AnalysisResult
    ) -> None:
        await history_service.save("user_1", hummus_chips)

        data = json.loads(await history_service.export("user_1", "json"))

        assert len(data) == 1
        assert data[0]["product_name"] == "Hummus Chips"
        assert data[0]["analysis_result"]["productName"] == "Hummus Chips"

    @pytest.mark.asyncio
    async def test_unknown_format(self, history_service: AnalysisHistoryService) -> None:
        with pytest.raises(ValidationError, match="xml"):
            await history_service.export("user_1", "xml")
