"""Tests for DashboardService read and write paths."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from sqlalchemy.exc import OperationalError

from adops.analyzer.dashboard import DashboardService, display_name
from adops.config import settings
from adops.connectors.sheets.client import SheetsAPIError
from adops.connectors.sheets.database_store import DatabaseSheetSource
from adops.core.access import AccessGate
from adops.core.cache import DashboardCache, MemoryCacheBackend
from adops.core.errors import InvalidInputError, PermissionDeniedError, SourceNotFoundError
from adops.models.campaign_models import DashboardPayload, ErrorPayload

from conftest import SOURCE, TODAY, campaign_row, header_row, seed_permissions, seed_sheet

ADMIN = "jane.doe@example.com"
VIEWER = "viewer@example.com"
ENTRY_COL = 43


def acme_rows():
    return [
        header_row(),
        campaign_row(
            campaign_id="C-1", client="Acme", platform="Meta", budget=100,
            status="Active", ad_format="Video", campaign_type="Awareness",
            start_date="2025-08-01", end_date="2025-08-10", guide_link="g-1",
        ),
        campaign_row(
            campaign_id="C-2", client="Acme", platform="Meta", budget="$50",
            status="Active", ad_format="Video", campaign_type="Awareness Plus",
            start_date="2025-08-05", end_date="2025-08-25",
        ),
    ]


@pytest_asyncio.fixture
async def source(engine):
    return await seed_sheet(engine, SOURCE, acme_rows())


@pytest_asyncio.fixture
async def gate(engine):
    return AccessGate(await seed_permissions(engine, {ADMIN: "admin", VIEWER: "viewer"}))


@pytest.fixture
def cache(clock):
    return DashboardCache(MemoryCacheBackend(clock=clock))


@pytest.fixture
def service(source, gate, cache):
    return DashboardService(source=source, gate=gate, cache=cache, today=lambda: TODAY)


class TestGetDashboardData:
    @pytest.mark.asyncio
    async def test_end_to_end(self, service):
        payload = await service.get_dashboard_data(ADMIN)

        assert isinstance(payload, DashboardPayload)
        assert payload.charts.platform_client_counts == [["Client", "Meta"], ["Acme", 150.0]]
        assert payload.charts.campaign_status_counts == [["Status", "Count"], ["Active", 2]]
        assert payload.charts.current_month_budgets == [["Ad Format", "Budget"], ["Video", 150.0]]
        assert payload.clients == ["Acme"]
        assert payload.user_name == "Jane"
        assert payload.user_role == "admin"

    @pytest.mark.asyncio
    async def test_served_from_cache_until_invalidated(self, service, source):
        await service.get_dashboard_data(VIEWER)
        await source.write_cell(3, 6, "Beta")  # client of the second row

        cached = await service.get_dashboard_data(VIEWER)
        assert cached.clients == ["Acme"]

        service.invalidate_dashboard_cache()
        fresh = await service.get_dashboard_data(VIEWER)
        assert fresh.clients == ["Acme", "Beta"]

    @pytest.mark.asyncio
    async def test_expired_cache_recomputes(self, service, source, clock):
        await service.get_dashboard_data(VIEWER)
        await source.write_cell(3, 6, "Beta")
        clock.advance(settings.dashboard_cache_ttl)
        assert (await service.get_dashboard_data(VIEWER)).clients == ["Acme", "Beta"]

    @pytest.mark.asyncio
    async def test_corrupted_cache_recomputes(self, service, cache):
        cache.backend.put(settings.cache_key_base_data, '{"charts": 1}', 60)
        payload = await service.get_dashboard_data(VIEWER)
        assert isinstance(payload, DashboardPayload)
        assert payload.clients == ["Acme"]

    @pytest.mark.asyncio
    async def test_missing_source_is_error_payload(self, engine, gate, cache):
        service = DashboardService(
            source=DatabaseSheetSource("Missing", engine), gate=gate, cache=cache
        )
        payload = await service.get_dashboard_data(VIEWER)
        assert isinstance(payload, ErrorPayload)
        assert "Missing" in payload.error
        assert cache.get(settings.cache_key_base_data) is None

    @pytest.mark.asyncio
    async def test_unknown_user(self, service):
        payload = await service.get_dashboard_data(None)
        assert payload.user_name == "User"
        assert payload.user_role is None


class TestSearchCampaignByType:
    @pytest.mark.asyncio
    async def test_blank_query_touches_nothing(self):
        source = AsyncMock()
        cache = MagicMock()
        service = DashboardService(source=source, gate=AsyncMock(), cache=cache)

        assert await service.search_campaign_by_type("") == []
        assert await service.search_campaign_by_type("   ") == []
        assert source.method_calls == []
        assert cache.method_calls == []

    @pytest.mark.asyncio
    async def test_matches_sorted_newest_first(self, service):
        results = await service.search_campaign_by_type("awareness")
        assert [r.id for r in results] == ["C-2", "C-1"]
        assert results[0].start_date == "2025-08-05"
        assert results[0].end_date == "2025-08-25"
        assert results[1].budget == 100.0

    @pytest.mark.asyncio
    async def test_partial_match(self, service):
        results = await service.search_campaign_by_type(" plus ")
        assert [r.campaign_type for r in results] == ["Awareness Plus"]

    @pytest.mark.asyncio
    async def test_cached_per_normalized_term(self, service, source, cache):
        await service.search_campaign_by_type("awareness")
        assert cache.get(f"{settings.cache_key_search_prefix}AWARENESS") is not None

        await source.write_cell(2, 12, "Retargeting")
        results = await service.search_campaign_by_type("AWARENESS ")
        assert len(results) == 2

    @pytest.mark.asyncio
    async def test_results_capped(self, service, source, monkeypatch):
        monkeypatch.setattr(settings, "search_result_cap", 1)
        results = await service.search_campaign_by_type("awareness")
        assert [r.id for r in results] == ["C-2"]

    @pytest.mark.asyncio
    async def test_undated_results_last(self, service, source):
        await source.write_cell(2, 19, "")
        results = await service.search_campaign_by_type("awareness")
        assert [r.id for r in results] == ["C-2", "C-1"]
        assert results[1].start_date == ""

    @pytest.mark.asyncio
    async def test_missing_source(self, engine, gate, cache):
        service = DashboardService(
            source=DatabaseSheetSource("Missing", engine), gate=gate, cache=cache
        )
        assert isinstance(await service.search_campaign_by_type("x"), ErrorPayload)


class TestSubmitEntry:
    @pytest.mark.asyncio
    async def test_admin_appends_to_first_empty_row(self, service, source, cache):
        await service.get_dashboard_data(ADMIN)
        result = await service.submit_entry(ADMIN, "  AQ-7 ")

        assert result.success is True
        assert result.row == 3
        assert result.message == 'Code "AQ-7" submitted to row 3.'
        assert (await source.read_range(3, ENTRY_COL, 1, 1)) == [["AQ-7"]]
        assert cache.get(settings.cache_key_base_data) is None

    @pytest.mark.asyncio
    async def test_full_column_appends_after_last_row(self, service, source):
        height = await source.max_rows()
        await source.write_range(3, ENTRY_COL, [[f"x-{row}"] for row in range(3, height + 1)])

        result = await service.submit_entry(ADMIN, "NEXT")
        assert result.row == height + 1
        assert (await source.read_range(result.row, ENTRY_COL, 1, 1)) == [["NEXT"]]

    @pytest.mark.asyncio
    async def test_non_admin_denied_without_side_effects(self, service, source):
        service.cache = MagicMock(wraps=service.cache)
        before = await source.read_range(1, ENTRY_COL, 5, 1)

        with pytest.raises(PermissionDeniedError):
            await service.submit_entry(VIEWER, "AQ-7")
        with pytest.raises(PermissionDeniedError):
            await service.submit_entry("stranger@example.com", "AQ-7")

        assert await source.read_range(1, ENTRY_COL, 5, 1) == before
        service.cache.invalidate.assert_not_called()

    @pytest.mark.asyncio
    async def test_blank_code(self, service):
        with pytest.raises(InvalidInputError):
            await service.submit_entry(ADMIN, "   ")
        with pytest.raises(InvalidInputError):
            await service.submit_entry(ADMIN, None)

    @pytest.mark.asyncio
    async def test_missing_source(self, engine, gate, cache):
        service = DashboardService(
            source=DatabaseSheetSource("Missing", engine), gate=gate, cache=cache
        )
        with pytest.raises(SourceNotFoundError):
            await service.submit_entry(ADMIN, "AQ-7")

    @pytest.mark.asyncio
    async def test_concurrent_submissions_get_distinct_rows(self, service, source):
        results = await asyncio.gather(
            service.submit_entry(ADMIN, "A"),
            service.submit_entry(ADMIN, "B"),
            service.submit_entry(ADMIN, "C"),
        )
        assert sorted(r.row for r in results) == [3, 4, 5]


class TestAccessAndSnapshot:
    @pytest.mark.asyncio
    async def test_has_access(self, service):
        assert await service.has_access(VIEWER) is True
        assert await service.has_access("stranger@example.com") is False

    @pytest.mark.asyncio
    async def test_refresh_snapshot(self, service, engine, cache):
        await service.get_dashboard_data(VIEWER)
        snapshot = DatabaseSheetSource(settings.snapshot_sheet_name, engine)

        copied = await service.refresh_snapshot(snapshot)

        assert copied == 3
        assert await snapshot.read_all() == await service.source.read_all()
        assert cache.get(settings.cache_key_base_data) is None


@pytest.mark.parametrize(
    "identity,expected",
    [
        ("jane.doe@example.com", "Jane"),
        ("bob@example.com", "Bob"),
        ("", "User"),
        (None, "User"),
        ("@example.com", "User"),
    ],
)
def test_display_name(identity, expected):
    assert display_name(identity) == expected


class TestBackendFailures:
    """Backend errors on the read path come back as error payloads."""

    @staticmethod
    def failing_service(error):
        source = AsyncMock()
        source.sheet_name = SOURCE
        source.exists.side_effect = error
        cache = MagicMock()
        cache.get.return_value = None
        return DashboardService(source=source, gate=AsyncMock(), cache=cache)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            SheetsAPIError("The caller does not have permission", 403, "PERMISSION_DENIED"),
            SheetsAPIError("Connection failed after 3 retries: refused"),
            OperationalError("SELECT 1", {}, Exception("database is locked")),
        ],
    )
    async def test_dashboard_and_search(self, error):
        service = self.failing_service(error)

        dashboard = await service.get_dashboard_data(VIEWER)
        search = await service.search_campaign_by_type("awareness")

        assert dashboard == ErrorPayload(error=str(error))
        assert search == ErrorPayload(error=str(error))
        service.cache.put.assert_not_called()


class TestAppendLocks:
    @pytest.mark.asyncio
    async def test_services_sharing_a_registry_get_distinct_rows(self, source, gate, cache):
        locks = {}
        first = DashboardService(source=source, gate=gate, cache=cache, append_locks=locks)
        second = DashboardService(source=source, gate=gate, cache=cache, append_locks=locks)

        results = await asyncio.gather(
            first.submit_entry(ADMIN, "A"),
            second.submit_entry(ADMIN, "B"),
            first.submit_entry(ADMIN, "C"),
        )

        assert sorted(r.row for r in results) == [3, 4, 5]
        assert list(locks) == [SOURCE]

    def test_each_service_defaults_to_its_own_registry(self):
        first = DashboardService(source=MagicMock(), gate=MagicMock(), cache=MagicMock())
        second = DashboardService(source=MagicMock(), gate=MagicMock(), cache=MagicMock())
        assert first.append_locks == {}
        assert first.append_locks is not second.append_locks
