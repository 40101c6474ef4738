"""API endpoint tests for AumOS automation savings.

Services are replaced through FastAPI dependency overrides; request
parsing, response shapes and error mapping are exercised end to end.
"""

from collections.abc import Iterator
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from aumos_automation_savings import main as main_module
from aumos_automation_savings.api import router as router_module
from aumos_automation_savings.core.column_mapper import ColumnMapping
from aumos_automation_savings.core.entities import (
    DailyAggregate,
    MinutesBreakdown,
    RecentRun,
    ReportingAggregate,
    RunStatus,
    SavingsConfig,
    SummaryStats,
    UseCaseDetail,
    UseCaseRef,
    UseCaseStatus,
)
from aumos_automation_savings.core.errors import ExecutionError, InvalidWindowError, MappingError
from aumos_automation_savings.core.services import ReportingService
from aumos_automation_savings.main import app
from aumos_automation_savings.settings import Settings

AGGREGATE = ReportingAggregate(
    use_case_name="Invoice Bot",
    success=10,
    failure=2,
    invalid=0,
    partial=1,
    minutes=MinutesBreakdown(fixed_total=5, variable_success_total=30, variable_partial_total=2),
)


@pytest.fixture
def reporting_service() -> MagicMock:
    service = MagicMock()
    service.get_reporting_aggregates = AsyncMock(return_value=[AGGREGATE])
    service.get_reporting_daily_aggregates = AsyncMock(return_value=[])
    return service


@pytest.fixture
def directory_service() -> MagicMock:
    service = MagicMock()
    service.list_use_cases = AsyncMock(return_value=[])
    service.get_use_case_detail = AsyncMock()
    return service


@pytest.fixture
def savings_service() -> MagicMock:
    service = MagicMock()
    service.list_savings_use_cases = AsyncMock(return_value=[])
    service.list_savings_types = AsyncMock(return_value=["Fixed Weekly", "Per Execution"])
    return service


@pytest.fixture
def run_service() -> MagicMock:
    service = MagicMock()
    service.get_summary_stats = AsyncMock(
        return_value=SummaryStats(total_runs=12, passed=9, failed=2, avg_duration_seconds=41)
    )
    service.get_recent_runs = AsyncMock(return_value=[])
    return service


@pytest.fixture
def client(
    reporting_service: MagicMock,
    directory_service: MagicMock,
    savings_service: MagicMock,
    run_service: MagicMock,
) -> Iterator[TestClient]:
    app.dependency_overrides[router_module._get_reporting_service] = lambda: reporting_service
    app.dependency_overrides[router_module._get_directory_service] = lambda: directory_service
    app.dependency_overrides[router_module._get_savings_service] = lambda: savings_service
    app.dependency_overrides[router_module._get_run_service] = lambda: run_service
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestReportingEndpoints:
    """Tests for /api/v1/reporting routes."""

    def test_aggregates_envelope_and_minutes(self, client: TestClient, reporting_service: MagicMock) -> None:
        response = client.get(
            "/api/v1/reporting/aggregates",
            params=[
                ("from", "2025-01-01"),
                ("to", "2025-01-07"),
                ("name", "Invoice Bot"),
                ("name", "Order Sync"),
                ("fixedPeriod", "per_day"),
            ],
        )

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        row = body["data"][0]
        assert row["executions"] == 13
        assert row["minutes"] == {
            "fixed_total": 5.0,
            "variable_success_total": 30.0,
            "variable_partial_total": 2.0,
            "total": 37.0,
        }
        reporting_service.get_reporting_aggregates.assert_awaited_once_with(
            from_="2025-01-01",
            to="2025-01-07",
            search=None,
            names=["Invoice Bot", "Order Sync"],
            fixed_period="per_day",
        )

    def test_daily_passes_limit_days(self, client: TestClient, reporting_service: MagicMock) -> None:
        reporting_service.get_reporting_daily_aggregates.return_value = [
            DailyAggregate(day="2025-01-07", use_case_name="Invoice Bot", success=4, failure=1, invalid=0, partial=0)
        ]

        response = client.get("/api/v1/reporting/daily", params={"limitDays": 3})

        assert response.status_code == 200
        assert response.json()["data"][0]["total"] == 5
        assert reporting_service.get_reporting_daily_aggregates.await_args.kwargs["limit_days"] == 3

    def test_mapping_error_is_422(self, client: TestClient, reporting_service: MagicMock) -> None:
        reporting_service.get_reporting_aggregates.side_effect = MappingError("reporting", ["name"])

        response = client.get("/api/v1/reporting/aggregates")

        assert response.status_code == 422
        assert response.json() == {"ok": False, "error": "Unable to detect name column(s) in table 'reporting'"}

    def test_invalid_window_is_400(self, client: TestClient, reporting_service: MagicMock) -> None:
        reporting_service.get_reporting_aggregates.side_effect = InvalidWindowError("Invalid date 'x'")

        response = client.get("/api/v1/reporting/aggregates", params={"from": "x"})

        assert response.status_code == 400
        assert response.json()["ok"] is False

    def test_execution_error_is_500(self, client: TestClient, reporting_service: MagicMock) -> None:
        reporting_service.get_reporting_daily_aggregates.side_effect = ExecutionError("boom", sqlstate="XX000")

        response = client.get("/api/v1/reporting/daily")

        assert response.status_code == 500
        assert response.json() == {"ok": False, "error": "boom"}

    def test_unnamed_reporting_rows_do_not_break_the_response(self, settings: Settings) -> None:
        reporting_repo = MagicMock()
        reporting_repo.table = "reporting"
        reporting_repo.resolve_mapping = AsyncMock(
            return_value=ColumnMapping(table="reporting", name="use_case_name", date="date", success="success")
        )
        reporting_repo.aggregate_counts = AsyncMock(
            return_value=[
                {"key_name": None, "use_case_name": None, "success": 3, "failure": 0, "invalid": 0, "partial": 0},
                {"key_name": "a", "use_case_name": "A", "success": 1, "failure": 0, "invalid": 0, "partial": 0},
            ]
        )
        savings_repo = AsyncMock()
        savings_repo.load_all = AsyncMock(return_value={})
        service = ReportingService(reporting_repo, savings_repo, settings)
        app.dependency_overrides[router_module._get_reporting_service] = lambda: service
        try:
            response = TestClient(app).get("/api/v1/reporting/aggregates")
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 200
        assert [row["use_case_name"] for row in response.json()["data"]] == ["A"]

    def test_unexpected_error_uses_error_envelope(self, reporting_service: MagicMock) -> None:
        reporting_service.get_reporting_aggregates.side_effect = RuntimeError("driver exploded")
        app.dependency_overrides[router_module._get_reporting_service] = lambda: reporting_service
        try:
            response = TestClient(app, raise_server_exceptions=False).get("/api/v1/reporting/aggregates")
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 500
        assert response.json() == {"ok": False, "error": "Internal server error"}


class TestUseCaseEndpoints:
    def test_list_forwards_filters(self, client: TestClient, directory_service: MagicMock) -> None:
        directory_service.list_use_cases.return_value = [
            UseCaseRef(
                id="abc",
                name="Invoice Bot",
                description=None,
                owner="Finance",
                status=UseCaseStatus.ACTIVE,
                created_at="2025-01-01",
            )
        ]

        response = client.get(
            "/api/v1/use-cases",
            params={"search": "bot", "status": "ACTIVE", "live": "true", "limit": 10, "offset": 5},
        )

        assert response.status_code == 200
        assert response.json()["data"][0]["status"] == "ACTIVE"
        directory_service.list_use_cases.assert_awaited_once_with(
            search="bot", status=UseCaseStatus.ACTIVE, live_only=True, limit=10, offset=5
        )

    def test_live_route_forces_live_only(self, client: TestClient, directory_service: MagicMock) -> None:
        response = client.get("/api/v1/use-cases/live")

        assert response.status_code == 200
        assert directory_service.list_use_cases.await_args.kwargs["live_only"] is True

    def test_overview_requires_name(self, client: TestClient, directory_service: MagicMock) -> None:
        response = client.get("/api/v1/use-cases/overview", params={"name": "  "})

        assert response.status_code == 400
        assert response.json() == {"ok": False, "error": "Missing use case name"}
        directory_service.get_use_case_detail.assert_not_awaited()

    def test_overview_detail_shape(self, client: TestClient, directory_service: MagicMock) -> None:
        directory_service.get_use_case_detail.return_value = UseCaseDetail(
            name="Invoice Bot",
            overview=None,
            reporting=AGGREGATE,
            savings=SavingsConfig(
                id="a1b2",
                use_case_name="Invoice Bot",
                savings_type="Fixed Weekly",
                fixed_minutes_per_run=5,
                variable_minutes_per_success=3,
                variable_minutes_per_partial=2,
            ),
            range_from="2025-01-01T00:00:00+00:00",
            range_to="2025-01-07T00:00:00+00:00",
        )

        response = client.get("/api/v1/use-cases/overview", params={"name": "Invoice Bot"})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["overview"] is None
        assert data["hours_saved"] == pytest.approx(37 / 60)
        assert data["range"] == {"from": "2025-01-01T00:00:00+00:00", "to": "2025-01-07T00:00:00+00:00"}
        assert data["savings"]["savings_type"] == "Fixed Weekly"


class TestSavingsAndRunEndpoints:
    def test_savings_types(self, client: TestClient) -> None:
        response = client.get("/api/v1/savings/types")

        assert response.json() == {"ok": True, "data": ["Fixed Weekly", "Per Execution"]}

    def test_savings_use_cases_type_alias(self, client: TestClient, savings_service: MagicMock) -> None:
        client.get("/api/v1/savings/use-cases", params={"type": "Fixed Weekly", "limit": 50})

        savings_service.list_savings_use_cases.assert_awaited_once_with(
            search=None, savings_type="Fixed Weekly", limit=50, offset=0
        )

    def test_run_summary(self, client: TestClient) -> None:
        response = client.get("/api/v1/runs/summary")

        assert response.json()["data"] == {
            "total_runs": 12,
            "passed": 9,
            "failed": 2,
            "avg_duration_seconds": 41,
        }

    def test_recent_runs(self, client: TestClient, run_service: MagicMock) -> None:
        run_service.get_recent_runs.return_value = [
            RecentRun(
                id="run_1",
                use_case_id="uc_1",
                use_case_name="Use Case 1",
                status=RunStatus.FAIL,
                duration_seconds=12,
                started_at=datetime(2025, 1, 2, 9, 30, tzinfo=timezone.utc),
            )
        ]

        response = client.get("/api/v1/runs/recent", params={"limit": 1})

        assert response.json()["data"][0]["status"] == "FAIL"
        run_service.get_recent_runs.assert_awaited_once_with(limit=1)


def test_unconfigured_database_is_503() -> None:
    app.dependency_overrides.clear()

    response = TestClient(app).get("/api/v1/runs/summary")

    assert response.status_code == 503
    assert response.json()["ok"] is False


def test_health() -> None:
    response = TestClient(app).get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["pid"] > 0
    assert "x-request-id" in response.headers


def test_startup_without_database_serves_health_and_503(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(main_module, "settings", Settings(_env_file=None, database_url=None, pg_host=None))
    monkeypatch.setattr(main_module, "configure_logging", lambda settings: None)
    init_database = MagicMock()
    monkeypatch.setattr(main_module, "init_database", init_database)
    app.dependency_overrides.clear()

    with TestClient(app) as client:
        assert client.get("/health").status_code == 200
        assert client.get("/api/v1/runs/summary").status_code == 503

    init_database.assert_not_called()
