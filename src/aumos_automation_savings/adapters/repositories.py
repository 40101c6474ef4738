"""Repositories for the automation savings service.

Each repository wraps a QueryExecutor and the statements from
core/query_builder.py, and converts rows into the value objects from
core/entities.py. Optional tables are read with ``fetch_if_present`` so a
missing relation degrades to an empty result while real database failures
still propagate as ExecutionError.
"""

from collections.abc import Sequence
from datetime import date, datetime
from typing import Any

import structlog

from aumos_automation_savings.adapters.database import QueryExecutor
from aumos_automation_savings.adapters.schema_prober import SchemaProber
from aumos_automation_savings.core.column_mapper import (
    ColumnMapping,
    UseCaseSourceMapping,
    map_overview_columns,
    map_reporting_columns,
    map_use_case_source_columns,
)
from aumos_automation_savings.core.entities import (
    RecentRun,
    RunStatus,
    SavingsConfig,
    SummaryStats,
    UseCaseOverview,
    UseCaseRef,
    UseCaseStatus,
    normalize_name,
)
from aumos_automation_savings.core.periods import ReportingWindow
from aumos_automation_savings.core.query_builder import (
    canonical_overview_query,
    canonical_use_case_query,
    overview_query,
    recent_runs_query,
    reporting_aggregate_query,
    reporting_daily_query,
    run_summary_query,
    savings_config_query,
    savings_types_query,
    use_case_source_query,
)
from aumos_automation_savings.settings import Settings

logger = structlog.get_logger(__name__)


def _as_float(value: Any) -> float:
    return float(value) if value is not None else 0.0


def _as_int(value: Any) -> int:
    return int(value) if value is not None else 0


def _as_iso(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def _parse_status(value: Any) -> UseCaseStatus:
    try:
        return UseCaseStatus(str(value).upper())
    except ValueError:
        return UseCaseStatus.ACTIVE


def _named(rows: list[dict[str, Any]], column: str) -> list[dict[str, Any]]:
    """Rows whose name column is set; external tables may hold NULL names."""
    return [row for row in rows if row.get(column) is not None]


def _row_to_savings_config(row: dict[str, Any]) -> SavingsConfig:
    return SavingsConfig(
        id=str(row["id"]),
        use_case_name=str(row["use_case_name"]),
        savings_type=row["savings_type"],
        fixed_minutes_per_run=_as_float(row["fixed_savings_per_run"]),
        variable_minutes_per_success=_as_float(row["savings_per_run"]),
        variable_minutes_per_partial=_as_float(row["partial_savings_per_run"]),
    )


def _row_to_use_case_ref(row: dict[str, Any]) -> UseCaseRef:
    return UseCaseRef(
        id=str(row["id"]),
        name=row["name"],
        description=row.get("description"),
        owner=row.get("owner"),
        status=_parse_status(row.get("status")),
        created_at=_as_iso(row.get("created_at")) or "",
        updated_at=_as_iso(row.get("updated_at")),
    )


def _row_to_overview(row: dict[str, Any]) -> UseCaseOverview:
    return UseCaseOverview(
        name=row["name"],
        stakeholder=row.get("stakeholder"),
        description=row.get("description"),
        hld_url=row.get("hld_url"),
    )


class ReportingRepository:
    """Reads the externally-owned reporting table through a probed column mapping."""

    def __init__(self, executor: QueryExecutor, prober: SchemaProber, settings: Settings) -> None:
        self._executor = executor
        self._prober = prober
        self._settings = settings

    @property
    def table(self) -> str:
        return self._settings.reporting_table

    async def resolve_mapping(self) -> ColumnMapping | None:
        """Probe the reporting table and map its columns.

        Returns:
            The mapping, or None when the table does not exist. Mandatory
            roles are not checked here; callers decide what they need.
        """
        if not await self._prober.table_exists(self.table):
            return None
        schema = await self._prober.describe(self.table)
        if schema is None:
            return None
        return map_reporting_columns(schema, self._settings.reporting_column_overrides())

    async def aggregate_counts(
        self,
        mapping: ColumnMapping,
        window: ReportingWindow,
        search: str | None = None,
        names: Sequence[str] | None = None,
    ) -> list[dict[str, Any]]:
        """Grouped count totals per use case. Rows carry key_name and use_case_name."""
        outcome = await self._executor.fetch_if_present(
            reporting_aggregate_query(mapping, window, search=search, names=names)
        )
        return outcome.rows

    async def daily_counts(
        self,
        mapping: ColumnMapping,
        window: ReportingWindow,
        search: str | None = None,
    ) -> list[dict[str, Any]]:
        """Count totals per day and use case, newest day first."""
        outcome = await self._executor.fetch_if_present(reporting_daily_query(mapping, window, search=search))
        return outcome.rows


class SavingsConfigRepository:
    """Reads per use case savings minutes from the savings reference table.

    A missing table is never an error: lookups return an empty map, None
    or an empty list.
    """

    def __init__(self, executor: QueryExecutor, table: str) -> None:
        self._executor = executor
        self._table = table

    async def load_all(self) -> dict[str, SavingsConfig]:
        """Every savings config keyed by normalized use case name.

        Rows arrive in a stable order. When several rows share a normalized
        name the first one is kept and each dropped row is logged.
        """
        outcome = await self._executor.fetch_if_present(savings_config_query(self._table))
        configs: dict[str, SavingsConfig] = {}
        for row in _named(outcome.rows, "use_case_name"):
            config = _row_to_savings_config(row)
            key = config.normalized_name
            if key in configs:
                logger.warning(
                    "savings_config_duplicate",
                    table=self._table,
                    use_case_name=config.use_case_name,
                    kept=configs[key].use_case_name,
                )
                continue
            configs[key] = config
        return configs

    async def find_by_name(self, name: str) -> SavingsConfig | None:
        if not normalize_name(name):
            return None
        outcome = await self._executor.fetch_if_present(savings_config_query(self._table, name=name, limit=1))
        rows = _named(outcome.rows, "use_case_name")
        return _row_to_savings_config(rows[0]) if rows else None

    async def list_distinct_types(self) -> list[str]:
        outcome = await self._executor.fetch_if_present(savings_types_query(self._table))
        return [row["savings_type"] for row in outcome.rows]

    async def list_savings_use_cases(
        self,
        search: str | None = None,
        savings_type: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[SavingsConfig]:
        outcome = await self._executor.fetch_if_present(
            savings_config_query(
                self._table,
                search=search,
                savings_type=savings_type,
                limit=limit,
                offset=offset,
            )
        )
        return [_row_to_savings_config(row) for row in _named(outcome.rows, "use_case_name")]


class UseCaseRepository:
    """Reads use cases from the adaptive source table or the canonical table."""

    def __init__(self, executor: QueryExecutor, prober: SchemaProber, settings: Settings) -> None:
        self._executor = executor
        self._prober = prober
        self._settings = settings

    @property
    def source_table(self) -> str:
        return self._settings.usecase_table

    async def source_mapping(self) -> UseCaseSourceMapping | None:
        """Directory mapping for the adaptive table, or None when it is absent.

        Raises:
            MappingError: If the table has no name-like column.
        """
        if not await self._prober.table_exists(self.source_table):
            return None
        schema = await self._prober.describe(self.source_table)
        if schema is None:
            return None
        return map_use_case_source_columns(schema)

    async def list_from_source(
        self,
        mapping: UseCaseSourceMapping,
        search: str | None = None,
        status: UseCaseStatus | None = None,
        live_only: bool = False,
        limit: int = 24,
        offset: int = 0,
    ) -> list[UseCaseRef]:
        rows = await self._executor.fetch_all(
            use_case_source_query(
                mapping,
                search=search,
                status=status,
                live_only=live_only,
                limit=limit,
                offset=offset,
            )
        )
        return [_row_to_use_case_ref(row) for row in _named(rows, "name")]

    async def list_canonical(
        self,
        search: str | None = None,
        status: UseCaseStatus | None = None,
        limit: int = 24,
        offset: int = 0,
    ) -> list[UseCaseRef]:
        outcome = await self._executor.fetch_if_present(
            canonical_use_case_query(search=search, status=status, limit=limit, offset=offset)
        )
        return [_row_to_use_case_ref(row) for row in outcome.rows]

    async def find_overview_in_source(self, name: str) -> UseCaseOverview | None:
        """Overview from the adaptive table.

        Raises:
            MappingError: If the table exists but has no name-like column.
        """
        if not await self._prober.table_exists(self.source_table):
            return None
        schema = await self._prober.describe(self.source_table)
        if schema is None:
            return None
        mapping = map_overview_columns(schema)
        rows = await self._executor.fetch_all(overview_query(mapping, name))
        return _row_to_overview(rows[0]) if rows else None

    async def find_overview_canonical(self, name: str) -> UseCaseOverview | None:
        outcome = await self._executor.fetch_if_present(canonical_overview_query(name))
        return _row_to_overview(outcome.rows[0]) if outcome.rows else None


class AutomationRunRepository:
    """Run statistics from the canonical automation_runs table."""

    def __init__(self, executor: QueryExecutor) -> None:
        self._executor = executor

    async def summary_stats(self) -> SummaryStats:
        outcome = await self._executor.fetch_if_present(run_summary_query())
        if not outcome.rows:
            return SummaryStats(total_runs=0, passed=0, failed=0, avg_duration_seconds=0)
        row = outcome.rows[0]
        return SummaryStats(
            total_runs=_as_int(row["total_runs"]),
            passed=_as_int(row["passed"]),
            failed=_as_int(row["failed"]),
            avg_duration_seconds=_as_int(row["avg_duration_seconds"]),
        )

    async def recent_runs(self, limit: int) -> list[RecentRun]:
        outcome = await self._executor.fetch_if_present(recent_runs_query(limit))
        return [
            RecentRun(
                id=row["id"],
                use_case_id=row["use_case_id"],
                use_case_name=row["use_case_name"],
                status=RunStatus(row["status"]),
                duration_seconds=_as_int(row["duration_seconds"]),
                started_at=row["started_at"],
            )
            for row in outcome.rows
        ]
