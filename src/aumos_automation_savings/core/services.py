"""Business logic services for the automation savings service.

All services depend on repository interfaces (not concrete implementations)
and receive dependencies via constructor injection. No FastAPI code belongs
here.

Key invariants:
- ReportingService: minutes.total is always the exact sum of its three
  components; a missing savings config contributes zero minutes.
- ReportingService: the daily view keeps only the most recent limit_days
  distinct days and never joins savings.
- UseCaseDirectoryService: any failure on the adaptive source table falls
  back to the canonical automation_use_cases table.
"""

from collections.abc import Callable, Sequence
from datetime import date, datetime

import structlog

from aumos_automation_savings.core.column_mapper import ColumnRole
from aumos_automation_savings.core.entities import (
    DailyAggregate,
    MinutesBreakdown,
    RecentRun,
    ReportingAggregate,
    SavingsConfig,
    SummaryStats,
    UseCaseDetail,
    UseCaseOverview,
    UseCaseRef,
    UseCaseStatus,
    normalize_name,
)
from aumos_automation_savings.core.errors import SavingsServiceError
from aumos_automation_savings.core.interfaces import (
    IAutomationRunRepository,
    IReportingRepository,
    ISavingsConfigRepository,
    IUseCaseRepository,
)
from aumos_automation_savings.core.periods import (
    FixedPeriod,
    count_fixed_periods,
    parse_fixed_period,
    resolve_window,
)
from aumos_automation_savings.settings import Settings

logger = structlog.get_logger(__name__)

DEFAULT_DAILY_LIMIT_DAYS = 7
MAX_DAILY_LIMIT_DAYS = 31
DEFAULT_DIRECTORY_LIMIT = 24
MAX_DIRECTORY_LIMIT = 200
DEFAULT_SAVINGS_LIMIT = 100
MAX_SAVINGS_LIMIT = 1000
DEFAULT_RECENT_RUNS_LIMIT = 10
MAX_RECENT_RUNS_LIMIT = 100


def _clamp(value: int, lower: int, upper: int) -> int:
    return max(lower, min(upper, value))


def _day_string(value: object) -> str:
    if isinstance(value, (datetime, date)):
        return value.isoformat()[:10]
    return str(value)[:10]


def compute_minutes(
    success: int,
    failure: int,
    invalid: int,
    partial: int,
    config: SavingsConfig | None,
    fixed_periods: int,
) -> MinutesBreakdown:
    """Minutes saved for one use case over a window.

    Fixed savings types earn their fixed minutes once per amortization
    period; every other type earns them once per execution. Variable
    minutes are earned per successful and per partial execution.

    Args:
        success: Successful executions.
        failure: Failed executions.
        invalid: Invalid executions.
        partial: Partially successful executions.
        config: Savings config for the use case, or None when unconfigured.
        fixed_periods: Amortization periods in the window.

    Returns:
        The breakdown. All zero when ``config`` is None.
    """
    if config is None:
        return MinutesBreakdown(fixed_total=0.0, variable_success_total=0.0, variable_partial_total=0.0)

    executions = success + failure + invalid + partial
    multiplier = fixed_periods if config.is_fixed_type else executions
    return MinutesBreakdown(
        fixed_total=multiplier * config.fixed_minutes_per_run,
        variable_success_total=success * config.variable_minutes_per_success,
        variable_partial_total=partial * config.variable_minutes_per_partial,
    )


class ReportingService:
    """Windowed execution aggregates joined with savings configuration.

    Args:
        reporting_repo: Reporting table access.
        savings_repo: Savings reference lookups.
        settings: Supplies default windows and the default fixed period.
        clock: Returns "now"; injectable for tests.
    """

    def __init__(
        self,
        reporting_repo: IReportingRepository,
        savings_repo: ISavingsConfigRepository,
        settings: Settings,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._reporting = reporting_repo
        self._savings = savings_repo
        self._settings = settings
        self._clock = clock

    def _now(self) -> datetime | None:
        return self._clock() if self._clock is not None else None

    def _resolve_fixed_period(self, requested: str | FixedPeriod | None) -> FixedPeriod:
        return (
            parse_fixed_period(requested)
            or parse_fixed_period(self._settings.fixed_savings_period)
            or FixedPeriod.PER_WEEK
        )

    async def get_reporting_aggregates(
        self,
        from_: str | date | datetime | None = None,
        to: str | date | datetime | None = None,
        search: str | None = None,
        names: Sequence[str] | None = None,
        fixed_period: str | FixedPeriod | None = None,
    ) -> list[ReportingAggregate]:
        """Per use case execution counts and minutes saved over a window.

        Args:
            from_: Window start. Defaults to ``aggregate_default_days`` ago.
            to: Inclusive window end day. Defaults to now.
            search: Case-insensitive substring filter on the use case name.
            names: Exact use case names, matched after trim and lowercase.
            fixed_period: Amortization period for fixed savings types.
                Unknown or blank values use the configured default.

        Returns:
            One aggregate per use case with data in the window, ordered by
            name. Empty when the reporting table does not exist.

        Raises:
            MappingError: If the reporting table has no name column.
            InvalidWindowError: If a window bound cannot be parsed.
        """
        window = resolve_window(from_, to, self._settings.aggregate_default_days, now=self._now())
        period = self._resolve_fixed_period(fixed_period)

        mapping = await self._reporting.resolve_mapping()
        if mapping is None:
            logger.warning("reporting_table_missing", table=self._reporting.table)
            return []
        mapping.require(ColumnRole.NAME)
        if mapping.date is None:
            logger.warning("reporting_date_column_missing", table=mapping.table)

        rows = await self._reporting.aggregate_counts(mapping, window, search=search, names=names)
        if not rows:
            return []

        savings = await self._savings.load_all()
        fixed_periods = count_fixed_periods(period, window.start, window.end_exclusive)

        aggregates: list[ReportingAggregate] = []
        for row in rows:
            if row["use_case_name"] is None:
                continue
            success = int(row["success"] or 0)
            failure = int(row["failure"] or 0)
            invalid = int(row["invalid"] or 0)
            partial = int(row["partial"] or 0)
            key = row.get("key_name") or normalize_name(row["use_case_name"])
            config = savings.get(key)
            aggregates.append(
                ReportingAggregate(
                    use_case_name=row["use_case_name"],
                    success=success,
                    failure=failure,
                    invalid=invalid,
                    partial=partial,
                    minutes=compute_minutes(success, failure, invalid, partial, config, fixed_periods),
                )
            )

        logger.info(
            "reporting_aggregates_computed",
            use_cases=len(aggregates),
            fixed_period=period.value,
            fixed_periods=fixed_periods,
        )
        return aggregates

    async def get_reporting_daily_aggregates(
        self,
        from_: str | date | datetime | None = None,
        to: str | date | datetime | None = None,
        search: str | None = None,
        limit_days: int | None = DEFAULT_DAILY_LIMIT_DAYS,
    ) -> list[DailyAggregate]:
        """Raw execution counts per day and use case, newest day first.

        Only the most recent ``limit_days`` distinct days (clamped to
        [1, 31]) are returned. No savings are applied.

        Raises:
            MappingError: If the reporting table lacks a name or date column.
        """
        limit = _clamp(limit_days if limit_days is not None else DEFAULT_DAILY_LIMIT_DAYS, 1, MAX_DAILY_LIMIT_DAYS)
        window = resolve_window(from_, to, self._settings.daily_default_days, now=self._now())

        mapping = await self._reporting.resolve_mapping()
        if mapping is None:
            logger.warning("reporting_table_missing", table=self._reporting.table)
            return []
        mapping.require(ColumnRole.NAME, ColumnRole.DATE)

        rows = await self._reporting.daily_counts(mapping, window, search=search)

        kept_days: set[str] = set()
        daily: list[DailyAggregate] = []
        for row in rows:
            if row["use_case_name"] is None:
                continue
            day = _day_string(row["day"])
            if day not in kept_days:
                if len(kept_days) >= limit:
                    break
                kept_days.add(day)
            daily.append(
                DailyAggregate(
                    day=day,
                    use_case_name=row["use_case_name"],
                    success=int(row["success"] or 0),
                    failure=int(row["failure"] or 0),
                    invalid=int(row["invalid"] or 0),
                    partial=int(row["partial"] or 0),
                )
            )
        return daily


class UseCaseDirectoryService:
    """Lists use cases and assembles per use case overviews."""

    def __init__(
        self,
        use_case_repo: IUseCaseRepository,
        reporting_service: ReportingService,
        savings_repo: ISavingsConfigRepository,
        settings: Settings,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._use_cases = use_case_repo
        self._reporting = reporting_service
        self._savings = savings_repo
        self._settings = settings
        self._clock = clock

    async def list_use_cases(
        self,
        search: str | None = None,
        status: UseCaseStatus | None = None,
        live_only: bool = False,
        limit: int = DEFAULT_DIRECTORY_LIMIT,
        offset: int = 0,
    ) -> list[UseCaseRef]:
        """List use cases, preferring the adaptive source table.

        Any failure on the adaptive path is logged and the canonical
        automation_use_cases table is read instead. The canonical table has
        no live marker, so ``live_only`` only narrows the adaptive path.

        Args:
            search: Substring filter on name or description.
            status: Filter on the derived status.
            live_only: Keep only use cases live in production.
            limit: Page size, clamped to [1, 200].
            offset: Rows to skip, at least 0.

        Returns:
            Use cases; empty when neither table exists.
        """
        limit = _clamp(limit, 1, MAX_DIRECTORY_LIMIT)
        offset = max(0, offset)

        try:
            mapping = await self._use_cases.source_mapping()
            if mapping is not None:
                return await self._use_cases.list_from_source(
                    mapping,
                    search=search,
                    status=status,
                    live_only=live_only,
                    limit=limit,
                    offset=offset,
                )
        except SavingsServiceError as exc:
            logger.warning(
                "usecase_directory_fallback",
                table=self._use_cases.source_table,
                error=str(exc),
            )

        return await self._use_cases.list_canonical(search=search, status=status, limit=limit, offset=offset)

    async def get_use_case_overview(self, name: str | None) -> UseCaseOverview | None:
        """Stakeholder overview for a use case, or None when unknown or blank."""
        if not normalize_name(name):
            return None
        name = name.strip()  # type: ignore[union-attr]
        try:
            overview = await self._use_cases.find_overview_in_source(name)
            if overview is not None:
                return overview
        except SavingsServiceError as exc:
            logger.warning(
                "usecase_overview_source_failed",
                table=self._use_cases.source_table,
                use_case=name,
                error=str(exc),
            )
        return await self._use_cases.find_overview_canonical(name)

    async def get_use_case_detail(
        self,
        name: str,
        from_: str | date | datetime | None = None,
        to: str | date | datetime | None = None,
    ) -> UseCaseDetail:
        """Overview, windowed aggregate and savings config for one use case.

        The lookups share the request session and run one after another.
        """
        name = name.strip()
        now = self._clock() if self._clock is not None else None
        window = resolve_window(from_, to, self._settings.aggregate_default_days, now=now)

        overview = await self.get_use_case_overview(name)
        aggregates = await self._reporting.get_reporting_aggregates(
            from_=window.start,
            to=window.end,
            names=[name],
        )
        savings = await self._savings.find_by_name(name)

        return UseCaseDetail(
            name=name,
            overview=overview,
            reporting=aggregates[0] if aggregates else None,
            savings=savings,
            range_from=window.start.isoformat(),
            range_to=window.end.isoformat(),
        )


class SavingsCatalogService:
    """Browse the savings reference table."""

    def __init__(self, savings_repo: ISavingsConfigRepository) -> None:
        self._savings = savings_repo

    async def list_savings_use_cases(
        self,
        search: str | None = None,
        savings_type: str | None = None,
        limit: int = DEFAULT_SAVINGS_LIMIT,
        offset: int = 0,
    ) -> list[SavingsConfig]:
        return await self._savings.list_savings_use_cases(
            search=search,
            savings_type=(savings_type or "").strip() or None,
            limit=_clamp(limit, 1, MAX_SAVINGS_LIMIT),
            offset=max(0, offset),
        )

    async def list_savings_types(self) -> list[str]:
        return await self._savings.list_distinct_types()


class RunActivityService:
    """Summary and recent activity from the canonical runs table."""

    def __init__(self, run_repo: IAutomationRunRepository) -> None:
        self._runs = run_repo

    async def get_summary_stats(self) -> SummaryStats:
        return await self._runs.summary_stats()

    async def get_recent_runs(self, limit: int = DEFAULT_RECENT_RUNS_LIMIT) -> list[RecentRun]:
        return await self._runs.recent_runs(_clamp(limit, 1, MAX_RECENT_RUNS_LIMIT))
