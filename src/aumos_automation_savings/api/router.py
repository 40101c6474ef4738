"""FastAPI router for the automation savings API.

All routes are thin: they validate inputs, call services, and return
Pydantic response models. No business logic belongs here.

Endpoints:
  GET /api/v1/reporting/aggregates     Per use case counts and minutes saved
  GET /api/v1/reporting/daily          Per day raw counts
  GET /api/v1/use-cases                Use case directory
  GET /api/v1/use-cases/live           Use cases live in production
  GET /api/v1/use-cases/overview       Overview, aggregate and savings for one use case
  GET /api/v1/savings/use-cases        Savings reference rows
  GET /api/v1/savings/types            Distinct savings types
  GET /api/v1/runs/summary             Run totals
  GET /api/v1/runs/recent              Most recent runs
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from aumos_automation_savings.adapters.database import QueryExecutor, get_db_session
from aumos_automation_savings.adapters.repositories import (
    AutomationRunRepository,
    ReportingRepository,
    SavingsConfigRepository,
    UseCaseRepository,
)
from aumos_automation_savings.adapters.schema_prober import SchemaProber, TableExistenceCache
from aumos_automation_savings.api.schemas import (
    DailyAggregateResponse,
    DateRangeResponse,
    OkResponse,
    RecentRunResponse,
    ReportingAggregateResponse,
    SavingsConfigResponse,
    SummaryStatsResponse,
    UseCaseDetailResponse,
    UseCaseOverviewResponse,
    UseCaseResponse,
)
from aumos_automation_savings.core.entities import UseCaseStatus
from aumos_automation_savings.core.services import (
    DEFAULT_DAILY_LIMIT_DAYS,
    DEFAULT_DIRECTORY_LIMIT,
    DEFAULT_RECENT_RUNS_LIMIT,
    DEFAULT_SAVINGS_LIMIT,
    ReportingService,
    RunActivityService,
    SavingsCatalogService,
    UseCaseDirectoryService,
)
from aumos_automation_savings.settings import Settings

router = APIRouter()
settings = Settings()

# Shared for the process lifetime
table_cache = TableExistenceCache(ttl_seconds=settings.table_cache_ttl_seconds)


# ---------------------------------------------------------------------------
# Dependency factories
# ---------------------------------------------------------------------------


def _get_executor(session: Annotated[AsyncSession, Depends(get_db_session)]) -> QueryExecutor:
    return QueryExecutor(session)


def _get_prober(executor: Annotated[QueryExecutor, Depends(_get_executor)]) -> SchemaProber:
    return SchemaProber(executor, schema=settings.pg_schema, cache=table_cache)


def _get_savings_repo(executor: Annotated[QueryExecutor, Depends(_get_executor)]) -> SavingsConfigRepository:
    return SavingsConfigRepository(executor, settings.savings_table)


def _get_reporting_service(
    executor: Annotated[QueryExecutor, Depends(_get_executor)],
    prober: Annotated[SchemaProber, Depends(_get_prober)],
    savings_repo: Annotated[SavingsConfigRepository, Depends(_get_savings_repo)],
) -> ReportingService:
    """Build ReportingService for the request session."""
    return ReportingService(
        reporting_repo=ReportingRepository(executor, prober, settings),
        savings_repo=savings_repo,
        settings=settings,
    )


def _get_directory_service(
    executor: Annotated[QueryExecutor, Depends(_get_executor)],
    prober: Annotated[SchemaProber, Depends(_get_prober)],
    savings_repo: Annotated[SavingsConfigRepository, Depends(_get_savings_repo)],
    reporting_service: Annotated[ReportingService, Depends(_get_reporting_service)],
) -> UseCaseDirectoryService:
    """Build UseCaseDirectoryService for the request session."""
    return UseCaseDirectoryService(
        use_case_repo=UseCaseRepository(executor, prober, settings),
        reporting_service=reporting_service,
        savings_repo=savings_repo,
        settings=settings,
    )


def _get_savings_service(
    savings_repo: Annotated[SavingsConfigRepository, Depends(_get_savings_repo)],
) -> SavingsCatalogService:
    return SavingsCatalogService(savings_repo)


def _get_run_service(executor: Annotated[QueryExecutor, Depends(_get_executor)]) -> RunActivityService:
    return RunActivityService(AutomationRunRepository(executor))


# ---------------------------------------------------------------------------
# Reporting endpoints
# ---------------------------------------------------------------------------


@router.get(
    "/reporting/aggregates",
    response_model=OkResponse[list[ReportingAggregateResponse]],
    tags=["reporting"],
    summary="Per use case execution counts and minutes saved",
)
async def get_reporting_aggregates(
    from_: Annotated[str | None, Query(alias="from", description="Window start, ISO date or datetime")] = None,
    to: Annotated[str | None, Query(description="Inclusive window end day")] = None,
    search: Annotated[str | None, Query(description="Substring of the use case name")] = None,
    name: Annotated[list[str] | None, Query(description="Exact use case name, repeatable")] = None,
    fixed_period: Annotated[
        str | None,
        Query(alias="fixedPeriod", description="per_day | per_week | per_month | per_range"),
    ] = None,
    service: Annotated[ReportingService, Depends(_get_reporting_service)] = ...,
) -> OkResponse[list[ReportingAggregateResponse]]:
    """Aggregate the reporting table over a window and apply savings minutes.

    Defaults to the last 30 days. Returns an empty list when the reporting
    table does not exist.
    """
    aggregates = await service.get_reporting_aggregates(
        from_=from_,
        to=to,
        search=search,
        names=name,
        fixed_period=fixed_period,
    )
    return OkResponse(data=[ReportingAggregateResponse.model_validate(a) for a in aggregates])


@router.get(
    "/reporting/daily",
    response_model=OkResponse[list[DailyAggregateResponse]],
    tags=["reporting"],
    summary="Per day execution counts",
)
async def get_reporting_daily(
    from_: Annotated[str | None, Query(alias="from")] = None,
    to: Annotated[str | None, Query()] = None,
    search: Annotated[str | None, Query()] = None,
    limit_days: Annotated[int, Query(alias="limitDays", description="Most recent days kept, 1-31")] = (
        DEFAULT_DAILY_LIMIT_DAYS
    ),
    service: Annotated[ReportingService, Depends(_get_reporting_service)] = ...,
) -> OkResponse[list[DailyAggregateResponse]]:
    daily = await service.get_reporting_daily_aggregates(from_=from_, to=to, search=search, limit_days=limit_days)
    return OkResponse(data=[DailyAggregateResponse.model_validate(d) for d in daily])


# ---------------------------------------------------------------------------
# Use case endpoints
# ---------------------------------------------------------------------------


@router.get(
    "/use-cases",
    response_model=OkResponse[list[UseCaseResponse]],
    tags=["use-cases"],
    summary="List use cases",
)
async def list_use_cases(
    search: Annotated[str | None, Query(description="Substring of name or description")] = None,
    status: Annotated[UseCaseStatus | None, Query()] = None,
    live: Annotated[bool, Query(description="Only use cases live in production")] = False,
    limit: Annotated[int, Query()] = DEFAULT_DIRECTORY_LIMIT,
    offset: Annotated[int, Query()] = 0,
    service: Annotated[UseCaseDirectoryService, Depends(_get_directory_service)] = ...,
) -> OkResponse[list[UseCaseResponse]]:
    """List use cases from the adaptive table, falling back to automation_use_cases."""
    use_cases = await service.list_use_cases(
        search=search,
        status=status,
        live_only=live,
        limit=limit,
        offset=offset,
    )
    return OkResponse(data=[UseCaseResponse.model_validate(u) for u in use_cases])


@router.get(
    "/use-cases/live",
    response_model=OkResponse[list[UseCaseResponse]],
    tags=["use-cases"],
    summary="List use cases live in production",
)
async def list_live_use_cases(
    search: Annotated[str | None, Query()] = None,
    limit: Annotated[int, Query()] = DEFAULT_DIRECTORY_LIMIT,
    offset: Annotated[int, Query()] = 0,
    service: Annotated[UseCaseDirectoryService, Depends(_get_directory_service)] = ...,
) -> OkResponse[list[UseCaseResponse]]:
    use_cases = await service.list_use_cases(search=search, live_only=True, limit=limit, offset=offset)
    return OkResponse(data=[UseCaseResponse.model_validate(u) for u in use_cases])


@router.get(
    "/use-cases/overview",
    response_model=OkResponse[UseCaseDetailResponse],
    tags=["use-cases"],
    summary="Overview, aggregate and savings for one use case",
)
async def get_use_case_overview(
    name: Annotated[str | None, Query(description="Use case name")] = None,
    from_: Annotated[str | None, Query(alias="from")] = None,
    to: Annotated[str | None, Query()] = None,
    service: Annotated[UseCaseDirectoryService, Depends(_get_directory_service)] = ...,
) -> OkResponse[UseCaseDetailResponse]:
    if not (name or "").strip():
        raise HTTPException(status_code=400, detail="Missing use case name")

    detail = await service.get_use_case_detail(name, from_=from_, to=to)
    return OkResponse(
        data=UseCaseDetailResponse(
            name=detail.name,
            overview=UseCaseOverviewResponse.model_validate(detail.overview) if detail.overview else None,
            reporting=ReportingAggregateResponse.model_validate(detail.reporting) if detail.reporting else None,
            savings=SavingsConfigResponse.model_validate(detail.savings) if detail.savings else None,
            hours_saved=detail.hours_saved,
            range=DateRangeResponse(from_=detail.range_from or "", to=detail.range_to or ""),
        )
    )


# ---------------------------------------------------------------------------
# Savings endpoints
# ---------------------------------------------------------------------------


@router.get(
    "/savings/use-cases",
    response_model=OkResponse[list[SavingsConfigResponse]],
    tags=["savings"],
    summary="List savings reference rows",
)
async def list_savings_use_cases(
    search: Annotated[str | None, Query()] = None,
    savings_type: Annotated[str | None, Query(alias="type", description="Exact savings type")] = None,
    limit: Annotated[int, Query()] = DEFAULT_SAVINGS_LIMIT,
    offset: Annotated[int, Query()] = 0,
    service: Annotated[SavingsCatalogService, Depends(_get_savings_service)] = ...,
) -> OkResponse[list[SavingsConfigResponse]]:
    configs = await service.list_savings_use_cases(
        search=search,
        savings_type=savings_type,
        limit=limit,
        offset=offset,
    )
    return OkResponse(data=[SavingsConfigResponse.model_validate(c) for c in configs])


@router.get(
    "/savings/types",
    response_model=OkResponse[list[str]],
    tags=["savings"],
    summary="Distinct savings types",
)
async def list_savings_types(
    service: Annotated[SavingsCatalogService, Depends(_get_savings_service)] = ...,
) -> OkResponse[list[str]]:
    return OkResponse(data=await service.list_savings_types())


# ---------------------------------------------------------------------------
# Run activity endpoints
# ---------------------------------------------------------------------------


@router.get(
    "/runs/summary",
    response_model=OkResponse[SummaryStatsResponse],
    tags=["runs"],
    summary="Run totals",
)
async def get_run_summary(
    service: Annotated[RunActivityService, Depends(_get_run_service)] = ...,
) -> OkResponse[SummaryStatsResponse]:
    stats = await service.get_summary_stats()
    return OkResponse(data=SummaryStatsResponse.model_validate(stats))


@router.get(
    "/runs/recent",
    response_model=OkResponse[list[RecentRunResponse]],
    tags=["runs"],
    summary="Most recent runs",
)
async def get_recent_runs(
    limit: Annotated[int, Query()] = DEFAULT_RECENT_RUNS_LIMIT,
    service: Annotated[RunActivityService, Depends(_get_run_service)] = ...,
) -> OkResponse[list[RecentRunResponse]]:
    runs = await service.get_recent_runs(limit=limit)
    return OkResponse(data=[RecentRunResponse.model_validate(r) for r in runs])
