"""Pydantic response schemas for the automation savings API.

All API outputs are typed Pydantic models wrapped in an ``{ok, data}``
envelope. Errors use ``{ok: false, error}``.
"""

from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, Field

from aumos_automation_savings.core.entities import RunStatus, UseCaseStatus

DataT = TypeVar("DataT")


class OkResponse(BaseModel, Generic[DataT]):
    """Success envelope."""

    ok: bool = True
    data: DataT


class ErrorResponse(BaseModel):
    """Error envelope returned by every exception handler."""

    ok: bool = False
    error: str


# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------


class MinutesBreakdownResponse(BaseModel):
    fixed_total: float
    variable_success_total: float
    variable_partial_total: float
    total: float

    model_config = {"from_attributes": True}


class ReportingAggregateResponse(BaseModel):
    """Counts and minutes saved for one use case over the requested window."""

    use_case_name: str
    success: int
    failure: int
    invalid: int
    partial: int
    executions: int
    minutes: MinutesBreakdownResponse

    model_config = {"from_attributes": True}


class DailyAggregateResponse(BaseModel):
    """Raw counts for one use case on one day."""

    day: str = Field(description="Calendar day, YYYY-MM-DD")
    use_case_name: str
    success: int
    failure: int
    invalid: int
    partial: int
    total: int

    model_config = {"from_attributes": True}


# ---------------------------------------------------------------------------
# Savings reference
# ---------------------------------------------------------------------------


class SavingsConfigResponse(BaseModel):
    id: str
    use_case_name: str
    savings_type: str | None
    fixed_minutes_per_run: float
    variable_minutes_per_success: float
    variable_minutes_per_partial: float

    model_config = {"from_attributes": True}


# ---------------------------------------------------------------------------
# Use case directory
# ---------------------------------------------------------------------------


class UseCaseResponse(BaseModel):
    id: str
    name: str
    description: str | None
    owner: str | None
    status: UseCaseStatus
    created_at: str
    updated_at: str | None = None

    model_config = {"from_attributes": True}


class UseCaseOverviewResponse(BaseModel):
    name: str
    stakeholder: str | None
    description: str | None
    hld_url: str | None

    model_config = {"from_attributes": True}


class DateRangeResponse(BaseModel):
    from_: str = Field(alias="from")
    to: str

    model_config = {"populate_by_name": True}


class UseCaseDetailResponse(BaseModel):
    """Overview, aggregate and savings for one use case."""

    name: str
    overview: UseCaseOverviewResponse | None
    reporting: ReportingAggregateResponse | None
    savings: SavingsConfigResponse | None
    hours_saved: float
    range: DateRangeResponse


# ---------------------------------------------------------------------------
# Run activity and health
# ---------------------------------------------------------------------------


class SummaryStatsResponse(BaseModel):
    total_runs: int
    passed: int
    failed: int
    avg_duration_seconds: int

    model_config = {"from_attributes": True}


class RecentRunResponse(BaseModel):
    id: str
    use_case_id: str
    use_case_name: str
    status: RunStatus
    duration_seconds: int
    started_at: datetime

    model_config = {"from_attributes": True}


class HealthResponse(BaseModel):
    ok: bool = True
    time: datetime
    uptime_seconds: float
    pid: int
    python_version: str
