"""Read-only value objects produced by the reporting core.

None of these are persisted. They are projections computed per request from
whichever backing tables are available, and are joined to each other by
normalized use case name (trim + lowercase).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


def normalize_name(name: str | None) -> str:
    """Return the join key for a use case name: trimmed and lowercased."""
    return (name or "").strip().lower()


class UseCaseStatus(str, Enum):
    """Lifecycle status of a use case as shown in the directory."""

    ACTIVE = "ACTIVE"
    DRAFT = "DRAFT"
    DEPRECATED = "DEPRECATED"


class RunStatus(str, Enum):
    """Outcome of a single automation run in the canonical runs table."""

    PASS = "PASS"
    FAIL = "FAIL"
    SKIP = "SKIP"
    RUNNING = "RUNNING"


# ---------------------------------------------------------------------------
# Table metadata
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ColumnInfo:
    """A physical column as reported by information_schema."""

    name: str
    data_type: str


@dataclass(frozen=True)
class TableSchema:
    """Columns of a table in ordinal order.

    Attributes:
        table: Table name the columns were read from.
        columns: Column metadata in ordinal position order.
    """

    table: str
    columns: tuple[ColumnInfo, ...]

    @property
    def lowercase_names(self) -> frozenset[str]:
        """Lowercased column names, the lookup set for column detection."""
        return frozenset(column.name.lower() for column in self.columns)

    def physical_name(self, lowercase_name: str) -> str:
        """Map a lowercased column name back to its physical spelling.

        Names that are not present are returned unchanged, so an explicit
        override that names a column the probe did not see is still honoured.
        """
        for column in self.columns:
            if column.name.lower() == lowercase_name:
                return column.name
        return lowercase_name


# ---------------------------------------------------------------------------
# Savings configuration and aggregates
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SavingsConfig:
    """Minutes saved per run for one use case, from the savings reference table.

    Attributes:
        id: md5 of the use case name (the table carries no natural id).
        use_case_name: Display name as stored.
        savings_type: Free-text classifier. A "fix" substring marks the
            fixed minutes as a flat amount per amortization period.
        fixed_minutes_per_run: Fixed minutes saved (per run or per period).
        variable_minutes_per_success: Minutes saved per successful execution.
        variable_minutes_per_partial: Minutes saved per partial execution.
    """

    id: str
    use_case_name: str
    savings_type: str | None
    fixed_minutes_per_run: float = 0.0
    variable_minutes_per_success: float = 0.0
    variable_minutes_per_partial: float = 0.0

    @property
    def normalized_name(self) -> str:
        return normalize_name(self.use_case_name)

    @property
    def is_fixed_type(self) -> bool:
        """True when fixed minutes are amortized per period instead of per run."""
        return self.savings_type is not None and "fix" in self.savings_type.lower()


@dataclass(frozen=True)
class MinutesBreakdown:
    """Minutes saved split by savings component. ``total`` is always the exact sum."""

    fixed_total: float
    variable_success_total: float
    variable_partial_total: float

    @property
    def total(self) -> float:
        return self.fixed_total + self.variable_success_total + self.variable_partial_total


@dataclass(frozen=True)
class ReportingAggregate:
    """Execution counts and minutes saved for one use case over a window."""

    use_case_name: str
    success: int
    failure: int
    invalid: int
    partial: int
    minutes: MinutesBreakdown

    @property
    def executions(self) -> int:
        return self.success + self.failure + self.invalid + self.partial


@dataclass(frozen=True)
class DailyAggregate:
    """Raw execution counts for one use case on one calendar day (no savings join)."""

    day: str
    use_case_name: str
    success: int
    failure: int
    invalid: int
    partial: int

    @property
    def total(self) -> int:
        return self.success + self.failure + self.invalid + self.partial


# ---------------------------------------------------------------------------
# Use case directory
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class UseCaseRef:
    """A use case as listed by the directory."""

    id: str
    name: str
    description: str | None
    owner: str | None
    status: UseCaseStatus
    created_at: str
    updated_at: str | None = None


@dataclass(frozen=True)
class UseCaseOverview:
    """Stakeholder-facing summary of a single use case."""

    name: str
    stakeholder: str | None
    description: str | None
    hld_url: str | None


@dataclass(frozen=True)
class UseCaseDetail:
    """Everything the detail view shows for one use case over a window."""

    name: str
    overview: UseCaseOverview | None
    reporting: ReportingAggregate | None
    savings: SavingsConfig | None
    range_from: str | None
    range_to: str | None

    @property
    def hours_saved(self) -> float:
        if self.reporting is None:
            return 0.0
        return self.reporting.minutes.total / 60


# ---------------------------------------------------------------------------
# Canonical run activity
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SummaryStats:
    """Run totals across the canonical automation_runs table."""

    total_runs: int
    passed: int
    failed: int
    avg_duration_seconds: int


@dataclass(frozen=True)
class RecentRun:
    """A single run joined with its use case name."""

    id: str
    use_case_id: str
    use_case_name: str
    status: RunStatus
    duration_seconds: int
    started_at: datetime
