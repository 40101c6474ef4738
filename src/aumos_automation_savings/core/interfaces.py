"""Abstract interfaces (Protocol classes) for the automation savings service.

Services depend on these interfaces, not on the SQLAlchemy-backed
repositories, so they can be exercised with AsyncMock doubles.
"""

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from aumos_automation_savings.core.column_mapper import ColumnMapping, UseCaseSourceMapping
from aumos_automation_savings.core.entities import (
    RecentRun,
    SavingsConfig,
    SummaryStats,
    UseCaseOverview,
    UseCaseRef,
    UseCaseStatus,
)
from aumos_automation_savings.core.periods import ReportingWindow


@runtime_checkable
class IReportingRepository(Protocol):
    """Access to the externally-owned reporting table."""

    @property
    def table(self) -> str:
        ...

    async def resolve_mapping(self) -> ColumnMapping | None:
        """Probe and map the reporting table. None when the table is absent."""
        ...

    async def aggregate_counts(
        self,
        mapping: ColumnMapping,
        window: ReportingWindow,
        search: str | None = None,
        names: Sequence[str] | None = None,
    ) -> list[dict[str, Any]]:
        """Grouped count rows with key_name, use_case_name and the four counts."""
        ...

    async def daily_counts(
        self,
        mapping: ColumnMapping,
        window: ReportingWindow,
        search: str | None = None,
    ) -> list[dict[str, Any]]:
        """Count rows per day and use case, newest day first."""
        ...


@runtime_checkable
class ISavingsConfigRepository(Protocol):
    """Savings reference lookups. Never fails on a missing table."""

    async def load_all(self) -> dict[str, SavingsConfig]:
        ...

    async def find_by_name(self, name: str) -> SavingsConfig | None:
        ...

    async def list_distinct_types(self) -> list[str]:
        ...

    async def list_savings_use_cases(
        self,
        search: str | None = None,
        savings_type: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[SavingsConfig]:
        ...


@runtime_checkable
class IUseCaseRepository(Protocol):
    """Use case directory reads over the adaptive and canonical tables."""

    @property
    def source_table(self) -> str:
        ...

    async def source_mapping(self) -> UseCaseSourceMapping | None:
        ...

    async def list_from_source(
        self,
        mapping: UseCaseSourceMapping,
        search: str | None = None,
        status: UseCaseStatus | None = None,
        live_only: bool = False,
        limit: int = 24,
        offset: int = 0,
    ) -> list[UseCaseRef]:
        ...

    async def list_canonical(
        self,
        search: str | None = None,
        status: UseCaseStatus | None = None,
        limit: int = 24,
        offset: int = 0,
    ) -> list[UseCaseRef]:
        ...

    async def find_overview_in_source(self, name: str) -> UseCaseOverview | None:
        ...

    async def find_overview_canonical(self, name: str) -> UseCaseOverview | None:
        ...


@runtime_checkable
class IAutomationRunRepository(Protocol):
    """Run statistics over automation_runs."""

    async def summary_stats(self) -> SummaryStats:
        ...

    async def recent_runs(self, limit: int) -> list[RecentRun]:
        ...
