"""Heuristic mapping of semantic roles to physical columns in externally-owned tables.

The reporting and use case tables are owned by other teams and their column
names drift. Each semantic role has an ordered candidate list; the first
candidate present in the table wins. Configured overrides always win over
detection. The result is a frozen mapping object that the query builder
consumes, so detection can be tested without a database.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import AbstractSet

from aumos_automation_savings.core.entities import TableSchema
from aumos_automation_savings.core.errors import MappingError


class ColumnRole(str, Enum):
    """Semantic roles in the reporting table."""

    NAME = "name"
    DATE = "date"
    SUCCESS = "success"
    FAILURE = "failure"
    INVALID = "invalid"
    PARTIAL = "partial"


COUNT_ROLES: tuple[ColumnRole, ...] = (
    ColumnRole.SUCCESS,
    ColumnRole.FAILURE,
    ColumnRole.INVALID,
    ColumnRole.PARTIAL,
)

REPORTING_CANDIDATES: dict[ColumnRole, tuple[str, ...]] = {
    ColumnRole.NAME: ("use_case_name", "usecase_name", "usecase", "use_case", "name"),
    ColumnRole.DATE: (
        "date",
        "day",
        "run_date",
        "executed_at",
        "created_at",
        "ts",
        "timestamp",
        "reported_at",
    ),
    ColumnRole.SUCCESS: ("success", "success_count", "passed", "pass"),
    ColumnRole.FAILURE: ("failure", "fail", "failed", "failure_count"),
    ColumnRole.INVALID: ("invalid", "invalid_count", "skip", "skipped"),
    ColumnRole.PARTIAL: ("partial", "partial_count", "partially_successful"),
}

# Fallback for the date role, in preference order
DATE_DATA_TYPES: tuple[str, ...] = (
    "date",
    "timestamp without time zone",
    "timestamp with time zone",
)

USE_CASE_SOURCE_CANDIDATES: dict[str, tuple[str, ...]] = {
    "id": ("id", "usecase_id", "uc_id", "uuid"),
    "name": ("name", "usecase", "use_case", "usecase_name", "use_case_name", "title"),
    "description": ("description", "desc", "details", "summary"),
    "owner": ("owner", "owner_name", "team", "group", "squad"),
    "status": ("status", "state", "lifecycle_status", "prod_status"),
    "created": (
        "created_at",
        "createdon",
        "created_on",
        "created_ts",
        "createddate",
        "created_date",
        "created_time",
        "createdtime",
    ),
    "live_flag": ("is_live", "live", "is_active", "active"),
    "environment": ("environment", "env", "stage", "deployment_env"),
}

OVERVIEW_CANDIDATES: dict[str, tuple[str, ...]] = {
    "name": ("name", "usecase_name", "use_case_name", "usecase", "use_case", "title"),
    "stakeholder": (
        "stakeholder",
        "owner",
        "owner_name",
        "business_owner",
        "product_owner",
        "team",
        "group",
        "squad",
    ),
    "description": (
        "process_summary",
        "process",
        "short_desc",
        "short_description",
        "description",
        "desc",
        "details",
        "summary",
    ),
    "hld_url": (
        "hld",
        "hld_link",
        "hldurl",
        "hld_url",
        "confluence",
        "confluence_link",
        "confluence_url",
        "doc",
        "doc_link",
        "documentation",
        "wiki",
        "wiki_link",
    ),
}


def pick_first(available: AbstractSet[str], candidates: Iterable[str]) -> str | None:
    """Return the first candidate present in ``available``, or None."""
    for candidate in candidates:
        if candidate in available:
            return candidate
    return None


def _detect(schema: TableSchema, candidates: Iterable[str]) -> str | None:
    found = pick_first(schema.lowercase_names, candidates)
    return schema.physical_name(found) if found is not None else None


# ---------------------------------------------------------------------------
# Reporting table
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ColumnMapping:
    """Physical columns chosen for each reporting role. None means "not present"."""

    table: str
    name: str | None
    date: str | None = None
    success: str | None = None
    failure: str | None = None
    invalid: str | None = None
    partial: str | None = None

    def column_for(self, role: ColumnRole) -> str | None:
        return getattr(self, role.value)

    def require(self, *roles: ColumnRole) -> None:
        """Raise MappingError naming every listed role that has no column."""
        missing = [role.value for role in roles if self.column_for(role) is None]
        if missing:
            raise MappingError(self.table, missing)

    @property
    def physical_columns(self) -> list[str]:
        """Distinct mapped columns, for building the table reference."""
        seen: list[str] = []
        for role in ColumnRole:
            column = self.column_for(role)
            if column is not None and column not in seen:
                seen.append(column)
        return seen


def map_reporting_columns(
    schema: TableSchema,
    overrides: Mapping[ColumnRole, str] | None = None,
) -> ColumnMapping:
    """Build the reporting ColumnMapping for a probed table.

    Args:
        schema: Probed columns of the reporting table.
        overrides: Configured physical column per role; these always win.

    Returns:
        The mapping. Roles may be None; callers decide which are mandatory.
    """
    overrides = overrides or {}
    resolved: dict[str, str | None] = {}
    for role, candidates in REPORTING_CANDIDATES.items():
        override = overrides.get(role)
        if override:
            resolved[role.value] = schema.physical_name(override.strip().lower())
        else:
            resolved[role.value] = _detect(schema, candidates)

    if resolved[ColumnRole.DATE.value] is None:
        for data_type in DATE_DATA_TYPES:
            typed = [c.name for c in schema.columns if c.data_type.lower() == data_type]
            if typed:
                resolved[ColumnRole.DATE.value] = typed[0]
                break

    return ColumnMapping(table=schema.table, **resolved)


# ---------------------------------------------------------------------------
# Use case source and overview tables
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class UseCaseSourceMapping:
    """Columns of the adaptive use case source table. ``name`` is always set."""

    table: str
    name: str
    id: str | None = None
    description: str | None = None
    owner: str | None = None
    status: str | None = None
    created: str | None = None
    live_flag: str | None = None
    environment: str | None = None

    @property
    def physical_columns(self) -> list[str]:
        columns = [
            self.name,
            self.id,
            self.description,
            self.owner,
            self.status,
            self.created,
            self.live_flag,
            self.environment,
        ]
        return list(dict.fromkeys(c for c in columns if c is not None))


def map_use_case_source_columns(schema: TableSchema) -> UseCaseSourceMapping:
    """Map directory roles for the adaptive use case table.

    Raises:
        MappingError: If no name-like column exists.
    """
    found = {role: _detect(schema, candidates) for role, candidates in USE_CASE_SOURCE_CANDIDATES.items()}
    name = found.pop("name")
    if name is None:
        raise MappingError(schema.table, ["name"])
    return UseCaseSourceMapping(table=schema.table, name=name, **found)


@dataclass(frozen=True)
class OverviewMapping:
    """Columns used for the stakeholder overview lookup."""

    table: str
    name: str
    stakeholder: str | None = None
    description: str | None = None
    hld_url: str | None = None

    @property
    def physical_columns(self) -> list[str]:
        columns = [self.name, self.stakeholder, self.description, self.hld_url]
        return list(dict.fromkeys(c for c in columns if c is not None))


def map_overview_columns(schema: TableSchema) -> OverviewMapping:
    """Map overview roles for the adaptive use case table.

    Raises:
        MappingError: If no name-like column exists.
    """
    found = {role: _detect(schema, candidates) for role, candidates in OVERVIEW_CANDIDATES.items()}
    name = found.pop("name")
    if name is None:
        raise MappingError(schema.table, ["name"])
    return OverviewMapping(table=schema.table, name=name, **found)
