"""SQLAlchemy Core statements for every query the reporting core issues.

Statements are built from column mappings, never from string concatenation.
Identifiers are quoted by the dialect and every user-supplied value is a
bound parameter. Nothing here touches a connection, so each builder can be
compiled against the PostgreSQL dialect in unit tests.

Grouped queries inline their constants (``literal_column``) so that the
SELECT and GROUP BY expressions render identically; PostgreSQL treats two
distinct bind parameters as different expressions.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

import sqlalchemy as sa
from sqlalchemy import func
from sqlalchemy.dialects.postgresql import TIMESTAMP

from aumos_automation_savings.core.column_mapper import (
    COUNT_ROLES,
    ColumnMapping,
    ColumnRole,
    OverviewMapping,
    UseCaseSourceMapping,
)
from aumos_automation_savings.core.entities import RunStatus, UseCaseStatus, normalize_name
from aumos_automation_savings.core.models import AutomationRun, UseCase
from aumos_automation_savings.core.periods import ReportingWindow

TIMESTAMPTZ = TIMESTAMP(timezone=True)

SAVINGS_COLUMNS: tuple[str, ...] = (
    "use_case_name",
    "savings_type",
    "fixed_savings_per_run",
    "savings_per_run",
    "partial_savings_per_run",
)

_INFORMATION_SCHEMA_TABLES = sa.table(
    "tables",
    sa.column("table_schema"),
    sa.column("table_name"),
    schema="information_schema",
)
_INFORMATION_SCHEMA_COLUMNS = sa.table(
    "columns",
    sa.column("table_schema"),
    sa.column("table_name"),
    sa.column("column_name"),
    sa.column("data_type"),
    sa.column("ordinal_position"),
    schema="information_schema",
)


# ---------------------------------------------------------------------------
# Fragments
# ---------------------------------------------------------------------------


def table_ref(name: str, columns: Iterable[str] = ()) -> sa.TableClause:
    """Lightweight table reference for a table we have no ORM class for."""
    return sa.table(name, *(sa.column(column) for column in columns))


def as_text(expr: sa.ColumnElement) -> sa.ColumnElement:
    return sa.cast(expr, sa.Text)


def normalized(expr: sa.ColumnElement) -> sa.ColumnElement:
    """SQL form of the normalized-name join key: LOWER(TRIM(expr))."""
    return func.lower(func.trim(expr))


def _null_text() -> sa.ColumnElement:
    return sa.cast(sa.null(), sa.Text)


def _text_or_null(table: sa.TableClause, column: str | None) -> sa.ColumnElement:
    return as_text(table.c[column]) if column is not None else _null_text()


def date_window_clause(column: sa.ColumnElement, window: ReportingWindow) -> sa.ColumnElement[bool]:
    """``column`` cast to timestamptz within [window.start, window.end_exclusive)."""
    ts = sa.cast(column, TIMESTAMPTZ)
    return sa.and_(ts >= window.start, ts < window.end_exclusive)


def name_filter_clauses(
    name_text: sa.ColumnElement,
    search: str | None = None,
    names: Sequence[str] | None = None,
) -> list[sa.ColumnElement[bool]]:
    """Substring search and exact normalized-name filters. Blank inputs are ignored."""
    clauses: list[sa.ColumnElement[bool]] = []
    term = (search or "").strip()
    if term:
        clauses.append(name_text.ilike(f"%{term}%"))
    wanted = list(dict.fromkeys(normalize_name(n) for n in names or () if normalize_name(n)))
    if wanted:
        clauses.append(normalized(name_text).in_(wanted))
    return clauses


def _count_columns(table: sa.TableClause, mapping: ColumnMapping) -> list[sa.Label]:
    columns = []
    for role in COUNT_ROLES:
        physical = mapping.column_for(role)
        if physical is None:
            expr = sa.literal_column("0", sa.BigInteger)
        else:
            expr = sa.cast(func.sum(func.coalesce(table.c[physical], sa.literal_column("0"))), sa.BigInteger)
        columns.append(expr.label(role.value))
    return columns


def _where(stmt: sa.Select, clauses: Sequence[sa.ColumnElement[bool]]) -> sa.Select:
    return stmt.where(*clauses) if clauses else stmt


# ---------------------------------------------------------------------------
# information_schema probes
# ---------------------------------------------------------------------------


def _schema_scope(column: sa.ColumnElement, schema: str | None) -> sa.ColumnElement[bool]:
    if schema:
        return column == schema
    return column == func.current_schema()


def table_exists_query(table: str, schema: str | None = None) -> sa.Select:
    t = _INFORMATION_SCHEMA_TABLES
    inner = sa.select(t.c.table_name).where(
        _schema_scope(t.c.table_schema, schema),
        t.c.table_name == table,
    )
    return sa.select(inner.exists().label("exists"))


def table_columns_query(table: str, schema: str | None = None) -> sa.Select:
    c = _INFORMATION_SCHEMA_COLUMNS
    return (
        sa.select(c.c.column_name, c.c.data_type)
        .where(_schema_scope(c.c.table_schema, schema), c.c.table_name == table)
        .order_by(c.c.ordinal_position)
    )


# ---------------------------------------------------------------------------
# Reporting table
# ---------------------------------------------------------------------------


def reporting_aggregate_query(
    mapping: ColumnMapping,
    window: ReportingWindow,
    search: str | None = None,
    names: Sequence[str] | None = None,
) -> sa.Select:
    """Per use case count totals over the window, grouped by normalized and display name.

    The time filter is omitted when the mapping has no date column. Missing
    count columns are reported as constant zero.
    """
    mapping.require(ColumnRole.NAME)
    table = table_ref(mapping.table, mapping.physical_columns)
    name_text = as_text(table.c[mapping.name])
    key_name = normalized(name_text)

    clauses: list[sa.ColumnElement[bool]] = [name_text.is_not(None)]
    if mapping.date is not None:
        clauses.append(date_window_clause(table.c[mapping.date], window))
    clauses.extend(name_filter_clauses(name_text, search=search, names=names))

    stmt = sa.select(
        key_name.label("key_name"),
        name_text.label("use_case_name"),
        *_count_columns(table, mapping),
    ).select_from(table)
    return _where(stmt, clauses).group_by(key_name, name_text).order_by(sa.asc("use_case_name"))


def reporting_daily_query(
    mapping: ColumnMapping,
    window: ReportingWindow,
    search: str | None = None,
) -> sa.Select:
    """Count totals per calendar day and use case, newest day first."""
    mapping.require(ColumnRole.NAME, ColumnRole.DATE)
    table = table_ref(mapping.table, mapping.physical_columns)
    name_text = as_text(table.c[mapping.name])
    date_col = table.c[mapping.date]
    day = sa.cast(
        func.date_trunc(sa.literal_column("'day'"), sa.cast(date_col, TIMESTAMPTZ)),
        sa.Date,
    )

    clauses = [name_text.is_not(None), date_window_clause(date_col, window)]
    clauses.extend(name_filter_clauses(name_text, search=search))

    stmt = sa.select(
        day.label("day"),
        name_text.label("use_case_name"),
        *_count_columns(table, mapping),
    ).select_from(table)
    return (
        _where(stmt, clauses)
        .group_by(day, name_text)
        .order_by(sa.desc("day"), sa.asc("use_case_name"))
    )


# ---------------------------------------------------------------------------
# Savings reference table
# ---------------------------------------------------------------------------


def savings_config_query(
    table_name: str,
    name: str | None = None,
    search: str | None = None,
    savings_type: str | None = None,
    limit: int | None = None,
    offset: int | None = None,
) -> sa.Select:
    """Savings rows with null minutes coalesced to zero, in a stable order.

    The order is total over the selected columns so "first row wins"
    deduplication is deterministic.
    """
    t = table_ref(table_name, SAVINGS_COLUMNS)
    name_text = as_text(t.c.use_case_name)

    clauses: list[sa.ColumnElement[bool]] = [name_text.is_not(None)]
    if name is not None:
        clauses.append(normalized(name_text) == normalize_name(name))
    clauses.extend(name_filter_clauses(name_text, search=search))
    if savings_type:
        clauses.append(as_text(t.c.savings_type) == savings_type)

    stmt = sa.select(
        func.md5(name_text).label("id"),
        name_text.label("use_case_name"),
        as_text(t.c.savings_type).label("savings_type"),
        func.coalesce(t.c.fixed_savings_per_run, 0).label("fixed_savings_per_run"),
        func.coalesce(t.c.savings_per_run, 0).label("savings_per_run"),
        func.coalesce(t.c.partial_savings_per_run, 0).label("partial_savings_per_run"),
    ).select_from(t)
    stmt = _where(stmt, clauses).order_by(
        sa.asc("use_case_name"),
        sa.asc("savings_type"),
        sa.asc("fixed_savings_per_run"),
        sa.asc("savings_per_run"),
        sa.asc("partial_savings_per_run"),
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    if offset is not None:
        stmt = stmt.offset(offset)
    return stmt


def savings_types_query(table_name: str) -> sa.Select:
    t = table_ref(table_name, ("savings_type",))
    return (
        sa.select(as_text(t.c.savings_type).label("savings_type"))
        .where(t.c.savings_type.is_not(None))
        .distinct()
        .order_by(sa.asc("savings_type"))
    )


# ---------------------------------------------------------------------------
# Use case directory
# ---------------------------------------------------------------------------


def derived_status_expression(table: sa.TableClause, mapping: UseCaseSourceMapping) -> sa.ColumnElement:
    """ACTIVE / DRAFT / DEPRECATED derived from a live flag or a free-text status."""
    if mapping.live_flag is not None:
        return sa.case(
            (table.c[mapping.live_flag] == sa.true(), UseCaseStatus.ACTIVE.value),
            else_=UseCaseStatus.DRAFT.value,
        )
    if mapping.status is not None:
        status = as_text(table.c[mapping.status])
        return sa.case(
            (status.ilike("deprec%"), UseCaseStatus.DEPRECATED.value),
            (status.ilike("draft%"), UseCaseStatus.DRAFT.value),
            (status.ilike("inactive%"), UseCaseStatus.DRAFT.value),
            else_=UseCaseStatus.ACTIVE.value,
        )
    return sa.cast(sa.literal(UseCaseStatus.ACTIVE.value), sa.Text)


def live_filter_clause(table: sa.TableClause, mapping: UseCaseSourceMapping) -> sa.ColumnElement[bool] | None:
    """Predicate selecting use cases live in production, or None when undeterminable."""
    if mapping.live_flag is not None:
        return table.c[mapping.live_flag] == sa.true()
    if mapping.status is not None:
        status = as_text(table.c[mapping.status])
        return sa.or_(
            status.ilike("live"),
            status.ilike("prod%"),
            status.ilike("production%"),
            status.ilike("active%"),
        )
    if mapping.environment is not None:
        env = as_text(table.c[mapping.environment])
        return sa.or_(env.ilike("prod"), env.ilike("prod%"), env.ilike("production%"))
    return None


def use_case_source_query(
    mapping: UseCaseSourceMapping,
    search: str | None = None,
    status: UseCaseStatus | None = None,
    live_only: bool = False,
    limit: int = 24,
    offset: int = 0,
) -> sa.Select:
    """Directory listing from the adaptive use case table."""
    t = table_ref(mapping.table, mapping.physical_columns)
    name_text = as_text(t.c[mapping.name])
    description = _text_or_null(t, mapping.description)
    status_expr = derived_status_expression(t, mapping)

    clauses: list[sa.ColumnElement[bool]] = [name_text.is_not(None)]
    if live_only:
        live = live_filter_clause(t, mapping)
        if live is not None:
            clauses.append(live)
    term = (search or "").strip()
    if term:
        like = f"%{term}%"
        desc_expr = description if mapping.description is not None else sa.literal_column("''")
        clauses.append(sa.or_(name_text.ilike(like), desc_expr.ilike(like)))
    if status is not None:
        clauses.append(status_expr == status.value)

    stmt = sa.select(
        (as_text(t.c[mapping.id]) if mapping.id is not None else func.md5(name_text)).label("id"),
        name_text.label("name"),
        description.label("description"),
        _text_or_null(t, mapping.owner).label("owner"),
        status_expr.label("status"),
        (as_text(t.c[mapping.created]) if mapping.created is not None else as_text(func.now())).label(
            "created_at"
        ),
    ).select_from(t)
    return _where(stmt, clauses).order_by(sa.asc("name")).limit(limit).offset(offset)


def canonical_use_case_query(
    search: str | None = None,
    status: UseCaseStatus | None = None,
    limit: int = 24,
    offset: int = 0,
) -> sa.Select:
    """Directory listing from automation_use_cases, newest first."""
    clauses: list[sa.ColumnElement[bool]] = []
    term = (search or "").strip()
    if term:
        like = f"%{term}%"
        clauses.append(sa.or_(UseCase.name.ilike(like), UseCase.description.ilike(like)))
    if status is not None:
        clauses.append(UseCase.status == status.value)

    stmt = sa.select(
        UseCase.id,
        UseCase.name,
        UseCase.description,
        UseCase.owner,
        UseCase.status,
        UseCase.created_at,
        UseCase.updated_at,
    )
    return _where(stmt, clauses).order_by(UseCase.created_at.desc()).limit(limit).offset(offset)


def overview_query(mapping: OverviewMapping, name: str) -> sa.Select:
    t = table_ref(mapping.table, mapping.physical_columns)
    name_text = as_text(t.c[mapping.name])
    return (
        sa.select(
            name_text.label("name"),
            _text_or_null(t, mapping.stakeholder).label("stakeholder"),
            _text_or_null(t, mapping.description).label("description"),
            _text_or_null(t, mapping.hld_url).label("hld_url"),
        )
        .select_from(t)
        .where(normalized(name_text) == normalize_name(name))
        .limit(1)
    )


def canonical_overview_query(name: str) -> sa.Select:
    return (
        sa.select(
            UseCase.name.label("name"),
            UseCase.owner.label("stakeholder"),
            UseCase.description.label("description"),
            _null_text().label("hld_url"),
        )
        .where(normalized(UseCase.name) == normalize_name(name))
        .limit(1)
    )


# ---------------------------------------------------------------------------
# Canonical run activity and operator helpers
# ---------------------------------------------------------------------------


def run_summary_query() -> sa.Select:
    return sa.select(
        func.count().label("total_runs"),
        func.count().filter(AutomationRun.status == RunStatus.PASS.value).label("passed"),
        func.count().filter(AutomationRun.status == RunStatus.FAIL.value).label("failed"),
        func.coalesce(sa.cast(func.round(func.avg(AutomationRun.duration_seconds)), sa.Integer), 0).label(
            "avg_duration_seconds"
        ),
    ).select_from(AutomationRun)


def recent_runs_query(limit: int) -> sa.Select:
    return (
        sa.select(
            AutomationRun.id,
            AutomationRun.use_case_id,
            UseCase.name.label("use_case_name"),
            AutomationRun.status,
            AutomationRun.duration_seconds,
            AutomationRun.started_at,
        )
        .select_from(AutomationRun)
        .join(UseCase, UseCase.id == AutomationRun.use_case_id)
        .order_by(AutomationRun.started_at.desc())
        .limit(limit)
    )


def row_count_query(table: str) -> sa.Select:
    return sa.select(func.count().label("n")).select_from(table_ref(table))


def sample_rows_query(table: str, limit: int = 5) -> sa.Select:
    return sa.select(sa.literal_column("*")).select_from(table_ref(table)).limit(limit)
