"""Async engine lifecycle and the query executor used by every repository.

One pooled AsyncEngine (asyncpg) is created at startup. Each request gets
its own AsyncSession through the ``get_db_session`` FastAPI dependency.

QueryExecutor is the only place driver errors are classified. A failed
statement aborts the PostgreSQL transaction, so the executor rolls the
session back before raising; later statements in the same request (the
directory fallback, optional-table reads) then run normally.
"""

import re
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

import structlog
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.sql import Executable

from aumos_automation_savings.core.errors import (
    UNDEFINED_TABLE_SQLSTATE,
    ConfigurationError,
    ExecutionError,
    MissingRelationError,
)
from aumos_automation_savings.settings import Settings

logger = structlog.get_logger(__name__)

_RELATION_NAME = re.compile(r'relation "([^"]+)" does not exist')

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def build_engine(settings: Settings) -> AsyncEngine:
    """Create a pooled asyncpg engine from settings.

    Unqualified table references are routed to ``pg_schema`` through the
    schema translate map, so statements never embed a schema name.

    Raises:
        ConfigurationError: If no database is configured.
    """
    connect_args: dict[str, Any] = {}
    if (settings.pg_ssl or "").strip().lower() == "require":
        connect_args["ssl"] = "require"

    execution_options: dict[str, Any] = {}
    if settings.pg_schema:
        execution_options["schema_translate_map"] = {None: settings.pg_schema}

    return create_async_engine(
        settings.resolve_database_url(),
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=True,
        connect_args=connect_args,
        execution_options=execution_options,
    )


def init_database(settings: Settings) -> AsyncEngine:
    """Create the process-wide engine and session factory."""
    global _engine, _session_factory
    _engine = build_engine(settings)
    _session_factory = async_sessionmaker(_engine, expire_on_commit=False)
    logger.info(
        "database_initialized",
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        schema=settings.pg_schema,
    )
    return _engine


async def dispose_database() -> None:
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None


async def get_db_session() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency yielding one session per request.

    Raises:
        ConfigurationError: If ``init_database`` has not succeeded.
    """
    if _session_factory is None:
        raise ConfigurationError(
            "Database not configured: set AUMOS_SAVINGS_DATABASE_URL or AUMOS_SAVINGS_PG_HOST"
        )
    async with _session_factory() as session:
        yield session


def sqlstate_of(exc: BaseException) -> str | None:
    """Extract the PostgreSQL SQLSTATE from a SQLAlchemy-wrapped driver error."""
    orig = getattr(exc, "orig", None)
    if orig is None:
        return None
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


@dataclass
class QueryOutcome:
    """Rows from a read of an optional table.

    Attributes:
        rows: Result rows as dicts keyed by column label.
        relation_missing: True when the table does not exist; ``rows`` is empty.
    """

    rows: list[dict[str, Any]] = field(default_factory=list)
    relation_missing: bool = False


class QueryExecutor:
    """Runs read-only statements on a session and classifies failures."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def fetch_all(self, statement: Executable) -> list[dict[str, Any]]:
        """Execute a statement and return every row as a dict.

        Raises:
            MissingRelationError: The statement references a table that does not exist.
            ExecutionError: Any other database failure. The driver error is the cause.
        """
        try:
            result = await self._session.execute(statement)
            return [dict(row) for row in result.mappings().all()]
        except DBAPIError as exc:
            await self._session.rollback()
            message = str(exc.orig) if exc.orig is not None else str(exc)
            sqlstate = sqlstate_of(exc)
            if sqlstate == UNDEFINED_TABLE_SQLSTATE:
                match = _RELATION_NAME.search(message)
                raise MissingRelationError(message, relation=match.group(1) if match else None) from exc
            raise ExecutionError(message, sqlstate=sqlstate) from exc
        except SQLAlchemyError as exc:
            await self._session.rollback()
            raise ExecutionError(str(exc)) from exc

    async def fetch_if_present(self, statement: Executable) -> QueryOutcome:
        """Execute a statement against an optional table.

        A missing relation yields an empty outcome flagged ``relation_missing``
        instead of an error. Every other failure propagates.
        """
        try:
            rows = await self.fetch_all(statement)
        except MissingRelationError as exc:
            logger.warning("optional_relation_missing", relation=exc.relation, error=str(exc))
            return QueryOutcome(relation_missing=True)
        return QueryOutcome(rows=rows)
