"""Table existence and column discovery through information_schema."""

import time
from collections.abc import Callable

import structlog

from aumos_automation_savings.adapters.database import QueryExecutor
from aumos_automation_savings.core.entities import ColumnInfo, TableSchema
from aumos_automation_savings.core.errors import ExecutionError, SchemaError
from aumos_automation_savings.core.query_builder import table_columns_query, table_exists_query

logger = structlog.get_logger(__name__)


class TableExistenceCache:
    """Remembers whether tables exist.

    Entries never expire unless ``ttl_seconds`` is set. Writes are
    idempotent overwrites, so sharing one instance across concurrent
    requests is safe on a single event loop.
    """

    def __init__(
        self,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[bool, float]] = {}

    def get(self, table: str) -> bool | None:
        """Cached answer for ``table``, or None when unknown or expired."""
        entry = self._entries.get(table)
        if entry is None:
            return None
        exists, stored_at = entry
        if self._ttl_seconds is not None and self._clock() - stored_at >= self._ttl_seconds:
            del self._entries[table]
            return None
        return exists

    def set(self, table: str, exists: bool) -> None:
        self._entries[table] = (exists, self._clock())

    def invalidate(self, table: str) -> None:
        self._entries.pop(table, None)

    def clear(self) -> None:
        self._entries.clear()


class SchemaProber:
    """Answers "does this table exist" and "what columns does it have".

    Args:
        executor: Executor bound to the request session.
        schema: Schema to probe. None means the connection's current_schema().
        cache: Existence cache, usually shared for the process lifetime.
    """

    def __init__(
        self,
        executor: QueryExecutor,
        schema: str | None = None,
        cache: TableExistenceCache | None = None,
    ) -> None:
        self._executor = executor
        self._schema = schema or None
        self._cache = cache if cache is not None else TableExistenceCache()

    @property
    def cache(self) -> TableExistenceCache:
        return self._cache

    async def table_exists(self, table: str) -> bool:
        """Return True if ``table`` exists in the probed schema.

        Raises:
            SchemaError: If the probe query fails.
        """
        cached = self._cache.get(table)
        if cached is not None:
            return cached
        try:
            rows = await self._executor.fetch_all(table_exists_query(table, self._schema))
        except ExecutionError as exc:
            raise SchemaError(table, str(exc)) from exc
        exists = bool(rows and rows[0].get("exists"))
        self._cache.set(table, exists)
        logger.debug("table_existence_probed", table=table, exists=exists, schema=self._schema)
        return exists

    async def get_columns(self, table: str) -> list[ColumnInfo]:
        """Columns of ``table`` in ordinal order; empty when the table is absent.

        Raises:
            SchemaError: If the probe query fails.
        """
        try:
            rows = await self._executor.fetch_all(table_columns_query(table, self._schema))
        except ExecutionError as exc:
            raise SchemaError(table, str(exc)) from exc
        return [ColumnInfo(name=row["column_name"], data_type=row["data_type"]) for row in rows]

    async def describe(self, table: str) -> TableSchema | None:
        columns = await self.get_columns(table)
        if not columns:
            return None
        return TableSchema(table=table, columns=tuple(columns))
