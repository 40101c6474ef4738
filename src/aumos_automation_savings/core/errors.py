"""Error taxonomy for the AumOS automation savings reporting core.

ConfigurationError and MappingError are fatal for the call that raised them.
MissingRelationError is the one recoverable database failure: callers that
read optional tables degrade to empty results when they see it. Every other
ExecutionError propagates to the API layer unchanged in meaning.
"""

from __future__ import annotations

from collections.abc import Sequence

UNDEFINED_TABLE_SQLSTATE = "42P01"


class SavingsServiceError(Exception):
    """Base class for all errors raised by the reporting core."""


class ConfigurationError(SavingsServiceError):
    """No database connection is configured for the service."""


class InvalidWindowError(SavingsServiceError, ValueError):
    """A reporting window bound could not be parsed as a date or datetime."""


class MappingError(SavingsServiceError):
    """A mandatory semantic column could not be resolved for a table.

    Attributes:
        table: The externally-owned table that was being mapped.
        roles: The semantic roles (name, date, ...) that had no matching column.
    """

    def __init__(self, table: str, roles: Sequence[str]) -> None:
        self.table = table
        self.roles = tuple(roles)
        super().__init__(
            f"Unable to detect {'/'.join(self.roles)} column(s) in table '{table}'"
        )


class ExecutionError(SavingsServiceError):
    """A database statement failed.

    The originating driver exception is always chained as ``__cause__``.

    Attributes:
        sqlstate: PostgreSQL SQLSTATE code reported by the driver, if any.
    """

    def __init__(self, message: str, sqlstate: str | None = None) -> None:
        self.sqlstate = sqlstate
        super().__init__(message)


class MissingRelationError(ExecutionError):
    """The target relation does not exist (SQLSTATE 42P01).

    Attributes:
        relation: Name of the missing relation when the driver reported it.
    """

    def __init__(self, message: str, relation: str | None = None) -> None:
        self.relation = relation
        super().__init__(message, sqlstate=UNDEFINED_TABLE_SQLSTATE)


class SchemaError(SavingsServiceError):
    """An information_schema probe failed for a table."""

    def __init__(self, table: str, message: str) -> None:
        self.table = table
        super().__init__(f"Schema probe failed for table '{table}': {message}")
