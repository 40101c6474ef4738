"""Service settings for the AumOS automation savings reporting service."""

from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL

from aumos_automation_savings.core.column_mapper import ColumnRole
from aumos_automation_savings.core.errors import ConfigurationError

_ASYNC_DRIVER = "postgresql+asyncpg"


class Settings(BaseSettings):
    """Configuration for the automation savings service.

    Database access is configured either with a single ``database_url`` or
    with discrete ``pg_*`` fields. Table names and reporting column overrides
    let the service follow externally-owned tables whose names drift.
    """

    service_name: str = "aumos-automation-savings"
    log_level: str = "INFO"
    log_json: bool = True

    # Connection
    database_url: str | None = None
    pg_host: str | None = None
    pg_port: int = 5432
    pg_user: str | None = None
    pg_password: str | None = None
    pg_database: str | None = None
    pg_ssl: str | None = None  # "require" enables TLS
    pg_schema: str | None = None  # None -> current_schema()
    db_pool_size: int = 10
    db_max_overflow: int = 5

    # Externally-owned tables
    reporting_table: str = "reporting"
    savings_table: str = "usecase_savings_ref"
    usecase_table: str = "usecase_savings_ref"

    # Reporting column overrides (win over detection)
    reporting_name_column: str | None = None
    reporting_date_column: str | None = None
    reporting_success_column: str | None = None
    reporting_failure_column: str | None = None
    reporting_invalid_column: str | None = None
    reporting_partial_column: str | None = None

    # Aggregation defaults
    fixed_savings_period: str = "per_week"
    aggregate_default_days: int = 30
    daily_default_days: int = 7

    # None keeps table-existence answers for the process lifetime
    table_cache_ttl_seconds: float | None = None

    model_config = SettingsConfigDict(env_prefix="AUMOS_SAVINGS_", env_file=".env", extra="ignore")

    @property
    def database_configured(self) -> bool:
        return bool(self.database_url or self.pg_host)

    def resolve_database_url(self) -> str:
        """Return an asyncpg SQLAlchemy URL for the configured database.

        Raises:
            ConfigurationError: If neither ``database_url`` nor ``pg_host`` is set.
        """
        if not self.database_configured:
            raise ConfigurationError(
                "Database not configured: set AUMOS_SAVINGS_DATABASE_URL or AUMOS_SAVINGS_PG_HOST"
            )
        if self.database_url:
            url = self.database_url
            for prefix in ("postgresql+asyncpg://", "postgresql://", "postgres://"):
                if url.startswith(prefix):
                    return f"{_ASYNC_DRIVER}://{url[len(prefix):]}"
            return url
        return URL.create(
            _ASYNC_DRIVER,
            username=self.pg_user,
            password=self.pg_password,
            host=self.pg_host,
            port=self.pg_port,
            database=self.pg_database,
        ).render_as_string(hide_password=False)

    def reporting_column_overrides(self) -> dict[ColumnRole, str]:
        """Configured reporting column overrides keyed by role, blanks dropped."""
        configured = {
            ColumnRole.NAME: self.reporting_name_column,
            ColumnRole.DATE: self.reporting_date_column,
            ColumnRole.SUCCESS: self.reporting_success_column,
            ColumnRole.FAILURE: self.reporting_failure_column,
            ColumnRole.INVALID: self.reporting_invalid_column,
            ColumnRole.PARTIAL: self.reporting_partial_column,
        }
        return {role: value.strip().lower() for role, value in configured.items() if value and value.strip()}
