"""Shared test fixtures for aumos-automation-savings tests."""

import sys
from pathlib import Path

# Ensure the src/ layout is importable without installing the package.
_SRC_PATH = Path(__file__).parent.parent / "src"
if str(_SRC_PATH) not in sys.path:
    sys.path.insert(0, str(_SRC_PATH))

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from aumos_automation_savings.core.entities import ColumnInfo, SavingsConfig, TableSchema
from aumos_automation_savings.settings import Settings


def make_schema(table: str, *columns: str | tuple[str, str]) -> TableSchema:
    """Build a TableSchema; bare names get the "integer" data type."""
    infos = []
    for column in columns:
        name, data_type = column if isinstance(column, tuple) else (column, "integer")
        infos.append(ColumnInfo(name=name, data_type=data_type))
    return TableSchema(table=table, columns=tuple(infos))


@pytest.fixture
def settings() -> Settings:
    """Provide test settings with safe defaults and no database."""
    return Settings(
        _env_file=None,
        service_name="test-automation-savings",
        database_url=None,
        pg_host=None,
        reporting_table="reporting",
        savings_table="usecase_savings_ref",
        usecase_table="usecase_savings_ref",
        fixed_savings_period="per_week",
        aggregate_default_days=30,
        daily_default_days=7,
    )


@pytest.fixture
def now() -> datetime:
    """Provide a consistent reference time."""
    return datetime(2026, 2, 26, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def reporting_schema() -> TableSchema:
    """A reporting table using the most common column spellings."""
    return make_schema(
        "reporting",
        ("use_case_name", "text"),
        ("date", "date"),
        "success",
        "failure",
        "invalid",
        "partial",
    )


@pytest.fixture
def invoice_bot_config() -> SavingsConfig:
    return SavingsConfig(
        id="a1b2",
        use_case_name="invoice bot",
        savings_type="Fixed Weekly",
        fixed_minutes_per_run=5.0,
        variable_minutes_per_success=3.0,
        variable_minutes_per_partial=2.0,
    )


@pytest.fixture
def mock_executor() -> AsyncMock:
    """QueryExecutor double; fetch_all and fetch_if_present are configured per test."""
    executor = AsyncMock()
    executor.fetch_all = AsyncMock(return_value=[])
    executor.fetch_if_present = AsyncMock()
    return executor
