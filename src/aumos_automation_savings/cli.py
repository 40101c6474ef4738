"""Operator commands for the automation savings service."""

import asyncio
from pathlib import Path

import sqlalchemy as sa
import typer
from alembic import command
from alembic.config import Config
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from aumos_automation_savings.adapters.database import QueryExecutor, build_engine
from aumos_automation_savings.adapters.repositories import (
    ReportingRepository,
    SavingsConfigRepository,
    UseCaseRepository,
)
from aumos_automation_savings.adapters.schema_prober import SchemaProber
from aumos_automation_savings.core.entities import UseCaseStatus
from aumos_automation_savings.core.errors import SavingsServiceError
from aumos_automation_savings.core.models import AutomationRun, UseCase
from aumos_automation_savings.core.query_builder import row_count_query, sample_rows_query
from aumos_automation_savings.core.services import ReportingService, UseCaseDirectoryService
from aumos_automation_savings.observability import configure_logging
from aumos_automation_savings.settings import Settings

MIGRATIONS_DIR = Path(__file__).parent / "migrations"

SEED_OWNERS = ("QA", "Automation", "SDET Team", "Platform")
SEED_STATUSES = (UseCaseStatus.ACTIVE, UseCaseStatus.DRAFT, UseCaseStatus.DEPRECATED)
SEED_COUNT = 12

app = typer.Typer(
    help="Operator tools for the AumOS automation savings database",
    no_args_is_help=True,
)


def seed_use_cases(count: int = SEED_COUNT) -> list[UseCase]:
    """Sample canonical use cases, owners and statuses cycling."""
    return [
        UseCase(
            id=f"uc_{i}",
            name=f"Use Case {i}",
            description=f"Sample automation use case {i}",
            owner=SEED_OWNERS[i % len(SEED_OWNERS)],
            status=SEED_STATUSES[i % len(SEED_STATUSES)].value,
        )
        for i in range(1, count + 1)
    ]


def _load_settings() -> Settings:
    settings = Settings()
    configure_logging(settings)
    return settings


def _fail(message: str) -> None:
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(code=1)


async def _check_db(settings: Settings) -> None:
    engine = build_engine(settings)
    try:
        async with AsyncSession(engine) as session:
            executor = QueryExecutor(session)
            info = await executor.fetch_all(
                sa.select(
                    sa.func.now().label("now"),
                    sa.func.current_schema().label("schema"),
                    sa.func.version().label("version"),
                )
            )
            typer.echo(f"Connected: schema={info[0]['schema']} now={info[0]['now']}")
            typer.echo(info[0]["version"])

            prober = SchemaProber(executor, schema=settings.pg_schema)
            tables = dict.fromkeys(
                (
                    settings.reporting_table,
                    settings.savings_table,
                    settings.usecase_table,
                    UseCase.__tablename__,
                    AutomationRun.__tablename__,
                )
            )
            typer.echo(f"\n{'Table':<35} {'Exists':<8} {'Rows':<10}")
            typer.echo("-" * 55)
            for table in tables:
                exists = await prober.table_exists(table)
                rows = "-"
                if exists:
                    counted = await executor.fetch_all(row_count_query(table))
                    rows = str(counted[0]["n"])
                typer.echo(f"{table:<35} {'yes' if exists else 'no':<8} {rows:<10}")
    finally:
        await engine.dispose()


async def _peek_use_cases(settings: Settings, limit: int) -> bool:
    engine = build_engine(settings)
    try:
        async with AsyncSession(engine) as session:
            executor = QueryExecutor(session)
            prober = SchemaProber(executor, schema=settings.pg_schema)
            table = settings.usecase_table
            if not await prober.table_exists(table):
                typer.echo(f"Table '{table}' does not exist")
                return False

            typer.echo(f"Columns of {table}:")
            for column in await prober.get_columns(table):
                typer.echo(f"  {column.name:<35} {column.data_type}")

            typer.echo(f"\nFirst {limit} rows:")
            for row in await executor.fetch_all(sample_rows_query(table, limit)):
                typer.echo(f"  {row}")

            savings_repo = SavingsConfigRepository(executor, settings.savings_table)
            directory = UseCaseDirectoryService(
                use_case_repo=UseCaseRepository(executor, prober, settings),
                reporting_service=ReportingService(
                    ReportingRepository(executor, prober, settings), savings_repo, settings
                ),
                savings_repo=savings_repo,
                settings=settings,
            )
            typer.echo("\nDirectory view:")
            for use_case in await directory.list_use_cases(limit=limit):
                typer.echo(
                    f"  {use_case.id:<36} {use_case.name:<40} {use_case.status.value:<11} {use_case.owner or '-'}"
                )
            return True
    finally:
        await engine.dispose()


async def _seed(settings: Settings) -> int:
    engine = build_engine(settings)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    try:
        async with session_factory() as session:
            existing = await session.scalar(sa.select(sa.func.count()).select_from(UseCase))
            if existing:
                return 0
            seeded = seed_use_cases()
            session.add_all(seeded)
            await session.commit()
            return len(seeded)
    finally:
        await engine.dispose()


def alembic_config(database_url: str) -> Config:
    """Programmatic Alembic config pointing at the packaged migrations."""
    config = Config()
    config.set_main_option("script_location", str(MIGRATIONS_DIR))
    # configparser interpolation treats % specially
    config.set_main_option("sqlalchemy.url", database_url.replace("%", "%%"))
    return config


@app.command("check-db")
def check_db() -> None:
    """Check connectivity and report which tables exist with their row counts."""
    settings = _load_settings()
    try:
        asyncio.run(_check_db(settings))
    except SavingsServiceError as exc:
        _fail(str(exc))


@app.command("peek-use-cases")
def peek_use_cases(
    limit: int = typer.Option(5, "--limit", min=1, max=100, help="Rows to sample"),
) -> None:
    """Show the use case table's columns, sample rows and the mapped directory view."""
    settings = _load_settings()
    try:
        found = asyncio.run(_peek_use_cases(settings, limit))
    except SavingsServiceError as exc:
        _fail(str(exc))
        return
    if not found:
        raise typer.Exit(code=2)


@app.command("init-db")
def init_db(
    seed: bool = typer.Option(True, "--seed/--no-seed", help="Insert sample use cases when the table is empty"),
) -> None:
    """Create the canonical tables and optionally seed sample use cases."""
    settings = _load_settings()
    try:
        database_url = settings.resolve_database_url()
    except SavingsServiceError as exc:
        _fail(str(exc))
        return

    command.upgrade(alembic_config(database_url), "head")
    typer.echo("Schema is at head")

    if seed:
        inserted = asyncio.run(_seed(settings))
        if inserted:
            typer.echo(f"Seeded {inserted} sample use cases")
        else:
            typer.echo("automation_use_cases already has rows, nothing seeded")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
