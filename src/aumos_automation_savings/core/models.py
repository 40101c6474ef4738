"""SQLAlchemy ORM models for the canonical automation tables.

These are the only tables this service owns. The reporting table and the
savings reference table belong to other teams and are read through the
adaptive column mapper instead of ORM classes.

Domain model:
  UseCase        — canonical list of automation use cases (automation_use_cases)
  AutomationRun  — individual executions of a use case (automation_runs)
"""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base holding the metadata for all owned tables."""


class UseCase(Base):
    """A canonical automation use case.

    Table: automation_use_cases
    """

    __tablename__ = "automation_use_cases"
    __table_args__ = (
        CheckConstraint(
            "status IN ('ACTIVE','DEPRECATED','DRAFT')",
            name="ck_automation_use_cases_status",
        ),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    owner: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        server_default="ACTIVE",
        comment="ACTIVE | DEPRECATED | DRAFT",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class AutomationRun(Base):
    """A single execution of a use case.

    Table: automation_runs
    """

    __tablename__ = "automation_runs"
    __table_args__ = (
        CheckConstraint(
            "status IN ('PASS','FAIL','SKIP','RUNNING')",
            name="ck_automation_runs_status",
        ),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    use_case_id: Mapped[str] = mapped_column(
        Text,
        ForeignKey("automation_use_cases.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[str] = mapped_column(Text, nullable=False, comment="PASS | FAIL | SKIP | RUNNING")
    duration_seconds: Mapped[int] = mapped_column(Integer, nullable=False)
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        index=True,
    )
