"""Tests for heuristic column detection over externally-owned tables."""

import pytest

from aumos_automation_savings.core.column_mapper import (
    ColumnMapping,
    ColumnRole,
    map_overview_columns,
    map_reporting_columns,
    map_use_case_source_columns,
    pick_first,
)
from aumos_automation_savings.core.entities import TableSchema
from aumos_automation_savings.core.errors import MappingError
from conftest import make_schema


class TestPickFirst:
    def test_returns_first_candidate_in_candidate_order(self) -> None:
        available = frozenset({"name", "usecase", "id"})
        assert pick_first(available, ["use_case_name", "usecase", "name"]) == "usecase"

    def test_returns_none_when_nothing_matches(self) -> None:
        assert pick_first(frozenset({"id"}), ["name", "title"]) is None

    def test_empty_candidates(self) -> None:
        assert pick_first(frozenset({"name"}), []) is None


class TestMapReportingColumns:
    """Tests for map_reporting_columns."""

    def test_detects_standard_columns(self, reporting_schema: TableSchema) -> None:
        mapping = map_reporting_columns(reporting_schema)

        assert mapping == ColumnMapping(
            table="reporting",
            name="use_case_name",
            date="date",
            success="success",
            failure="failure",
            invalid="invalid",
            partial="partial",
        )

    def test_alternate_spellings(self) -> None:
        schema = make_schema(
            "reporting",
            ("usecase", "text"),
            ("run_date", "date"),
            "passed",
            "failed",
            "skipped",
            "partially_successful",
        )

        mapping = map_reporting_columns(schema)

        assert mapping.name == "usecase"
        assert mapping.date == "run_date"
        assert mapping.success == "passed"
        assert mapping.failure == "failed"
        assert mapping.invalid == "skipped"
        assert mapping.partial == "partially_successful"

    def test_detection_is_case_insensitive_and_keeps_physical_spelling(self) -> None:
        schema = make_schema("reporting", ("UseCase_Name", "text"), "Success")

        mapping = map_reporting_columns(schema)

        assert mapping.name == "UseCase_Name"
        assert mapping.success == "Success"

    def test_candidate_order_wins_over_column_order(self) -> None:
        schema = make_schema("reporting", ("name", "text"), ("use_case_name", "text"))

        assert map_reporting_columns(schema).name == "use_case_name"

    def test_date_falls_back_to_first_date_typed_column(self) -> None:
        schema = make_schema(
            "reporting",
            ("use_case_name", "text"),
            ("loaded", "timestamp with time zone"),
            ("business_day", "date"),
            "success",
        )

        # "date" outranks the timestamp types regardless of column order
        assert map_reporting_columns(schema).date == "business_day"

    def test_date_fallback_uses_ordinal_order_within_a_type(self) -> None:
        schema = make_schema(
            "reporting",
            ("use_case_name", "text"),
            ("first_seen", "timestamp without time zone"),
            ("last_seen", "timestamp without time zone"),
        )

        assert map_reporting_columns(schema).date == "first_seen"

    def test_missing_counts_are_none(self) -> None:
        schema = make_schema("reporting", ("use_case_name", "text"), "success")

        mapping = map_reporting_columns(schema)

        assert mapping.failure is None
        assert mapping.invalid is None
        assert mapping.partial is None
        assert mapping.date is None

    def test_override_wins_over_detection(self, reporting_schema: TableSchema) -> None:
        schema = TableSchema(
            table="reporting",
            columns=reporting_schema.columns + make_schema("x", "ok_runs").columns,
        )

        mapping = map_reporting_columns(schema, {ColumnRole.SUCCESS: "  OK_RUNS "})

        assert mapping.success == "ok_runs"
        assert mapping.failure == "failure"

    def test_override_for_unprobed_column_is_kept(self) -> None:
        schema = make_schema("reporting", ("use_case_name", "text"))

        mapping = map_reporting_columns(schema, {ColumnRole.DATE: "event_day"})

        assert mapping.date == "event_day"


class TestColumnMapping:
    def test_require_names_every_missing_role(self) -> None:
        mapping = ColumnMapping(table="reporting", name=None, date=None)

        with pytest.raises(MappingError) as exc_info:
            mapping.require(ColumnRole.NAME, ColumnRole.DATE)

        assert exc_info.value.table == "reporting"
        assert exc_info.value.roles == ("name", "date")
        assert "reporting" in str(exc_info.value)

    def test_require_passes_when_present(self) -> None:
        ColumnMapping(table="reporting", name="n", date="d").require(ColumnRole.NAME, ColumnRole.DATE)

    def test_physical_columns_are_distinct(self) -> None:
        mapping = ColumnMapping(table="reporting", name="n", date="d", success="s", failure="s")

        assert mapping.physical_columns == ["n", "d", "s"]


class TestUseCaseSourceMapping:
    def test_maps_directory_roles(self) -> None:
        schema = make_schema(
            "usecase_savings_ref",
            ("uc_id", "text"),
            ("title", "text"),
            ("details", "text"),
            ("squad", "text"),
            ("state", "text"),
            ("created_on", "date"),
            ("is_live", "boolean"),
            ("env", "text"),
        )

        mapping = map_use_case_source_columns(schema)

        assert mapping.id == "uc_id"
        assert mapping.name == "title"
        assert mapping.description == "details"
        assert mapping.owner == "squad"
        assert mapping.status == "state"
        assert mapping.created == "created_on"
        assert mapping.live_flag == "is_live"
        assert mapping.environment == "env"

    def test_name_is_mandatory(self) -> None:
        schema = make_schema("usecase_savings_ref", ("savings_type", "text"))

        with pytest.raises(MappingError) as exc_info:
            map_use_case_source_columns(schema)

        assert exc_info.value.table == "usecase_savings_ref"


class TestOverviewMapping:
    def test_maps_overview_roles(self) -> None:
        schema = make_schema(
            "usecase_savings_ref",
            ("use_case_name", "text"),
            ("business_owner", "text"),
            ("short_description", "text"),
            ("description", "text"),
            ("confluence_link", "text"),
        )

        mapping = map_overview_columns(schema)

        assert mapping.name == "use_case_name"
        assert mapping.stakeholder == "business_owner"
        assert mapping.description == "short_description"
        assert mapping.hld_url == "confluence_link"

    def test_optional_roles_may_be_missing(self) -> None:
        mapping = map_overview_columns(make_schema("t", ("name", "text")))

        assert mapping.stakeholder is None
        assert mapping.hld_url is None
        assert mapping.physical_columns == ["name"]
