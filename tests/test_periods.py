"""Tests for reporting window resolution and fixed period counting."""

from datetime import date, datetime, timedelta, timezone

import pytest

from aumos_automation_savings.core.errors import InvalidWindowError
from aumos_automation_savings.core.periods import (
    FixedPeriod,
    coerce_instant,
    count_fixed_periods,
    parse_fixed_period,
    resolve_window,
)


def _utc(year: int, month: int, day: int, hour: int = 0) -> datetime:
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


class TestParseFixedPeriod:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("per_day", FixedPeriod.PER_DAY),
            ("Daily", FixedPeriod.PER_DAY),
            ("WEEK", FixedPeriod.PER_WEEK),
            (" monthly ", FixedPeriod.PER_MONTH),
            ("total", FixedPeriod.PER_RANGE),
            ("range", FixedPeriod.PER_RANGE),
        ],
    )
    def test_names_and_aliases(self, value: str, expected: FixedPeriod) -> None:
        assert parse_fixed_period(value) is expected

    @pytest.mark.parametrize("value", [None, "", "   ", "fortnightly"])
    def test_blank_or_unknown_is_none(self, value: str | None) -> None:
        assert parse_fixed_period(value) is None


class TestCoerceInstant:
    def test_date_only_string_is_utc_midnight(self) -> None:
        assert coerce_instant("2025-03-04") == _utc(2025, 3, 4)

    def test_naive_datetime_string_is_utc(self) -> None:
        assert coerce_instant("2025-03-04T10:00:00") == _utc(2025, 3, 4, 10)

    def test_zulu_suffix(self) -> None:
        assert coerce_instant("2025-03-04T10:00:00Z") == _utc(2025, 3, 4, 10)

    def test_offset_is_preserved(self) -> None:
        value = coerce_instant("2025-03-04T12:00:00+02:00")
        assert value == _utc(2025, 3, 4, 10)

    def test_date_object(self) -> None:
        assert coerce_instant(date(2025, 3, 4)) == _utc(2025, 3, 4)

    def test_blank_is_none(self) -> None:
        assert coerce_instant("  ") is None
        assert coerce_instant(None) is None

    @pytest.mark.parametrize("value", ["yesterday", "2025-13-40"])
    def test_invalid_raises(self, value: str) -> None:
        with pytest.raises(InvalidWindowError):
            coerce_instant(value)


class TestResolveWindow:
    def test_defaults_look_back_from_now(self) -> None:
        now = _utc(2026, 2, 26, 12)

        window = resolve_window(None, None, default_days=30, now=now)

        assert window.start == now - timedelta(days=30)
        assert window.end == now

    def test_to_is_inclusive_day(self) -> None:
        window = resolve_window("2025-01-01", "2025-01-07", default_days=30)

        assert window.end_exclusive == _utc(2025, 1, 8)

    def test_reversed_pair_is_swapped(self) -> None:
        window = resolve_window("2025-01-07", "2025-01-01", default_days=30)

        assert window.start == _utc(2025, 1, 1)
        assert window.end == _utc(2025, 1, 7)


class TestCountFixedPeriods:
    def test_per_range_is_always_one(self) -> None:
        assert count_fixed_periods(FixedPeriod.PER_RANGE, _utc(2025, 1, 1), _utc(2025, 6, 1)) == 1

    def test_per_day_rounds_up(self) -> None:
        assert count_fixed_periods(FixedPeriod.PER_DAY, _utc(2025, 1, 1), _utc(2025, 1, 8)) == 7
        assert count_fixed_periods(FixedPeriod.PER_DAY, _utc(2025, 1, 1), _utc(2025, 1, 1, 1)) == 1

    def test_per_week_exact_week(self) -> None:
        assert count_fixed_periods(FixedPeriod.PER_WEEK, _utc(2025, 1, 1), _utc(2025, 1, 8)) == 1

    def test_per_week_partial_week_rounds_up(self) -> None:
        assert count_fixed_periods(FixedPeriod.PER_WEEK, _utc(2025, 1, 1), _utc(2025, 1, 9)) == 2

    def test_per_week_empty_range_is_one(self) -> None:
        assert count_fixed_periods(FixedPeriod.PER_WEEK, _utc(2025, 1, 1), _utc(2025, 1, 1)) == 1

    def test_per_month_counts_touched_calendar_months(self) -> None:
        assert count_fixed_periods(FixedPeriod.PER_MONTH, _utc(2025, 1, 25), _utc(2025, 2, 4)) == 2
        assert count_fixed_periods(FixedPeriod.PER_MONTH, _utc(2024, 12, 1), _utc(2025, 2, 1)) == 3
