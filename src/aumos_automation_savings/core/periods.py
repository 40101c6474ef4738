"""Reporting windows and fixed-savings amortization periods.

Window rules:
  - Date-only strings (YYYY-MM-DD) are UTC midnight; naive datetimes are UTC.
  - A reversed pair (from > to) is swapped.
  - ``to`` is an inclusive day, so queries use ``to + 1 day`` as an exclusive bound.

Period counting over [start, end_exclusive):
  - per_range  -> 1
  - per_day    -> ceil(days), at least 1
  - per_week   -> ceil(days / 7), at least 1
  - per_month  -> calendar months from month-of(start) to month-of(end_exclusive), inclusive
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from enum import Enum

from aumos_automation_savings.core.errors import InvalidWindowError

ONE_DAY = timedelta(days=1)

_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class FixedPeriod(str, Enum):
    """How fixed savings are amortized over a reporting window."""

    PER_DAY = "per_day"
    PER_WEEK = "per_week"
    PER_MONTH = "per_month"
    PER_RANGE = "per_range"


_FIXED_PERIOD_ALIASES: dict[str, FixedPeriod] = {
    "per_day": FixedPeriod.PER_DAY,
    "day": FixedPeriod.PER_DAY,
    "daily": FixedPeriod.PER_DAY,
    "per_week": FixedPeriod.PER_WEEK,
    "week": FixedPeriod.PER_WEEK,
    "weekly": FixedPeriod.PER_WEEK,
    "per_month": FixedPeriod.PER_MONTH,
    "month": FixedPeriod.PER_MONTH,
    "monthly": FixedPeriod.PER_MONTH,
    "per_range": FixedPeriod.PER_RANGE,
    "range": FixedPeriod.PER_RANGE,
    "total": FixedPeriod.PER_RANGE,
}


def parse_fixed_period(value: str | FixedPeriod | None) -> FixedPeriod | None:
    """Parse a fixed period name or alias. Returns None for blank or unknown values."""
    if isinstance(value, FixedPeriod):
        return value
    key = (value or "").strip().lower()
    return _FIXED_PERIOD_ALIASES.get(key)


def coerce_instant(value: str | date | datetime | None) -> datetime | None:
    """Convert a window bound into an aware UTC datetime.

    Args:
        value: ISO date, ISO datetime, date or datetime. Blank means "not given".

    Returns:
        The instant, or None when no value was given.

    Raises:
        InvalidWindowError: If a string cannot be parsed.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)

    text = value.strip()
    if not text:
        return None
    if _DATE_ONLY.match(text):
        try:
            return datetime.strptime(text, "%Y-%m-%d").replace(tzinfo=timezone.utc)
        except ValueError as exc:
            raise InvalidWindowError(f"Invalid date '{value}'") from exc
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError as exc:
        raise InvalidWindowError(f"Invalid date or datetime '{value}'") from exc
    return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class ReportingWindow:
    """A resolved reporting range.

    Attributes:
        start: Inclusive lower bound (UTC).
        end: The inclusive ``to`` day as given (UTC).
    """

    start: datetime
    end: datetime

    @property
    def end_exclusive(self) -> datetime:
        """Exclusive upper bound used in queries: one day past ``end``."""
        return self.end + ONE_DAY


def resolve_window(
    from_: str | date | datetime | None,
    to: str | date | datetime | None,
    default_days: int,
    now: datetime | None = None,
) -> ReportingWindow:
    """Resolve optional window bounds, applying defaults and swapping reversed pairs.

    Args:
        from_: Lower bound. Defaults to ``now - default_days``.
        to: Inclusive upper day. Defaults to ``now``.
        default_days: Look-back used when ``from_`` is omitted.
        now: Reference time, injectable for tests.

    Returns:
        A ReportingWindow with ``start <= end``.
    """
    now = now or datetime.now(timezone.utc)
    start = coerce_instant(from_) or now - timedelta(days=default_days)
    end = coerce_instant(to) or now
    if start > end:
        start, end = end, start
    return ReportingWindow(start=start, end=end)


def count_fixed_periods(period: FixedPeriod, start: datetime, end_exclusive: datetime) -> int:
    """Number of amortization periods overlapping [start, end_exclusive)."""
    if period is FixedPeriod.PER_RANGE:
        return 1

    days = (end_exclusive - start).total_seconds() / ONE_DAY.total_seconds()
    if period is FixedPeriod.PER_DAY:
        return max(1, math.ceil(days))
    if period is FixedPeriod.PER_WEEK:
        return max(1, math.ceil(days / 7))

    start_utc = start.astimezone(timezone.utc)
    end_utc = end_exclusive.astimezone(timezone.utc)
    months = (end_utc.year - start_utc.year) * 12 + (end_utc.month - start_utc.month)
    return max(1, months + 1)
