"""Pure date helpers: which days are remote, and which of them are still open."""

from __future__ import annotations

import calendar
from collections.abc import Iterable, Sequence
from datetime import date, datetime, time, timedelta, tzinfo
from typing import List

from .models import Absence, MonthWindow


def remote_days_for_month(anchor: datetime, weekdays: Iterable[int]) -> List[datetime]:
    """Return every day of ``anchor``'s month whose ISO weekday is in ``weekdays``.

    Each day keeps the anchor's hour, minute and tzinfo so the result can be
    compared against absence instants directly. Days are in ascending order.
    """

    targets = frozenset(weekdays)
    days_in_month = calendar.monthrange(anchor.year, anchor.month)[1]
    days: List[datetime] = []
    for day_of_month in range(1, days_in_month + 1):
        day = datetime(
            anchor.year,
            anchor.month,
            day_of_month,
            anchor.hour,
            anchor.minute,
            tzinfo=anchor.tzinfo,
        )
        if day.isoweekday() in targets:
            days.append(day)
    return days


def uncovered_days(days: Sequence[datetime], absences: Iterable[Absence]) -> List[datetime]:
    """Keep the days no absence covers; order is preserved."""

    absences = list(absences)
    return [day for day in days if not any(absence.covers(day) for absence in absences)]


def month_window(anchor: date | datetime, zone: tzinfo) -> MonthWindow:
    """Query bounds for ``anchor``'s month.

    The lower bound is midnight of the previous month's last day, so absences
    starting right at the month boundary are included. The upper bound is
    midnight of the next month's first day.
    """

    first = date(anchor.year, anchor.month, 1)
    lower = datetime.combine(first - timedelta(days=1), time.min, tzinfo=zone)
    upper = datetime.combine(_first_of_next_month(first), time.min, tzinfo=zone)
    return MonthWindow(lower=lower, upper=upper)


def shift_months(reference: datetime, months: int) -> datetime:
    """Move ``reference`` by whole calendar months, clamping the day of month."""

    index = reference.year * 12 + (reference.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    day = min(reference.day, calendar.monthrange(year, month)[1])
    return reference.replace(year=year, month=month, day=day)


def day_bounds(day: date | datetime, zone: tzinfo) -> tuple[datetime, datetime]:
    """Local midnight of ``day`` and of the following day in ``zone``."""

    if isinstance(day, datetime):
        day = day.date()
    start = datetime.combine(day, time.min, tzinfo=zone)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=zone)
    return start, end


def month_label(anchor: date | datetime) -> str:
    return f"{anchor.month:02d}.{anchor.year}"


def _first_of_next_month(first: date) -> date:
    if first.month == 12:
        return date(first.year + 1, 1, 1)
    return date(first.year, first.month + 1, 1)


__all__ = [
    "remote_days_for_month",
    "uncovered_days",
    "month_window",
    "shift_months",
    "day_bounds",
    "month_label",
]
