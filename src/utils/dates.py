"""Calendar helpers shared by the aggregation engines."""

import calendar
from datetime import date, timedelta
from typing import Union


def first_of_month(day: date) -> date:
    return day.replace(day=1)


def days_in_month(month: date) -> int:
    return calendar.monthrange(month.year, month.month)[1]


def month_days(month: date) -> list[date]:
    """Every calendar day of the month containing `month`."""
    start = first_of_month(month)
    return [start + timedelta(days=offset) for offset in range(days_in_month(month))]


def month_bounds(month: date) -> tuple[str, str]:
    """First and last day of the month as YYYY-MM-DD strings."""
    days = month_days(month)
    return days[0].isoformat(), days[-1].isoformat()


def to_date_str(day: Union[date, str]) -> str:
    """Normalize a date or YYYY-MM-DD string to YYYY-MM-DD."""
    if isinstance(day, date):
        return day.isoformat()
    return date.fromisoformat(day).isoformat()


def group_by_iso_week(days: list[date]) -> list[list[date]]:
    """
    Split consecutive days into Monday-start weeks.

    Weeks are keyed by (ISO year, ISO week) so a month spanning the
    new year stays in calendar order.
    """
    weeks: dict[tuple[int, int], list[date]] = {}
    for day in days:
        iso_year, iso_week, _ = day.isocalendar()
        weeks.setdefault((iso_year, iso_week), []).append(day)
    return [weeks[key] for key in sorted(weeks)]
