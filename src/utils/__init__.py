"""Utility helpers."""

from src.utils.dates import (
    days_in_month,
    first_of_month,
    group_by_iso_week,
    month_bounds,
    month_days,
    to_date_str,
)

__all__ = [
    "days_in_month",
    "first_of_month",
    "group_by_iso_week",
    "month_bounds",
    "month_days",
    "to_date_str",
]
