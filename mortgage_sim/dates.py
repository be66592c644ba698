"""
Calendar Helpers

Copyright (c) 2024 Romain Bossut. All Rights Reserved.
This software is proprietary and confidential. Unauthorized copying, distribution,
or use of this software is strictly prohibited.
"""

import calendar
from datetime import date


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def get_calendar_date(start_date: date, month: int) -> date:
    """Calendar date of 1-based mortgage month `month` (month 1 is the start date)."""
    return add_months(start_date, month - 1)


def month_date_string(start_date: date | None, month: int) -> str:
    """ISO date of a mortgage month, or "" in relative mode."""
    if start_date is None:
        return ""
    return get_calendar_date(start_date, month).isoformat()


def get_calendar_year_for_month(start_date: date | None, month: int) -> int | None:
    if start_date is None:
        return None
    return get_calendar_date(start_date, month).year


def get_calendar_quarter(dt: date) -> int:
    """Quarter of the year, 1-4."""
    return (dt.month - 1) // 3 + 1


def mortgage_year(month: int) -> int:
    """Mortgage year of a 1-based month (months 1-12 are year 1)."""
    return (month + 11) // 12
