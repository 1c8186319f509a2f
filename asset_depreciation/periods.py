"""
Calendar-month period arithmetic.

Depreciation is posted per calendar month: a period runs from the 1st to
the last day of the month containing the calculation date.
"""

import calendar
from datetime import date


def days_in_month(day: date) -> int:
    return calendar.monthrange(day.year, day.month)[1]


def month_start(day: date) -> date:
    return day.replace(day=1)


def month_end(day: date) -> date:
    return day.replace(day=days_in_month(day))


def next_month_start(day: date) -> date:
    if day.month == 12:
        return date(day.year + 1, 1, 1)
    return date(day.year, day.month + 1, 1)
