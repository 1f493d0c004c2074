"""
Recurrence date expansion.

Pure functions: the output depends only on the rule and the series start
date. The start date itself belongs to the parent booking and is never part
of the output.
"""

import calendar
from datetime import date, timedelta
from typing import List

from shared_types.availability import Weekday
from shared_types.scheduling import RecurrenceFrequency, RecurrenceRule


def add_months(start: date, months: int) -> date:
    """
    Move a date forward by whole months, keeping its day of month.

    If the target month is shorter, the day is clamped to the month's last
    day (Jan 31 + 1 month -> Feb 28 or 29).
    """
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(start.day, last_day))


def _daily(rule: RecurrenceRule, start_date: date) -> List[date]:
    dates: List[date] = []
    step = timedelta(days=rule.interval)
    current = start_date + step
    while current <= rule.end_date:
        dates.append(current)
        current += step
    return dates


def _weekly(rule: RecurrenceRule, start_date: date) -> List[date]:
    week_interval = rule.interval
    if rule.frequency is RecurrenceFrequency.BIWEEKLY:
        week_interval *= 2
    targets = rule.days_of_week or frozenset({Weekday.of(start_date)})

    dates: List[date] = []
    current = start_date + timedelta(days=1)
    while current <= rule.end_date:
        weeks_since_start = (current - start_date).days // 7
        if Weekday.of(current) in targets and weeks_since_start % week_interval == 0:
            dates.append(current)
        current += timedelta(days=1)
    return dates


def _monthly(rule: RecurrenceRule, start_date: date) -> List[date]:
    dates: List[date] = []
    step = 1
    while True:
        # Always computed from the start date so a clamp (31 -> 30) does not
        # carry over into later months
        current = add_months(start_date, step * rule.interval)
        if current > rule.end_date:
            break
        dates.append(current)
        step += 1
    return dates


def generate_recurrence_dates(rule: RecurrenceRule, start_date: date) -> List[date]:
    """
    Expand a recurrence rule into occurrence dates.

    Args:
        rule: Recurrence rule
        start_date: Date of the series' first (parent) booking

    Returns:
        Ascending dates strictly after start_date and no later than rule.end_date
    """
    if rule.end_date <= start_date:
        return []

    if rule.frequency is RecurrenceFrequency.DAILY:
        return _daily(rule, start_date)
    if rule.frequency in (RecurrenceFrequency.WEEKLY, RecurrenceFrequency.BIWEEKLY):
        return _weekly(rule, start_date)
    return _monthly(rule, start_date)
