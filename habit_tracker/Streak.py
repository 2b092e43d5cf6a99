"""Derived metrics over completion records.

All functions are pure and work on any objects exposing ``date`` (a
datetime), an owner id attribute and a boolean flag attribute. Habit records
use the defaults (``habit_id`` / ``completed``); attendance records are passed
``owner="class_id", flag="attended"``.
"""
import math
from collections import defaultdict
from datetime import date, datetime, timedelta


def _day(value):
    if isinstance(value, datetime):
        return value.date()
    return value


def round_half_up(value):
    # Python's round() is banker's rounding; percentages round .5 upward
    return int(math.floor(value + 0.5))


def filter_records(records, owner_id=None, start=None, end=None, owner="habit_id"):
    selected = list(records)
    if owner_id is not None:
        selected = [r for r in selected if getattr(r, owner) == owner_id]
    if start is not None:
        selected = [r for r in selected if r.date >= start]
    if end is not None:
        selected = [r for r in selected if r.date <= end]
    return selected


def completion_rate(records, owner_id=None, start=None, end=None, owner="habit_id", flag="completed"):
    """Percentage of done records, rounded half-up; 0 for an empty set."""
    selected = filter_records(records, owner_id, start, end, owner)
    if not selected:
        return 0
    done = sum(1 for r in selected if getattr(r, flag))
    return round_half_up(100 * done / len(selected))


def current_streak(records, today=None, flag="completed"):
    """Consecutive days, ending today, on which every record is done.

    A day without any record breaks the streak, as does a day with at least
    one record that is not done.
    """
    today = _day(today) if today is not None else date.today()
    by_day = defaultdict(list)
    for record in records:
        by_day[_day(record.date)].append(record)

    streak = 0
    current = today
    while True:
        day_records = by_day.get(current)
        if not day_records or not all(getattr(r, flag) for r in day_records):
            break
        streak += 1
        current -= timedelta(days=1)
    return streak


def longest_streak(records, owner="habit_id", flag="completed"):
    """Longest run of consecutive done records for any single owner.

    Records are ordered chronologically per owner; the sort is stable, so
    records sharing a timestamp keep their insertion order.
    """
    by_owner = defaultdict(list)
    for record in records:
        by_owner[getattr(record, owner)].append(record)

    longest = 0
    for owned in by_owner.values():
        run = 0
        for record in sorted(owned, key=lambda r: r.date):
            if getattr(record, flag):
                run += 1
                longest = max(longest, run)
            else:
                run = 0
    return longest


def records_by_date(records, owner="habit_id", flag="completed"):
    """Map ``YYYY-MM-DD`` to the owner ids with a done record on that day."""
    grouped = {}
    for record in records:
        if not getattr(record, flag):
            continue
        key = _day(record.date).isoformat()
        grouped.setdefault(key, []).append(getattr(record, owner))
    return grouped


def daily_completion(records, start, end, flag="completed"):
    """Per-day completion rate between two days, inclusive."""
    by_day = defaultdict(list)
    for record in records:
        by_day[_day(record.date)].append(record)

    trend = []
    current, last = _day(start), _day(end)
    while current <= last:
        day_records = by_day.get(current, [])
        done = sum(1 for r in day_records if getattr(r, flag))
        rate = round_half_up(100 * done / len(day_records)) if day_records else 0
        trend.append({"date": current.isoformat(), "rate": rate})
        current += timedelta(days=1)
    return trend
