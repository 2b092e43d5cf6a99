from datetime import date, datetime
from types import SimpleNamespace

from habit_tracker.Streak import (
    completion_rate,
    current_streak,
    daily_completion,
    longest_streak,
    records_by_date,
    round_half_up,
)

TODAY = date(2024, 3, 10)


def record(day, completed=True, habit_id=1, hour=9):
    return SimpleNamespace(
        habit_id=habit_id,
        date=datetime(day.year, day.month, day.day, hour),
        completed=completed,
    )


def attendance(day, attended=True, class_id=1):
    return SimpleNamespace(class_id=class_id, date=datetime(day.year, day.month, day.day), attended=attended)


def test_round_half_up():
    assert round_half_up(66.5) == 67
    assert round_half_up(62.5) == 63
    assert round_half_up(66.4) == 66


def test_completion_rate_empty_is_zero():
    assert completion_rate([]) == 0


def test_completion_rate_rounds_half_up():
    records = [record(date(2024, 3, d), completed=d <= 5) for d in range(1, 9)]
    # 5 of 8 = 62.5%
    assert completion_rate(records) == 63


def test_completion_rate_seven_of_ten():
    records = [record(date(2024, 3, d), completed=d <= 7) for d in range(1, 11)]
    assert completion_rate(records) == 70


def test_completion_rate_filters_by_habit_and_range():
    records = [
        record(date(2024, 3, 1), True, habit_id=1),
        record(date(2024, 3, 2), False, habit_id=1),
        record(date(2024, 3, 3), False, habit_id=2),
    ]
    assert completion_rate(records, owner_id=1) == 50
    assert completion_rate(records, owner_id=2) == 0
    assert completion_rate(records, start=datetime(2024, 3, 1), end=datetime(2024, 3, 1, 23, 59)) == 100


def test_current_streak_counts_back_from_today():
    records = [record(date(2024, 3, d)) for d in (8, 9, 10)]
    assert current_streak(records, today=TODAY) == 3


def test_current_streak_zero_without_record_today():
    records = [record(date(2024, 3, d)) for d in (7, 8, 9)]
    assert current_streak(records, today=TODAY) == 0
    assert longest_streak(records) == 3


def test_current_streak_broken_by_incomplete_day():
    records = [
        record(date(2024, 3, 7)),
        record(date(2024, 3, 8), completed=False),
        record(date(2024, 3, 9)),
        record(date(2024, 3, 10)),
    ]
    assert current_streak(records, today=TODAY) == 2


def test_current_streak_day_with_any_incomplete_record_breaks():
    records = [
        record(date(2024, 3, 10), habit_id=1),
        record(date(2024, 3, 10), completed=False, habit_id=2),
    ]
    assert current_streak(records, today=TODAY) == 0


def test_longest_streak_resets_on_miss():
    days = [(1, True), (2, True), (3, False), (4, True), (5, True), (6, True), (7, False)]
    records = [record(date(2024, 3, d), done) for d, done in days]
    assert longest_streak(records) == 3


def test_longest_streak_sorts_chronologically():
    records = [
        record(date(2024, 3, 3)),
        record(date(2024, 3, 1)),
        record(date(2024, 3, 2), completed=False),
    ]
    # in date order: done, miss, done
    assert longest_streak(records) == 1


def test_longest_streak_is_per_owner():
    records = [record(date(2024, 3, d), habit_id=1) for d in (1, 2)]
    records += [record(date(2024, 3, d), habit_id=2) for d in (1, 2, 3, 4)]
    assert longest_streak(records) == 4


def test_attendance_uses_attended_flag():
    records = [attendance(date(2024, 3, 4)), attendance(date(2024, 3, 11), attended=False)]
    assert completion_rate(records, owner="class_id", flag="attended") == 50
    assert longest_streak(records, owner="class_id", flag="attended") == 1


def test_records_by_date_keeps_duplicates():
    records = [
        record(date(2024, 3, 1), habit_id=1),
        record(date(2024, 3, 1), habit_id=1, hour=18),
        record(date(2024, 3, 1), habit_id=2, completed=False),
        record(date(2024, 3, 2), habit_id=3),
    ]
    assert records_by_date(records) == {"2024-03-01": [1, 1], "2024-03-02": [3]}


def test_daily_completion_covers_every_day():
    records = [record(date(2024, 3, 1)), record(date(2024, 3, 1), completed=False, habit_id=2)]
    trend = daily_completion(records, date(2024, 3, 1), date(2024, 3, 3))
    assert trend == [
        {"date": "2024-03-01", "rate": 50},
        {"date": "2024-03-02", "rate": 0},
        {"date": "2024-03-03", "rate": 0},
    ]


def test_longest_streak_never_below_current_streak():
    histories = [
        [],
        [(10, True)],
        [(8, True), (9, True), (10, True)],
        [(1, True), (2, True), (3, True), (4, True), (9, False), (10, True)],
        [(5, False), (6, True), (7, True), (8, True), (9, True), (10, True)],
        [(2, True), (4, True), (6, False), (10, False)],
    ]
    for history in histories:
        records = [record(date(2024, 3, d), done) for d, done in history]
        assert longest_streak(records) >= current_streak(records, today=TODAY)
