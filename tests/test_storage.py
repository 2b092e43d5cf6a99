import random
import threading
from datetime import date, datetime, timedelta

import pytest

from habit_tracker.errors import ConflictError, InvalidInputError, NotFoundError
from habit_tracker.models import DAYS_OF_WEEK, DEFAULT_NOTIFICATION_SETTINGS
from habit_tracker.storage import DEMO_CLASSES, DEMO_HABITS, MemStorage, seed_demo_data


def make_habit(storage, **overrides):
    values = {"name": "Meditate", "description": None, "frequency": "daily", "reminder_time": None, "color_tag": "accent"}
    values.update(overrides)
    return storage.create_habit(values)


def make_class(storage):
    return storage.create_college_class({
        "name": "Physics I",
        "course_code": "PHYS201",
        "instructor": None,
        "day_of_week": "thursday",
        "start_time": "10:00",
        "end_time": "11:30",
        "location": None,
        "color_tag": "danger",
    })


def make_template(storage, user_id=1, duration=45):
    return storage.create_meeting_template({
        "name": "Weekly sync",
        "description": "Team catch-up",
        "duration": duration,
        "platform": "zoom",
        "meeting_type": "group",
        "url_template": "https://zoom.us/j/123",
        "reminder_enabled": True,
        "reminder_minutes": 10,
        "color_tag": "purple",
        "user_id": user_id,
    })


def test_ids_increase_per_entity(storage):
    first = make_habit(storage)
    second = make_habit(storage, name="Stretch")
    category = storage.create_habit_category({"name": "Health", "description": None, "color_tag": "primary"})
    assert (first.id, second.id) == (1, 2)
    assert category.id == 1


def test_unknown_ids_return_none_or_false(storage):
    assert storage.get_habit(99) is None
    assert storage.update_habit(99, {"name": "x"}) is None
    assert storage.delete_habit(99) is False
    assert storage.update_meeting(99, {}) is None


def test_create_user_sets_default_notification_settings(storage):
    user = storage.create_user({"username": "bob", "password": "hash"})
    assert storage.get_notification_settings(user.id) == DEFAULT_NOTIFICATION_SETTINGS
    with pytest.raises(ConflictError):
        storage.create_user({"username": "bob", "password": "other"})


def test_concurrent_registrations_keep_usernames_unique(storage):
    barrier = threading.Barrier(8)
    created, conflicts = [], []

    def worker():
        barrier.wait()
        try:
            created.append(storage.create_user({"username": "bob", "password": "hash"}))
        except ConflictError:
            conflicts.append(1)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert (len(created), len(conflicts)) == (1, 7)
    assert storage.get_user_by_username("bob").id == created[0].id


def test_update_notification_settings(storage):
    user = storage.create_user({"username": "bob", "password": "hash"})
    settings = dict(DEFAULT_NOTIFICATION_SETTINGS, enabled=True, phone_number="+15551234567")
    assert storage.update_notification_settings(user.id, settings)["phone_number"] == "+15551234567"
    assert storage.update_notification_settings(42, settings) is None


def test_upsert_habit_record_keeps_one_record_per_day(storage):
    habit = make_habit(storage)
    storage.upsert_habit_record({"habit_id": habit.id, "date": datetime(2024, 3, 1, 8), "completed": False})
    updated = storage.upsert_habit_record({"habit_id": habit.id, "date": datetime(2024, 3, 1, 21), "completed": True})

    records = storage.get_habit_records(habit.id)
    assert len(records) == 1
    assert records[0].id == updated.id
    assert records[0].completed is True


def test_upsert_habit_record_unknown_habit(storage):
    with pytest.raises(NotFoundError):
        storage.upsert_habit_record({"habit_id": 7, "date": datetime(2024, 3, 1), "completed": True})


def test_create_habit_record_rejects_same_day(storage):
    habit = make_habit(storage)
    storage.create_habit_record({"habit_id": habit.id, "date": datetime(2024, 3, 1, 8), "completed": True})
    with pytest.raises(ConflictError):
        storage.create_habit_record({"habit_id": habit.id, "date": datetime(2024, 3, 1, 20), "completed": True})


def test_concurrent_upserts_produce_single_record(storage):
    habit = make_habit(storage)
    barrier = threading.Barrier(8)

    def worker(flag):
        barrier.wait()
        storage.upsert_habit_record({"habit_id": habit.id, "date": datetime(2024, 3, 1), "completed": flag})

    threads = [threading.Thread(target=worker, args=(i % 2 == 0,)) for i in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(storage.get_habit_records(habit.id)) == 1


def test_moving_record_onto_taken_day_conflicts(storage):
    habit = make_habit(storage)
    storage.create_habit_record({"habit_id": habit.id, "date": datetime(2024, 3, 1), "completed": True})
    second = storage.create_habit_record({"habit_id": habit.id, "date": datetime(2024, 3, 2), "completed": True})
    with pytest.raises(ConflictError):
        storage.update_habit_record(second.id, {"date": datetime(2024, 3, 1, 12)})
    moved = storage.update_habit_record(second.id, {"date": datetime(2024, 3, 5)})
    assert storage.get_habit_record(habit.id, datetime(2024, 3, 5)).id == moved.id


def test_get_habit_records_filters_by_range(storage):
    habit = make_habit(storage)
    for day in range(1, 6):
        storage.create_habit_record({"habit_id": habit.id, "date": datetime(2024, 3, day), "completed": True})
    records = storage.get_habit_records(habit.id, datetime(2024, 3, 2), datetime(2024, 3, 4, 23, 59))
    assert [r.date.day for r in records] == [2, 3, 4]


def test_delete_habit_cascades_to_records(storage):
    habit = make_habit(storage)
    storage.create_habit_record({"habit_id": habit.id, "date": datetime(2024, 3, 1), "completed": True})
    assert storage.delete_habit(habit.id) is True
    assert storage.get_habit_records() == []
    assert storage.get_habit_record(habit.id, datetime(2024, 3, 1)) is None


def test_habit_references_must_exist(storage):
    with pytest.raises(InvalidInputError):
        make_habit(storage, category_id=3)
    with pytest.raises(InvalidInputError):
        make_habit(storage, tag_ids=[1])


def test_deleting_category_and_tag_detaches_habits(storage):
    category = storage.create_habit_category({"name": "Health", "description": None, "color_tag": "secondary"})
    tag = storage.create_habit_tag({"name": "morning", "color_tag": "accent"})
    other = storage.create_habit_tag({"name": "quick", "color_tag": "pink"})
    habit = make_habit(storage, category_id=category.id, tag_ids=[tag.id, other.id])

    assert storage.get_habits_by_category(category.id) == [habit]
    assert storage.get_habits_by_tag(tag.id) == [habit]

    storage.delete_habit_category(category.id)
    storage.delete_habit_tag(tag.id)
    habit = storage.get_habit(habit.id)
    assert habit.category_id is None
    assert habit.tag_ids == [other.id]


def test_attendance_upsert_and_stats(storage):
    college_class = make_class(storage)
    storage.upsert_class_attendance({"class_id": college_class.id, "date": datetime(2024, 3, 7), "attended": False, "notes": None})
    storage.upsert_class_attendance({"class_id": college_class.id, "date": datetime(2024, 3, 7, 15), "attended": True, "notes": "late"})
    storage.upsert_class_attendance({"class_id": college_class.id, "date": datetime(2024, 3, 14), "attended": False, "notes": None})

    assert storage.get_attendance_stats() == {"attended": 1, "skipped": 1, "total": 2}
    assert storage.get_attendance_stats(college_class.id)["total"] == 2
    assert storage.get_class_attendance(college_class.id, datetime(2024, 3, 7)).notes == "late"


def test_attendance_for_unknown_class(storage):
    with pytest.raises(NotFoundError):
        storage.upsert_class_attendance({"class_id": 5, "date": datetime(2024, 3, 7), "attended": True})


def test_update_college_class_checks_times(storage):
    college_class = make_class(storage)
    with pytest.raises(InvalidInputError):
        storage.update_college_class(college_class.id, {"end_time": "09:00"})
    assert storage.update_college_class(college_class.id, {"end_time": "12:00"}).end_time == "12:00"


def test_delete_class_cascades_to_attendance(storage):
    college_class = make_class(storage)
    storage.create_class_attendance({"class_id": college_class.id, "date": datetime(2024, 3, 7), "attended": True})
    storage.delete_college_class(college_class.id)
    assert storage.get_class_attendance_records() == []


def test_meeting_from_template_uses_template_defaults(storage):
    template = make_template(storage, duration=45)
    start = datetime(2024, 3, 1, 10, 0)
    meeting = storage.create_meeting_from_template(template.id, start)

    assert meeting.title == "Weekly sync"
    assert meeting.join_url == "https://zoom.us/j/123"
    assert meeting.host_user_id == template.user_id
    assert meeting.status == "scheduled"
    assert meeting.end_time == start + timedelta(minutes=45)
    assert meeting.reminder_minutes == 10


def test_meeting_from_template_overrides_win(storage):
    template = make_template(storage)
    meeting = storage.create_meeting_from_template(
        template.id, datetime(2024, 3, 1, 10), {"title": "Planning", "platform": "webex"}
    )
    assert meeting.title == "Planning"
    assert meeting.platform == "webex"
    assert storage.get_meeting_template(template.id).name == "Weekly sync"


def test_meeting_from_template_errors(storage):
    template = make_template(storage)
    with pytest.raises(NotFoundError):
        storage.create_meeting_from_template(99, datetime(2024, 3, 1, 10))
    with pytest.raises(InvalidInputError):
        storage.create_meeting_from_template(template.id, datetime(2024, 3, 1, 10), {"platform": "carrier-pigeon"})


def test_meetings_filter_and_sort(storage):
    template = make_template(storage)
    later = storage.create_meeting_from_template(template.id, datetime(2024, 3, 2, 10))
    earlier = storage.create_meeting_from_template(template.id, datetime(2024, 3, 1, 10))
    storage.update_meeting(later.id, {"status": "canceled"})

    assert [m.id for m in storage.get_meetings(host_user_id=1)] == [earlier.id, later.id]
    assert [m.id for m in storage.get_meetings(status="canceled")] == [later.id]
    assert storage.get_meetings(host_user_id=2) == []
    assert storage.get_meetings(start=datetime(2024, 3, 2)) == [later]


def test_update_meeting_rejects_inverted_times(storage):
    template = make_template(storage)
    meeting = storage.create_meeting_from_template(template.id, datetime(2024, 3, 1, 10))
    with pytest.raises(InvalidInputError):
        storage.update_meeting(meeting.id, {"end_time": datetime(2024, 3, 1, 9)})


def test_delete_meeting_cascades_to_participants(storage):
    template = make_template(storage)
    meeting = storage.create_meeting_from_template(template.id, datetime(2024, 3, 1, 10))
    storage.create_meeting_participant(meeting.id, {"name": "Ana", "email": None, "status": "invited", "notify": True, "user_id": None})
    assert len(storage.get_meeting_participants(meeting.id)) == 1
    storage.delete_meeting(meeting.id)
    assert storage.get_meeting_participants(meeting.id) == []
    assert storage.get_meeting_participant(1) is None
    with pytest.raises(NotFoundError):
        storage.create_meeting_participant(meeting.id, {"name": "Ana"})


def test_seed_demo_data():
    storage = MemStorage()
    today = date(2024, 3, 10)
    seed_demo_data(storage, today=today, rng=random.Random(7))

    assert len(storage.get_habits()) == len(DEMO_HABITS)
    assert len(storage.get_habit_records()) == len(DEMO_HABITS) * 30
    assert len(storage.get_college_classes()) == len(DEMO_CLASSES)
    for record in storage.get_class_attendance_records():
        college_class = storage.get_college_class(record.class_id)
        assert DAYS_OF_WEEK[record.date.weekday()] == college_class.day_of_week
        if not record.attended:
            assert record.notes == "Missed class"
