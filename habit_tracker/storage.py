"""Entity stores.

``Storage`` implements every operation the API needs on top of a handful of
primitives (``_all``, ``_get``, ``_insert``, ``_update``, ``_delete``,
``_find_by_day``, ``_upsert_by_day``). Two backends provide
them: ``MemStorage`` keeps transient model instances in per-entity dicts, and
``DatabaseStorage`` persists the same models through Flask-SQLAlchemy.

Records keyed by a calendar day (habit records and class attendance) are
unique per (owner, day) in both backends. The in-memory store serializes the
find-or-create under a lock; the database relies on a unique constraint and
turns a lost insert race into an update.

Deleting a habit, class or meeting removes its records, attendance or
participants in the same operation.
"""
import logging
import random
import threading
from datetime import date, datetime, timedelta

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .errors import ConflictError, InvalidInputError, NotFoundError, StorageError
from .models import (
    DAYS_OF_WEEK,
    DEFAULT_NOTIFICATION_SETTINGS,
    ClassAttendance,
    CollegeClass,
    Habit,
    HabitCategory,
    HabitRecord,
    HabitTag,
    Meeting,
    MeetingParticipant,
    MeetingTemplate,
    User,
    db,
)
from .schemas import MeetingCreate, validate_payload
from .Streak import filter_records

logger = logging.getLogger(__name__)

# model -> attribute naming the owner of a day-keyed record
DAY_KEYED = {HabitRecord: "habit_id", ClassAttendance: "class_id"}

# parent model -> (child model, attribute naming the parent)
CASCADES = {
    Habit: (HabitRecord, "habit_id"),
    CollegeClass: (ClassAttendance, "class_id"),
    Meeting: (MeetingParticipant, "meeting_id"),
}


def get_storage():
    return current_app.extensions["storage"]


def _with_day(values):
    values = dict(values)
    if values.get("date") is not None:
        values["day"] = values["date"].date()
    return values


class Storage:

    # Primitives

    def _all(self, model):
        raise NotImplementedError

    def _get(self, model, id):
        raise NotImplementedError

    def _insert(self, model, values):
        raise NotImplementedError

    def _update(self, model, id, values):
        raise NotImplementedError

    def _delete(self, model, id):
        raise NotImplementedError

    def _find_by_day(self, model, owner_id, day):
        raise NotImplementedError

    def _upsert_by_day(self, model, values):
        raise NotImplementedError

    def _where(self, model, **criteria):
        return [
            row for row in self._all(model)
            if all(getattr(row, key) == value for key, value in criteria.items())
        ]

    # Users

    def get_user(self, id):
        return self._get(User, id)

    def get_user_by_username(self, username):
        matches = self._where(User, username=username)
        return matches[0] if matches else None

    def _insert_user(self, values):
        if self.get_user_by_username(values["username"]):
            raise ConflictError("Username already exists")
        return self._insert(User, values)

    def create_user(self, values):
        values = dict(values)
        values.setdefault("notification_settings", dict(DEFAULT_NOTIFICATION_SETTINGS))
        values["created_at"] = datetime.now()
        return self._insert_user(values)

    def get_notification_settings(self, user_id):
        user = self.get_user(user_id)
        if not user:
            return None
        return dict(user.notification_settings or DEFAULT_NOTIFICATION_SETTINGS)

    def update_notification_settings(self, user_id, settings):
        user = self._update(User, user_id, {"notification_settings": dict(settings)})
        if not user:
            return None
        return dict(user.notification_settings)

    # Habit categories and tags

    def get_habit_categories(self):
        return self._all(HabitCategory)

    def get_habit_category(self, id):
        return self._get(HabitCategory, id)

    def create_habit_category(self, values):
        return self._insert(HabitCategory, dict(values, created_at=datetime.now()))

    def update_habit_category(self, id, values):
        return self._update(HabitCategory, id, values)

    def delete_habit_category(self, id):
        if not self.get_habit_category(id):
            return False
        for habit in self.get_habits_by_category(id):
            self._update(Habit, habit.id, {"category_id": None})
        return self._delete(HabitCategory, id)

    def get_habit_tags(self):
        return self._all(HabitTag)

    def get_habit_tag(self, id):
        return self._get(HabitTag, id)

    def create_habit_tag(self, values):
        return self._insert(HabitTag, dict(values, created_at=datetime.now()))

    def update_habit_tag(self, id, values):
        return self._update(HabitTag, id, values)

    def delete_habit_tag(self, id):
        if not self.get_habit_tag(id):
            return False
        for habit in self.get_habits_by_tag(id):
            remaining = [tag_id for tag_id in habit.tag_ids if tag_id != id]
            self._update(Habit, habit.id, {"tag_ids": remaining})
        return self._delete(HabitTag, id)

    # Habits

    def _check_habit_refs(self, values):
        category_id = values.get("category_id")
        if category_id is not None and not self.get_habit_category(category_id):
            raise InvalidInputError(f"Habit category {category_id} does not exist")
        for tag_id in values.get("tag_ids") or []:
            if not self.get_habit_tag(tag_id):
                raise InvalidInputError(f"Habit tag {tag_id} does not exist")

    def get_habits(self):
        return self._all(Habit)

    def get_habit(self, id):
        return self._get(Habit, id)

    def get_habits_by_category(self, category_id):
        return self._where(Habit, category_id=category_id)

    def get_habits_by_tag(self, tag_id):
        return [habit for habit in self.get_habits() if tag_id in (habit.tag_ids or [])]

    def create_habit(self, values):
        self._check_habit_refs(values)
        values = dict(values)
        values["tag_ids"] = list(values.get("tag_ids") or [])
        values["created_at"] = datetime.now()
        return self._insert(Habit, values)

    def update_habit(self, id, values):
        self._check_habit_refs(values)
        return self._update(Habit, id, values)

    def delete_habit(self, id):
        return self._delete(Habit, id)

    # Habit records

    def get_habit_records(self, habit_id=None, start=None, end=None):
        return filter_records(self._all(HabitRecord), habit_id, start, end, owner="habit_id")

    def get_habit_record(self, habit_id, date):
        return self._find_by_day(HabitRecord, habit_id, date.date())

    def create_habit_record(self, values):
        return self._insert(HabitRecord, _with_day(values))

    def update_habit_record(self, id, values):
        return self._update(HabitRecord, id, _with_day(values))

    def upsert_habit_record(self, values):
        if not self.get_habit(values["habit_id"]):
            raise NotFoundError("Habit not found")
        return self._upsert_by_day(HabitRecord, _with_day(values))

    # College classes and attendance

    def get_college_classes(self):
        return self._all(CollegeClass)

    def get_college_class(self, id):
        return self._get(CollegeClass, id)

    def create_college_class(self, values):
        return self._insert(CollegeClass, dict(values, created_at=datetime.now()))

    def update_college_class(self, id, values):
        existing = self.get_college_class(id)
        if not existing:
            return None
        start = values.get("start_time", existing.start_time)
        end = values.get("end_time", existing.end_time)
        if end <= start:
            raise InvalidInputError("end_time must be after start_time")
        return self._update(CollegeClass, id, values)

    def delete_college_class(self, id):
        return self._delete(CollegeClass, id)

    def get_class_attendance_records(self, class_id=None, start=None, end=None):
        return filter_records(self._all(ClassAttendance), class_id, start, end, owner="class_id")

    def get_class_attendance(self, class_id, date):
        return self._find_by_day(ClassAttendance, class_id, date.date())

    def create_class_attendance(self, values):
        return self._insert(ClassAttendance, _with_day(values))

    def update_class_attendance(self, id, values):
        return self._update(ClassAttendance, id, _with_day(values))

    def upsert_class_attendance(self, values):
        if not self.get_college_class(values["class_id"]):
            raise NotFoundError("College class not found")
        return self._upsert_by_day(ClassAttendance, _with_day(values))

    def get_attendance_stats(self, class_id=None):
        records = self.get_class_attendance_records(class_id)
        attended = sum(1 for record in records if record.attended)
        skipped = len(records) - attended
        return {"attended": attended, "skipped": skipped, "total": attended + skipped}

    # Meetings

    def get_meetings(self, host_user_id=None, status=None, start=None, end=None):
        meetings = self._all(Meeting)
        if host_user_id is not None:
            meetings = [m for m in meetings if m.host_user_id == host_user_id]
        if status is not None:
            meetings = [m for m in meetings if m.status == status]
        if start is not None:
            meetings = [m for m in meetings if m.start_time >= start]
        if end is not None:
            meetings = [m for m in meetings if m.start_time <= end]
        return sorted(meetings, key=lambda m: m.start_time)

    def get_meeting(self, id):
        return self._get(Meeting, id)

    def create_meeting(self, values):
        now = datetime.now()
        return self._insert(Meeting, dict(values, created_at=now, updated_at=now))

    def update_meeting(self, id, values):
        existing = self.get_meeting(id)
        if not existing:
            return None
        start = values.get("start_time", existing.start_time)
        end = values.get("end_time", existing.end_time)
        if end <= start:
            raise InvalidInputError("end_time must be after start_time")
        return self._update(Meeting, id, dict(values, updated_at=datetime.now()))

    def delete_meeting(self, id):
        return self._delete(Meeting, id)

    # Meeting templates

    def get_meeting_templates(self, user_id=None):
        if user_id is None:
            return self._all(MeetingTemplate)
        return self._where(MeetingTemplate, user_id=user_id)

    def get_meeting_template(self, id):
        return self._get(MeetingTemplate, id)

    def create_meeting_template(self, values):
        return self._insert(MeetingTemplate, dict(values, created_at=datetime.now()))

    def update_meeting_template(self, id, values):
        return self._update(MeetingTemplate, id, values)

    def delete_meeting_template(self, id):
        return self._delete(MeetingTemplate, id)

    def create_meeting_from_template(self, template_id, start_time, overrides=None):
        """Materialize a meeting from a template starting at ``start_time``.

        The template supplies the defaults and ``overrides`` win on any key
        they share. The template itself is left untouched.
        """
        template = self.get_meeting_template(template_id)
        if not template:
            raise NotFoundError("Meeting template not found")

        values = {
            "title": template.name,
            "description": template.description,
            "platform": template.platform,
            "meeting_type": template.meeting_type,
            "join_url": template.url_template,
            "reminder_enabled": template.reminder_enabled,
            "reminder_minutes": template.reminder_minutes,
            "color_tag": template.color_tag,
            "host_user_id": template.user_id,
            "start_time": start_time,
            "end_time": start_time + timedelta(minutes=template.duration),
        }
        values.update(overrides or {})
        values = validate_payload(MeetingCreate, values)
        return self.create_meeting(values)

    # Meeting participants

    def get_meeting_participants(self, meeting_id):
        return self._where(MeetingParticipant, meeting_id=meeting_id)

    def get_meeting_participant(self, id):
        return self._get(MeetingParticipant, id)

    def create_meeting_participant(self, meeting_id, values):
        if not self.get_meeting(meeting_id):
            raise NotFoundError("Meeting not found")
        return self._insert(MeetingParticipant, dict(values, meeting_id=meeting_id))

    def update_meeting_participant(self, id, values):
        return self._update(MeetingParticipant, id, values)

    def delete_meeting_participant(self, id):
        return self._delete(MeetingParticipant, id)


class MemStorage(Storage):
    """Process-local store holding transient model instances."""

    def __init__(self):
        self._lock = threading.RLock()
        self._rows = {}
        self._next_ids = {}
        # (model, owner id, day) -> row id
        self._day_index = {}

    def _table(self, model):
        return self._rows.setdefault(model, {})

    def _day_key(self, model, row):
        return (model, getattr(row, DAY_KEYED[model]), row.day)

    def _all(self, model):
        return list(self._table(model).values())

    def _get(self, model, id):
        return self._table(model).get(id)

    def _insert(self, model, values):
        with self._lock:
            id = self._next_ids.get(model, 1)
            row = model(id=id, **values)
            if model in DAY_KEYED:
                key = self._day_key(model, row)
                if key in self._day_index:
                    raise ConflictError("A record already exists for this day")
                self._day_index[key] = id
            self._next_ids[model] = id + 1
            self._table(model)[id] = row
            return row

    def _update(self, model, id, values):
        with self._lock:
            row = self._get(model, id)
            if row is None:
                return None
            if model in DAY_KEYED:
                old_key = self._day_key(model, row)
                new_key = (model, values.get(DAY_KEYED[model], old_key[1]), values.get("day", old_key[2]))
                if new_key != old_key:
                    if new_key in self._day_index:
                        raise ConflictError("A record already exists for this day")
                    del self._day_index[old_key]
                    self._day_index[new_key] = id
            for key, value in values.items():
                setattr(row, key, value)
            return row

    def _delete(self, model, id):
        with self._lock:
            row = self._table(model).pop(id, None)
            if row is None:
                return False
            if model in DAY_KEYED:
                self._day_index.pop(self._day_key(model, row), None)
            if model in CASCADES:
                child, owner = CASCADES[model]
                for child_row in self._where(child, **{owner: id}):
                    self._delete(child, child_row.id)
            return True

    def _insert_user(self, values):
        with self._lock:
            return super()._insert_user(values)

    def _find_by_day(self, model, owner_id, day):
        id = self._day_index.get((model, owner_id, day))
        return self._get(model, id) if id is not None else None

    def _upsert_by_day(self, model, values):
        with self._lock:
            existing = self._find_by_day(model, values[DAY_KEYED[model]], values["day"])
            if existing:
                return self._update(model, existing.id, values)
            return self._insert(model, values)


class DatabaseStorage(Storage):
    """Store backed by the Flask-SQLAlchemy session; needs an app context."""

    def __init__(self, database=db):
        self.db = database

    def _commit(self):
        try:
            self.db.session.commit()
        except IntegrityError as e:
            self.db.session.rollback()
            logger.error(f"Integrity error: {str(e)}")
            raise ConflictError("Conflicting record already exists")
        except SQLAlchemyError as e:
            self.db.session.rollback()
            logger.error(f"Database error: {str(e)}")
            raise StorageError("Database operation failed")

    def _read(self, query, what):
        try:
            return query()
        except SQLAlchemyError as e:
            self.db.session.rollback()
            logger.error(f"Database error reading {what}: {str(e)}")
            raise StorageError("Database operation failed")

    def _all(self, model):
        return self._read(lambda: model.query.order_by(model.id).all(), model.__name__)

    def _get(self, model, id):
        return self._read(lambda: self.db.session.get(model, id), model.__name__)

    def _where(self, model, **criteria):
        return self._read(lambda: model.query.filter_by(**criteria).order_by(model.id).all(), model.__name__)

    def _insert(self, model, values):
        row = model(**values)
        self.db.session.add(row)
        self._commit()
        return row

    def _update(self, model, id, values):
        row = self._get(model, id)
        if row is None:
            return None
        for key, value in values.items():
            setattr(row, key, value)
        self._commit()
        return row

    def _delete(self, model, id):
        # children declared with cascade="all, delete-orphan" go in the same commit
        row = self._get(model, id)
        if row is None:
            return False
        self.db.session.delete(row)
        self._commit()
        return True

    def _find_by_day(self, model, owner_id, day):
        query = model.query.filter_by(**{DAY_KEYED[model]: owner_id, "day": day})
        return self._read(query.first, model.__name__)

    def _upsert_by_day(self, model, values):
        owner_id = values[DAY_KEYED[model]]
        existing = self._find_by_day(model, owner_id, values["day"])
        if existing:
            return self._update(model, existing.id, values)
        try:
            return self._insert(model, values)
        except ConflictError:
            # another writer inserted the same day first
            existing = self._find_by_day(model, owner_id, values["day"])
            if existing is None:
                raise
            logger.info(f"Concurrent insert for {model.__name__} {owner_id} on {values['day']}, updating instead")
            return self._update(model, existing.id, values)

    def get_user_by_username(self, username):
        return self._read(User.query.filter_by(username=username).first, "User")

    def get_habit_records(self, habit_id=None, start=None, end=None):
        query = HabitRecord.query
        if habit_id is not None:
            query = query.filter(HabitRecord.habit_id == habit_id)
        if start is not None:
            query = query.filter(HabitRecord.date >= start)
        if end is not None:
            query = query.filter(HabitRecord.date <= end)
        return self._read(query.order_by(HabitRecord.id).all, "HabitRecord")

    def get_class_attendance_records(self, class_id=None, start=None, end=None):
        query = ClassAttendance.query
        if class_id is not None:
            query = query.filter(ClassAttendance.class_id == class_id)
        if start is not None:
            query = query.filter(ClassAttendance.date >= start)
        if end is not None:
            query = query.filter(ClassAttendance.date <= end)
        return self._read(query.order_by(ClassAttendance.id).all, "ClassAttendance")


DEMO_HABITS = [
    {"name": "Morning Workout", "description": "30 min workout routine", "frequency": "daily", "reminder_time": "07:00", "color_tag": "secondary"},
    {"name": "Read 30 Minutes", "description": "Read a book", "frequency": "daily", "reminder_time": "19:00", "color_tag": "primary"},
    {"name": "Meditate", "description": "10 min meditation", "frequency": "daily", "reminder_time": "08:00", "color_tag": "accent"},
    {"name": "No Social Media", "description": "Avoid social platforms", "frequency": "daily", "reminder_time": None, "color_tag": "danger"},
    {"name": "Drink 2L Water", "description": "Stay hydrated", "frequency": "daily", "reminder_time": None, "color_tag": "primary"},
]

DEMO_CLASSES = [
    {"name": "Introduction to Computer Science", "course_code": "CS101", "instructor": "Dr. Smith", "day_of_week": "monday", "start_time": "09:00", "end_time": "10:30", "location": "Building A, Room 101", "color_tag": "primary"},
    {"name": "Calculus I", "course_code": "MATH201", "instructor": "Dr. Johnson", "day_of_week": "tuesday", "start_time": "11:00", "end_time": "12:30", "location": "Building B, Room 203", "color_tag": "secondary"},
    {"name": "Introduction to Psychology", "course_code": "PSY101", "instructor": "Dr. Williams", "day_of_week": "wednesday", "start_time": "14:00", "end_time": "15:30", "location": "Building C, Room 305", "color_tag": "accent"},
    {"name": "Physics I", "course_code": "PHYS201", "instructor": "Dr. Brown", "day_of_week": "thursday", "start_time": "10:00", "end_time": "11:30", "location": "Science Building, Room 102", "color_tag": "danger"},
    {"name": "English Composition", "course_code": "ENG101", "instructor": "Prof. Davis", "day_of_week": "friday", "start_time": "13:00", "end_time": "14:30", "location": "Liberal Arts Building, Room 201", "color_tag": "purple"},
]


def seed_demo_data(storage, today=None, rng=None, days=30):
    """Fill a store with demo habits, classes and a month of history."""
    today = today or date.today()
    rng = rng or random.Random()

    for habit_values in DEMO_HABITS:
        habit = storage.create_habit(habit_values)
        for offset in range(days):
            day = today - timedelta(days=offset)
            storage.create_habit_record({
                "habit_id": habit.id,
                "date": datetime(day.year, day.month, day.day),
                "completed": rng.random() > 0.3,
            })

    for class_values in DEMO_CLASSES:
        college_class = storage.create_college_class(class_values)
        for offset in range(days):
            day = today - timedelta(days=offset)
            if DAYS_OF_WEEK[day.weekday()] != college_class.day_of_week:
                continue
            attended = rng.random() > 0.2
            storage.create_class_attendance({
                "class_id": college_class.id,
                "date": datetime(day.year, day.month, day.day),
                "attended": attended,
                "notes": None if attended else "Missed class",
            })

    logger.info(f"Seeded demo data: {len(DEMO_HABITS)} habits, {len(DEMO_CLASSES)} classes")
