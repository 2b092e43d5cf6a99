from datetime import datetime
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

DAYS_OF_WEEK = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

DEFAULT_NOTIFICATION_SETTINGS = {
    "enabled": False,
    "phone_number": None,
    "notify_before_class": False,
    "notify_missed_class": False,
    "reminder_time": 30,
}


def _iso(value):
    return value.isoformat() if value is not None else None


class User(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    password = db.Column(db.String(120), nullable=False)
    notification_settings = db.Column(db.JSON, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.now)

    def to_dict(self):
        # never expose the password hash
        return {
            "id": self.id,
            "username": self.username,
            "notification_settings": dict(self.notification_settings or DEFAULT_NOTIFICATION_SETTINGS),
        }


class HabitCategory(db.Model):
    __tablename__ = "habit_category"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text)
    color_tag = db.Column(db.String(20), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.now)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "color_tag": self.color_tag,
            "created_at": _iso(self.created_at),
        }


class HabitTag(db.Model):
    __tablename__ = "habit_tag"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), nullable=False)
    color_tag = db.Column(db.String(20), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.now)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "color_tag": self.color_tag,
            "created_at": _iso(self.created_at),
        }


class Habit(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text)
    frequency = db.Column(db.String(20), nullable=False)  # daily, weekly or monthly
    reminder_time = db.Column(db.String(5))  # HH:MM
    color_tag = db.Column(db.String(20), nullable=False)
    category_id = db.Column(db.Integer, db.ForeignKey("habit_category.id"))
    tag_ids = db.Column(db.JSON, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.now)
    records = db.relationship("HabitRecord", backref="habit", lazy=True, cascade="all, delete-orphan")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "frequency": self.frequency,
            "reminder_time": self.reminder_time,
            "color_tag": self.color_tag,
            "category_id": self.category_id,
            "tag_ids": list(self.tag_ids or []),
            "created_at": _iso(self.created_at),
        }


class HabitRecord(db.Model):
    __tablename__ = "habit_record"

    id = db.Column(db.Integer, primary_key=True)
    habit_id = db.Column(db.Integer, db.ForeignKey("habit.id"), nullable=False)
    date = db.Column(db.DateTime, nullable=False)
    day = db.Column(db.Date, nullable=False)
    completed = db.Column(db.Boolean, nullable=False)

    __table_args__ = (
        db.UniqueConstraint("habit_id", "day", name="unique_habit_day"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "habit_id": self.habit_id,
            "date": _iso(self.date),
            "completed": self.completed,
        }


class CollegeClass(db.Model):
    __tablename__ = "college_class"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    course_code = db.Column(db.String(30), nullable=False)
    instructor = db.Column(db.String(100))
    day_of_week = db.Column(db.String(10), nullable=False)
    start_time = db.Column(db.String(5), nullable=False)
    end_time = db.Column(db.String(5), nullable=False)
    location = db.Column(db.String(150))
    color_tag = db.Column(db.String(20), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.now)
    attendance = db.relationship("ClassAttendance", backref="college_class", lazy=True, cascade="all, delete-orphan")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "course_code": self.course_code,
            "instructor": self.instructor,
            "day_of_week": self.day_of_week,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "location": self.location,
            "color_tag": self.color_tag,
            "created_at": _iso(self.created_at),
        }


class ClassAttendance(db.Model):
    __tablename__ = "class_attendance"

    id = db.Column(db.Integer, primary_key=True)
    class_id = db.Column(db.Integer, db.ForeignKey("college_class.id"), nullable=False)
    date = db.Column(db.DateTime, nullable=False)
    day = db.Column(db.Date, nullable=False)
    attended = db.Column(db.Boolean, nullable=False)
    notes = db.Column(db.Text)

    __table_args__ = (
        db.UniqueConstraint("class_id", "day", name="unique_class_day"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "class_id": self.class_id,
            "date": _iso(self.date),
            "attended": self.attended,
            "notes": self.notes,
        }


class Meeting(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    platform = db.Column(db.String(30), nullable=False)
    meeting_type = db.Column(db.String(30), nullable=False)
    status = db.Column(db.String(20), nullable=False, default="scheduled")
    start_time = db.Column(db.DateTime, nullable=False)
    end_time = db.Column(db.DateTime, nullable=False)
    join_url = db.Column(db.String(500))
    external_meeting_id = db.Column(db.String(100))
    password = db.Column(db.String(100))
    host_user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False)
    color_tag = db.Column(db.String(20), nullable=False)
    reminder_enabled = db.Column(db.Boolean, nullable=False, default=True)
    reminder_minutes = db.Column(db.Integer, nullable=False, default=15)
    # loose references, intentionally not foreign keys
    related_habit_id = db.Column(db.Integer)
    related_class_id = db.Column(db.Integer)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.now)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.now)
    participants = db.relationship("MeetingParticipant", backref="meeting", lazy=True, cascade="all, delete-orphan")

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "platform": self.platform,
            "meeting_type": self.meeting_type,
            "status": self.status,
            "start_time": _iso(self.start_time),
            "end_time": _iso(self.end_time),
            "join_url": self.join_url,
            "external_meeting_id": self.external_meeting_id,
            "password": self.password,
            "host_user_id": self.host_user_id,
            "color_tag": self.color_tag,
            "reminder_enabled": self.reminder_enabled,
            "reminder_minutes": self.reminder_minutes,
            "related_habit_id": self.related_habit_id,
            "related_class_id": self.related_class_id,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class MeetingTemplate(db.Model):
    __tablename__ = "meeting_template"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    duration = db.Column(db.Integer, nullable=False)  # minutes
    platform = db.Column(db.String(30), nullable=False)
    meeting_type = db.Column(db.String(30), nullable=False)
    url_template = db.Column(db.String(500))
    reminder_enabled = db.Column(db.Boolean, nullable=False, default=True)
    reminder_minutes = db.Column(db.Integer, nullable=False, default=15)
    color_tag = db.Column(db.String(20), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.now)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "duration": self.duration,
            "platform": self.platform,
            "meeting_type": self.meeting_type,
            "url_template": self.url_template,
            "reminder_enabled": self.reminder_enabled,
            "reminder_minutes": self.reminder_minutes,
            "color_tag": self.color_tag,
            "user_id": self.user_id,
            "created_at": _iso(self.created_at),
        }


class MeetingParticipant(db.Model):
    __tablename__ = "meeting_participant"

    id = db.Column(db.Integer, primary_key=True)
    meeting_id = db.Column(db.Integer, db.ForeignKey("meeting.id"), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"))
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(120))
    status = db.Column(db.String(20), nullable=False, default="invited")
    notify = db.Column(db.Boolean, nullable=False, default=True)
    joined_at = db.Column(db.DateTime)
    left_at = db.Column(db.DateTime)

    def to_dict(self):
        return {
            "id": self.id,
            "meeting_id": self.meeting_id,
            "user_id": self.user_id,
            "name": self.name,
            "email": self.email,
            "status": self.status,
            "notify": self.notify,
            "joined_at": _iso(self.joined_at),
            "left_at": _iso(self.left_at),
        }
