"""Request payload schemas.

Every write endpoint validates its JSON body against one of these models
before touching the store. ``*Create`` models describe a full insert;
``*Update`` models describe a partial update where only the keys present in
the request are applied (see ``validate_payload(..., partial=True)``).
Non-nullable fields on update models default to ``None`` without accepting
an explicit ``null``, so a client cannot blank out a required column.
"""
from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .errors import InvalidInputError

Frequency = Literal["daily", "weekly", "monthly"]
ColorTag = Literal["primary", "secondary", "accent", "danger", "purple", "pink"]
DayOfWeek = Literal["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]
Platform = Literal["zoom", "google_meet", "microsoft_teams", "webex", "skype", "other"]
MeetingType = Literal["one_on_one", "group", "lecture", "study_group", "office_hours", "other"]
MeetingStatus = Literal["scheduled", "canceled", "completed", "rescheduled"]
ParticipantStatus = Literal["invited", "accepted", "declined", "tentative"]

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


def parse_datetime(value):
    """Accept ``YYYY-MM-DD`` as well as full ISO-8601 timestamps."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
        # stored timestamps are naive local time
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(tz=None).replace(tzinfo=None)
        return parsed
    raise ValueError("Invalid date format")


def parse_id_param(value, label):
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError:
        raise InvalidInputError(f"Invalid {label} ID")


def parse_date_param(value, end_of_day=False):
    """Parse an optional query-string date; ``None`` passes through.

    A bare ``YYYY-MM-DD`` used as an upper bound covers the whole day.
    """
    if value is None or value == "":
        return None
    try:
        parsed = parse_datetime(value)
    except ValueError:
        raise InvalidInputError("Invalid date format")
    if end_of_day and len(value.strip()) == 10:
        parsed = parsed.replace(hour=23, minute=59, second=59, microsecond=999999)
    return parsed


def _format_errors(error):
    parts = []
    for item in error.errors():
        location = ".".join(str(piece) for piece in item["loc"]) or "body"
        parts.append(f"{location}: {item['msg']}")
    return "Validation error: " + "; ".join(parts)


def validate_payload(schema, data, partial=False):
    """Validate ``data`` against ``schema`` and return a plain dict.

    Raises ``InvalidInputError`` with a readable message on failure.
    """
    if data is None:
        raise InvalidInputError("Request body must be a JSON object")
    if not isinstance(data, dict):
        raise InvalidInputError("Request body must be a JSON object")
    try:
        parsed = schema.model_validate(data)
    except ValidationError as e:
        raise InvalidInputError(_format_errors(e))
    return parsed.model_dump(exclude_unset=partial)


class Schema(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


class DatedSchema(Schema):
    """Base for records keyed by a calendar day."""

    @field_validator("date", mode="before", check_fields=False)
    @classmethod
    def _parse_date(cls, value):
        if value is None:
            return value
        return parse_datetime(value)


# Users

class UserCreate(Schema):
    username: str = Field(min_length=1, max_length=80)
    password: str = Field(min_length=1)


class UserLogin(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class NotificationSettingsSchema(Schema):
    enabled: bool
    phone_number: Optional[str] = Field(default=None, pattern=r"^\+?[1-9]\d{6,14}$")
    notify_before_class: bool = False
    notify_missed_class: bool = False
    reminder_time: int = Field(default=30, ge=0, le=24 * 60)


# Habits

class HabitCategoryCreate(Schema):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    color_tag: ColorTag = "primary"


class HabitCategoryUpdate(Schema):
    name: str = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    color_tag: ColorTag = None


class HabitTagCreate(Schema):
    name: str = Field(min_length=1, max_length=50)
    color_tag: ColorTag = "primary"


class HabitTagUpdate(Schema):
    name: str = Field(default=None, min_length=1, max_length=50)
    color_tag: ColorTag = None


class HabitCreate(Schema):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    frequency: Frequency
    reminder_time: Optional[str] = Field(default=None, pattern=TIME_PATTERN)
    color_tag: ColorTag
    category_id: Optional[int] = None
    tag_ids: List[int] = Field(default_factory=list)


class HabitUpdate(Schema):
    name: str = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    frequency: Frequency = None
    reminder_time: Optional[str] = Field(default=None, pattern=TIME_PATTERN)
    color_tag: ColorTag = None
    category_id: Optional[int] = None
    tag_ids: List[int] = None


class HabitRecordCreate(DatedSchema):
    habit_id: int
    date: datetime
    completed: bool


class HabitRecordUpdate(DatedSchema):
    date: datetime = None
    completed: bool = None


# College

class CollegeClassCreate(Schema):
    name: str = Field(min_length=1, max_length=150)
    course_code: str = Field(min_length=1, max_length=30)
    instructor: Optional[str] = None
    day_of_week: DayOfWeek
    start_time: str = Field(pattern=TIME_PATTERN)
    end_time: str = Field(pattern=TIME_PATTERN)
    location: Optional[str] = None
    color_tag: ColorTag

    @model_validator(mode="after")
    def _check_times(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class CollegeClassUpdate(Schema):
    name: str = Field(default=None, min_length=1, max_length=150)
    course_code: str = Field(default=None, min_length=1, max_length=30)
    instructor: Optional[str] = None
    day_of_week: DayOfWeek = None
    start_time: str = Field(default=None, pattern=TIME_PATTERN)
    end_time: str = Field(default=None, pattern=TIME_PATTERN)
    location: Optional[str] = None
    color_tag: ColorTag = None


class ClassAttendanceCreate(DatedSchema):
    class_id: int
    date: datetime
    attended: bool
    notes: Optional[str] = None


class ClassAttendanceUpdate(DatedSchema):
    date: datetime = None
    attended: bool = None
    notes: Optional[str] = None


# Meetings

class MeetingCreate(Schema):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    platform: Platform
    meeting_type: MeetingType
    status: MeetingStatus = "scheduled"
    start_time: datetime
    end_time: datetime
    join_url: Optional[str] = None
    external_meeting_id: Optional[str] = None
    password: Optional[str] = None
    host_user_id: int
    color_tag: ColorTag = "primary"
    reminder_enabled: bool = True
    reminder_minutes: int = Field(default=15, ge=0)
    related_habit_id: Optional[int] = None
    related_class_id: Optional[int] = None

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _parse_times(cls, value):
        return parse_datetime(value) if value is not None else value

    @model_validator(mode="after")
    def _check_times(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class MeetingUpdate(Schema):
    title: str = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    platform: Platform = None
    meeting_type: MeetingType = None
    status: MeetingStatus = None
    start_time: datetime = None
    end_time: datetime = None
    join_url: Optional[str] = None
    external_meeting_id: Optional[str] = None
    password: Optional[str] = None
    color_tag: ColorTag = None
    reminder_enabled: bool = None
    reminder_minutes: int = Field(default=None, ge=0)
    related_habit_id: Optional[int] = None
    related_class_id: Optional[int] = None

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _parse_times(cls, value):
        return parse_datetime(value) if value is not None else value


class MeetingTemplateCreate(Schema):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    duration: int = Field(gt=0, le=24 * 60)
    platform: Platform
    meeting_type: MeetingType
    url_template: Optional[str] = None
    reminder_enabled: bool = True
    reminder_minutes: int = Field(default=15, ge=0)
    color_tag: ColorTag = "primary"


class MeetingTemplateUpdate(Schema):
    name: str = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    duration: int = Field(default=None, gt=0, le=24 * 60)
    platform: Platform = None
    meeting_type: MeetingType = None
    url_template: Optional[str] = None
    reminder_enabled: bool = None
    reminder_minutes: int = Field(default=None, ge=0)
    color_tag: ColorTag = None


class MeetingFromTemplate(Schema):
    start_time: datetime
    overrides: dict = Field(default_factory=dict)

    @field_validator("start_time", mode="before")
    @classmethod
    def _parse_start(cls, value):
        return parse_datetime(value) if value is not None else value


class MeetingParticipantCreate(Schema):
    user_id: Optional[int] = None
    name: str = Field(min_length=1, max_length=100)
    email: Optional[str] = Field(default=None, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    status: ParticipantStatus = "invited"
    notify: bool = True


class MeetingParticipantUpdate(Schema):
    name: str = Field(default=None, min_length=1, max_length=100)
    email: Optional[str] = Field(default=None, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    status: ParticipantStatus = None
    notify: bool = None
    joined_at: Optional[datetime] = None
    left_at: Optional[datetime] = None

    @field_validator("joined_at", "left_at", mode="before")
    @classmethod
    def _parse_stamps(cls, value):
        return parse_datetime(value) if value is not None else value
