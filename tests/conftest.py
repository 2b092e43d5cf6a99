"""
Shared fixtures: an isolated app per test backed by a fresh in-memory store.
"""
from unittest.mock import MagicMock

import pytest

from habit_tracker import create_app
from habit_tracker.config import TestingConfig
from habit_tracker.services import CalendarIntegrations, NotificationService
from habit_tracker.storage import MemStorage


@pytest.fixture
def storage():
    return MemStorage()


@pytest.fixture
def twilio_client():
    return MagicMock()


@pytest.fixture
def notifier(twilio_client):
    return NotificationService(phone_number="+15550001111", client=twilio_client)


@pytest.fixture
def integrations():
    return CalendarIntegrations({})


@pytest.fixture
def app(storage, integrations, notifier):
    return create_app(TestingConfig, storage=storage, integrations=integrations, notifier=notifier)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def user_data():
    return {"username": "alice", "password": "s3cret-pass"}


@pytest.fixture
def auth_headers(client, user_data):
    response = client.post("/api/auth/register", json=user_data)
    assert response.status_code == 201
    return {"Authorization": f"Bearer {response.get_json()['token']}"}


@pytest.fixture
def habit_payload():
    return {
        "name": "Read 30 Minutes",
        "description": "Read a book",
        "frequency": "daily",
        "reminder_time": "19:00",
        "color_tag": "primary",
    }


@pytest.fixture
def class_payload():
    return {
        "name": "Calculus I",
        "course_code": "MATH201",
        "instructor": "Dr. Johnson",
        "day_of_week": "tuesday",
        "start_time": "11:00",
        "end_time": "12:30",
        "location": "Building B, Room 203",
        "color_tag": "secondary",
    }
