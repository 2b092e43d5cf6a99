import logging
from datetime import datetime, timedelta, timezone

from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow
from googleapiclient.discovery import build

logger = logging.getLogger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/calendar",
    "https://www.googleapis.com/auth/calendar.events",
]
AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
TOKEN_URI = "https://oauth2.googleapis.com/token"
CALENDAR_NAME = "Habit Tracker"

# Google Calendar color ids: 1 Lavender, 3 Grape, 4 Flamingo, 6 Tangerine,
# 9 Blueberry, 10 Basil, 11 Tomato
COLOR_IDS = {
    "primary": "9",
    "secondary": "10",
    "accent": "6",
    "danger": "11",
    "purple": "3",
    "pink": "4",
}


def color_id_for(color_tag):
    return COLOR_IDS.get(color_tag, "1")


class GoogleCalendarIntegration:
    """Pushes completed habit records into a dedicated Google calendar."""

    def __init__(self, client_id, client_secret, redirect_uri, refresh_token=None, time_zone="UTC"):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.refresh_token = refresh_token
        self.time_zone = time_zone
        self._service = None

    def _flow(self):
        client_config = {
            "web": {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "auth_uri": AUTH_URI,
                "token_uri": TOKEN_URI,
                "redirect_uris": [self.redirect_uri],
            }
        }
        # the URL and the code exchange happen on different requests, so no PKCE verifier
        return Flow.from_client_config(
            client_config,
            scopes=SCOPES,
            redirect_uri=self.redirect_uri,
            autogenerate_code_verifier=False,
        )

    def get_auth_url(self):
        url, _state = self._flow().authorization_url(access_type="offline", prompt="consent")
        return url

    def exchange_code(self, code):
        """Trade an authorization code for a refresh token and keep it."""
        flow = self._flow()
        flow.fetch_token(code=code)
        refresh_token = flow.credentials.refresh_token
        if not flow.credentials.token or not refresh_token:
            raise ValueError("Failed to retrieve tokens")
        self.set_refresh_token(refresh_token)
        return refresh_token

    def set_refresh_token(self, refresh_token):
        self.refresh_token = refresh_token
        self._service = None

    def _calendar(self):
        if self._service is None:
            credentials = Credentials(
                None,
                refresh_token=self.refresh_token,
                client_id=self.client_id,
                client_secret=self.client_secret,
                token_uri=TOKEN_URI,
                scopes=SCOPES,
            )
            self._service = build("calendar", "v3", credentials=credentials, cache_discovery=False)
        return self._service

    def get_or_create_calendar(self):
        calendars = self._calendar().calendarList().list().execute().get("items", [])
        for calendar in calendars:
            if calendar.get("summary") == CALENDAR_NAME and calendar.get("id"):
                return calendar["id"]
        created = self._calendar().calendars().insert(body={
            "summary": CALENDAR_NAME,
            "description": "Calendar for tracking habits",
            "timeZone": self.time_zone,
        }).execute()
        logger.info(f"Created Google calendar {created.get('id')}")
        return created["id"]

    def list_events(self, calendar_id, now=None):
        now = now or datetime.now(timezone.utc)
        events = []
        page_token = None
        while True:
            response = self._calendar().events().list(
                calendarId=calendar_id,
                timeMin=(now - timedelta(days=30)).isoformat(),
                timeMax=(now + timedelta(days=30)).isoformat(),
                singleEvents=True,
                orderBy="startTime",
                pageToken=page_token,
            ).execute()
            events.extend(response.get("items", []))
            page_token = response.get("nextPageToken")
            if not page_token:
                return events

    def sync_habits(self, habits, records):
        """Insert one all-day event per completed record not already on the calendar.

        Returns the number of events created.
        """
        if not self.refresh_token:
            raise ValueError("Refresh token not set. User must authorize the application first.")

        calendar_id = self.get_or_create_calendar()
        existing = set()
        for event in self.list_events(calendar_id):
            start = event.get("start", {})
            start_day = (start.get("date") or start.get("dateTime") or "")[:10]
            existing.add((event.get("summary"), start_day))

        created = 0
        for habit in habits:
            title = f"✓ {habit.name}"
            for record in records:
                if record.habit_id != habit.id or not record.completed:
                    continue
                day = record.date.date()
                if (title, day.isoformat()) in existing:
                    continue
                # all-day events end exclusively on the following day
                self._calendar().events().insert(calendarId=calendar_id, body={
                    "summary": title,
                    "description": habit.description or "",
                    "start": {"date": day.isoformat()},
                    "end": {"date": (day + timedelta(days=1)).isoformat()},
                    "colorId": color_id_for(habit.color_tag),
                }).execute()
                existing.add((title, day.isoformat()))
                created += 1
        logger.info(f"Google Calendar sync created {created} events")
        return created
