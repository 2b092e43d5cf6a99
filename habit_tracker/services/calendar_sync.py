import logging

from .google_calendar import GoogleCalendarIntegration
from .notion import NotionIntegration

logger = logging.getLogger(__name__)


class CalendarIntegrations:
    """Single entry point for the external calendar syncs.

    Nothing here raises to the caller: every operation reports success as a
    boolean (or ``None`` for the auth URL) and logs the underlying error.
    """

    def __init__(self, config, google=None, notion=None):
        self.config = config
        self._google = google
        self._notion = notion

    @classmethod
    def from_app_config(cls, config):
        keys = (
            "GOOGLE_CLIENT_ID",
            "GOOGLE_CLIENT_SECRET",
            "GOOGLE_REDIRECT_URI",
            "GOOGLE_REFRESH_TOKEN",
            "GOOGLE_CALENDAR_TIMEZONE",
            "NOTION_API_KEY",
            "NOTION_DATABASE_ID",
            "NOTION_PARENT_PAGE_ID",
        )
        return cls({key: config.get(key) for key in keys})

    @property
    def google(self):
        if self._google is None:
            self._google = GoogleCalendarIntegration(
                client_id=self.config.get("GOOGLE_CLIENT_ID"),
                client_secret=self.config.get("GOOGLE_CLIENT_SECRET"),
                redirect_uri=self.config.get("GOOGLE_REDIRECT_URI"),
                refresh_token=self.config.get("GOOGLE_REFRESH_TOKEN"),
                time_zone=self.config.get("GOOGLE_CALENDAR_TIMEZONE") or "UTC",
            )
        return self._google

    @property
    def notion(self):
        if self._notion is None:
            self._notion = NotionIntegration(
                api_key=self.config.get("NOTION_API_KEY"),
                database_id=self.config.get("NOTION_DATABASE_ID"),
                parent_page_id=self.config.get("NOTION_PARENT_PAGE_ID"),
            )
        return self._notion

    def google_client_configured(self):
        return bool(self.config.get("GOOGLE_CLIENT_ID") and self.config.get("GOOGLE_CLIENT_SECRET"))

    def google_configured(self):
        if not self.google_client_configured():
            return False
        # a refresh token obtained through the OAuth callback counts too
        return bool(self.config.get("GOOGLE_REFRESH_TOKEN") or (self._google and self._google.refresh_token))

    def notion_configured(self):
        return bool(self.config.get("NOTION_API_KEY"))

    def status(self):
        return {
            "google_calendar": {
                "configured": self.google_client_configured(),
                "authorized": self.google_configured(),
            },
            "notion": {"configured": self.notion_configured()},
        }

    def sync_to_google_calendar(self, habits, records):
        if not self.google_configured():
            logger.info("Google Calendar credentials not found")
            return False
        try:
            self.google.sync_habits(habits, records)
            return True
        except Exception as e:
            logger.error(f"Error syncing to Google Calendar: {e}")
            return False

    def sync_to_notion(self, habits, records):
        if not self.notion_configured():
            logger.info("Notion API key not found")
            return False
        try:
            self.notion.sync_habits(habits, records)
            return True
        except Exception as e:
            logger.error(f"Error syncing to Notion: {e}")
            return False

    def sync_to_all(self, habits, records):
        return {
            "google": self.sync_to_google_calendar(habits, records),
            "notion": self.sync_to_notion(habits, records),
        }

    def get_google_auth_url(self):
        if not self.google_client_configured():
            return None
        try:
            return self.google.get_auth_url()
        except Exception as e:
            logger.error(f"Error generating Google auth URL: {e}")
            return None

    def handle_google_callback(self, code):
        try:
            self.google.exchange_code(code)
            return True
        except Exception as e:
            logger.error(f"Error handling Google callback: {e}")
            return False
