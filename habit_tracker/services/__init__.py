from .calendar_sync import CalendarIntegrations
from .google_calendar import GoogleCalendarIntegration
from .notification import NotificationService
from .notion import NotionIntegration

__all__ = [
    "CalendarIntegrations",
    "GoogleCalendarIntegration",
    "NotificationService",
    "NotionIntegration",
]
