import logging

from twilio.rest import Client

logger = logging.getLogger(__name__)


def _describe_class(college_class):
    return (
        f"🕒 Time: {college_class.start_time} - {college_class.end_time}\n"
        f"📍 Location: {college_class.location or 'Not specified'}\n"
        f"👨‍🏫 Instructor: {college_class.instructor or 'Not specified'}\n\n"
    )


class NotificationService:
    """WhatsApp messages through Twilio.

    The service is enabled only when the account SID, auth token and sender
    number are all present. Sends never raise; they return ``True`` on success.
    """

    def __init__(self, account_sid=None, auth_token=None, phone_number=None, client=None):
        self.phone_number = phone_number
        self.client = None
        self.enabled = False
        if client is not None and phone_number:
            self.client = client
            self.enabled = True
        elif account_sid and auth_token and phone_number:
            try:
                self.client = Client(account_sid, auth_token)
                self.enabled = True
                logger.info("Twilio notification service initialized")
            except Exception as e:
                logger.error(f"Error initializing Twilio client: {e}")
        else:
            logger.info("Twilio credentials not found, notification service is disabled")

    @classmethod
    def from_app_config(cls, config):
        return cls(
            account_sid=config.get("TWILIO_ACCOUNT_SID"),
            auth_token=config.get("TWILIO_AUTH_TOKEN"),
            phone_number=config.get("TWILIO_PHONE_NUMBER"),
        )

    def is_enabled(self):
        return self.enabled

    def send_whatsapp_message(self, to, message):
        if not self.enabled:
            logger.warning("Cannot send WhatsApp message: notification service is disabled")
            return False
        try:
            self.client.messages.create(
                body=message,
                from_=f"whatsapp:{self.phone_number}",
                to=f"whatsapp:{to}",
            )
            logger.info(f"WhatsApp message sent to {to}")
            return True
        except Exception as e:
            logger.error(f"Error sending WhatsApp message: {e}")
            return False

    def send_class_reminder(self, to, college_class):
        message = (
            f'📚 Reminder: Your class "{college_class.name}" ({college_class.course_code}) starts soon!\n\n'
            + _describe_class(college_class)
            + "Don't forget to mark your attendance in the app!"
        )
        return self.send_whatsapp_message(to, message)

    def send_missed_class_alert(self, to, college_class):
        message = (
            f'❗ Missed Class Alert: You missed "{college_class.name}" ({college_class.course_code}) today.\n\n'
            + _describe_class(college_class)
            + "If this is incorrect, please update your attendance in the app."
        )
        return self.send_whatsapp_message(to, message)
