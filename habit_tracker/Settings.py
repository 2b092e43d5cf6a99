import logging
from flask import Blueprint, current_app, request, jsonify

from .Authentication import token_required
from .errors import NotFoundError, StorageError
from .schemas import NotificationSettingsSchema, validate_payload
from .storage import get_storage

logger = logging.getLogger(__name__)

settings_bp = Blueprint("settings", __name__, url_prefix="/api")


@settings_bp.route("/notification-settings", methods=["GET", "PATCH"])
@token_required
def notification_settings(user):
    storage = get_storage()
    if request.method == "GET":
        settings = storage.get_notification_settings(user.id)
        if settings is None:
            raise NotFoundError("Notification settings not found")
        return jsonify(settings), 200

    values = validate_payload(NotificationSettingsSchema, request.get_json(silent=True))
    try:
        settings = storage.update_notification_settings(user.id, values)
    except StorageError as e:
        logger.error(f"Error updating notification settings: {e.message}")
        return jsonify({"message": "Failed to update notification settings"}), 500
    if settings is None:
        raise NotFoundError("User not found")
    logger.info(f"Notification settings updated for {user.username}")
    return jsonify(settings), 200


@settings_bp.route("/notification-service/status", methods=["GET"])
def notification_service_status():
    enabled = current_app.extensions["notification_service"].is_enabled()
    return jsonify({
        "enabled": enabled,
        "message": "WhatsApp notification service is available" if enabled
        else "WhatsApp notification service is not available. Make sure you've provided the required Twilio credentials.",
    }), 200
