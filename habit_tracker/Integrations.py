import logging
from flask import Blueprint, current_app, redirect, request, jsonify

from .errors import InvalidInputError, StorageError
from .storage import get_storage

logger = logging.getLogger(__name__)

integrations_bp = Blueprint("integrations", __name__, url_prefix="/api/integrations")


def get_integrations():
    return current_app.extensions["calendar_integrations"]


def _habit_data():
    storage = get_storage()
    return storage.get_habits(), storage.get_habit_records()


@integrations_bp.route("/google-calendar/sync", methods=["POST"])
def sync_google_calendar():
    try:
        habits, records = _habit_data()
    except StorageError as e:
        logger.error(f"Error loading habits for Google Calendar sync: {e.message}")
        return jsonify({"success": False, "message": "Failed to sync habits to Google Calendar"}), 500
    if get_integrations().sync_to_google_calendar(habits, records):
        return jsonify({"success": True, "message": "Successfully synced habits to Google Calendar"}), 200
    return jsonify({
        "success": False,
        "message": "Failed to sync habits to Google Calendar. Make sure you have provided the necessary credentials.",
    }), 400


@integrations_bp.route("/google-calendar/auth-url", methods=["GET"])
def google_auth_url():
    url = get_integrations().get_google_auth_url()
    if not url:
        return jsonify({
            "message": "Failed to generate Google Calendar authorization URL. Make sure you have provided the necessary credentials.",
        }), 400
    return jsonify({"url": url}), 200


@integrations_bp.route("/google-calendar/callback", methods=["GET"])
def google_callback():
    code = request.args.get("code")
    if not code:
        raise InvalidInputError("Authorization code is required")
    frontend = current_app.config["FRONTEND_URL"].rstrip("/")
    if get_integrations().handle_google_callback(code):
        logger.info("Google Calendar authorized")
        return redirect(f"{frontend}/?google_auth_success=true")
    return redirect(f"{frontend}/?google_auth_error=true")


@integrations_bp.route("/notion/sync", methods=["POST"])
def sync_notion():
    try:
        habits, records = _habit_data()
    except StorageError as e:
        logger.error(f"Error loading habits for Notion sync: {e.message}")
        return jsonify({"success": False, "message": "Failed to sync habits to Notion"}), 500
    if get_integrations().sync_to_notion(habits, records):
        return jsonify({"success": True, "message": "Successfully synced habits to Notion"}), 200
    return jsonify({
        "success": False,
        "message": "Failed to sync habits to Notion. Make sure you have provided the necessary API key.",
    }), 400


@integrations_bp.route("/sync-all", methods=["POST"])
def sync_all():
    try:
        habits, records = _habit_data()
    except StorageError as e:
        logger.error(f"Error loading habits for sync: {e.message}")
        return jsonify({"success": False, "message": "Failed to sync habits to external services"}), 500
    results = get_integrations().sync_to_all(habits, records)
    return jsonify({
        "success": results["google"] or results["notion"],
        "results": {
            "google": {
                "success": results["google"],
                "message": "Successfully synced to Google Calendar" if results["google"]
                else "Failed to sync to Google Calendar",
            },
            "notion": {
                "success": results["notion"],
                "message": "Successfully synced to Notion" if results["notion"]
                else "Failed to sync to Notion",
            },
        },
    }), 200


@integrations_bp.route("/status", methods=["GET"])
def integration_status():
    return jsonify(get_integrations().status()), 200
