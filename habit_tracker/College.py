import logging
from flask import Blueprint, current_app, request, jsonify

from .Authentication import token_required
from .errors import NotFoundError, StorageError
from .schemas import (
    ClassAttendanceCreate,
    ClassAttendanceUpdate,
    CollegeClassCreate,
    CollegeClassUpdate,
    parse_date_param,
    parse_id_param,
    validate_payload,
)
from .storage import get_storage
from .Streak import completion_rate, current_streak, longest_streak

logger = logging.getLogger(__name__)

college_bp = Blueprint("college", __name__, url_prefix="/api/college")


def _attendance_summary(storage, class_id=None):
    stats = storage.get_attendance_stats(class_id)
    records = storage.get_class_attendance_records(class_id)
    stats["attendance_rate"] = completion_rate(records, flag="attended")
    return stats


@college_bp.route("/classes", methods=["GET", "POST"])
def classes():
    storage = get_storage()
    if request.method == "GET":
        try:
            classes = storage.get_college_classes()
        except StorageError as e:
            logger.error(f"Error fetching college classes: {e.message}")
            return jsonify({"message": "Failed to fetch college classes"}), 500
        logger.debug(f"Fetched {len(classes)} college classes")
        return jsonify([college_class.to_dict() for college_class in classes]), 200

    data = request.get_json(silent=True)
    logger.debug(f"Create college class payload: {data}")
    values = validate_payload(CollegeClassCreate, data)
    try:
        college_class = storage.create_college_class(values)
    except StorageError as e:
        logger.error(f"Error creating college class: {e.message}")
        return jsonify({"message": "Failed to create college class"}), 500
    logger.info(f"College class created: {college_class.course_code}")
    return jsonify(college_class.to_dict()), 201


@college_bp.route("/classes/<int:id>", methods=["GET", "PATCH", "DELETE"])
def college_class(id):
    storage = get_storage()
    if request.method == "GET":
        college_class = storage.get_college_class(id)
    elif request.method == "PATCH":
        values = validate_payload(CollegeClassUpdate, request.get_json(silent=True), partial=True)
        try:
            college_class = storage.update_college_class(id, values)
        except StorageError as e:
            logger.error(f"Error updating college class {id}: {e.message}")
            return jsonify({"message": "Failed to update college class"}), 500
    else:
        try:
            deleted = storage.delete_college_class(id)
        except StorageError as e:
            logger.error(f"Error deleting college class {id}: {e.message}")
            return jsonify({"message": "Failed to delete college class"}), 500
        if not deleted:
            raise NotFoundError("College class not found")
        logger.info(f"College class {id} deleted")
        return "", 204
    if not college_class:
        raise NotFoundError("College class not found")
    return jsonify(college_class.to_dict()), 200


@college_bp.route("/classes/<int:id>/stats", methods=["GET"])
def class_stats(id):
    storage = get_storage()
    if not storage.get_college_class(id):
        raise NotFoundError("College class not found")
    records = storage.get_class_attendance_records(id)
    stats = _attendance_summary(storage, id)
    stats.update({
        "class_id": id,
        "current_streak": current_streak(records, flag="attended"),
        "longest_streak": longest_streak(records, owner="class_id", flag="attended"),
    })
    return jsonify(stats), 200


def _notify(user, id, kind):
    storage = get_storage()
    college_class = storage.get_college_class(id)
    if not college_class:
        raise NotFoundError("College class not found")

    settings = storage.get_notification_settings(user.id) or {}
    wanted = "notify_before_class" if kind == "reminder" else "notify_missed_class"
    if not settings.get("enabled") or not settings.get("phone_number") or not settings.get(wanted):
        return jsonify({
            "success": False,
            "message": "WhatsApp notifications are not enabled for this kind of message",
        }), 400

    notifier = current_app.extensions["notification_service"]
    if kind == "reminder":
        sent = notifier.send_class_reminder(settings["phone_number"], college_class)
        label = "class reminder"
    else:
        sent = notifier.send_missed_class_alert(settings["phone_number"], college_class)
        label = "missed class alert"
    if not sent:
        return jsonify({"success": False, "message": f"Failed to send {label}"}), 400
    logger.info(f"Sent {label} for class {id} to user {user.username}")
    return jsonify({"success": True, "message": f"Sent {label}"}), 200


@college_bp.route("/classes/<int:id>/remind", methods=["POST"])
@token_required
def remind(user, id):
    return _notify(user, id, "reminder")


@college_bp.route("/classes/<int:id>/missed-alert", methods=["POST"])
@token_required
def missed_alert(user, id):
    return _notify(user, id, "missed")


# Attendance

@college_bp.route("/attendance", methods=["GET", "POST"])
def attendance():
    storage = get_storage()
    if request.method == "GET":
        class_id = parse_id_param(request.args.get("class_id"), "class")
        start = parse_date_param(request.args.get("start_date"))
        end = parse_date_param(request.args.get("end_date"), end_of_day=True)
        records = storage.get_class_attendance_records(class_id, start, end)
        logger.debug(f"Fetched {len(records)} attendance records")
        return jsonify([record.to_dict() for record in records]), 200

    values = validate_payload(ClassAttendanceCreate, request.get_json(silent=True))
    try:
        record = storage.upsert_class_attendance(values)
    except StorageError as e:
        logger.error(f"Error creating/updating attendance record: {e.message}")
        return jsonify({"message": "Failed to create/update attendance record"}), 500
    logger.info(f"Attendance saved for class {record.class_id} on {record.day}")
    return jsonify(record.to_dict()), 201


@college_bp.route("/attendance/<int:id>", methods=["PATCH"])
def update_attendance(id):
    values = validate_payload(ClassAttendanceUpdate, request.get_json(silent=True), partial=True)
    try:
        record = get_storage().update_class_attendance(id, values)
    except StorageError as e:
        logger.error(f"Error updating attendance record {id}: {e.message}")
        return jsonify({"message": "Failed to update attendance record"}), 500
    if not record:
        raise NotFoundError("Attendance record not found")
    return jsonify(record.to_dict()), 200


@college_bp.route("/attendance/stats", methods=["GET"])
def attendance_stats():
    return jsonify(_attendance_summary(get_storage())), 200
