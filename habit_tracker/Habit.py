import logging
from flask import Blueprint, request, jsonify

from .errors import NotFoundError, StorageError
from .schemas import (
    HabitCategoryCreate,
    HabitCategoryUpdate,
    HabitCreate,
    HabitRecordCreate,
    HabitRecordUpdate,
    HabitTagCreate,
    HabitTagUpdate,
    HabitUpdate,
    parse_date_param,
    parse_id_param,
    validate_payload,
)
from .storage import get_storage
from .Streak import current_streak

logger = logging.getLogger(__name__)

habits_bp = Blueprint("habits", __name__, url_prefix="/api")


@habits_bp.route("/habits", methods=["GET", "POST"])
def habits():
    storage = get_storage()
    if request.method == "GET":
        try:
            habits = storage.get_habits()
            records = storage.get_habit_records()
            logger.debug(f"Fetched {len(habits)} habits")
            return jsonify([
                dict(habit.to_dict(), current_streak=current_streak([r for r in records if r.habit_id == habit.id]))
                for habit in habits
            ]), 200
        except StorageError as e:
            logger.error(f"Error fetching habits: {e.message}")
            return jsonify({"message": "Failed to fetch habits"}), 500

    data = request.get_json(silent=True)
    logger.debug(f"Create habit payload: {data}")
    values = validate_payload(HabitCreate, data)
    try:
        habit = storage.create_habit(values)
        logger.info(f"Habit created: {habit.name}")
        return jsonify(habit.to_dict()), 201
    except StorageError as e:
        logger.error(f"Error creating habit: {e.message}")
        return jsonify({"message": "Failed to create habit"}), 500


@habits_bp.route("/habits/<int:id>", methods=["GET", "PATCH", "DELETE"])
def habit(id):
    storage = get_storage()
    if request.method == "GET":
        habit = storage.get_habit(id)
        if not habit:
            raise NotFoundError("Habit not found")
        return jsonify(habit.to_dict()), 200

    if request.method == "PATCH":
        data = request.get_json(silent=True)
        logger.debug(f"Update habit {id} payload: {data}")
        values = validate_payload(HabitUpdate, data, partial=True)
        try:
            habit = storage.update_habit(id, values)
        except StorageError as e:
            logger.error(f"Error updating habit {id}: {e.message}")
            return jsonify({"message": "Failed to update habit"}), 500
        if not habit:
            raise NotFoundError("Habit not found")
        logger.info(f"Habit {id} updated")
        return jsonify(habit.to_dict()), 200

    try:
        deleted = storage.delete_habit(id)
    except StorageError as e:
        logger.error(f"Error deleting habit {id}: {e.message}")
        return jsonify({"message": "Failed to delete habit"}), 500
    if not deleted:
        raise NotFoundError("Habit not found")
    logger.info(f"Habit {id} deleted")
    return "", 204


@habits_bp.route("/habits/<int:habit_id>/records/<date>", methods=["GET"])
def habit_record_for_date(habit_id, date):
    day = parse_date_param(date)
    record = get_storage().get_habit_record(habit_id, day)
    if not record:
        raise NotFoundError("Habit record not found")
    return jsonify(record.to_dict()), 200


# Habit records

@habits_bp.route("/habit-records", methods=["GET", "POST"])
def habit_records():
    storage = get_storage()
    if request.method == "GET":
        habit_id = parse_id_param(request.args.get("habit_id"), "habit")
        start = parse_date_param(request.args.get("start_date"))
        end = parse_date_param(request.args.get("end_date"), end_of_day=True)
        records = storage.get_habit_records(habit_id, start, end)
        logger.debug(f"Fetched {len(records)} habit records")
        return jsonify([record.to_dict() for record in records]), 200

    values = validate_payload(HabitRecordCreate, request.get_json(silent=True))
    try:
        record = storage.upsert_habit_record(values)
    except StorageError as e:
        logger.error(f"Error creating/updating habit record: {e.message}")
        return jsonify({"message": "Failed to create/update habit record"}), 500
    logger.info(f"Habit record saved for habit {record.habit_id} on {record.day}")
    return jsonify(record.to_dict()), 201


@habits_bp.route("/habit-records/<int:id>", methods=["PATCH"])
def update_habit_record(id):
    values = validate_payload(HabitRecordUpdate, request.get_json(silent=True), partial=True)
    try:
        record = get_storage().update_habit_record(id, values)
    except StorageError as e:
        logger.error(f"Error updating habit record {id}: {e.message}")
        return jsonify({"message": "Failed to update habit record"}), 500
    if not record:
        raise NotFoundError("Habit record not found")
    return jsonify(record.to_dict()), 200


# Habit categories

@habits_bp.route("/habit-categories", methods=["GET", "POST"])
def habit_categories():
    storage = get_storage()
    if request.method == "GET":
        return jsonify([category.to_dict() for category in storage.get_habit_categories()]), 200
    values = validate_payload(HabitCategoryCreate, request.get_json(silent=True))
    category = storage.create_habit_category(values)
    logger.info(f"Habit category created: {category.name}")
    return jsonify(category.to_dict()), 201


@habits_bp.route("/habit-categories/<int:id>", methods=["GET", "PATCH", "DELETE"])
def habit_category(id):
    storage = get_storage()
    if request.method == "GET":
        category = storage.get_habit_category(id)
    elif request.method == "PATCH":
        values = validate_payload(HabitCategoryUpdate, request.get_json(silent=True), partial=True)
        category = storage.update_habit_category(id, values)
    else:
        if not storage.delete_habit_category(id):
            raise NotFoundError("Habit category not found")
        logger.info(f"Habit category {id} deleted")
        return "", 204
    if not category:
        raise NotFoundError("Habit category not found")
    return jsonify(category.to_dict()), 200


@habits_bp.route("/habit-categories/<int:id>/habits", methods=["GET"])
def habits_by_category(id):
    habits = get_storage().get_habits_by_category(id)
    return jsonify([habit.to_dict() for habit in habits]), 200


# Habit tags

@habits_bp.route("/habit-tags", methods=["GET", "POST"])
def habit_tags():
    storage = get_storage()
    if request.method == "GET":
        return jsonify([tag.to_dict() for tag in storage.get_habit_tags()]), 200
    values = validate_payload(HabitTagCreate, request.get_json(silent=True))
    tag = storage.create_habit_tag(values)
    logger.info(f"Habit tag created: {tag.name}")
    return jsonify(tag.to_dict()), 201


@habits_bp.route("/habit-tags/<int:id>", methods=["GET", "PATCH", "DELETE"])
def habit_tag(id):
    storage = get_storage()
    if request.method == "GET":
        tag = storage.get_habit_tag(id)
    elif request.method == "PATCH":
        values = validate_payload(HabitTagUpdate, request.get_json(silent=True), partial=True)
        tag = storage.update_habit_tag(id, values)
    else:
        if not storage.delete_habit_tag(id):
            raise NotFoundError("Habit tag not found")
        logger.info(f"Habit tag {id} deleted")
        return "", 204
    if not tag:
        raise NotFoundError("Habit tag not found")
    return jsonify(tag.to_dict()), 200


@habits_bp.route("/habit-tags/<int:id>/habits", methods=["GET"])
def habits_by_tag(id):
    habits = get_storage().get_habits_by_tag(id)
    return jsonify([habit.to_dict() for habit in habits]), 200
