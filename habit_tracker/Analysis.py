import logging
from datetime import date, timedelta
from flask import Blueprint, request, jsonify

from .errors import StorageError
from .schemas import parse_date_param, parse_id_param
from .storage import get_storage
from .Streak import (
    completion_rate,
    current_streak,
    daily_completion,
    filter_records,
    longest_streak,
    records_by_date,
)

logger = logging.getLogger(__name__)

analysis_bp = Blueprint("analysis", __name__, url_prefix="/api")


@analysis_bp.route("/habits/analysis", methods=["GET"])
def get_analysis():
    habit_id = parse_id_param(request.args.get("habit_id"), "habit")
    start = parse_date_param(request.args.get("start_date"))
    end = parse_date_param(request.args.get("end_date"), end_of_day=True)

    storage = get_storage()
    try:
        habits = storage.get_habits()
        records = storage.get_habit_records(habit_id, start, end)
    except StorageError as e:
        logger.error(f"Error fetching analysis: {e.message}")
        return jsonify({"message": "Failed to fetch analysis"}), 500

    if habit_id is not None:
        habits = [habit for habit in habits if habit.id == habit_id]

    habit_data = []
    for habit in habits:
        owned = filter_records(records, habit.id)
        habit_data.append({
            "id": habit.id,
            "name": habit.name,
            "frequency": habit.frequency,
            "total_records": len(owned),
            "completion_rate": completion_rate(owned),
            "current_streak": current_streak(owned),
            "longest_streak": longest_streak(owned),
        })

    trend_end = end.date() if end else date.today()
    trend_start = trend_end - timedelta(days=30)

    logger.debug(f"Analysis computed over {len(records)} records for {len(habit_data)} habits")
    return jsonify({
        "completion_rate": completion_rate(records),
        "current_streak": current_streak(records),
        "longest_streak": longest_streak(records),
        "total_records": len(records),
        "completed_records": sum(1 for record in records if record.completed),
        "habits": habit_data,
        "completed_by_date": records_by_date(records),
        "trends": daily_completion(records, trend_start, trend_end),
    }), 200
