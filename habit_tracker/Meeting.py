import logging
from typing import get_args
from flask import Blueprint, request, jsonify

from .Authentication import token_required
from .errors import InvalidInputError, NotFoundError, StorageError
from .schemas import (
    MeetingCreate,
    MeetingFromTemplate,
    MeetingParticipantCreate,
    MeetingParticipantUpdate,
    MeetingStatus,
    MeetingTemplateCreate,
    MeetingTemplateUpdate,
    MeetingUpdate,
    parse_date_param,
    validate_payload,
)
from .storage import get_storage

logger = logging.getLogger(__name__)

meetings_bp = Blueprint("meetings", __name__, url_prefix="/api")


def _owned_meeting(user, id):
    meeting = get_storage().get_meeting(id)
    if not meeting or meeting.host_user_id != user.id:
        raise NotFoundError("Meeting not found")
    return meeting


def _owned_template(user, id):
    template = get_storage().get_meeting_template(id)
    if not template or template.user_id != user.id:
        raise NotFoundError("Meeting template not found")
    return template


def _json_object():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidInputError("Request body must be a JSON object")
    return data


@meetings_bp.route("/meetings", methods=["GET", "POST"])
@token_required
def meetings(user):
    storage = get_storage()
    if request.method == "GET":
        status = request.args.get("status") or None
        if status is not None and status not in get_args(MeetingStatus):
            raise InvalidInputError("Invalid meeting status")
        start = parse_date_param(request.args.get("start_date"))
        end = parse_date_param(request.args.get("end_date"), end_of_day=True)
        try:
            meetings = storage.get_meetings(user.id, status, start, end)
        except StorageError as e:
            logger.error(f"Error fetching meetings: {e.message}")
            return jsonify({"message": "Failed to fetch meetings"}), 500
        logger.debug(f"Fetched {len(meetings)} meetings for user {user.username}")
        return jsonify([meeting.to_dict() for meeting in meetings]), 200

    data = dict(_json_object(), host_user_id=user.id)
    logger.debug(f"Create meeting payload: {data}")
    values = validate_payload(MeetingCreate, data)
    try:
        meeting = storage.create_meeting(values)
    except StorageError as e:
        logger.error(f"Error creating meeting: {e.message}")
        return jsonify({"message": "Failed to create meeting"}), 500
    logger.info(f"Meeting created: {meeting.title}")
    return jsonify(meeting.to_dict()), 201


@meetings_bp.route("/meetings/<int:id>", methods=["GET", "PATCH", "DELETE"])
@token_required
def meeting(user, id):
    storage = get_storage()
    meeting = _owned_meeting(user, id)
    if request.method == "GET":
        return jsonify(meeting.to_dict()), 200

    if request.method == "PATCH":
        values = validate_payload(MeetingUpdate, request.get_json(silent=True), partial=True)
        try:
            meeting = storage.update_meeting(id, values)
        except StorageError as e:
            logger.error(f"Error updating meeting {id}: {e.message}")
            return jsonify({"message": "Failed to update meeting"}), 500
        logger.info(f"Meeting {id} updated")
        return jsonify(meeting.to_dict()), 200

    try:
        storage.delete_meeting(id)
    except StorageError as e:
        logger.error(f"Error deleting meeting {id}: {e.message}")
        return jsonify({"message": "Failed to delete meeting"}), 500
    logger.info(f"Meeting {id} deleted")
    return "", 204


# Participants

@meetings_bp.route("/meetings/<int:id>/participants", methods=["GET", "POST"])
@token_required
def participants(user, id):
    storage = get_storage()
    _owned_meeting(user, id)
    if request.method == "GET":
        return jsonify([p.to_dict() for p in storage.get_meeting_participants(id)]), 200

    values = validate_payload(MeetingParticipantCreate, request.get_json(silent=True))
    participant = storage.create_meeting_participant(id, values)
    logger.info(f"Participant {participant.name} added to meeting {id}")
    return jsonify(participant.to_dict()), 201


@meetings_bp.route("/meetings/<int:id>/participants/<int:participant_id>", methods=["PATCH", "DELETE"])
@token_required
def participant(user, id, participant_id):
    storage = get_storage()
    _owned_meeting(user, id)
    participant = storage.get_meeting_participant(participant_id)
    if not participant or participant.meeting_id != id:
        raise NotFoundError("Participant not found")

    if request.method == "PATCH":
        values = validate_payload(MeetingParticipantUpdate, request.get_json(silent=True), partial=True)
        participant = storage.update_meeting_participant(participant_id, values)
        return jsonify(participant.to_dict()), 200

    storage.delete_meeting_participant(participant_id)
    logger.info(f"Participant {participant_id} removed from meeting {id}")
    return "", 204


# Templates

@meetings_bp.route("/meeting-templates", methods=["GET", "POST"])
@token_required
def templates(user):
    storage = get_storage()
    if request.method == "GET":
        templates = storage.get_meeting_templates(user.id)
        return jsonify([template.to_dict() for template in templates]), 200

    values = validate_payload(MeetingTemplateCreate, request.get_json(silent=True))
    values["user_id"] = user.id
    template = storage.create_meeting_template(values)
    logger.info(f"Meeting template created: {template.name}")
    return jsonify(template.to_dict()), 201


@meetings_bp.route("/meeting-templates/<int:id>", methods=["GET", "PATCH", "DELETE"])
@token_required
def template(user, id):
    storage = get_storage()
    template = _owned_template(user, id)
    if request.method == "GET":
        return jsonify(template.to_dict()), 200

    if request.method == "PATCH":
        values = validate_payload(MeetingTemplateUpdate, request.get_json(silent=True), partial=True)
        template = storage.update_meeting_template(id, values)
        return jsonify(template.to_dict()), 200

    storage.delete_meeting_template(id)
    logger.info(f"Meeting template {id} deleted")
    return "", 204


@meetings_bp.route("/meeting-templates/<int:id>/meetings", methods=["POST"])
@token_required
def meeting_from_template(user, id):
    _owned_template(user, id)
    values = validate_payload(MeetingFromTemplate, request.get_json(silent=True))
    # the template owner always hosts
    overrides = {key: value for key, value in values["overrides"].items() if key != "host_user_id"}
    try:
        meeting = get_storage().create_meeting_from_template(id, values["start_time"], overrides)
    except StorageError as e:
        logger.error(f"Error creating meeting from template {id}: {e.message}")
        return jsonify({"message": "Failed to create meeting"}), 500
    logger.info(f"Meeting {meeting.id} created from template {id}")
    return jsonify(meeting.to_dict()), 201
