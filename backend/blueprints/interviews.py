import logging

from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required

from utils.decorators import current_principal
from utils.errors import error_response
from utils.services import get_lifecycle_engine

logger = logging.getLogger(__name__)
interviews_bp = Blueprint("interviews", __name__, url_prefix="/api/interviews")


@interviews_bp.route("", methods=["GET"])
@jwt_required()
def api_list_interviews():
    """Interviews where the caller is the applicant or the scheduling hirer."""
    try:
        user_id, _ = current_principal()
        return jsonify({"interviews": get_lifecycle_engine().list_interviews(user_id)}), 200
    except Exception as e:
        return error_response(e, "listing interviews")


@interviews_bp.route("/<int:interview_id>", methods=["PATCH"])
@jwt_required()
def api_reschedule(interview_id: int):
    try:
        user_id, _ = current_principal()
        data = request.get_json(silent=True) or {}
        interview = get_lifecycle_engine().reschedule_interview(
            user_id, interview_id, data.get("scheduled_time")
        )
        return jsonify({"message": "Interview rescheduled", "interview": interview}), 200
    except Exception as e:
        return error_response(e, f"rescheduling interview {interview_id}")


@interviews_bp.route("/<int:interview_id>/cancel", methods=["POST"])
@jwt_required()
def api_cancel(interview_id: int):
    try:
        user_id, _ = current_principal()
        data = request.get_json(silent=True) or {}
        interview = get_lifecycle_engine().cancel_interview(
            user_id, interview_id, data.get("reason")
        )
        return jsonify({"message": "Interview cancelled", "interview": interview}), 200
    except Exception as e:
        return error_response(e, f"cancelling interview {interview_id}")


@interviews_bp.route("/<int:interview_id>/status", methods=["PUT"])
@jwt_required()
def api_set_status(interview_id: int):
    """Mark an interview Completed or Failed."""
    try:
        user_id, _ = current_principal()
        data = request.get_json(silent=True) or {}
        interview = get_lifecycle_engine().mark_interview_status(
            user_id, interview_id, data.get("status")
        )
        return jsonify({"message": "Interview updated", "interview": interview}), 200
    except Exception as e:
        return error_response(e, f"updating interview {interview_id}")
