import logging

from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required

from karya.lifecycle.states import Role
from utils.decorators import current_principal, rate_limit, role_required
from utils.errors import error_response
from utils.services import get_lifecycle_engine

logger = logging.getLogger(__name__)
applications_bp = Blueprint("applications", __name__, url_prefix="/api/applications")


@applications_bp.route("", methods=["GET"])
@jwt_required()
def api_list_applications():
    """Applications to the hirer's jobs (optionally by status), or the freelancer's own."""
    try:
        user_id, role = current_principal()
        engine = get_lifecycle_engine()
        if role == Role.HIRER.value:
            applications = engine.list_applications_for_hirer(user_id, request.args.get("status"))
        else:
            applications = engine.list_applications_for_freelancer(user_id)
        return jsonify({"applications": applications}), 200
    except Exception as e:
        return error_response(e, "listing applications")


@applications_bp.route("/<int:application_id>", methods=["GET"])
@jwt_required()
def api_get_application(application_id: int):
    try:
        user_id, _ = current_principal()
        application = get_lifecycle_engine().get_application(user_id, application_id)
        return jsonify({"application": application}), 200
    except Exception as e:
        return error_response(e, f"fetching application {application_id}")


@applications_bp.route("/<int:application_id>/interview", methods=["POST"])
@role_required(Role.HIRER)
@rate_limit(max_calls=10, window_seconds=60)
def api_schedule_interview(application_id: int):
    try:
        user_id, _ = current_principal()
        data = request.get_json(silent=True) or {}
        interview = get_lifecycle_engine().schedule_interview(
            user_id, application_id, data.get("scheduled_time")
        )
        return jsonify({"message": "Interview scheduled", "interview": interview}), 201
    except Exception as e:
        return error_response(e, f"scheduling interview for application {application_id}")


@applications_bp.route("/<int:application_id>/reject", methods=["POST"])
@jwt_required()
def api_reject(application_id: int):
    try:
        user_id, _ = current_principal()
        application = get_lifecycle_engine().reject_application(user_id, application_id)
        return jsonify({"message": "Application rejected", "application": application}), 200
    except Exception as e:
        return error_response(e, f"rejecting application {application_id}")


@applications_bp.route("/<int:application_id>/hire", methods=["POST"])
@jwt_required()
def api_confirm_hire(application_id: int):
    try:
        user_id, _ = current_principal()
        application = get_lifecycle_engine().confirm_hire(user_id, application_id)
        return jsonify({"message": "Applicant hired", "application": application}), 200
    except Exception as e:
        return error_response(e, f"hiring for application {application_id}")
