import logging

from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required

from karya.lifecycle.states import Role
from utils.decorators import current_principal, role_required
from utils.errors import error_response
from utils.services import get_job_service, get_lifecycle_engine

logger = logging.getLogger(__name__)
jobs_bp = Blueprint("jobs", __name__, url_prefix="/api/jobs")

JOB_FIELDS = (
    "title",
    "company",
    "workplace_type",
    "location",
    "job_type",
    "category",
    "sub_category",
    "notification_preference",
    "description",
)


def _job_fields(data: dict) -> dict:
    return {name: data.get(name) for name in JOB_FIELDS if name in data}


@jobs_bp.route("", methods=["GET"])
@jwt_required()
def api_list_jobs():
    """Jobs list API endpoint returning JSON list."""
    try:
        jobs = get_job_service().list_jobs(
            category=request.args.get("category"),
            job_type=request.args.get("job_type"),
            limit=request.args.get("limit", 50, type=int),
            offset=request.args.get("offset", 0, type=int),
        )
        return jsonify({"jobs": jobs}), 200
    except Exception as e:
        return error_response(e, "listing jobs")


@jobs_bp.route("/mine", methods=["GET"])
@role_required(Role.HIRER)
def api_my_jobs():
    try:
        user_id, _ = current_principal()
        return jsonify({"jobs": get_job_service().list_jobs_for_hirer(user_id)}), 200
    except Exception as e:
        return error_response(e, "listing hirer jobs")


@jobs_bp.route("/saved", methods=["GET"])
@jwt_required()
def api_saved_jobs():
    try:
        user_id, _ = current_principal()
        return jsonify({"saved_jobs": get_job_service().list_saved_jobs(user_id)}), 200
    except Exception as e:
        return error_response(e, "listing saved jobs")


@jobs_bp.route("/<int:job_id>", methods=["GET"])
@jwt_required()
def api_get_job(job_id: int):
    try:
        return jsonify({"job": get_job_service().get_job(job_id)}), 200
    except Exception as e:
        return error_response(e, f"fetching job {job_id}")


@jobs_bp.route("", methods=["POST"])
@jwt_required()
def api_create_job():
    try:
        user_id, role = current_principal()
        data = request.get_json(silent=True) or {}
        job = get_job_service().create_job(user_id, role, _job_fields(data))
        return jsonify({"message": "Job posted", "job": job}), 201
    except Exception as e:
        return error_response(e, "creating job")


@jobs_bp.route("/<int:job_id>", methods=["PUT"])
@jwt_required()
def api_update_job(job_id: int):
    try:
        user_id, role = current_principal()
        data = request.get_json(silent=True) or {}
        job = get_job_service().update_job(user_id, role, job_id, _job_fields(data))
        return jsonify({"message": "Job updated", "job": job}), 200
    except Exception as e:
        return error_response(e, f"updating job {job_id}")


@jobs_bp.route("/<int:job_id>", methods=["DELETE"])
@jwt_required()
def api_delete_job(job_id: int):
    try:
        user_id, role = current_principal()
        get_job_service().delete_job(user_id, role, job_id)
        return jsonify({"message": "Job deleted"}), 200
    except Exception as e:
        return error_response(e, f"deleting job {job_id}")


@jobs_bp.route("/<int:job_id>/apply", methods=["POST"])
@jwt_required()
def api_apply(job_id: int):
    """Apply to a job with a cover letter and an optional uploaded resume path."""
    try:
        user_id, role = current_principal()
        data = request.get_json(silent=True) or {}
        application = get_lifecycle_engine().apply_to_job(
            user_id,
            role,
            job_id,
            cover_letter=data.get("cover_letter"),
            resume_path=data.get("resume_path"),
        )
        return jsonify({"message": "Application submitted", "application": application}), 201
    except Exception as e:
        return error_response(e, f"applying to job {job_id}")


@jobs_bp.route("/<int:job_id>/save", methods=["POST"])
@jwt_required()
def api_save_job(job_id: int):
    try:
        user_id, _ = current_principal()
        saved = get_job_service().save_job(user_id, job_id)
        return jsonify({"message": "Job saved", "saved_job": saved}), 201
    except Exception as e:
        return error_response(e, f"saving job {job_id}")


@jobs_bp.route("/<int:job_id>/save", methods=["DELETE"])
@jwt_required()
def api_unsave_job(job_id: int):
    try:
        user_id, _ = current_principal()
        get_job_service().unsave_job(user_id, job_id)
        return jsonify({"message": "Job unsaved"}), 200
    except Exception as e:
        return error_response(e, f"unsaving job {job_id}")
