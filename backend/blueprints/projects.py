import logging

from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required

from utils.decorators import current_principal
from utils.errors import error_response
from utils.services import get_project_service

logger = logging.getLogger(__name__)
projects_bp = Blueprint("projects", __name__, url_prefix="/api/projects")


@projects_bp.route("", methods=["GET"])
@jwt_required()
def api_list_projects():
    try:
        user_id, role = current_principal()
        projects = get_project_service().list_projects(user_id, role, request.args.get("status"))
        return jsonify({"projects": projects}), 200
    except Exception as e:
        return error_response(e, "listing projects")


@projects_bp.route("", methods=["POST"])
@jwt_required()
def api_create_project():
    """Create the project for a hired applicant from their completed interview."""
    try:
        user_id, _ = current_principal()
        data = request.get_json(silent=True) or {}
        project = get_project_service().create_project(
            user_id,
            data.get("interview_id"),
            title=data.get("title"),
            payment=data.get("payment"),
            description=data.get("description"),
            duration=data.get("duration"),
            deadline=data.get("deadline"),
        )
        return jsonify({"message": "Project created", "project": project}), 201
    except Exception as e:
        return error_response(e, "creating project")


@projects_bp.route("/<int:project_id>", methods=["GET"])
@jwt_required()
def api_get_project(project_id: int):
    try:
        user_id, _ = current_principal()
        return jsonify({"project": get_project_service().get_project(user_id, project_id)}), 200
    except Exception as e:
        return error_response(e, f"fetching project {project_id}")


@projects_bp.route("/<int:project_id>/tasks", methods=["POST"])
@jwt_required()
def api_add_task(project_id: int):
    try:
        user_id, _ = current_principal()
        data = request.get_json(silent=True) or {}
        task = get_project_service().add_task(
            user_id,
            project_id,
            title=data.get("title"),
            description=data.get("description"),
            deadline=data.get("deadline"),
            files=data.get("files"),
        )
        return jsonify({"message": "Task added", "task": task}), 201
    except Exception as e:
        return error_response(e, f"adding task to project {project_id}")


@projects_bp.route("/<int:project_id>/tasks/<int:task_id>", methods=["PATCH"])
@jwt_required()
def api_update_task(project_id: int, task_id: int):
    try:
        user_id, _ = current_principal()
        data = request.get_json(silent=True) or {}
        task = get_project_service().update_task_status(
            user_id, project_id, task_id, data.get("status")
        )
        return jsonify({"message": "Task updated", "task": task}), 200
    except Exception as e:
        return error_response(e, f"updating task {task_id}")


@projects_bp.route("/<int:project_id>/complete", methods=["POST"])
@jwt_required()
def api_mark_complete(project_id: int):
    try:
        user_id, _ = current_principal()
        project = get_project_service().mark_complete(user_id, project_id)
        return jsonify({"message": "Project completed", "project": project}), 200
    except Exception as e:
        return error_response(e, f"completing project {project_id}")
