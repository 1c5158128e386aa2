import logging

from flask import Blueprint, jsonify, request
from flask_jwt_extended import create_access_token, jwt_required

from karya.lifecycle.states import Role
from utils.decorators import current_principal
from utils.errors import error_response
from utils.services import get_auth_service, get_user_service

logger = logging.getLogger(__name__)
auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _token_for(user_id: int, role: str) -> str:
    return create_access_token(identity=str(user_id), additional_claims={"role": role})


@auth_bp.route("/register", methods=["POST"])
def api_register():
    """Register a new freelancer or hirer via API."""
    try:
        data = request.get_json(silent=True)
        if not data:
            return jsonify({"error": "No data provided"}), 400

        role = data.get("role") or Role.FREELANCER.value
        auth_service = get_auth_service()
        user_id = auth_service.register_user(
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            email=data.get("email"),
            password=data.get("password"),
            role=role,
        )

        # Create access token for immediate login
        return (
            jsonify(
                {
                    "message": "User registered successfully",
                    "user_id": user_id,
                    "access_token": _token_for(user_id, role),
                }
            ),
            201,
        )
    except Exception as e:
        return error_response(e, "registering user")


@auth_bp.route("/login", methods=["POST"])
def api_login():
    """Login a user via API."""
    try:
        data = request.get_json(silent=True)
        if not data:
            return jsonify({"error": "No data provided"}), 400

        email = data.get("email")
        password = data.get("password")
        if not all([email, password]):
            return jsonify({"error": "Email and password are required"}), 400

        user = get_auth_service().authenticate_user(email, password)
        if not user:
            return jsonify({"error": "Invalid email or password"}), 401

        return (
            jsonify(
                {
                    "message": "Login successful",
                    "access_token": _token_for(user["user_id"], user["role"]),
                    "user": {
                        "user_id": user["user_id"],
                        "first_name": user["first_name"],
                        "last_name": user["last_name"],
                        "email": user["email"],
                        "role": user["role"],
                    },
                }
            ),
            200,
        )
    except Exception as e:
        return error_response(e, "logging in")


@auth_bp.route("/me", methods=["GET"])
@jwt_required()
def api_me():
    """Current user's profile with a freshly calculated badge."""
    try:
        user_id, _ = current_principal()
        return jsonify({"user": get_user_service().get_profile(user_id)}), 200
    except Exception as e:
        return error_response(e, "fetching current user")
