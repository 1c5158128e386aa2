import logging

from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required

from config import Config
from karya.lifecycle.states import Role
from utils.decorators import current_principal, role_required
from utils.errors import error_response
from utils.services import (
    get_calendar_account_service,
    get_review_service,
    get_user_service,
)

logger = logging.getLogger(__name__)
users_bp = Blueprint("users", __name__, url_prefix="/api/users")

PROFILE_FIELDS = (
    "first_name",
    "last_name",
    "skills",
    "education",
    "experience",
    "interests",
    "linkedin",
    "github",
    "profile_picture",
    "business_details",
)


@users_bp.route("/<int:user_id>", methods=["GET"])
@jwt_required()
def api_get_user(user_id: int):
    """Public profile with a recalculated badge and the reviews the user received."""
    try:
        profile = get_user_service().get_profile(user_id)
        reviews = get_review_service().list_for_user(user_id)
        return jsonify({"user": {**profile, "reviews": reviews}}), 200
    except Exception as e:
        return error_response(e, f"fetching user {user_id}")


@users_bp.route("/me", methods=["PUT"])
@jwt_required()
def api_update_profile():
    try:
        user_id, _ = current_principal()
        data = request.get_json(silent=True) or {}
        fields = {name: data.get(name) for name in PROFILE_FIELDS if name in data}
        user = get_user_service().update_profile(user_id, **fields)
        user.pop("google_tokens", None)
        return jsonify({"user": user}), 200
    except Exception as e:
        return error_response(e, "updating profile")


@users_bp.route("/me/wallet", methods=["PUT"])
@role_required(Role.FREELANCER)
def api_set_wallet():
    """Store the freelancer's wallet id used for wallet payouts."""
    try:
        user_id, _ = current_principal()
        data = request.get_json(silent=True) or {}
        get_user_service().set_wallet_id(user_id, data.get("wallet_id"))
        return jsonify({"message": "Wallet id saved"}), 200
    except Exception as e:
        return error_response(e, "saving wallet id")


@users_bp.route("/me/calendar", methods=["GET"])
@jwt_required()
def api_calendar_status():
    try:
        user_id, _ = current_principal()
        return jsonify(get_calendar_account_service().status(user_id)), 200
    except Exception as e:
        return error_response(e, "checking calendar connection")


@users_bp.route("/me/calendar", methods=["POST"])
@role_required(Role.HIRER)
def api_calendar_connect():
    """Finish the Google consent flow by exchanging the authorization code."""
    try:
        user_id, _ = current_principal()
        data = request.get_json(silent=True) or {}
        redirect_uri = data.get("redirect_uri") or Config.GOOGLE_REDIRECT_URI
        get_calendar_account_service().connect(user_id, data.get("code"), redirect_uri)
        return jsonify({"message": "Google calendar connected"}), 200
    except Exception as e:
        return error_response(e, "connecting calendar")


@users_bp.route("/me/calendar", methods=["DELETE"])
@role_required(Role.HIRER)
def api_calendar_disconnect():
    try:
        user_id, _ = current_principal()
        get_calendar_account_service().disconnect(user_id)
        return jsonify({"message": "Google calendar disconnected"}), 200
    except Exception as e:
        return error_response(e, "disconnecting calendar")
