import logging

from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required

from utils.decorators import current_principal
from utils.errors import error_response
from utils.services import get_review_service

logger = logging.getLogger(__name__)
reviews_bp = Blueprint("reviews", __name__, url_prefix="/api/reviews")


@reviews_bp.route("", methods=["POST"])
@jwt_required()
def api_create_review():
    try:
        user_id, _ = current_principal()
        data = request.get_json(silent=True) or {}
        review = get_review_service().create_review(
            user_id,
            project_id=data.get("project_id"),
            payment_id=data.get("payment_id"),
            reviewed_user_id=data.get("reviewed_user_id"),
            rating=data.get("rating"),
            comment=data.get("comment"),
        )
        return jsonify({"message": "Review submitted", "review": review}), 201
    except Exception as e:
        return error_response(e, "creating review")


@reviews_bp.route("/user/<int:user_id>", methods=["GET"])
@jwt_required()
def api_reviews_for_user(user_id: int):
    try:
        return jsonify({"reviews": get_review_service().list_for_user(user_id)}), 200
    except Exception as e:
        return error_response(e, f"listing reviews for user {user_id}")


@reviews_bp.route("/<int:review_id>", methods=["GET"])
@jwt_required()
def api_get_review(review_id: int):
    try:
        return jsonify({"review": get_review_service().get_review(review_id)}), 200
    except Exception as e:
        return error_response(e, f"fetching review {review_id}")


@reviews_bp.route("/<int:review_id>", methods=["DELETE"])
@jwt_required()
def api_delete_review(review_id: int):
    try:
        user_id, role = current_principal()
        get_review_service().delete_review(user_id, role, review_id)
        return jsonify({"message": "Review deleted"}), 200
    except Exception as e:
        return error_response(e, f"deleting review {review_id}")
