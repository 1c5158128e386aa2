import logging
from urllib.parse import urlencode

from flask import Blueprint, jsonify, redirect, request
from flask_jwt_extended import jwt_required

from config import Config
from karya.lifecycle.states import Role
from karya.shared.errors import KaryaError
from utils.decorators import current_principal, rate_limit, role_required
from utils.errors import error_response
from utils.services import get_payment_service

logger = logging.getLogger(__name__)
payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


@payments_bp.route("/card", methods=["POST"])
@role_required(Role.HIRER)
@rate_limit(max_calls=10, window_seconds=60)
def api_initiate_card():
    try:
        user_id, _ = current_principal()
        data = request.get_json(silent=True) or {}
        result = get_payment_service().initiate_card_payment(
            user_id, data.get("project_id"), data.get("amount")
        )
        return jsonify(result), 200
    except Exception as e:
        return error_response(e, "initiating card payment")


@payments_bp.route("/card/<int:payment_id>/confirm", methods=["POST"])
@role_required(Role.HIRER)
def api_confirm_card(payment_id: int):
    try:
        user_id, _ = current_principal()
        payment = get_payment_service().confirm_card_payment(user_id, payment_id)
        return jsonify({"message": "Payment confirmed", "payment": payment}), 200
    except Exception as e:
        return error_response(e, f"confirming payment {payment_id}")


@payments_bp.route("/wallet", methods=["POST"])
@role_required(Role.HIRER)
@rate_limit(max_calls=10, window_seconds=60)
def api_initiate_wallet():
    try:
        user_id, _ = current_principal()
        data = request.get_json(silent=True) or {}
        result = get_payment_service().initiate_wallet_payment(
            user_id, data.get("project_id"), data.get("amount")
        )
        return jsonify(result), 200
    except Exception as e:
        return error_response(e, "initiating wallet payment")


@payments_bp.route("/wallet/callback", methods=["GET"])
def api_wallet_callback():
    """Provider redirect after a wallet payment; the browser is sent back to the frontend.

    The query string is untrusted. The payment service confirms the
    transaction with a server-side lookup before changing anything.
    """
    pidx = request.args.get("pidx")
    payment_id = request.args.get("payment_id", type=int)
    try:
        result = get_payment_service().handle_wallet_callback(pidx, payment_id)
        payment = result["payment"]
        outcome = result["outcome"]
        params = {
            "payment": "success" if outcome in ("completed", "already_completed") else outcome,
            "projectId": payment["project_id"],
        }
    except KaryaError as e:
        logger.warning(f"Wallet callback rejected (pidx={pidx}): {e}")
        params = {"payment": "failed", "reason": type(e).__name__}
    except Exception as e:
        logger.error(f"Wallet callback error (pidx={pidx}): {e}", exc_info=True)
        params = {"payment": "failed", "reason": "error"}
    return redirect(f"{Config.FRONTEND_URL}/payment-callback?{urlencode(params)}")


@payments_bp.route("/sent", methods=["GET"])
@role_required(Role.HIRER)
def api_sent():
    try:
        user_id, _ = current_principal()
        return jsonify({"payments": get_payment_service().list_sent(user_id)}), 200
    except Exception as e:
        return error_response(e, "listing sent payments")


@payments_bp.route("/received", methods=["GET"])
@jwt_required()
def api_received():
    try:
        user_id, _ = current_principal()
        return jsonify({"payments": get_payment_service().list_received(user_id)}), 200
    except Exception as e:
        return error_response(e, "listing received payments")


@payments_bp.route("/<int:payment_id>", methods=["GET"])
@jwt_required()
def api_get_payment(payment_id: int):
    try:
        user_id, _ = current_principal()
        return jsonify({"payment": get_payment_service().get_payment(payment_id, user_id)}), 200
    except Exception as e:
        return error_response(e, f"fetching payment {payment_id}")
