import json
import logging
import queue

from flask import Blueprint, Response, jsonify, stream_with_context
from flask_jwt_extended import jwt_required

from utils.decorators import current_principal
from utils.errors import error_response
from utils.services import get_notification_service, get_realtime

logger = logging.getLogger(__name__)
notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")

KEEPALIVE_SECONDS = 15


@notifications_bp.route("", methods=["GET"])
@jwt_required()
def api_list_notifications():
    """All unread notifications plus the most recent read ones."""
    try:
        user_id, _ = current_principal()
        return jsonify({"notifications": get_notification_service().list_for_user(user_id)}), 200
    except Exception as e:
        return error_response(e, "listing notifications")


@notifications_bp.route("/<int:notification_id>/read", methods=["POST"])
@jwt_required()
def api_mark_read(notification_id: int):
    try:
        user_id, _ = current_principal()
        notification = get_notification_service().mark_read(notification_id, user_id)
        return jsonify({"notification": notification}), 200
    except Exception as e:
        return error_response(e, f"marking notification {notification_id} read")


@notifications_bp.route("/stream", methods=["GET"])
@jwt_required()
def api_stream():
    """Server-sent events for the caller's own room."""
    user_id, _ = current_principal()
    room = str(user_id)
    inbox: queue.Queue = queue.Queue()

    def subscriber(event: str, payload: dict) -> None:
        inbox.put((event, payload))

    realtime = get_realtime()
    realtime.join(room, subscriber)

    def events():
        try:
            while True:
                try:
                    event, payload = inbox.get(timeout=KEEPALIVE_SECONDS)
                except queue.Empty:
                    yield ": keepalive\n\n"
                    continue
                yield f"event: {event}\ndata: {json.dumps(payload, default=str)}\n\n"
        finally:
            realtime.leave(room, subscriber)

    return Response(stream_with_context(events()), mimetype="text/event-stream")
