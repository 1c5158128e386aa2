import logging
import os

from flask import Blueprint, jsonify

from utils.services import get_database

logger = logging.getLogger(__name__)
system_bp = Blueprint("system", __name__)


@system_bp.route("/api/version")
def api_version():
    """Return deployment version and metadata."""
    return jsonify(
        {
            "environment": os.getenv("ENVIRONMENT", "development"),
            "commit_sha": os.getenv("DEPLOYED_SHA"),
            "deployed_at": os.getenv("DEPLOYED_AT"),
        }
    )


@system_bp.route("/api/health")
def api_health():
    """Health check endpoint."""
    try:
        with get_database().get_cursor() as cur:
            cur.execute("SELECT 1")
        db_status = "healthy"
    except Exception as e:
        logger.warning(f"Health check database query failed: {e}")
        db_status = "unhealthy"

    status_code = 200 if db_status == "healthy" else 503
    return jsonify({"status": db_status, "database": db_status}), status_code
