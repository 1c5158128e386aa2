import atexit
import logging
import os

from blueprints.applications import applications_bp
from blueprints.auth import auth_bp
from blueprints.interviews import interviews_bp
from blueprints.jobs import jobs_bp
from blueprints.notifications import notifications_bp
from blueprints.payments import payments_bp
from blueprints.projects import projects_bp
from blueprints.reviews import reviews_bp
from blueprints.system import system_bp
from blueprints.users import users_bp
from config import Config
from flask import Flask, jsonify
from flask_cors import CORS
from flask_jwt_extended import JWTManager

from karya.shared import close_all_pools

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

BLUEPRINTS = (
    auth_bp,
    users_bp,
    jobs_bp,
    applications_bp,
    interviews_bp,
    projects_bp,
    payments_bp,
    reviews_bp,
    notifications_bp,
    system_bp,
)


def _register_jwt_handlers(jwt: JWTManager) -> None:
    @jwt.expired_token_loader
    def expired_token_callback(jwt_header, jwt_payload):
        return jsonify({"error": "Token has expired"}), 401

    @jwt.invalid_token_loader
    def invalid_token_callback(error):
        logger.warning(f"Rejected malformed token: {error}")
        return jsonify({"error": "Invalid token"}), 422

    @jwt.unauthorized_loader
    def missing_token_callback(error):
        return jsonify({"error": "Missing authorization header"}), 401


def create_app():
    """Build the marketplace API."""
    app = Flask(__name__)
    app.config.from_object(Config)

    _register_jwt_handlers(JWTManager(app))

    CORS(
        app,
        origins=Config.CORS_ORIGINS,
        supports_credentials=True,
        allow_headers=["Content-Type", "Authorization"],
    )

    for blueprint in BLUEPRINTS:
        app.register_blueprint(blueprint)

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({"error": "Method not allowed"}), 405

    atexit.register(close_all_pools)
    logger.info(f"Karya API ready ({Config.ENVIRONMENT}, {len(BLUEPRINTS)} blueprints)")
    return app


app = create_app()

if __name__ == "__main__":
    debug = Config.ENVIRONMENT == "development"
    app.run(host="0.0.0.0", port=int(os.getenv("PORT", "5000")), debug=debug, threaded=True)
