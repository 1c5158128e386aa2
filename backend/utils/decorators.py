import logging
from datetime import datetime
from functools import wraps

from flask import jsonify
from flask_jwt_extended import get_jwt, get_jwt_identity, jwt_required

from karya.lifecycle.states import Role

logger = logging.getLogger(__name__)

# Rate limiting storage (in-memory, resets on restart)
_rate_limit_storage: dict[str, list[float]] = {}


def current_principal() -> tuple[int, str]:
    """Return ``(user_id, role)`` of the authenticated caller.

    The role is issued as a token claim at login.
    """
    return int(get_jwt_identity()), get_jwt().get("role", Role.FREELANCER.value)


def rate_limit(max_calls: int = 5, window_seconds: int = 60):
    """Simple rate limiting decorator.

    Args:
        max_calls: Maximum number of calls allowed
        window_seconds: Time window in seconds
    """

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user_id = get_jwt_identity()
            if not user_id:
                return jsonify({"error": "Authentication required"}), 401

            # Use user_id + endpoint as key
            key = f"{user_id}:{f.__name__}"
            now = datetime.now().timestamp()

            # Clean old entries
            _rate_limit_storage[key] = [
                timestamp
                for timestamp in _rate_limit_storage.get(key, [])
                if now - timestamp < window_seconds
            ]

            if len(_rate_limit_storage[key]) >= max_calls:
                logger.warning(f"Rate limit exceeded for user {user_id} on {f.__name__}")
                return jsonify(
                    {
                        "error": f"Rate limit exceeded. Maximum {max_calls} requests per {window_seconds} seconds."
                    }
                ), 429

            _rate_limit_storage[key].append(now)
            return f(*args, **kwargs)

        return decorated_function

    return decorator


def role_required(*roles: Role):
    """Decorator to require one of ``roles`` in the caller's token."""
    allowed = {role.value for role in roles}

    def decorator(f):
        @wraps(f)
        @jwt_required()
        def decorated_function(*args, **kwargs):
            _, role = current_principal()
            if role not in allowed:
                return jsonify({"error": "You do not have access to this action"}), 403
            return f(*args, **kwargs)

        return decorated_function

    return decorator
