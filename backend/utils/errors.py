import logging

from flask import jsonify

from karya.shared.errors import ExternalProviderError, KaryaError

logger = logging.getLogger(__name__)


def _sanitize_error_message(error: Exception) -> str:
    """Sanitize error messages to avoid leaking sensitive information.

    Args:
        error: Exception object

    Returns:
        Sanitized error message safe for client display
    """
    error_str = str(error).lower()

    # Remove potential file paths
    if "/" in str(error) or "\\" in str(error):
        return "File operation failed. Please check file permissions."

    # Remove database connection strings
    if "password" in error_str or "connection" in error_str or "database" in error_str:
        return "Database operation failed. Please try again."

    # Remove API keys
    if "api" in error_str and ("key" in error_str or "token" in error_str):
        return "API authentication failed. Please check configuration."

    # Generic fallback for unknown errors
    return "An unexpected error occurred. Please try again later."


def error_response(error: Exception, action: str):
    """Translate a service exception into a JSON error response.

    Marketplace errors carry their own status code and a message written for
    the caller; anything else is logged and answered with a sanitized 500.
    """
    if isinstance(error, KaryaError):
        if isinstance(error, ExternalProviderError):
            logger.warning(f"Provider failure while {action}: {error}")
        else:
            logger.info(f"Rejected while {action}: {error}")
        return jsonify({"error": error.message, "type": type(error).__name__}), error.status_code

    logger.error(f"Error {action}: {error}", exc_info=True)
    return jsonify({"error": _sanitize_error_message(error)}), 500
