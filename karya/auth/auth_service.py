"""Authentication service for login and registration."""

import logging
from typing import Any

from karya.lifecycle.states import Role

from .user_service import UserService

logger = logging.getLogger(__name__)


class AuthService:
    """Service for authentication operations."""

    def __init__(self, user_service: UserService):
        """Initialize the auth service.

        Args:
            user_service: UserService instance for user operations
        """
        if not user_service:
            raise ValueError("UserService is required")
        self.user_service = user_service

    def authenticate_user(self, email: str, password: str) -> dict[str, Any] | None:
        """Authenticate a user by email and password.

        Returns:
            User dictionary without secrets if authentication succeeds, None otherwise
        """
        if not email or not password:
            return None

        user = self.user_service.get_user_by_email(email)
        if not user:
            logger.warning(f"Authentication failed: user not found: {email}")
            return None

        if not self.user_service.verify_password(password, user["password_hash"]):
            logger.warning(f"Authentication failed: invalid password for user: {email}")
            return None

        try:
            self.user_service.update_last_login(user["user_id"])
        except Exception as e:
            # Don't fail authentication if last login update fails
            logger.error(f"Error updating last login: {e}", exc_info=True)

        user_clean = {k: v for k, v in user.items() if k not in ("password_hash", "google_tokens")}
        logger.info(f"User authenticated: {user['email']} (ID: {user['user_id']})")
        return user_clean

    def register_user(
        self,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
        role: str = Role.FREELANCER.value,
    ) -> int:
        """Register a new freelancer or hirer and return the new user id."""
        return self.user_service.create_user(
            first_name=first_name, last_name=last_name, email=email, password=password, role=role
        )
