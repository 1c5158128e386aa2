"""User management service for authentication and profiles."""

import logging
import re
from typing import Any

import bcrypt
from psycopg2.extras import Json

from karya.lifecycle.states import Role
from karya.shared.database import Database
from karya.shared.errors import ConflictError, NotFoundError, ValidationError

from .queries import (
    GET_USER_BY_EMAIL,
    GET_USER_BY_ID,
    INSERT_USER,
    UPDATE_USER_LAST_LOGIN,
    UPDATE_USER_PROFILE,
    UPDATE_USER_WALLET_ID,
)

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
LIST_FIELDS = ("skills", "education", "experience", "interests")
PROFILE_FIELDS = ("first_name", "last_name", *LIST_FIELDS, "linkedin", "github", "profile_picture")


class UserService:
    """Service for user management and authentication."""

    def __init__(self, database: Database, badge_service=None):
        """Initialize the user service.

        Args:
            database: Database connection interface
            badge_service: BadgeService used to refresh the badge on profile fetch
        """
        if not database:
            raise ValueError("Database is required")
        self.db = database
        self.badge_service = badge_service

    def create_user(
        self,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
        role: str = Role.FREELANCER.value,
    ) -> int:
        """Create a new user account.

        Args:
            first_name: Given name
            last_name: Family name
            email: Unique email address
            password: Plain text password (will be hashed)
            role: 'user' (freelancer) or 'hirer'; admins are not self-registered

        Returns:
            User ID of the created user

        Raises:
            ValidationError: If a field is missing or malformed
            ConflictError: If the email is already registered
        """
        if not first_name or not first_name.strip():
            raise ValidationError("First name is required")
        if not last_name or not last_name.strip():
            raise ValidationError("Last name is required")
        if not email or not EMAIL_PATTERN.match(email.strip()):
            raise ValidationError("A valid email is required")
        if not password or len(password) < 6:
            raise ValidationError("Password must be at least 6 characters")
        if role not in (Role.FREELANCER.value, Role.HIRER.value):
            raise ValidationError("Role must be 'user' or 'hirer'")

        if self.get_user_by_email(email):
            raise ConflictError(f"Email '{email}' already exists")

        password_hash = self._hash_password(password)

        try:
            with self.db.get_cursor() as cur:
                cur.execute(
                    INSERT_USER,
                    (
                        first_name.strip(),
                        last_name.strip(),
                        email.strip().lower(),
                        password_hash,
                        role,
                    ),
                )
                result = cur.fetchone()
                if not result:
                    raise ValueError("Failed to create user")
                user_id = result[0]
                logger.info(f"Created user: {email} (ID: {user_id}, role: {role})")
                return user_id
        except Exception as e:
            logger.error(f"Error creating user {email}: {e}", exc_info=True)
            raise

    def get_user_by_email(self, email: str) -> dict[str, Any] | None:
        """Get user by email, including the password hash."""
        with self.db.get_cursor() as cur:
            cur.execute(GET_USER_BY_EMAIL, (email.strip().lower(),))
            columns = [desc[0] for desc in cur.description]
            row = cur.fetchone()

            if not row:
                return None

            return dict(zip(columns, row))

    def get_user_by_id(self, user_id: int) -> dict[str, Any] | None:
        """Get user by ID, without the password hash."""
        with self.db.get_cursor() as cur:
            cur.execute(GET_USER_BY_ID, (user_id,))
            columns = [desc[0] for desc in cur.description]
            row = cur.fetchone()

            if not row:
                return None

            return dict(zip(columns, row))

    def get_profile(self, user_id: int) -> dict[str, Any]:
        """Recalculate the user's badge, then return their public profile.

        Calendar tokens are never included.
        """
        if self.badge_service is not None:
            try:
                self.badge_service.recalculate(user_id)
            except NotFoundError:
                raise
            except Exception as e:
                logger.error(f"Badge refresh failed for user {user_id}: {e}", exc_info=True)

        user = self.get_user_by_id(user_id)
        if not user:
            raise NotFoundError("User", user_id)
        profile = {k: v for k, v in user.items() if k != "google_tokens"}
        profile["calendar_connected"] = bool(user.get("google_tokens"))
        return profile

    def update_profile(self, user_id: int, **fields: Any) -> dict[str, Any]:
        """Update profile fields and recompute the profile-complete flag.

        Freelancers are complete once skills, education and experience are
        filled in; hirers once business details are present.
        """
        user = self.get_user_by_id(user_id)
        if not user:
            raise NotFoundError("User", user_id)

        for name in LIST_FIELDS:
            value = fields.get(name)
            if value is not None and (
                not isinstance(value, list) or not all(isinstance(v, str) for v in value)
            ):
                raise ValidationError(f"{name} must be a list of strings")
        business = fields.get("business_details")
        if business is not None and not isinstance(business, dict):
            raise ValidationError("business_details must be an object")

        merged = dict(user)
        merged.update({k: v for k, v in fields.items() if v is not None})
        complete = self._is_complete(merged)

        params = (
            *(fields.get(name) for name in PROFILE_FIELDS),
            Json(business) if business is not None else None,
            complete,
            user_id,
        )
        with self.db.get_cursor() as cur:
            cur.execute(UPDATE_USER_PROFILE, params)
        logger.info(f"Updated profile for user {user_id} (complete={complete})")
        return self.get_user_by_id(user_id)

    @staticmethod
    def _is_complete(user: dict[str, Any]) -> bool:
        if user.get("role") == Role.HIRER.value:
            return bool(user.get("business_details"))
        if user.get("role") == Role.FREELANCER.value:
            return all(user.get(name) for name in ("skills", "education", "experience"))
        return False

    def set_wallet_id(self, user_id: int, wallet_id: str) -> None:
        """Store the freelancer's wallet identifier for wallet payouts."""
        if not wallet_id or not wallet_id.strip():
            raise ValidationError("Wallet id is required")
        with self.db.get_cursor() as cur:
            cur.execute(UPDATE_USER_WALLET_ID, (wallet_id.strip(), user_id))
            if not cur.fetchone():
                raise NotFoundError("User", user_id)
        logger.info(f"Stored wallet id for user {user_id}")

    def verify_password(self, password: str, password_hash: str) -> bool:
        """Verify a password against a hash.

        Args:
            password: Plain text password
            password_hash: Bcrypt password hash

        Returns:
            True if password matches, False otherwise
        """
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError as e:
            logger.error(f"Error verifying password: {e}", exc_info=True)
            return False

    def update_last_login(self, user_id: int) -> None:
        with self.db.get_cursor() as cur:
            cur.execute(UPDATE_USER_LAST_LOGIN, (user_id,))

    def _hash_password(self, password: str) -> str:
        return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")
