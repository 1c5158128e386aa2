"""User accounts: registration, login and profiles."""

from .auth_service import AuthService
from .user_service import UserService

__all__ = ["AuthService", "UserService"]
