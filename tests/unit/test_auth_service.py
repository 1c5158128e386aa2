"""Unit tests for authentication services."""

from unittest.mock import Mock

import pytest

from karya.auth.auth_service import AuthService
from karya.auth.user_service import UserService


@pytest.fixture
def mock_user_service():
    """Create a mock UserService."""
    return Mock(spec=UserService)


@pytest.fixture
def auth_service(mock_user_service):
    """Create an AuthService instance with mocked dependencies."""
    return AuthService(user_service=mock_user_service)


@pytest.fixture
def stored_user():
    return {
        "user_id": 1,
        "first_name": "Hana",
        "last_name": "Shrestha",
        "email": "hana@example.com",
        "password_hash": "$2b$12$hashed_password",
        "google_tokens": {"access_token": "secret"},
        "role": "hirer",
    }


class TestAuthService:
    """Test cases for AuthService."""

    def test_init_requires_user_service(self):
        """Test that AuthService requires a UserService."""
        with pytest.raises(ValueError, match="UserService is required"):
            AuthService(user_service=None)

    def test_authenticate_user_success(self, auth_service, mock_user_service, stored_user):
        """Successful login returns the user without secrets."""
        mock_user_service.get_user_by_email.return_value = stored_user
        mock_user_service.verify_password.return_value = True

        result = auth_service.authenticate_user("hana@example.com", "password123")

        assert result["user_id"] == 1
        assert result["role"] == "hirer"
        assert "password_hash" not in result
        assert "google_tokens" not in result
        mock_user_service.update_last_login.assert_called_once_with(1)

    def test_authenticate_user_unknown_email(self, auth_service, mock_user_service):
        mock_user_service.get_user_by_email.return_value = None

        assert auth_service.authenticate_user("nobody@example.com", "password123") is None
        mock_user_service.verify_password.assert_not_called()

    def test_authenticate_user_wrong_password(self, auth_service, mock_user_service, stored_user):
        mock_user_service.get_user_by_email.return_value = stored_user
        mock_user_service.verify_password.return_value = False

        assert auth_service.authenticate_user("hana@example.com", "wrong") is None
        mock_user_service.update_last_login.assert_not_called()

    def test_authenticate_user_missing_credentials(self, auth_service, mock_user_service):
        assert auth_service.authenticate_user("", "password123") is None
        assert auth_service.authenticate_user("hana@example.com", "") is None
        mock_user_service.get_user_by_email.assert_not_called()

    def test_last_login_failure_does_not_block_login(
        self, auth_service, mock_user_service, stored_user
    ):
        """A failed last-login update is logged, not raised."""
        mock_user_service.get_user_by_email.return_value = stored_user
        mock_user_service.verify_password.return_value = True
        mock_user_service.update_last_login.side_effect = RuntimeError("db down")

        result = auth_service.authenticate_user("hana@example.com", "password123")

        assert result["user_id"] == 1

    def test_register_user_delegates(self, auth_service, mock_user_service):
        mock_user_service.create_user.return_value = 7

        user_id = auth_service.register_user("Ram", "Thapa", "ram@example.com", "secret1", "user")

        assert user_id == 7
        mock_user_service.create_user.assert_called_once_with(
            first_name="Ram",
            last_name="Thapa",
            email="ram@example.com",
            password="secret1",
            role="user",
        )
