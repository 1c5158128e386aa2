"""Unit tests for the error taxonomy."""

from karya.shared.errors import (
    ConflictError,
    CredentialMissingError,
    ExternalProviderError,
    InvalidAttendeeEmailError,
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
    ProviderTimeoutError,
    ValidationError,
)


class TestErrors:
    def test_status_codes(self):
        assert NotFoundError("Job", 1).status_code == 404
        assert PermissionDeniedError("no").status_code == 403
        assert InvalidStateError("no").status_code == 409
        assert ConflictError("no").status_code == 409
        assert ValidationError("no").status_code == 400
        assert CredentialMissingError("no").status_code == 401
        assert ExternalProviderError("khalti", "down").status_code == 502
        assert ProviderTimeoutError("khalti", "slow").status_code == 504

    def test_not_found_message(self):
        error = NotFoundError("Interview", 12)
        assert error.message == "Interview 12 not found"
        assert error.entity == "Interview"

    def test_provider_message_names_provider(self):
        error = ProviderTimeoutError("stripe", "request timed out")
        assert str(error) == "stripe request failed: request timed out"
        assert isinstance(error, ExternalProviderError)

    def test_validation_errors_are_value_errors(self):
        assert isinstance(ValidationError("bad"), ValueError)
        assert isinstance(InvalidAttendeeEmailError("bad"), ValidationError)
