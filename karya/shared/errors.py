"""Error taxonomy shared by every marketplace service.

Services raise these; the HTTP layer maps each class to a status code and a
message that is safe to show to the client. Provider payloads stay in logs.
"""

from __future__ import annotations


class KaryaError(Exception):
    """Base class for errors surfaced by marketplace services."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(KaryaError):
    """The referenced entity does not exist."""

    status_code = 404

    def __init__(self, entity: str, entity_id):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class PermissionDeniedError(KaryaError):
    """The acting user fails an ownership or role guard."""

    status_code = 403


class InvalidStateError(KaryaError):
    """A transition guard does not hold for the entity's current state."""

    status_code = 409


class ConflictError(KaryaError):
    """A concurrent transition won the race, or a uniqueness rule was hit."""

    status_code = 409


class ValidationError(KaryaError, ValueError):
    """Malformed input: bad date, rating out of range, missing field."""

    status_code = 400


class InvalidAttendeeEmailError(ValidationError):
    """An interview attendee address is not a plausible email address."""


class ExternalProviderError(KaryaError):
    """A calendar, payment or mail provider call failed."""

    status_code = 502

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider} request failed: {message}")
        self.provider = provider


class ProviderTimeoutError(ExternalProviderError):
    """A provider call exceeded its timeout; the outcome is unknown."""

    status_code = 504


class CredentialError(KaryaError):
    """An external credential is missing or cannot be refreshed."""

    status_code = 401


class CredentialMissingError(CredentialError):
    """The user never granted delegated access to the provider."""


class CredentialExpiredAndRefreshFailedError(CredentialError):
    """The stored credential expired and the provider refused to refresh it."""
