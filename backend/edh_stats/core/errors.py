"""
Error kinds crossing the data-access boundary.

Every failure leaving a repository, the stats service or the credential
service is one of these. ``kind`` is a stable tag the surrounding layer can
map to its own transport signals.
"""
from typing import List, Optional


class AppError(Exception):
    """Base exception for application-level errors."""

    kind = "app_error"
    default_message = "Application error"

    def __init__(self, message: Optional[str] = None, details: Optional[List[str]] = None):
        self.message = message or self.default_message
        self.details = list(details or [])
        super().__init__(self.message)

    def to_dict(self) -> dict:
        payload = {"error": self.kind, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationFailed(AppError):
    """Caller-supplied data violates a documented constraint."""

    kind = "validation_failed"
    default_message = "Invalid input data"


class NoFieldsToUpdate(ValidationFailed):
    """An update request carried no updatable field."""

    default_message = "No valid fields to update"


class Conflict(AppError):
    """Uniqueness or cap violation."""

    kind = "conflict"
    default_message = "Resource already exists"


class NotFoundOrForbidden(AppError):
    """Resource is missing or owned by someone else (deliberately the same)."""

    kind = "not_found_or_forbidden"
    default_message = "Resource not found or access denied"


class Unauthenticated(AppError):
    """Missing, invalid or expired credentials."""

    kind = "unauthenticated"
    default_message = "Invalid or expired token"


class RegistrationDisabled(AppError):
    """New accounts are switched off by configuration."""

    kind = "registration_disabled"
    default_message = "User registration is currently disabled"


class StorageUnavailable(AppError):
    """The store is unreachable or the pool is exhausted."""

    kind = "storage_unavailable"
    default_message = "Storage is unavailable"


def from_pydantic(exc, message: Optional[str] = None) -> ValidationFailed:
    """Convert a pydantic ValidationError into ValidationFailed."""
    details = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ())) or "root"
        details.append(f"{field}: {error.get('msg')}")
    return ValidationFailed(message, details=details)
