from __future__ import annotations

from typing import Optional


class DomainError(Exception):
    """Base exception for business rule violations."""

    kind = "domain_error"

    def __init__(self, message: str, *, code: Optional[str] = None):
        super().__init__(message)
        self.code = code or self.kind


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    kind = "validation_error"


class GeolocationUnavailableError(ValidationError):
    """Raised when no GPS fix could be obtained in time."""

    kind = "geolocation_unavailable"


class ConflictError(DomainError):
    """Raised on duplicate pending requests or concurrent updates."""

    kind = "conflict"


class DataIntegrityError(DomainError):
    """Raised when a referenced record is missing or already resolved."""

    kind = "data_integrity"


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    kind = "forbidden"


class TransientIOError(DomainError):
    """Raised when the store or another collaborator is unreachable."""

    kind = "unavailable"
