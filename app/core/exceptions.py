"""
Base exception classes for application-wide error handling.

Every error raised by the domain apps derives from BaseApplicationError,
which carries a machine-readable error code and a details dict so that
views can turn any of them into a consistent JSON body.

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ConflictError - State conflicts (duplicates, concurrent modifications)
    ├── ServiceUnavailableError - Backing store or broker unreachable
    └── ExternalServiceError - Third-party API failures

Usage:
    from core.exceptions import ConflictError

    raise ConflictError(
        "Handler already registered",
        error_code="DUPLICATE_REGISTRATION",
        details={"pattern": "invoice.*"},
    )

    # Convert to dict for an HTTP response
    try:
        ...
    except BaseApplicationError as e:
        return JsonResponse(e.to_dict(), status=400)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (ids, limits, original error, ...)

    Example:
        try:
            event = verify(body, header, secret)
        except BaseApplicationError as e:
            logger.warning(f"Rejected webhook: {e.error_code}")
            return JsonResponse(e.to_dict(), status=400)
    """

    default_error_code: str = "APPLICATION_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        """
        Initialize the exception.

        Args:
            message: Human-readable error description
            error_code: Machine-readable error code (defaults to class default)
            details: Additional error context
        """
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for an HTTP response.

        Returns:
            Dict with error, error_code and (when present) details keys

        Example:
            {
                "error": "Signature timestamp outside tolerance",
                "error_code": "STALE_SIGNATURE",
                "details": {"tolerance_seconds": 300}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        """Return string representation with error code."""
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        """Return detailed representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with existing state.

    Use for:
    - Duplicate entries (unique constraint violations)
    - Registering something twice
    - Writes against state that is no longer writable

    Note:
        HTTP 409 Conflict is the appropriate status for these errors.
    """

    default_error_code: str = "CONFLICT"


class ServiceUnavailableError(BaseApplicationError):
    """
    Raised when a backing service (database, cache, broker) is unreachable.

    Callers should not guess at what the missing service would have
    answered; surface the error and let the client retry.

    Note:
        HTTP 503 Service Unavailable is the appropriate status.
    """

    default_error_code: str = "SERVICE_UNAVAILABLE"


class ExternalServiceError(BaseApplicationError):
    """
    Raised when a third-party API call fails.

    Example:
        try:
            stripe.Customer.create(email=email)
        except stripe.StripeError as e:
            raise ExternalServiceError(
                "Payment provider unavailable",
                details={"service": "stripe", "original_error": str(e)},
            )

    Note:
        Log the original error but don't expose provider internals to
        clients. HTTP 502 Bad Gateway is appropriate.
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
