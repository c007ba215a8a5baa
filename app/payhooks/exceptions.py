"""
Webhook hub exceptions.

Every error raised by the hub derives from core.exceptions.BaseApplicationError,
so views can render any of them with ``to_dict()``.

Exception Hierarchy:
    VerificationError - Inbound request rejected (HTTP 400)
    ├── MalformedSignatureError - Signature header missing or unparseable
    ├── StaleSignatureError - Signed timestamp outside tolerance (replay)
    ├── SignatureMismatchError - No v1 signature matches any secret
    └── MalformedPayloadError - Authentic body that is not a valid event

    DedupError
    └── DedupStoreUnavailableError - Store unreachable (HTTP 503, inherits
                                     ServiceUnavailableError)

    DispatchHandlerError - Contained per-handler failures (never escape dispatch)
    ├── HandlerFailedError - Handler raised or returned a failed ServiceResult
    └── HandlerTimeoutError - Handler exceeded its time budget

    AggregationProviderError
    └── ProviderFailedError - Metadata provider raised or returned garbage

    RegistryError - Startup wiring errors (inherits ConflictError)
    ├── DuplicateRegistrationError - Same pattern and handler name twice
    ├── InvalidPatternError - Pattern is not exact, "prefix.*" or "*"
    └── RegistryFrozenError - Registration after startup

    ProviderAPIError - Payment provider API call failed (inherits ExternalServiceError)
    UnsupportedObjectTypeError - No provider resource for an object type

Usage:
    from payhooks.exceptions import VerificationError

    try:
        event = verify(body, header, secret)
    except VerificationError as e:
        return JsonResponse(e.to_dict(), status=400)
"""

from __future__ import annotations

from core.exceptions import (
    BaseApplicationError,
    ConflictError,
    ExternalServiceError,
    ServiceUnavailableError,
)


# =============================================================================
# Signature Verification
# =============================================================================


class VerificationError(BaseApplicationError):
    """
    Base exception for rejected inbound webhook requests.

    Verification errors are terminal for the request: nothing is recorded
    and no subscriber runs.
    """

    default_error_code: str = "VERIFICATION_FAILED"


class MalformedSignatureError(VerificationError):
    """Raised when the signature header is empty or cannot be parsed."""

    default_error_code: str = "MALFORMED_SIGNATURE"


class StaleSignatureError(VerificationError):
    """
    Raised when the signed timestamp is too far from the current time.

    Checked before the signature itself, so a correctly signed but replayed
    request is still rejected.
    """

    default_error_code: str = "STALE_SIGNATURE"


class SignatureMismatchError(VerificationError):
    """Raised when no provided signature matches any configured secret."""

    default_error_code: str = "SIGNATURE_MISMATCH"


class MalformedPayloadError(VerificationError):
    """Raised when an authentic body is not a JSON object with string id and type."""

    default_error_code: str = "MALFORMED_PAYLOAD"


# =============================================================================
# Deduplication
# =============================================================================


class DedupError(BaseApplicationError):
    """Base exception for event deduplication."""

    default_error_code: str = "DEDUP_ERROR"


class DedupStoreUnavailableError(DedupError, ServiceUnavailableError):
    """
    Raised when the dedup store cannot be reached.

    The event is never treated as new in this case. The view answers 503 so
    the provider re-delivers once the store is back.
    """

    default_error_code: str = "DEDUP_STORE_UNAVAILABLE"


# =============================================================================
# Dispatch
# =============================================================================


class DispatchHandlerError(BaseApplicationError):
    """
    Base exception for a single failed handler invocation.

    These are built and logged by the dispatcher and end up in the
    DispatchReport; they never propagate out of ``dispatch()``.
    """

    default_error_code: str = "HANDLER_ERROR"


class HandlerFailedError(DispatchHandlerError):
    """Handler raised, or returned a failed ServiceResult."""

    default_error_code: str = "HANDLER_FAILED"


class HandlerTimeoutError(DispatchHandlerError):
    """Handler did not finish within the per-handler timeout."""

    default_error_code: str = "HANDLER_TIMEOUT"


# =============================================================================
# Metadata Aggregation
# =============================================================================


class AggregationProviderError(BaseApplicationError):
    """Base exception for metadata provider failures."""

    default_error_code: str = "PROVIDER_ERROR"


class ProviderFailedError(AggregationProviderError):
    """
    Provider raised, or returned something other than a mapping.

    The provider is skipped and the error is recorded on MergedMetadata.errors.
    """

    default_error_code: str = "PROVIDER_FAILED"


# =============================================================================
# Registry
# =============================================================================


class RegistryError(ConflictError):
    """Base exception for subscriber registry errors."""

    default_error_code: str = "REGISTRY_ERROR"


class DuplicateRegistrationError(RegistryError):
    """
    Raised when the same handler name is registered twice for one pattern.

    Example:
        registry.register_event_handler("invoice.*", audit)
        registry.register_event_handler("invoice.*", audit)  # raises
        registry.register_event_handler("invoice.*", audit, replace=True)  # ok
    """

    default_error_code: str = "DUPLICATE_REGISTRATION"


class InvalidPatternError(RegistryError):
    """Raised for empty patterns or a wildcard anywhere but a trailing ".*"."""

    default_error_code: str = "INVALID_PATTERN"


class RegistryFrozenError(RegistryError):
    """Raised when registering after the registry has been frozen."""

    default_error_code: str = "REGISTRY_FROZEN"


# =============================================================================
# Provider Adapter
# =============================================================================


class ProviderAPIError(ExternalServiceError):
    """
    Raised when the payment provider API rejects or fails a call.

    Example:
        try:
            stripe.Customer.create(**attributes)
        except stripe.StripeError as e:
            raise ProviderAPIError(
                "Stripe customer create failed",
                details={"object_type": "customer", "original_error": str(e)},
            ) from e
    """

    default_error_code: str = "PROVIDER_API_ERROR"


class UnsupportedObjectTypeError(BaseApplicationError):
    """Raised when no provider resource exists for an object type."""

    default_error_code: str = "UNSUPPORTED_OBJECT_TYPE"
