"""
Service layer result type.

ServiceResult is the standard wrapper for operations whose failures are
expected (a business rule said no) as opposed to exceptional (a bug or an
unreachable backend, which raise).

Webhook handlers may return a ServiceResult; the dispatcher records a
failed result exactly like a raised exception, so handlers can choose
whichever style reads better.

Usage:
    from core.services import ServiceResult

    def handle(event):
        invoice_id = event.data_object.get("id")
        if not invoice_id:
            return ServiceResult.failure(
                "Invoice id missing from payload",
                error_code="INVALID_WEBHOOK_PAYLOAD",
            )
        ...
        return ServiceResult.success(invoice_id)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

# Generic type for ServiceResult data
T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful (None if failed)
        error: Error message if failed (None if successful)
        error_code: Machine-readable error code
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None

    @classmethod
    def success(cls, data: T | None = None) -> ServiceResult[T]:
        """
        Create a successful result.

        Args:
            data: The result data (optional for handlers with nothing to return)

        Returns:
            ServiceResult with success=True and data set
        """
        return cls(success=True, data=data)

    @classmethod
    def failure(cls, error: str, error_code: str | None = None) -> ServiceResult[T]:
        """
        Create a failed result.

        Args:
            error: Human-readable error message
            error_code: Machine-readable error code

        Returns:
            ServiceResult with success=False and error details
        """
        return cls(success=False, error=error, error_code=error_code)
