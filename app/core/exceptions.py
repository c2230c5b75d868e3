"""
Application exception hierarchy and the DRF exception handler.

Every domain error raised by a service derives from BaseApplicationError,
carries a machine-readable error code and maps to one HTTP status.

Exception Hierarchy:
    BaseApplicationError (500)
    ├── ValidationError (400) - Input or business rule violations
    ├── NotFoundError (404) - Resource not found
    ├── PermissionDeniedError (403) - Caller may not act on the resource
    ├── ConflictError (409) - Operation conflicts with current state
    ├── RateLimitError (429) - Too many requests
    └── ExternalServiceError (502) - Third-party service failures

Usage:
    from core.exceptions import ValidationError

    raise ValidationError(
        "Total amount must be a positive integer",
        error_code="INVALID_AMOUNT",
        details={"total_amount": total_amount},
    )

Views do not catch these: api_exception_handler (configured as DRF's
EXCEPTION_HANDLER) renders them as

    {"success": false, "error": {"code": ..., "message": ..., "details": ...}}
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

if TYPE_CHECKING:
    from typing import Any

logger = logging.getLogger(__name__)


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (field errors, identifiers)
        status_code: HTTP status used when rendered by the API
    """

    default_error_code: str = "APPLICATION_ERROR"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to a flat dictionary.

        Example:
            {
                "error": "Job payment not found",
                "error_code": "PAYMENT_NOT_FOUND",
                "details": {"job_payment_id": "..."}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def to_response_body(self) -> dict[str, Any]:
        """Build the API error envelope."""
        error: dict[str, Any] = {
            "code": self.error_code,
            "message": self.message,
        }
        if self.details:
            error["details"] = self.details
        return {"success": False, "error": error}

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input validation fails in the service layer.

    Serializer-level validation stays with DRF; this covers rules a
    serializer cannot see (amount limits, self-dealing, URL allow-lists).
    """

    default_error_code: str = "VALIDATION_ERROR"
    status_code: int = status.HTTP_400_BAD_REQUEST


class NotFoundError(BaseApplicationError):
    """Raised when a single resource that is expected to exist is missing."""

    default_error_code: str = "NOT_FOUND"
    status_code: int = status.HTTP_404_NOT_FOUND


class PermissionDeniedError(BaseApplicationError):
    """
    Raised when the authenticated user may not perform an operation.

    Authentication failures (missing or invalid token) stay with DRF's
    NotAuthenticated/AuthenticationFailed.
    """

    default_error_code: str = "PERMISSION_DENIED"
    status_code: int = status.HTTP_403_FORBIDDEN


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with the current resource state.

    Example:
        if job_payment.stage != PaymentStage.DEPOSIT_PAID:
            raise ConflictError(
                f"Cannot pay completion in {job_payment.stage} stage",
                error_code="INVALID_STATE_TRANSITION",
                details={"current_stage": job_payment.stage},
            )
    """

    default_error_code: str = "CONFLICT"
    status_code: int = status.HTTP_409_CONFLICT


class RateLimitError(BaseApplicationError):
    """Raised when a rate limit is exceeded."""

    default_error_code: str = "RATE_LIMIT_EXCEEDED"
    status_code: int = status.HTTP_429_TOO_MANY_REQUESTS


class ExternalServiceError(BaseApplicationError):
    """
    Raised when an external service call fails.

    Log the original error where it happens; the message exposed to
    clients stays generic.
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
    status_code: int = status.HTTP_502_BAD_GATEWAY


def api_exception_handler(exc: Exception, context: dict[str, Any]) -> Response | None:
    """
    DRF exception handler rendering application errors in the API envelope.

    BaseApplicationError subclasses use their own status code. Everything
    else goes through DRF's default handler and is re-wrapped so clients
    always see the same error shape.
    """
    if isinstance(exc, BaseApplicationError):
        view = context.get("view")
        log_method = logger.error if exc.status_code >= 500 else logger.info
        log_method(
            f"Request failed: {exc.error_code}",
            extra={
                "error_code": exc.error_code,
                "status_code": exc.status_code,
                "view": view.__class__.__name__ if view else None,
            },
        )
        return Response(exc.to_response_body(), status=exc.status_code)

    response = exception_handler(exc, context)
    if response is None:
        return None

    data = response.data
    if isinstance(data, dict) and set(data.keys()) == {"detail"}:
        detail = data["detail"]
        code = getattr(detail, "code", "error")
        body = {"code": str(code).upper(), "message": str(detail)}
    else:
        body = {
            "code": "VALIDATION_ERROR",
            "message": "Invalid request data",
            "details": data,
        }
    response.data = {"success": False, "error": body}
    return response
