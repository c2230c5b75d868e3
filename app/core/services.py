"""
Base service layer patterns.

- ServiceResult: result wrapper for expected, non-exceptional outcomes
  (webhook handlers return one so the processor can decide the HTTP answer)
- BaseService: per-class logger and transaction helper

Client-facing services raise core.exceptions errors; the DRF exception
handler turns them into responses. Webhook handlers return ServiceResult so
that "nothing to do" and "failed, please redeliver" are explicit.

Usage:
    from core.services import BaseService, ServiceResult

    class ConnectAccountService(BaseService):
        @classmethod
        def sync_from_account(cls, account: dict) -> ServiceResult[ConnectAccount]:
            with cls.atomic():
                ...
            cls.get_logger().info("Synced connect account")
            return ServiceResult.success(connect_account)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Callable, Generator
    from typing import Any

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
        errors: Field-level errors for validation failures

    Usage:
        return ServiceResult.success(job_payment)
        return ServiceResult.failure("Unknown plan", "PLAN_NOT_FOUND")
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    errors: dict[str, list[str]] | None = field(default=None)

    @classmethod
    def ok(cls, data: T) -> ServiceResult[T]:
        """Alias for success()."""
        return cls(success=True, data=data)

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        errors: dict[str, list[str]] | None = None,
    ) -> ServiceResult[T]:
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            errors=errors,
        )

    @classmethod
    def from_exception(cls, exc: Exception, error_code: str | None = None) -> ServiceResult[T]:
        """
        Create a failed result from an exception.

        Uses the exception's own error_code when it has one, otherwise the
        upper-cased class name.
        """
        return cls(
            success=False,
            error=str(getattr(exc, "message", exc)),
            error_code=error_code
            or getattr(exc, "error_code", None)
            or exc.__class__.__name__.upper(),
        )

    def to_response(self) -> dict[str, Any]:
        """Convert to the API envelope."""
        if self.success:
            return {"success": True, "data": self.data}
        error: dict[str, Any] = {"message": self.error}
        if self.error_code:
            error["code"] = self.error_code
        if self.errors:
            error["details"] = self.errors
        return {"success": False, "error": error}

    def map(self, func: Callable[[T], Any]) -> ServiceResult:
        """Transform the data if successful; failures pass through."""
        if self.success and self.data is not None:
            return ServiceResult.success(func(self.data))
        return self

    def __bool__(self) -> bool:
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Services are stateless apart from injected collaborators (the Stripe
    adapter), so most methods are classmethods or plain instance methods on
    a lightweight object.
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Logger named after the service class for easy filtering."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        Thin wrapper around transaction.atomic() that makes transaction
        boundaries explicit in service code.
        """
        with transaction.atomic():
            yield
