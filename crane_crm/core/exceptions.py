"""Custom exception classes for the application."""

from __future__ import annotations

from typing import Any, ClassVar


class AppException(Exception):
    """Base application exception.

    All HTTP-facing errors inherit from this class and are rendered as
    RFC 7807 Problem Details by the global exception handler. Subclasses
    fix the status code, title and default problem type.

    Attributes:
        status_code: HTTP status code for the error.
        detail: Human-readable error message.
        type: Error type identifier (used in RFC 7807 problem details).
        title: Short, human-readable summary of the problem type.
        instance: URI reference that identifies the specific occurrence of the problem.
        extra: Additional context-specific information about the error.

    Example:
        raise NotFoundException(
            detail="Template 12 not found",
            type="template-not-found",
            extra={"template_id": 12},
        )
    """

    status_code: ClassVar[int] = 500
    title: ClassVar[str] = "Internal Server Error"
    default_type: ClassVar[str] = "about:blank"

    def __init__(
        self,
        detail: str,
        type: str | None = None,
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.detail = detail
        self.type = type or self.default_type
        self.instance = instance
        self.extra = extra or {}
        super().__init__(detail)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status={self.status_code}, type={self.type!r}, detail={self.detail!r})"


class NotFoundException(AppException):
    """A template, element or notification does not exist for the caller."""

    status_code = 404
    title = "Not Found"
    default_type = "not-found"


class ValidationException(AppException):
    """Domain validation failed (unknown theme, bad element content).

    Example:
        raise ValidationException(
            detail="Unknown theme: NEON",
            type="invalid-theme",
            extra={"theme": "NEON"},
        )
    """

    status_code = 422
    title = "Validation Error"
    default_type = "validation-error"


class UnauthorizedException(AppException):
    status_code = 401
    title = "Unauthorized"
    default_type = "unauthorized"


class ForbiddenException(AppException):
    """The caller's role does not allow the operation."""

    status_code = 403
    title = "Forbidden"
    default_type = "forbidden"


class ConflictException(AppException):
    status_code = 409
    title = "Conflict"
    default_type = "conflict"
