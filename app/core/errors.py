"""API error hierarchy rendered as RFC 7807 problem details."""
from __future__ import annotations

from typing import Any, Sequence

ERROR_TYPE_BASE = "https://api.dashboard.com/errors"


class ApiError(Exception):
    """Base class for errors that map to an HTTP status and problem body."""

    status_code: int = 500
    title: str = "Internal Server Error"
    slug: str = "internal"

    def __init__(
        self,
        detail: str | None = None,
        *,
        errors: Sequence[str] | None = None,
        title: str | None = None,
    ) -> None:
        self.detail = detail or self.title
        self.errors = list(errors or [])
        if title:
            self.title = title
        super().__init__(self.detail)

    @property
    def type(self) -> str:
        return f"{ERROR_TYPE_BASE}/{self.slug}"

    def to_problem(self, instance: str | None = None) -> dict[str, Any]:
        problem: dict[str, Any] = {
            "type": self.type,
            "title": self.title,
            "status": self.status_code,
            "detail": self.detail,
        }
        if instance:
            problem["instance"] = instance
        if self.errors:
            problem["errors"] = list(self.errors)
        return problem


class ValidationError(ApiError):
    """Request parameters failed validation; nothing was queried."""

    status_code = 400
    title = "Validation Error"
    slug = "validation"

    def __init__(self, errors: Sequence[str] | str, *, detail: str | None = None) -> None:
        messages = [errors] if isinstance(errors, str) else list(errors)
        super().__init__(detail or "; ".join(messages), errors=messages)


class InvalidCursor(ValidationError):
    """Pagination token could not be decoded."""

    def __init__(self, reason: str = "Invalid cursor") -> None:
        super().__init__([reason])


class NotFoundError(ApiError):
    status_code = 404
    title = "Not Found"
    slug = "not-found"

    def __init__(self, resource: str = "Resource") -> None:
        super().__init__(f"{resource} not found")


class InternalServerError(ApiError):
    status_code = 500
    title = "Internal Server Error"
    slug = "internal"

    def __init__(self, detail: str = "An unexpected error occurred") -> None:
        super().__init__(detail)
