from __future__ import annotations

from typing import Any, Mapping, Optional


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules.

    ``errors`` optionally maps field names to messages for field-level feedback.
    """

    def __init__(self, message: str = "Validation failed", errors: Optional[Mapping[str, str]] = None):
        super().__init__(message)
        self.errors = dict(errors or {})


class AuthenticationError(DomainError):
    """Raised when credentials or tokens are missing, invalid or expired."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class NotFoundError(DomainError):
    """Raised when a referenced entity does not exist."""


class ConflictError(DomainError):
    """Raised when an operation would duplicate an existing entity or event."""


class DuplicateKeyError(Exception):
    """Raised by the database layer when a unique constraint rejects a write."""


class AttendanceRejection:
    """Mixin for attendance rejections that carry the existing record for context."""

    attendance: Any = None


class SiteNotFound(AttendanceRejection, NotFoundError):
    def __init__(self, message: str = "Site not found"):
        super().__init__(message)


class AlreadyPunchedIn(AttendanceRejection, ConflictError):
    def __init__(self, attendance: Any = None, message: str = "You have already punched in today"):
        super().__init__(message)
        self.attendance = attendance


class AlreadyPunchedOut(AttendanceRejection, ConflictError):
    def __init__(self, attendance: Any = None, message: str = "You have already punched out today"):
        super().__init__(message)
        self.attendance = attendance


class NoPunchInFound(AttendanceRejection, ValidationError):
    def __init__(self, message: str = "No punch in record found for today. Please punch in first."):
        super().__init__(message)


class InvalidDateRange(ValidationError):
    def __init__(self, message: str = "Start date must be before or equal to end date", field: str = "start"):
        super().__init__(message, {field: message})


class InvalidPriority(ValidationError):
    def __init__(self, message: str = "Invalid priority. Must be low, medium, or high"):
        super().__init__(message, {"priority": message})
