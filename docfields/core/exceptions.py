"""Custom exception hierarchy."""

from typing import Optional


class AppError(Exception):
    """Base exception for application errors."""
    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class DatabaseError(AppError):
    """Raised when a database operation fails."""
    pass


class ValidationError(AppError):
    """Raised when input validation fails."""
    pass



class NotFoundError(AppError):
    """Raised when a template, document or field does not exist."""
    pass


class DuplicateKeyError(AppError):
    """Raised when a field key is already used within a template."""
    pass


class InvalidGeometryError(ValidationError):
    """Raised when field coordinates violate the unit-page bounds.

    Attributes:
        bound: Name of the violated bound (``x``, ``y``, ``width``, ``height``,
            ``x+width``, ``y+height`` or ``page``)
    """
    def __init__(self, message: str, bound: Optional[str] = None, original_error: Exception = None):
        super().__init__(message, original_error=original_error)
        self.bound = bound


class FieldTemplateMismatchError(AppError):
    """Raised when a value targets a field outside the document's template."""
    pass


class ParseFailureError(AppError):
    """Raised when a legacy coordinateFields blob cannot be parsed."""
    pass
