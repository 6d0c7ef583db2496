"""
Error taxonomy for the bookstore domain.

Services raise these and the API layer maps each kind to a response.
Anything that is not a ``BookstoreError`` is wrapped in
``InternalFailure`` before it leaves a service.
"""

from typing import List, Optional


class BookstoreError(Exception):
    """Base exception for all bookstore errors."""

    code = "error"
    default_message = "An error occurred"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationFailure(BookstoreError):
    """Raised when input is malformed or a required field is missing."""

    code = "validation_failure"
    default_message = "Validation failed"

    def __init__(self, message: Optional[str] = None, fields: Optional[List[str]] = None):
        self.fields = list(fields or [])
        super().__init__(message)


class Unauthenticated(BookstoreError):
    """Raised for a missing or invalid bearer credential or bad login."""

    code = "unauthenticated"
    default_message = "Invalid username or password"


class Forbidden(BookstoreError):
    """Raised when the caller is known but the action is categorically disallowed."""

    code = "forbidden"
    default_message = "This action is not allowed"


class Unauthorized(BookstoreError):
    """Raised when the caller does not own the resource being mutated."""

    code = "unauthorized"
    default_message = "You are not authorized to modify this resource"


class NotFound(BookstoreError):
    """Raised when a referenced user or book does not exist."""

    code = "not_found"
    default_message = "Resource not found"


class InternalFailure(BookstoreError):
    """Raised when a collaborator fails unexpectedly."""

    code = "internal_failure"
    default_message = "An unexpected error occurred"


class InvalidTokenError(Exception):
    """Raised by the token service when a token cannot be verified."""

    def __init__(self, message: str = "Invalid or expired token"):
        self.message = message
        super().__init__(message)
