from abc import ABC


class UserError(ABC, Exception):
    """Base class for client-facing errors.

    All errors that inherit from UserError will have their messages
    returned to the caller. These errors should not contain any
    sensitive information (never a key or a token).
    """


class AuthenticationError(UserError):
    """Raised when a request could not be authenticated."""

    def __init__(self, message: str = "Authentication required.") -> None:
        super().__init__(message)


class NotAuthenticatedError(AuthenticationError):
    """Raised when a connection token is requested without a valid session."""


class ValidationError(UserError):
    """Raised when user input fails validation."""
