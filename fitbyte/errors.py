"""
Domain errors raised below the HTTP layer.

Routes and dependencies translate these into ``HTTPException`` so the storage
and security modules stay free of FastAPI imports.
"""

from __future__ import annotations


class FitByteError(Exception):
    """Base class for errors raised by FitByte services."""


class DuplicateEmailError(FitByteError):
    """A user with the same email already exists."""

    def __init__(self, email: str):
        super().__init__(f"Email already exists: {email}")
        self.email = email


class UnknownUserError(FitByteError):
    """An activity referenced a user that does not exist."""

    def __init__(self, user_id):
        super().__init__(f"User does not exist: {user_id}")
        self.user_id = user_id


class AuthError(FitByteError):
    pass


class InvalidTokenError(AuthError):
    pass


class TokenExpiredError(AuthError):
    pass


class MigrationError(FitByteError):
    """Migration scripts are missing or inconsistent."""
