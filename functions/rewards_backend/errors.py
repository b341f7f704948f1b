"""
Error taxonomy shared by the core modules and the HTTP layer.
"""

from __future__ import annotations


class RewardsError(Exception):
    """Base class for errors that map onto a client-visible response."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(RewardsError):
    """Malformed or missing input. Nothing was mutated."""

    status_code = 400


class NotFoundError(RewardsError):
    status_code = 404


class AuthError(RewardsError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class StorageError(RewardsError):
    """The persistence layer failed; the public message stays generic."""

    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
