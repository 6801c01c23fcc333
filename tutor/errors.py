"""Error taxonomy shared by the tutor agent and the HTTP layer.

Each error carries the HTTP status the API renders it with, so route code can
simply raise and let the app-level exception handler build `{"error": ...}`.
"""

from __future__ import annotations


class TutorError(Exception):
    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(TutorError):
    """Missing or malformed chat messages."""

    status_code = 400


class AuthError(TutorError):
    """No authenticated caller."""

    status_code = 401


class NotFoundError(TutorError):
    """The caller has no stored profile."""

    status_code = 404


class ProviderError(TutorError):
    """The completion provider is misconfigured, failed, or returned no text."""

    status_code = 502
