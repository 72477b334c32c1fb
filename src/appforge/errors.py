"""Exception types raised across the request boundary and the round pipeline."""

from __future__ import annotations


class AppForgeError(Exception):
    """Base class for errors raised by appforge."""


class AuthorizationError(AppForgeError):
    """Shared secret missing or wrong. Rejected before any work starts."""


class RequestValidationFailure(AppForgeError):
    """Required task field missing. Rejected before any work starts."""


class GenerationError(AppForgeError):
    """Text-generation backend call failed or returned an unusable body."""


class PublishError(AppForgeError):
    """Hosting backend call failed."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
