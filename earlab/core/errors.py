"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypedDict


class FieldError(TypedDict):
    field: str
    reason: str


class ErrorDetails(TypedDict, total=False):
    """Optional structured context returned under ``error.details``.

    ``field`` and ``reason`` describe a single rejected input; ``fields``
    lists every failure of a rejected request body.
    """

    field: str
    reason: str
    fields: list[FieldError]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class VerificationAppError(AppError):
    """Raised when a newsletter verification token cannot be honoured.

    Covers malformed, tampered and expired tokens alike; callers must not
    tell them apart in user-facing messages.
    """


class NotFoundAppError(AppError):
    """Raised when a requested record does not exist."""


class ConflictAppError(AppError):
    """Raised when a request conflicts with existing state."""
