"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses. Each subclass maps to
one HTTP status in ``exception_handlers``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep shapes consistent without forcing every
    error to carry every field.
    """

    hint: str
    address: str
    scope: str
    limit: int
    retry_after: int
    reset_at: int
    error_codes: list[str]
    balance: str
    required: str
    tx_hash: str
    context: NotRequired[dict[str, Any]]


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


class CaptchaAppError(AppError):
    """Raised when the proof-of-humanity token is rejected or unverifiable."""


class RateLimitedAppError(AppError):
    """Raised when an IP or address exceeded its request window."""

    @property
    def retry_after(self) -> int:
        return int((self.details or {}).get("retry_after", 0))


class TreasuryLowAppError(AppError):
    """Raised when the treasury cannot cover a payout plus safety margin."""


class ChainAppError(AppError):
    """Raised when a chain call, submission or confirmation fails."""


class DependencyUnavailableAppError(AppError):
    """Raised when a required backing service cannot be reached."""


class AuthenticationAppError(AppError):
    """Raised when authentication/authorization fails."""


class CounterStoreError(Exception):
    """Raised by counter store adapters when the backend is unreachable."""
