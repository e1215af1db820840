# fleetobd/errors.py
"""
Exception hierarchy for the fleet core.
Each class carries the HTTP status the API layer maps it to (see main.py).
"""

from typing import Optional


class FleetError(Exception):
    """Base exception for all fleet core errors."""

    status_code = 500

    def __init__(self, message: str, *, errors: Optional[list] = None):
        self.message = message
        self.errors = errors or []
        super().__init__(message)


class InvalidInputError(FleetError, ValueError):
    """Malformed or out-of-range input. Never retried.

    Also a ValueError so pydantic validators can raise it directly.
    """

    status_code = 422


class NotFoundError(FleetError):
    """Vehicle, driver or company does not exist."""

    status_code = 404


class ConflictError(FleetError):
    """Request collides with current state; caller must resolve it before retrying."""

    status_code = 409


class ForbiddenError(FleetError):
    """Identity is not authorized for the requested scope."""

    status_code = 403


class TransientError(FleetError):
    """Storage timeout or disconnect that outlived the internal retries.

    Safe for the caller to retry later.
    """

    status_code = 503
    retry_after_seconds = 1
