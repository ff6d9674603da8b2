"""Error taxonomy for the roster engine."""

from __future__ import annotations

from typing import Any, List


class RotaError(Exception):
    """Base class for all roster engine errors."""


class ValidationError(RotaError, ValueError):
    """Malformed input or a violated Shift invariant."""


class ConflictError(RotaError):
    """Double booking, unexpected state for a transition, or a seat already filled."""


class AuthorizationError(RotaError, PermissionError):
    """Caller is not allowed to perform the action (non-owner, non-admin)."""


class NotFoundError(RotaError, LookupError):
    """Unknown shift, role, request or location id."""


class PartialFailure(RotaError):
    """
    Aggregate outcome of a batch where some items succeeded and others failed.

    Batch operations do not raise this; they attach it to their result so the
    caller decides how to present it.
    """

    def __init__(self, succeeded: List[Any], failed: List[Any]):
        self.succeeded = succeeded
        self.failed = failed
        super().__init__(f"{len(succeeded)} succeeded, {len(failed)} failed")
