"""Custom exception hierarchy for the deferred-value engine.

Rejection reasons are data: the engine stores and forwards them but never
raises them. Everything below is raised straight at the caller.
"""

from __future__ import annotations

from typing import Any


class DeferredError(Exception):
    """Base exception for all engine errors."""


# --- Configuration ---
class ConfigError(DeferredError):
    """Invalid or missing configuration."""


# --- Usage ---
class UsageError(DeferredError):
    """The public API was used in a way it does not allow."""


class InvalidObservationError(UsageError):
    """``then``/``catch`` called on a synchronously settled container."""


class AllUsageError(UsageError):
    """``all`` was given no deferred entries while the policy requires one."""


class RaceUsageError(UsageError):
    """``race`` was given a plain value."""


class CallbackTypeError(UsageError, TypeError):
    """A setup procedure or handler is not callable."""


class PendingResultError(UsageError):
    """``result`` read before settlement."""


# --- Unhandled rejection ---
class UnhandledRejectionError(DeferredError):
    """A rejection reached a terminal state with no rejection observer."""

    def __init__(self, reason: Any, deferred_id: str = ""):
        self.reason = reason
        self.deferred_id = deferred_id
        super().__init__(f"Unhandled rejection [{deferred_id}]: {reason!r}")
