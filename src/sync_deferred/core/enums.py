"""Enumerations used across the deferred-value engine."""

from enum import Enum


class SettlementState(str, Enum):
    PENDING = "pending"
    FULFILLED = "fulfilled"
    REJECTED = "rejected"


class UnhandledRejectionMode(str, Enum):
    """What happens to a rejection nobody observed."""

    IGNORE = "ignore"
    WARN = "warn"    # Log and keep going
    RAISE = "raise"  # Raise UnhandledRejectionError on the next turn


class SchedulerKind(str, Enum):
    INLINE = "inline"
    MANUAL = "manual"
    ASYNCIO = "asyncio"
