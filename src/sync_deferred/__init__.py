"""sync-deferred: settle-once deferred values with synchronous settlement."""

from sync_deferred.core.config import EngineSettings, load_settings
from sync_deferred.core.enums import (
    SchedulerKind,
    SettlementState,
    UnhandledRejectionMode,
)
from sync_deferred.core.errors import (
    AllUsageError,
    CallbackTypeError,
    ConfigError,
    DeferredError,
    InvalidObservationError,
    PendingResultError,
    RaceUsageError,
    UnhandledRejectionError,
    UsageError,
)
from sync_deferred.core.scheduler import (
    AsyncioScheduler,
    InlineScheduler,
    IScheduler,
    ManualScheduler,
    create_scheduler,
)
from sync_deferred.engine import (
    DeferredValue,
    SettlementPolicy,
    configure,
    get_default_policy,
    is_thenable,
    join_all,
    race,
    reset_default_policy,
    set_default_policy,
)
from sync_deferred.observability.logger import setup_logging

__all__ = [
    "AllUsageError",
    "AsyncioScheduler",
    "CallbackTypeError",
    "ConfigError",
    "DeferredError",
    "DeferredValue",
    "EngineSettings",
    "IScheduler",
    "InlineScheduler",
    "InvalidObservationError",
    "ManualScheduler",
    "PendingResultError",
    "RaceUsageError",
    "SchedulerKind",
    "SettlementPolicy",
    "SettlementState",
    "UnhandledRejectionError",
    "UnhandledRejectionMode",
    "UsageError",
    "configure",
    "create_scheduler",
    "get_default_policy",
    "is_thenable",
    "join_all",
    "load_settings",
    "race",
    "reset_default_policy",
    "set_default_policy",
    "setup_logging",
]
