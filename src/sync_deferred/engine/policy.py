"""Settlement policy.

The original variants of this engine disagreed on three points: whether an
unobserved rejection is logged or fatal, whether synchronously settled
containers may be observed, and whether ``all`` needs at least one deferred
entry. Each is a field here instead of a hard-coded choice.

A container snapshots the policy it was built with; ``then``/``catch``
children inherit their parent's.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from typing import Any

from sync_deferred.core.config import EngineSettings
from sync_deferred.core.enums import UnhandledRejectionMode
from sync_deferred.core.scheduler import (
    AsyncioScheduler,
    IScheduler,
    create_scheduler,
)


@dataclass(frozen=True)
class SettlementPolicy:
    """Behavioural switches for one family of deferred values."""

    unhandled_rejection: UnhandledRejectionMode = UnhandledRejectionMode.WARN
    forbid_sync_observation: bool = True
    all_requires_deferred: bool = False
    scheduler: IScheduler = field(default_factory=AsyncioScheduler)
    # Called as on_unhandled(deferred_id, reason) before warning/raising.
    on_unhandled: Callable[[str, Any], None] | None = None

    @classmethod
    def from_settings(
        cls,
        settings: EngineSettings,
        on_unhandled: Callable[[str, Any], None] | None = None,
    ) -> SettlementPolicy:
        return cls(
            unhandled_rejection=settings.unhandled_rejection,
            forbid_sync_observation=settings.forbid_sync_observation,
            all_requires_deferred=settings.all_requires_deferred,
            scheduler=create_scheduler(settings.scheduler),
            on_unhandled=on_unhandled,
        )


_default_policy: SettlementPolicy | None = None


def get_default_policy() -> SettlementPolicy:
    """Return the process-wide policy, building it from env on first use."""
    global _default_policy
    if _default_policy is None:
        _default_policy = SettlementPolicy.from_settings(EngineSettings())
    return _default_policy


def set_default_policy(policy: SettlementPolicy) -> None:
    global _default_policy
    _default_policy = policy


def reset_default_policy() -> None:
    """Forget the current default; the next lookup rebuilds it from env."""
    global _default_policy
    _default_policy = None


def configure(**changes: Any) -> SettlementPolicy:
    """Replace fields of the default policy and return the new default.

    ``configure(unhandled_rejection=UnhandledRejectionMode.RAISE)``
    """
    policy = replace(get_default_policy(), **changes)
    set_default_policy(policy)
    return policy
