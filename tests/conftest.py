"""Shared fixtures for the sync-deferred test suite."""

from __future__ import annotations

from typing import Any

import pytest

from sync_deferred.core.enums import UnhandledRejectionMode
from sync_deferred.core.scheduler import ManualScheduler
from sync_deferred.engine.deferred import DeferredValue
from sync_deferred.engine.policy import (
    SettlementPolicy,
    reset_default_policy,
    set_default_policy,
)


# ---------------------------------------------------------------------------
# Scheduling / policies
# ---------------------------------------------------------------------------

@pytest.fixture
def manual_scheduler() -> ManualScheduler:
    """Scheduler whose queued callbacks only run on ``run_pending()``."""
    return ManualScheduler()


@pytest.fixture
def unhandled_reports() -> list[tuple[str, Any]]:
    """Collects ``(deferred_id, reason)`` for every unhandled rejection."""
    return []


@pytest.fixture
def strict_policy(manual_scheduler, unhandled_reports) -> SettlementPolicy:
    """Default behaviour: sync-settled containers cannot be observed."""
    return SettlementPolicy(
        unhandled_rejection=UnhandledRejectionMode.WARN,
        forbid_sync_observation=True,
        scheduler=manual_scheduler,
        on_unhandled=lambda deferred_id, reason: unhandled_reports.append(
            (deferred_id, reason)
        ),
    )


@pytest.fixture
def lenient_policy(manual_scheduler, unhandled_reports) -> SettlementPolicy:
    """Sync-settled containers may be observed."""
    return SettlementPolicy(
        unhandled_rejection=UnhandledRejectionMode.WARN,
        forbid_sync_observation=False,
        scheduler=manual_scheduler,
        on_unhandled=lambda deferred_id, reason: unhandled_reports.append(
            (deferred_id, reason)
        ),
    )


@pytest.fixture(autouse=True)
def isolated_default_policy():
    """Keep the process-wide default policy out of the environment."""
    set_default_policy(
        SettlementPolicy(
            unhandled_rejection=UnhandledRejectionMode.IGNORE,
            scheduler=ManualScheduler(),
        )
    )
    yield
    reset_default_policy()


# ---------------------------------------------------------------------------
# Containers settled "later"
# ---------------------------------------------------------------------------

@pytest.fixture
def make_pending(strict_policy):
    """Factory returning ``(deferred, resolve, reject)`` for a pending container.

    The test settles it by calling ``resolve``/``reject`` after construction,
    standing in for a timer or I/O callback.
    """

    def _make(policy: SettlementPolicy | None = None):
        handles: dict[str, Any] = {}

        def setup(resolve, reject):
            handles["resolve"] = resolve
            handles["reject"] = reject

        deferred = DeferredValue(setup, policy=policy or strict_policy)
        return deferred, handles["resolve"], handles["reject"]

    return _make
