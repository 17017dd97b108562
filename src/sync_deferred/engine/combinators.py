"""Aggregation combinators built on DeferredValue.

join_all: fulfills with every outcome in position order, or rejects with the
first rejection in time.
race: settles like whichever member settles first.

Both validate their input before building anything: a usage error is raised
at the caller and never turned into a rejection.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any

from sync_deferred.core.errors import AllUsageError, RaceUsageError

from .deferred import DeferredValue, is_thenable, observe
from .policy import SettlementPolicy, get_default_policy

logger = logging.getLogger(__name__)


def join_all(
    items: Iterable[Any],
    *,
    policy: SettlementPolicy | None = None,
    factory: type[DeferredValue] = DeferredValue,
) -> DeferredValue:
    """Wait for every entry.

    Plain values are carried through at their index. The input is copied,
    never mutated. An empty input fulfills with ``[]``.

    Raises:
        AllUsageError: no entry is deferred and the policy requires one.
    """
    entries = list(items)
    policy = policy if policy is not None else get_default_policy()
    if policy.all_requires_deferred and not any(is_thenable(e) for e in entries):
        raise AllUsageError("Must use at least one deferred value within `all`")

    def setup(resolve: Callable[[Any], None], reject: Callable[[Any], None]) -> None:
        results = list(entries)
        remaining = len(entries)
        if remaining == 0:
            resolve(results)
            return

        def member_fulfilled(index: int) -> Callable[[Any], None]:
            def fulfilled(value: Any) -> None:
                nonlocal remaining
                results[index] = value
                remaining -= 1
                if remaining == 0:
                    resolve(results)

            return fulfilled

        for index, entry in enumerate(entries):
            if is_thenable(entry):
                observe(entry, member_fulfilled(index), reject)
            else:
                remaining -= 1
                if remaining == 0:
                    resolve(results)

    return factory(setup, policy=policy)


def race(
    items: Iterable[Any],
    *,
    policy: SettlementPolicy | None = None,
    factory: type[DeferredValue] = DeferredValue,
) -> DeferredValue:
    """Settle with the first member to settle.

    Members are attached in position order, so among members that are
    already settled the earliest position wins. An empty input never
    settles.

    Raises:
        RaceUsageError: an entry is a plain value.
    """
    entries = list(items)
    for index, entry in enumerate(entries):
        if not is_thenable(entry):
            raise RaceUsageError(
                f"Must use deferred values within `race` "
                f"(entry {index} is {type(entry).__name__})"
            )

    def setup(resolve: Callable[[Any], None], reject: Callable[[Any], None]) -> None:
        for entry in entries:
            observe(entry, resolve, reject)

    return factory(setup, policy=policy)
