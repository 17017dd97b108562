"""Deferred values settled from asyncio timers."""

from __future__ import annotations

import asyncio

import pytest

from sync_deferred.core.enums import UnhandledRejectionMode
from sync_deferred.core.scheduler import AsyncioScheduler
from sync_deferred.engine.deferred import DeferredValue
from sync_deferred.engine.policy import SettlementPolicy


def _later(loop, delay, value, policy, fail=False):
    def setup(resolve, reject):
        loop.call_later(delay, reject if fail else resolve, value)

    return DeferredValue(setup, policy=policy)


async def _outcome(deferred, loop):
    future = loop.create_future()
    deferred.then(
        future.set_result,
        lambda reason: future.set_exception(RuntimeError(reason)),
    )
    return await asyncio.wait_for(future, timeout=2)


class TestAsyncioSettlement:
    @pytest.mark.asyncio
    async def test_race_winner(self):
        loop = asyncio.get_running_loop()
        policy = SettlementPolicy(scheduler=AsyncioScheduler())
        raced = DeferredValue.race(
            [
                _later(loop, 0.2, 1, policy),
                _later(loop, 0.01, 2, policy),
                _later(loop, 0.2, 3, policy),
            ],
            policy=policy,
        )
        assert await _outcome(raced, loop) == 2

    @pytest.mark.asyncio
    async def test_all_preserves_order(self):
        loop = asyncio.get_running_loop()
        policy = SettlementPolicy(scheduler=AsyncioScheduler())
        joined = DeferredValue.all(
            [
                _later(loop, 0.05, 1, policy),
                _later(loop, 0.01, 2, policy),
                3,
            ],
            policy=policy,
        )
        assert await _outcome(joined, loop) == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_all_rejects_with_first_failure_in_time(self):
        loop = asyncio.get_running_loop()
        policy = SettlementPolicy(scheduler=AsyncioScheduler())
        joined = DeferredValue.all(
            [
                _later(loop, 0.1, "slow failure", policy, fail=True),
                _later(loop, 0.01, "fast failure", policy, fail=True),
            ],
            policy=policy,
        )
        with pytest.raises(RuntimeError, match="fast failure"):
            await _outcome(joined, loop)

    @pytest.mark.asyncio
    async def test_unhandled_rejection_reported_on_loop(self):
        loop = asyncio.get_running_loop()
        reports = []
        policy = SettlementPolicy(
            unhandled_rejection=UnhandledRejectionMode.WARN,
            scheduler=AsyncioScheduler(),
            on_unhandled=lambda deferred_id, reason: reports.append(reason),
        )
        _later(loop, 0.0, "dropped", policy, fail=True)
        await asyncio.sleep(0.05)
        assert reports == ["dropped"]

    @pytest.mark.asyncio
    async def test_catch_attached_in_same_turn_counts(self):
        reports = []
        policy = SettlementPolicy(
            scheduler=AsyncioScheduler(),
            on_unhandled=lambda deferred_id, reason: reports.append(reason),
        )
        handles = {}
        deferred = DeferredValue(
            lambda res, rej: handles.update(reject=rej), policy=policy,
        )
        handles["reject"]("bad")
        recovered = deferred.catch(lambda e: "ok")
        await asyncio.sleep(0)
        assert reports == []
        assert recovered.result == "ok"
