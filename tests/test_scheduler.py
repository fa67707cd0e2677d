from __future__ import annotations

import asyncio

from smartlock.lock_controller import LockController
from smartlock.lock_machine import LockPolicy, LockState
from smartlock.scheduler import AsyncioScheduler, VirtualScheduler


def test_virtual_scheduler_fires_in_due_order():
    clock = VirtualScheduler()
    fired = []
    clock.call_later(2.0, lambda: fired.append("b"))
    clock.call_later(1.0, lambda: fired.append("a"))
    clock.call_later(2.0, lambda: fired.append("c"))

    clock.advance(1.5)
    assert fired == ["a"]
    clock.advance(0.5)
    assert fired == ["a", "b", "c"]
    assert clock.now == 2.0


def test_virtual_scheduler_cancel_is_idempotent():
    clock = VirtualScheduler()
    fired = []
    h = clock.call_later(1.0, lambda: fired.append(1))
    h.cancel()
    h.cancel()
    assert clock.pending() == 0
    clock.advance(5.0)
    assert fired == []


def test_virtual_scheduler_runs_rescheduled_callbacks_within_one_advance():
    clock = VirtualScheduler()
    ticks = []

    def tick():
        ticks.append(clock.now)
        if len(ticks) < 3:
            clock.call_later(1.0, tick)

    clock.call_later(1.0, tick)
    clock.advance(10.0)
    assert ticks == [1.0, 2.0, 3.0]


def test_asyncio_scheduler_drives_controller():
    async def scenario():
        lock = LockController(
            AsyncioScheduler(),
            LockPolicy(max_attempts=3, auto_clear_seconds=0.01, tick_seconds=0.01),
        )
        for k in "9999E":
            lock.submit_key(k)
        assert lock.state == LockState.ERROR
        await asyncio.sleep(0.05)
        return lock

    lock = asyncio.run(scenario())
    assert lock.state == LockState.LOCKED
    assert lock.buffer == ""
    assert lock.attempts == 1


def test_asyncio_scheduler_lockout_countdown():
    async def scenario():
        lock = LockController(
            AsyncioScheduler(),
            LockPolicy(max_attempts=1, lockout_seconds=2, tick_seconds=0.01),
        )
        for k in "0000E":
            lock.submit_key(k)
        assert lock.state == LockState.LOCKOUT
        await asyncio.sleep(0.1)
        return lock

    lock = asyncio.run(scenario())
    assert lock.state == LockState.LOCKED
    assert lock.attempts == 0
