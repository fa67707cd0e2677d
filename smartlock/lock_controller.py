"""
Lock controller.
- Owns the current LockSnapshot and the two timer handles (auto-clear, lockout tick).
- Every event goes through lock_machine.transition; the returned effects are
  turned into scheduler calls here.
- Timer callbacks re-read the current snapshot when they fire.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

from smartlock.lock_machine import (
    INITIAL,
    AutoClearFired,
    CancelAutoClear,
    CancelLockoutTicker,
    ContinueLockoutTicker,
    Effect,
    Event,
    KeyPressed,
    LockoutTick,
    LockPolicy,
    LockSnapshot,
    LockState,
    MasterReset,
    ScheduleAutoClear,
    StartLockoutTicker,
    display_value,
    status_text,
    transition,
)
from smartlock.scheduler import Scheduler, TimerHandle
from smartlock.utils import logger


class LockController:
    def __init__(self, scheduler: Scheduler, policy: Optional[LockPolicy] = None):
        self.scheduler = scheduler
        self.policy = policy or LockPolicy()
        self._snapshot: LockSnapshot = INITIAL
        self._auto_clear: Optional[TimerHandle] = None
        self._ticker: Optional[TimerHandle] = None

    # ------------- read side -------------
    @property
    def snapshot(self) -> LockSnapshot:
        return self._snapshot

    @property
    def state(self) -> LockState:
        return self._snapshot.state

    @property
    def buffer(self) -> str:
        return self._snapshot.buffer

    @property
    def attempts(self) -> int:
        return self._snapshot.attempts

    @property
    def lockout_remaining(self) -> int:
        return self._snapshot.lockout_remaining

    @property
    def keypad_enabled(self) -> bool:
        return self._snapshot.state != LockState.LOCKOUT

    def display(self) -> str:
        return display_value(self._snapshot, self.policy.code_length)

    def status(self) -> str:
        return status_text(self._snapshot)

    def view(self) -> Dict[str, Any]:
        """Presentation view; never includes the secret code."""
        s = self._snapshot
        return {
            "state": s.state.value,
            "display": self.display(),
            "status": self.status(),
            "attempts": s.attempts,
            "max_attempts": self.policy.max_attempts,
            "lockout_remaining_s": s.lockout_remaining,
            "keypad_enabled": self.keypad_enabled,
        }

    # ------------- public API -------------
    def submit_key(self, key: str) -> LockSnapshot:
        """Feed one keypad key (digit, clear or enter). Unknown keys are ignored."""
        return self._dispatch(KeyPressed(str(key)))

    def master_reset(self) -> LockSnapshot:
        """Unconditional return to the initial state, cancelling pending timers."""
        snap = self._dispatch(MasterReset())
        logger.info("[LOCK] Master reset")
        return snap

    def resume(self) -> None:
        """Restart the lockout countdown after dispose() if still in Lockout; no-op if already ticking."""
        if self._snapshot.state == LockState.LOCKOUT and self._ticker is None:
            logger.info(f"[LOCK] Lockout countdown resumed ({self._snapshot.lockout_remaining}s left)")
            self._ticker = self.scheduler.call_later(self.policy.tick_seconds, self._on_tick)

    def dispose(self) -> None:
        """Cancel all timers. The snapshot is left untouched."""
        self._cancel_auto_clear()
        self._cancel_ticker()

    # ------------- internals -------------
    def _dispatch(self, event: Event) -> LockSnapshot:
        before = self._snapshot
        after, effects = transition(before, event, self.policy)
        self._snapshot = after
        if after.state != before.state:
            logger.info(
                f"[LOCK] {type(event).__name__}: {before.state.value} -> {after.state.value} "
                f"(attempts={after.attempts})"
            )
        elif after == before and isinstance(event, KeyPressed):
            logger.debug(f"[LOCK] Key {event.key!r} ignored in state {before.state.value}")
        self._apply(effects)
        return after

    def _apply(self, effects: Iterable[Effect]) -> None:
        for eff in effects:
            if isinstance(eff, ScheduleAutoClear):
                self._cancel_auto_clear()
                self._auto_clear = self.scheduler.call_later(eff.delay, self._on_auto_clear)
            elif isinstance(eff, CancelAutoClear):
                self._cancel_auto_clear()
            elif isinstance(eff, StartLockoutTicker):
                self._cancel_ticker()
                logger.warning(
                    f"[LOCK] Lockout for {self._snapshot.lockout_remaining}s after "
                    f"{self._snapshot.attempts} failed attempts"
                )
                self._ticker = self.scheduler.call_later(eff.period, self._on_tick)
            elif isinstance(eff, ContinueLockoutTicker):
                self._ticker = self.scheduler.call_later(eff.period, self._on_tick)
            elif isinstance(eff, CancelLockoutTicker):
                self._cancel_ticker()

    def _on_auto_clear(self) -> None:
        self._auto_clear = None
        self._dispatch(AutoClearFired())

    def _on_tick(self) -> None:
        self._ticker = None
        self._dispatch(LockoutTick())

    def _cancel_auto_clear(self) -> None:
        if self._auto_clear is not None:
            self._auto_clear.cancel()
            self._auto_clear = None

    def _cancel_ticker(self) -> None:
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None
