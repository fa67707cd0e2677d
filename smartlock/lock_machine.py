"""
Keypad lock state machine (pure).
- transition(snapshot, event, policy) -> (snapshot, effects)
- No clocks, no callbacks: timers are requested through effect records and
  carried out by LockController.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Tuple, Union


class LockState(str, Enum):
    LOCKED = "Locked"
    ERROR = "Error"
    UNLOCKED = "Unlocked"
    LOCKOUT = "Lockout"


@dataclass(frozen=True)
class LockPolicy:
    """Static lock parameters, fixed for the process lifetime."""
    secret_code: str = "1234"
    max_attempts: int = 3
    lockout_seconds: int = 30
    auto_clear_seconds: float = 1.0
    tick_seconds: float = 1.0
    code_length: int = 4
    clear_key: str = "C"
    enter_key: str = "E"


@dataclass(frozen=True)
class LockSnapshot:
    state: LockState = LockState.LOCKED
    buffer: str = ""
    attempts: int = 0
    lockout_remaining: int = 0


INITIAL = LockSnapshot()


# ------------- events -------------
@dataclass(frozen=True)
class KeyPressed:
    key: str


@dataclass(frozen=True)
class AutoClearFired:
    pass


@dataclass(frozen=True)
class LockoutTick:
    pass


@dataclass(frozen=True)
class MasterReset:
    pass


Event = Union[KeyPressed, AutoClearFired, LockoutTick, MasterReset]


# ------------- effects -------------
@dataclass(frozen=True)
class ScheduleAutoClear:
    delay: float


@dataclass(frozen=True)
class CancelAutoClear:
    pass


@dataclass(frozen=True)
class StartLockoutTicker:
    period: float


@dataclass(frozen=True)
class ContinueLockoutTicker:
    period: float


@dataclass(frozen=True)
class CancelLockoutTicker:
    pass


Effect = Union[ScheduleAutoClear, CancelAutoClear, StartLockoutTicker, ContinueLockoutTicker, CancelLockoutTicker]
Result = Tuple[LockSnapshot, Tuple[Effect, ...]]


# ------------- transitions -------------
def _on_key(s: LockSnapshot, key: str, policy: LockPolicy) -> Result:
    if s.state in (LockState.LOCKOUT, LockState.UNLOCKED):
        return s, ()

    if key == policy.clear_key:
        state = LockState.LOCKED if s.state == LockState.ERROR else s.state
        return replace(s, buffer="", state=state), ()

    if key == policy.enter_key:
        if s.buffer == policy.secret_code:
            # buffer kept so the display freezes on success
            return replace(s, state=LockState.UNLOCKED, attempts=0), ()

        # a failed submit consumes the buffer
        attempts = s.attempts + 1
        if attempts >= policy.max_attempts:
            nxt = replace(
                s,
                state=LockState.LOCKOUT,
                buffer="",
                attempts=attempts,
                lockout_remaining=policy.lockout_seconds,
            )
            return nxt, (CancelAutoClear(), StartLockoutTicker(policy.tick_seconds))
        return (
            replace(s, state=LockState.ERROR, buffer="", attempts=attempts),
            (ScheduleAutoClear(policy.auto_clear_seconds),),
        )

    if len(key) == 1 and key in "0123456789" and len(s.buffer) < policy.code_length:
        # typing cancels the error display; attempts are kept
        state = LockState.LOCKED if s.state == LockState.ERROR else s.state
        return replace(s, buffer=s.buffer + key, state=state), ()

    return s, ()


def _on_auto_clear(s: LockSnapshot) -> Result:
    # Decided on the state at fire time; a lockout started since scheduling wins.
    if s.state == LockState.LOCKOUT:
        return s, ()
    return replace(s, state=LockState.LOCKED, buffer=""), ()


def _on_tick(s: LockSnapshot, policy: LockPolicy) -> Result:
    if s.state != LockState.LOCKOUT:
        return s, (CancelLockoutTicker(),)
    remaining = s.lockout_remaining - 1
    if remaining <= 0:
        return INITIAL, (CancelLockoutTicker(),)
    return replace(s, lockout_remaining=remaining), (ContinueLockoutTicker(policy.tick_seconds),)


def transition(s: LockSnapshot, event: Event, policy: LockPolicy) -> Result:
    """Apply one event to a snapshot. Total over (state, event)."""
    if isinstance(event, KeyPressed):
        return _on_key(s, event.key, policy)
    if isinstance(event, AutoClearFired):
        return _on_auto_clear(s)
    if isinstance(event, LockoutTick):
        return _on_tick(s, policy)
    if isinstance(event, MasterReset):
        return INITIAL, (CancelAutoClear(), CancelLockoutTicker())
    return s, ()


# ------------- projections -------------
def display_value(s: LockSnapshot, width: int = 4) -> str:
    """Four-character readout."""
    if s.state == LockState.LOCKOUT:
        return "-" * width
    if s.state == LockState.ERROR:
        return "Err"
    if s.state == LockState.UNLOCKED:
        return "Open"
    return s.buffer.ljust(width, "_")


def status_text(s: LockSnapshot) -> str:
    if s.state == LockState.LOCKOUT:
        return f"LOCKOUT {s.lockout_remaining}s"
    return s.state.value.upper()
