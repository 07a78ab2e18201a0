"""Per-connection modifier key state: momentary versus locked.

Each modifier key (shift, control, alt, command) moves through::

    IDLE --down--> PRESSED_MOMENTARY --up before T_lock--> IDLE        (emits key_up)
                                     --held >= T_lock----> LOCKED      (emits modifier_lock)
    LOCKED --next explicit tap (down, up)----------------> IDLE        (emits key_up)

A momentary modifier applies to exactly one following key event: the
translator reads ``active_modifiers`` for the key event and then calls
``release_momentary``, which releases every momentary modifier even if
the physical key is still down. Locked modifiers stay active until
tapped again.

The hold timer is scheduled with an injected ``call_later`` (normally
``loop.call_later`` of the connection's event loop). Without one, the
machine still promotes expired holds lazily on the next event, using
the injected clock.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from remotepad.domain.models import CommandKind, ModifierMode, NormalizedCommand

logger = logging.getLogger(__name__)

DEFAULT_LOCK_THRESHOLD = 0.5  # seconds

Emit = Callable[[NormalizedCommand], None]


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


CallLater = Callable[[float, Callable[[], None]], TimerHandle]


@dataclass
class ModifierState:
    key: str
    mode: ModifierMode = ModifierMode.IDLE
    pressed_at: float | None = None
    held: bool = False  # physical key currently down
    unlock_armed: bool = False  # a fresh press while locked; its release unlocks
    timer: TimerHandle | None = None

    def cancel_timer(self) -> None:
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None


class ModifierStateMachine:
    """Tracks modifier keys for one connection and emits their commands.

    Example usage::

        machine = ModifierStateMachine(emit=outbox.append, call_later=loop.call_later)
        machine.press("shift")
        mods = machine.active_modifiers()    # ["shift"]
        ...emit key_tap with mods...
        machine.release_momentary()          # emits key_up(shift)
    """

    def __init__(
        self,
        emit: Emit,
        lock_threshold: float = DEFAULT_LOCK_THRESHOLD,
        clock: Callable[[], float] = time.monotonic,
        call_later: CallLater | None = None,
    ) -> None:
        self._emit = emit
        self._lock_threshold = lock_threshold
        self._clock = clock
        self._call_later = call_later
        self._states: dict[str, ModifierState] = {}

    @property
    def lock_threshold(self) -> float:
        return self._lock_threshold

    def mode(self, key: str) -> ModifierMode:
        self._promote_expired()
        state = self._states.get(key)
        return state.mode if state else ModifierMode.IDLE

    def press(self, key: str) -> None:
        """Physical down on a modifier key."""
        self._promote_expired()
        state = self._states.setdefault(key, ModifierState(key=key))

        if state.mode is ModifierMode.IDLE:
            pressed_at = self._clock()
            state.mode = ModifierMode.PRESSED_MOMENTARY
            state.pressed_at = pressed_at
            state.held = True
            if self._call_later is not None:
                state.timer = self._call_later(
                    self._lock_threshold, lambda: self._on_hold_elapsed(key, pressed_at)
                )
            self._emit(NormalizedCommand.of(CommandKind.KEY_DOWN, key=key))
        elif state.mode is ModifierMode.LOCKED and not state.held:
            state.held = True
            state.unlock_armed = True
        else:
            logger.debug("Ignoring repeated down for %s (%s)", key, state.mode.value)

    def release(self, key: str) -> None:
        """Physical up on a modifier key."""
        self._promote_expired()
        state = self._states.get(key)
        if state is None or state.mode is ModifierMode.IDLE:
            logger.debug("Ignoring up for untracked modifier %s", key)
            return

        if state.mode is ModifierMode.PRESSED_MOMENTARY:
            self._to_idle(state)
        elif state.unlock_armed:
            logger.debug("Modifier %s unlocked", key)
            self._to_idle(state)
        else:
            # The release of the press that engaged the lock.
            state.held = False

    def tap(self, key: str) -> None:
        """An explicit tap of the modifier key itself: down then up.

        Idle taps pass straight through; a tap on a locked modifier unlocks it.
        """
        self.press(key)
        self.release(key)

    def active_modifiers(self) -> list[str]:
        """Locked and momentary modifiers, in the order they went down."""
        self._promote_expired()
        return [s.key for s in self._states.values() if s.mode is not ModifierMode.IDLE]

    def release_momentary(self) -> None:
        """Release every momentary modifier after a key event used it."""
        for state in self._states.values():
            if state.mode is ModifierMode.PRESSED_MOMENTARY:
                self._to_idle(state)

    def cancel(self, key: str | None = None) -> None:
        """Stray end-of-gesture (pointer left the key, focus lost).

        Momentary modifiers are released so none stays stuck down. Locked
        modifiers keep their lock; only an abandoned unlock tap is disarmed.
        ``key=None`` applies to every tracked modifier.
        """
        self._promote_expired()
        targets = list(self._states.values()) if key is None else [self._states.get(key)]
        for state in targets:
            if state is None:
                continue
            if state.mode is ModifierMode.PRESSED_MOMENTARY:
                self._to_idle(state)
            elif state.mode is ModifierMode.LOCKED:
                state.held = False
                state.unlock_armed = False

    def reset(self) -> None:
        """Connection teardown: cancel timers and let go of every held modifier."""
        for state in self._states.values():
            if state.mode is not ModifierMode.IDLE:
                self._to_idle(state)
            state.cancel_timer()
        self._states.clear()

    def _on_hold_elapsed(self, key: str, pressed_at: float) -> None:
        state = self._states.get(key)
        if state is None or state.pressed_at != pressed_at:
            return
        state.timer = None
        if state.mode is ModifierMode.PRESSED_MOMENTARY and state.held:
            self._lock(state)

    def _promote_expired(self) -> None:
        now = self._clock()
        for state in self._states.values():
            if (
                state.mode is ModifierMode.PRESSED_MOMENTARY
                and state.held
                and state.pressed_at is not None
                and now - state.pressed_at >= self._lock_threshold
            ):
                self._lock(state)

    def _lock(self, state: ModifierState) -> None:
        state.cancel_timer()
        state.mode = ModifierMode.LOCKED
        state.unlock_armed = False
        logger.debug("Modifier %s locked", state.key)
        self._emit(NormalizedCommand.of(CommandKind.MODIFIER_LOCK, key=state.key))

    def _to_idle(self, state: ModifierState) -> None:
        state.cancel_timer()
        state.mode = ModifierMode.IDLE
        state.pressed_at = None
        state.held = False
        state.unlock_armed = False
        self._emit(NormalizedCommand.of(CommandKind.KEY_UP, key=state.key))
