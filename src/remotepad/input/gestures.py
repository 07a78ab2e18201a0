"""Pointer gesture recognition for the trackpad and scroll strip.

The main pad turns a down -> move* -> up sequence into exactly one of:

- a stream of relative ``move`` commands (drag), emitted per sample as
  soon as the finger has travelled more than ``epsilon``;
- a left ``click`` (short, still tap outside the hot-zone);
- a right ``click`` (short, still tap inside the bottom-right hot-zone),
  followed by a lockout window that swallows trailing pointer events;
- nothing (a still press that outlasted the tap time).

The scroll strip only streams: each move emits the negated vertical
delta as a ``scroll`` command.

Sample timestamps are client milliseconds; all windows are measured on
that clock.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass

from remotepad.domain.models import (
    CommandKind,
    GesturePhase,
    NormalizedCommand,
    PointerSample,
    SurfaceRect,
)

logger = logging.getLogger(__name__)

DEFAULT_GAIN = 1.5
DEFAULT_EPSILON = 0.5  # pixels
DEFAULT_TAP_TIME_MS = 250.0
DEFAULT_LOCKOUT_MS = 200.0
DEFAULT_HOT_ZONE_FRACTION = 0.3

Emit = Callable[[NormalizedCommand], None]


@dataclass
class GestureState:
    phase: GesturePhase = GesturePhase.IDLE
    start: PointerSample | None = None
    last: PointerSample | None = None
    travelled: float = 0.0


class PadGestureRecognizer:
    """Tap / right-tap / drag recognizer for the main pad of one connection."""

    def __init__(
        self,
        emit: Emit,
        gain: float = DEFAULT_GAIN,
        epsilon: float = DEFAULT_EPSILON,
        tap_time_ms: float = DEFAULT_TAP_TIME_MS,
        lockout_ms: float = DEFAULT_LOCKOUT_MS,
        hot_zone_fraction: float = DEFAULT_HOT_ZONE_FRACTION,
    ) -> None:
        self._emit = emit
        self._gain = gain
        self._epsilon = epsilon
        self._tap_time_ms = tap_time_ms
        self._lockout_ms = lockout_ms
        self._hot_zone_fraction = hot_zone_fraction
        self._state = GestureState()
        self._rect: SurfaceRect | None = None
        self._lockout_until: float | None = None

    @property
    def phase(self) -> GesturePhase:
        return self._state.phase

    @property
    def rect(self) -> SurfaceRect | None:
        return self._rect

    def is_locked_out(self, t: float) -> bool:
        return self._lockout_until is not None and t < self._lockout_until

    def down(self, sample: PointerSample, rect: SurfaceRect | None = None) -> None:
        self._update_rect(rect)
        if self.is_locked_out(sample.t):
            logger.debug("Pad down ignored during right-click lockout")
            return
        self._state = GestureState(
            phase=GesturePhase.TAP_PENDING, start=sample, last=sample
        )

    def move(self, sample: PointerSample, rect: SurfaceRect | None = None) -> None:
        self._update_rect(rect)
        state = self._state
        if state.phase is GesturePhase.IDLE or self.is_locked_out(sample.t):
            return
        if state.start is None or state.last is None:
            return

        dx = sample.x - state.last.x
        dy = sample.y - state.last.y
        state.travelled += math.hypot(dx, dy)
        state.last = sample

        if state.phase is GesturePhase.TAP_PENDING:
            if state.travelled <= self._epsilon:
                return
            state.phase = GesturePhase.DRAGGING
            # Catch up on the sub-epsilon travel so nothing is lost.
            dx = sample.x - state.start.x
            dy = sample.y - state.start.y

        if dx or dy:
            self._emit(
                NormalizedCommand.of(CommandKind.MOVE, dx=dx * self._gain, dy=dy * self._gain)
            )

    def up(self, sample: PointerSample | None = None, rect: SurfaceRect | None = None) -> None:
        """Terminating event: pointer up, cancel, or leaving the surface."""
        self._update_rect(rect)
        state = self._state
        self._state = GestureState()
        if state.phase is not GesturePhase.TAP_PENDING:
            return
        if state.start is None or state.last is None:
            return

        end = sample or state.last
        if self.is_locked_out(end.t):
            return
        if end.t - state.start.t >= self._tap_time_ms:
            logger.debug("Press outlasted tap time, no click")
            return

        if self._in_hot_zone(end):
            self._emit(NormalizedCommand.of(CommandKind.CLICK, button="right", double=False))
            self._lockout_until = end.t + self._lockout_ms
        else:
            self._emit(NormalizedCommand.of(CommandKind.CLICK, button="left", double=False))

    def cancel(self) -> None:
        """Abandon the gesture in progress without emitting anything."""
        self._state = GestureState()

    def reset(self) -> None:
        self._state = GestureState()
        self._lockout_until = None

    def _in_hot_zone(self, sample: PointerSample) -> bool:
        rect = self._rect
        if rect is None or rect.width <= 0 or rect.height <= 0:
            return False
        return rect.in_hot_zone(sample.x, sample.y, self._hot_zone_fraction)

    def _update_rect(self, rect: SurfaceRect | None) -> None:
        if rect is not None:
            self._rect = rect


class ScrollStripRecognizer:
    """Streams vertical movement on the scroll strip as scroll deltas."""

    def __init__(self, emit: Emit) -> None:
        self._emit = emit
        self._last: PointerSample | None = None

    @property
    def active(self) -> bool:
        return self._last is not None

    def down(self, sample: PointerSample, rect: SurfaceRect | None = None) -> None:
        self._last = sample

    def move(self, sample: PointerSample, rect: SurfaceRect | None = None) -> None:
        if self._last is None:
            return
        dy = sample.y - self._last.y
        self._last = sample
        if dy:
            self._emit(NormalizedCommand.of(CommandKind.SCROLL, dy=-dy))

    def up(self, sample: PointerSample | None = None, rect: SurfaceRect | None = None) -> None:
        self._last = None

    def cancel(self) -> None:
        self._last = None

    def reset(self) -> None:
        self._last = None
