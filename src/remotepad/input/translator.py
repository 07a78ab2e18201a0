"""Translate client input events into normalized actuator commands.

One InputTranslator serves one connection. It routes raw pointer events
to that connection's gesture recognizers, modifier key events to its
ModifierStateMachine, and the already-recognized vocabulary (``move``,
``click``, ``keyTap`` ...) straight to commands. Every command leaves
through the ``emit`` callback given at construction.

Unknown event names are ignored. Missing or mistyped payload fields
fall back to zero / empty.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

from remotepad.domain.models import (
    CommandKind,
    InputEvent,
    NormalizedCommand,
    PointerSample,
    Surface,
    SurfaceRect,
)
from remotepad.input.gestures import PadGestureRecognizer, ScrollStripRecognizer
from remotepad.input.keymap import CAPS_LOCK, is_modifier, normalize_key, normalize_modifiers
from remotepad.input.modifiers import ModifierStateMachine

logger = logging.getLogger(__name__)

SPECIAL_KEY_ACTIONS: frozenset[str] = frozenset({
    "brightnessUp",
    "brightnessDown",
    "missionControl",
    "spotlightSearch",
    "mute",
    "unmute",
    "volumeUp",
    "volumeDown",
})

MEDIA_KEY_ACTIONS: frozenset[str] = frozenset({"playPause", "next", "previous"})

MOUSE_BUTTONS: frozenset[str] = frozenset({"left", "right", "middle"})

Emit = Callable[[NormalizedCommand], None]


def _number(data: dict[str, Any], field: str) -> float:
    value = data.get(field, 0)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return float(value)


def _text(data: dict[str, Any], field: str) -> str:
    value = data.get(field, "")
    return value if isinstance(value, str) else ""


class InputTranslator:
    """Routes one connection's events to commands.

    Example usage::

        translator = InputTranslator(emit, modifiers, pad, scroll)
        translator.handle(InputEvent(event="keyTap", data={"key": "ESC"}))
    """

    def __init__(
        self,
        emit: Emit,
        modifiers: ModifierStateMachine,
        pad: PadGestureRecognizer,
        scroll: ScrollStripRecognizer,
        clock_ms: Callable[[], float] | None = None,
    ) -> None:
        self._emit = emit
        self._modifiers = modifiers
        self._pad = pad
        self._scroll = scroll
        self._clock_ms = clock_ms or (lambda: time.monotonic() * 1000.0)
        self._handlers: dict[str, Callable[[dict[str, Any]], None]] = {
            "move": self._on_move,
            "click": self._on_click,
            "rightClick": self._on_right_click,
            "doubleClick": self._on_double_click,
            "scroll": self._on_scroll,
            "keyTap": self._on_key_tap,
            "keyDown": self._on_key_down,
            "keyUp": self._on_key_up,
            "keyCancel": self._on_key_cancel,
            "blur": self._on_blur,
            "toggleCapsLock": self._on_toggle_caps_lock,
            "specialKey": self._on_special_key,
            "mediaKey": self._on_media_key,
            "type": self._on_type,
            "mouseDown": self._on_mouse_down,
            "mouseUp": self._on_mouse_up,
            "drag": self._on_drag,
            "pointerDown": self._on_pointer_down,
            "pointerMove": self._on_pointer_move,
            "pointerUp": self._on_pointer_end,
            "pointerCancel": self._on_pointer_end,
            "pointerLeave": self._on_pointer_end,
        }

    @property
    def modifiers(self) -> ModifierStateMachine:
        return self._modifiers

    def handle(self, event: InputEvent) -> None:
        handler = self._handlers.get(event.event)
        if handler is None:
            logger.debug("Ignoring unknown event %r", event.event)
            return
        handler(event.data)

    def reset(self) -> None:
        """Drop all per-connection input state, releasing held modifiers."""
        self._modifiers.reset()
        self._pad.reset()
        self._scroll.reset()

    # -------------------------------------------------------------------
    # Pointer vocabulary
    # -------------------------------------------------------------------

    def _on_move(self, data: dict[str, Any]) -> None:
        self._emit(NormalizedCommand.of(CommandKind.MOVE, dx=_number(data, "dx"), dy=_number(data, "dy")))

    def _on_click(self, data: dict[str, Any]) -> None:
        self._emit(NormalizedCommand.of(CommandKind.CLICK, button="left", double=False))

    def _on_right_click(self, data: dict[str, Any]) -> None:
        self._emit(NormalizedCommand.of(CommandKind.CLICK, button="right", double=False))

    def _on_double_click(self, data: dict[str, Any]) -> None:
        self._emit(NormalizedCommand.of(CommandKind.CLICK, button="left", double=True))

    def _on_scroll(self, data: dict[str, Any]) -> None:
        self._emit(NormalizedCommand.of(CommandKind.SCROLL, dy=_number(data, "dy")))

    def _on_mouse_down(self, data: dict[str, Any]) -> None:
        self._emit(NormalizedCommand.of(CommandKind.MOUSE_DOWN, button=self._button(data)))

    def _on_mouse_up(self, data: dict[str, Any]) -> None:
        self._emit(NormalizedCommand.of(CommandKind.MOUSE_UP, button=self._button(data)))

    def _on_drag(self, data: dict[str, Any]) -> None:
        self._emit(NormalizedCommand.of(CommandKind.DRAG, dx=_number(data, "dx"), dy=_number(data, "dy")))

    @staticmethod
    def _button(data: dict[str, Any]) -> str:
        button = _text(data, "button").lower()
        return button if button in MOUSE_BUTTONS else "left"

    # -------------------------------------------------------------------
    # Raw pointer surfaces
    # -------------------------------------------------------------------

    def _on_pointer_down(self, data: dict[str, Any]) -> None:
        recognizer = self._recognizer(data)
        if recognizer is not None:
            recognizer.down(self._sample(data), self._rect(data))

    def _on_pointer_move(self, data: dict[str, Any]) -> None:
        recognizer = self._recognizer(data)
        if recognizer is not None:
            recognizer.move(self._sample(data), self._rect(data))

    def _on_pointer_end(self, data: dict[str, Any]) -> None:
        recognizer = self._recognizer(data)
        if recognizer is None:
            return
        sample = self._sample(data) if "x" in data and "y" in data else None
        recognizer.up(sample, self._rect(data))

    def _recognizer(self, data: dict[str, Any]) -> PadGestureRecognizer | ScrollStripRecognizer | None:
        surface = _text(data, "surface") or Surface.PAD.value
        if surface == Surface.PAD.value:
            return self._pad
        if surface == Surface.SCROLL.value:
            return self._scroll
        logger.debug("Ignoring pointer event for unknown surface %r", surface)
        return None

    def _sample(self, data: dict[str, Any]) -> PointerSample:
        t = data.get("t")
        if isinstance(t, bool) or not isinstance(t, (int, float)):
            t = self._clock_ms()
        return PointerSample(x=_number(data, "x"), y=_number(data, "y"), t=float(t))

    @staticmethod
    def _rect(data: dict[str, Any]) -> SurfaceRect | None:
        width = _number(data, "width")
        height = _number(data, "height")
        if width <= 0 or height <= 0:
            return None
        return SurfaceRect(
            left=_number(data, "left"), top=_number(data, "top"), width=width, height=height
        )

    # -------------------------------------------------------------------
    # Keyboard
    # -------------------------------------------------------------------

    def _on_key_tap(self, data: dict[str, Any]) -> None:
        key = normalize_key(_text(data, "key"))
        if key is None:
            return
        if key == CAPS_LOCK:
            self._emit(NormalizedCommand.of(CommandKind.TOGGLE_CAPS_LOCK))
            return
        if is_modifier(key):
            self._modifiers.tap(key)
            return

        requested = data.get("modifiers")
        modifiers = self._modifiers.active_modifiers()
        for extra in normalize_modifiers(requested if isinstance(requested, list) else None):
            if extra not in modifiers:
                modifiers.append(extra)

        self._emit(NormalizedCommand.of(CommandKind.KEY_TAP, key=key, modifiers=modifiers))
        self._modifiers.release_momentary()

    def _on_key_down(self, data: dict[str, Any]) -> None:
        key = normalize_key(_text(data, "key"))
        if key is None:
            return
        if key == CAPS_LOCK:
            self._emit(NormalizedCommand.of(CommandKind.TOGGLE_CAPS_LOCK))
        elif is_modifier(key):
            self._modifiers.press(key)
        else:
            self._emit(NormalizedCommand.of(CommandKind.KEY_DOWN, key=key))
            self._modifiers.release_momentary()

    def _on_key_up(self, data: dict[str, Any]) -> None:
        key = normalize_key(_text(data, "key"))
        if key is None or key == CAPS_LOCK:
            return
        if is_modifier(key):
            self._modifiers.release(key)
        else:
            self._emit(NormalizedCommand.of(CommandKind.KEY_UP, key=key))

    def _on_key_cancel(self, data: dict[str, Any]) -> None:
        key = normalize_key(_text(data, "key"))
        if is_modifier(key):
            self._modifiers.cancel(key)

    def _on_blur(self, data: dict[str, Any]) -> None:
        self._modifiers.cancel()
        self._pad.cancel()
        self._scroll.cancel()

    def _on_toggle_caps_lock(self, data: dict[str, Any]) -> None:
        self._emit(NormalizedCommand.of(CommandKind.TOGGLE_CAPS_LOCK))

    def _on_special_key(self, data: dict[str, Any]) -> None:
        action = _text(data, "action")
        if action not in SPECIAL_KEY_ACTIONS:
            logger.info("Unhandled special key: %r", action)
            return
        self._emit(NormalizedCommand.of(CommandKind.SPECIAL_KEY, action=action))

    def _on_media_key(self, data: dict[str, Any]) -> None:
        action = _text(data, "action")
        if action not in MEDIA_KEY_ACTIONS:
            logger.info("Unhandled media key: %r", action)
            return
        self._emit(NormalizedCommand.of(CommandKind.MEDIA_KEY, action=action))

    def _on_type(self, data: dict[str, Any]) -> None:
        text = _text(data, "text")
        if text:
            self._emit(NormalizedCommand.of(CommandKind.TYPE_TEXT, text=text))
