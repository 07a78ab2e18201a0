"""Actuator backend using xdotool for mouse and keyboard control.

Each command runs one short-lived ``xdotool`` subprocess, so the host
process carries no X11 bindings. Relative motion keeps the fractional
remainder between commands so slow drags do not lose distance to
rounding.
"""

from __future__ import annotations

import asyncio
import logging
import shutil

from remotepad.actuator.base import Actuator, ActuatorError
from remotepad.domain.models import CommandKind, NormalizedCommand

logger = logging.getLogger(__name__)

BUTTONS: dict[str, str] = {"left": "1", "middle": "2", "right": "3"}
SCROLL_UP_BUTTON = "4"
SCROLL_DOWN_BUTTON = "5"

# Canonical key -> X keysym
KEYSYMS: dict[str, str] = {
    "control": "ctrl",
    "command": "super",
    "alt": "alt",
    "shift": "shift",
    "escape": "Escape",
    "enter": "Return",
    "backspace": "BackSpace",
    "delete": "Delete",
    "space": "space",
    "tab": "Tab",
    "left": "Left",
    "right": "Right",
    "up": "Up",
    "down": "Down",
    "home": "Home",
    "end": "End",
    "pageup": "Page_Up",
    "pagedown": "Page_Down",
    "insert": "Insert",
    "capslock": "Caps_Lock",
    "`": "grave",
    "-": "minus",
    "=": "equal",
    "[": "bracketleft",
    "]": "bracketright",
    "\\": "backslash",
    ";": "semicolon",
    "'": "apostrophe",
    ",": "comma",
    ".": "period",
    "/": "slash",
    **{f"f{i}": f"F{i}" for i in range(1, 13)},
}

SPECIAL_KEYSYMS: dict[str, str] = {
    "brightnessUp": "XF86MonBrightnessUp",
    "brightnessDown": "XF86MonBrightnessDown",
    "missionControl": "super",
    "spotlightSearch": "super+space",
    "mute": "XF86AudioMute",
    "unmute": "XF86AudioMute",
    "volumeUp": "XF86AudioRaiseVolume",
    "volumeDown": "XF86AudioLowerVolume",
    "playPause": "XF86AudioPlay",
    "next": "XF86AudioNext",
    "previous": "XF86AudioPrev",
}


def to_keysym(key: str) -> str:
    """Translate a canonical key name to the name xdotool expects."""
    return KEYSYMS.get(key, key)


class XdotoolActuator(Actuator):
    """Performs commands with xdotool subprocesses.

    Requires ``xdotool`` on PATH and an X11 (or XWayland) display.
    """

    backend = "xdotool"

    def __init__(self, timeout: float = 2.0, scroll_step: float = 10.0) -> None:
        self._timeout = timeout
        self._scroll_step = scroll_step
        self._xdotool_path: str | None = None
        self._dx_remainder = 0.0
        self._dy_remainder = 0.0
        self._scroll_remainder = 0.0

    @property
    def is_ready(self) -> bool:
        return self._xdotool_path is not None

    async def connect(self) -> None:
        """Locate the xdotool binary."""
        self._xdotool_path = shutil.which("xdotool")
        if not self._xdotool_path:
            raise ActuatorError(
                "xdotool not found. Please install it:\n  sudo apt install xdotool",
                backend=self.backend,
            )
        logger.info("Using xdotool at %s", self._xdotool_path)

    async def disconnect(self) -> None:
        self._xdotool_path = None

    async def perform(self, command: NormalizedCommand) -> bool:
        args = self._build_args(command)
        if args is None:
            return True
        return await self._run_xdotool(*args)

    def _build_args(self, command: NormalizedCommand) -> list[str] | None:
        """Map a command to xdotool arguments; None means nothing to run."""
        kind = command.kind
        a = command.args

        if kind in (CommandKind.MOVE, CommandKind.DRAG):
            dx, dy = self._take_motion(float(a.get("dx", 0)), float(a.get("dy", 0)))
            if not dx and not dy:
                return None
            return ["mousemove_relative", "--", str(dx), str(dy)]

        if kind is CommandKind.CLICK:
            button = BUTTONS.get(a.get("button", "left"), "1")
            if a.get("double"):
                return ["click", "--repeat", "2", "--delay", "100", button]
            return ["click", button]

        if kind is CommandKind.SCROLL:
            clicks = self._take_scroll(float(a.get("dy", 0)))
            if not clicks:
                return None
            button = SCROLL_UP_BUTTON if clicks > 0 else SCROLL_DOWN_BUTTON
            return ["click", "--repeat", str(abs(clicks)), button]

        if kind is CommandKind.KEY_TAP:
            combo = [to_keysym(m) for m in a.get("modifiers", [])]
            combo.append(to_keysym(a["key"]))
            return ["key", "--", "+".join(combo)]

        if kind is CommandKind.KEY_DOWN:
            return ["keydown", "--", to_keysym(a["key"])]

        if kind is CommandKind.KEY_UP:
            return ["keyup", "--", to_keysym(a["key"])]

        if kind is CommandKind.MODIFIER_LOCK:
            # The key is already down at the OS level; locking keeps it there.
            return None

        if kind is CommandKind.TOGGLE_CAPS_LOCK:
            return ["key", "--", "Caps_Lock"]

        if kind in (CommandKind.SPECIAL_KEY, CommandKind.MEDIA_KEY):
            keysym = SPECIAL_KEYSYMS.get(a.get("action", ""))
            if keysym is None:
                logger.info("No xdotool mapping for %s", command)
                return None
            return ["key", "--", keysym]

        if kind is CommandKind.TYPE_TEXT:
            return ["type", "--delay", "12", "--", a.get("text", "")]

        if kind is CommandKind.MOUSE_DOWN:
            return ["mousedown", BUTTONS.get(a.get("button", "left"), "1")]

        if kind is CommandKind.MOUSE_UP:
            return ["mouseup", BUTTONS.get(a.get("button", "left"), "1")]

        logger.debug("Unsupported command kind %s", kind.value)
        return None

    def _take_motion(self, dx: float, dy: float) -> tuple[int, int]:
        """Whole-pixel motion to apply now, carrying the fractions over."""
        self._dx_remainder += dx
        self._dy_remainder += dy
        whole_x = int(self._dx_remainder)
        whole_y = int(self._dy_remainder)
        self._dx_remainder -= whole_x
        self._dy_remainder -= whole_y
        return whole_x, whole_y

    def _take_scroll(self, dy: float) -> int:
        """Wheel clicks for a scroll delta; positive scrolls up."""
        self._scroll_remainder += dy / self._scroll_step
        clicks = int(self._scroll_remainder)
        self._scroll_remainder -= clicks
        return clicks

    async def _run_xdotool(self, *args: str) -> bool:
        """Run xdotool with the given arguments.

        Returns:
            True if xdotool exited with status 0.

        Raises:
            ActuatorError: If xdotool is unavailable or does not finish in time.
        """
        if self._xdotool_path is None:
            raise ActuatorError("xdotool actuator not connected", backend=self.backend)
        try:
            proc = await asyncio.create_subprocess_exec(
                self._xdotool_path, *args,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ActuatorError(f"Cannot start xdotool: {e}", backend=self.backend) from e

        try:
            _, stderr = await asyncio.wait_for(proc.communicate(), timeout=self._timeout)
        except asyncio.TimeoutError as e:
            proc.kill()
            await proc.wait()
            raise ActuatorError(
                f"xdotool {args[0]} timed out after {self._timeout}s", backend=self.backend
            ) from e

        if proc.returncode != 0:
            logger.debug("xdotool %s failed: %s", " ".join(args), stderr.decode(errors="replace").strip())
            return False
        return True
