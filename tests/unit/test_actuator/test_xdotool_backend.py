"""Tests for the xdotool actuator backend (mocked subprocess)."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from remotepad.actuator.base import ActuatorError
from remotepad.actuator.xdotool_backend import XdotoolActuator, to_keysym
from remotepad.domain.models import CommandKind, NormalizedCommand

SUBPROCESS = "remotepad.actuator.xdotool_backend.asyncio.create_subprocess_exec"
WHICH = "remotepad.actuator.xdotool_backend.shutil.which"


def cmd(kind: CommandKind, **args: object) -> NormalizedCommand:
    return NormalizedCommand.of(kind, **args)


def _proc(returncode: int = 0, stderr: bytes = b"") -> MagicMock:
    proc = MagicMock()
    proc.returncode = returncode
    proc.communicate = AsyncMock(return_value=(b"", stderr))
    proc.wait = AsyncMock(return_value=returncode)
    return proc


@pytest.fixture
def actuator() -> XdotoolActuator:
    a = XdotoolActuator(timeout=1.0, scroll_step=10.0)
    a._xdotool_path = "/usr/bin/xdotool"
    return a


class TestConnect:
    @pytest.mark.asyncio
    async def test_connect_finds_binary(self) -> None:
        a = XdotoolActuator()
        with patch(WHICH, return_value="/usr/bin/xdotool"):
            await a.connect()
        assert a.is_ready

    @pytest.mark.asyncio
    async def test_connect_missing_binary(self) -> None:
        a = XdotoolActuator()
        with patch(WHICH, return_value=None):
            with pytest.raises(ActuatorError, match="xdotool not found") as exc_info:
                await a.connect()
        assert exc_info.value.backend == "xdotool"
        assert not a.is_ready

    @pytest.mark.asyncio
    async def test_disconnect(self, actuator: XdotoolActuator) -> None:
        await actuator.disconnect()
        assert not actuator.is_ready


class TestBuildArgs:
    def test_click_buttons(self, actuator: XdotoolActuator) -> None:
        assert actuator._build_args(cmd(CommandKind.CLICK, button="left", double=False)) == ["click", "1"]
        assert actuator._build_args(cmd(CommandKind.CLICK, button="right", double=False)) == ["click", "3"]

    def test_double_click(self, actuator: XdotoolActuator) -> None:
        args = actuator._build_args(cmd(CommandKind.CLICK, button="left", double=True))
        assert args == ["click", "--repeat", "2", "--delay", "100", "1"]

    def test_key_tap_with_modifiers(self, actuator: XdotoolActuator) -> None:
        args = actuator._build_args(
            cmd(CommandKind.KEY_TAP, key="a", modifiers=["control", "command"])
        )
        assert args == ["key", "--", "ctrl+super+a"]

    def test_key_tap_named_key(self, actuator: XdotoolActuator) -> None:
        args = actuator._build_args(cmd(CommandKind.KEY_TAP, key="escape", modifiers=[]))
        assert args == ["key", "--", "Escape"]

    def test_key_down_up(self, actuator: XdotoolActuator) -> None:
        assert actuator._build_args(cmd(CommandKind.KEY_DOWN, key="shift")) == ["keydown", "--", "shift"]
        assert actuator._build_args(cmd(CommandKind.KEY_UP, key="shift")) == ["keyup", "--", "shift"]

    def test_modifier_lock_is_noop(self, actuator: XdotoolActuator) -> None:
        assert actuator._build_args(cmd(CommandKind.MODIFIER_LOCK, key="shift")) is None

    def test_caps_lock(self, actuator: XdotoolActuator) -> None:
        assert actuator._build_args(cmd(CommandKind.TOGGLE_CAPS_LOCK)) == ["key", "--", "Caps_Lock"]

    def test_special_and_media_keys(self, actuator: XdotoolActuator) -> None:
        assert actuator._build_args(cmd(CommandKind.SPECIAL_KEY, action="volumeUp")) == [
            "key", "--", "XF86AudioRaiseVolume",
        ]
        assert actuator._build_args(cmd(CommandKind.MEDIA_KEY, action="next")) == [
            "key", "--", "XF86AudioNext",
        ]
        assert actuator._build_args(cmd(CommandKind.SPECIAL_KEY, action="unknown")) is None

    def test_type_text(self, actuator: XdotoolActuator) -> None:
        args = actuator._build_args(cmd(CommandKind.TYPE_TEXT, text="-rf"))
        assert args == ["type", "--delay", "12", "--", "-rf"]

    def test_mouse_down_up(self, actuator: XdotoolActuator) -> None:
        assert actuator._build_args(cmd(CommandKind.MOUSE_DOWN, button="left")) == ["mousedown", "1"]
        assert actuator._build_args(cmd(CommandKind.MOUSE_UP, button="middle")) == ["mouseup", "2"]

    def test_move_accumulates_fractions(self, actuator: XdotoolActuator) -> None:
        assert actuator._build_args(cmd(CommandKind.MOVE, dx=0.75, dy=0.0)) is None
        assert actuator._build_args(cmd(CommandKind.MOVE, dx=0.75, dy=-1.5)) == [
            "mousemove_relative", "--", "1", "-1",
        ]
        # 0.5 of x and -0.5 of y carried over
        assert actuator._build_args(cmd(CommandKind.DRAG, dx=0.5, dy=-0.5)) == [
            "mousemove_relative", "--", "1", "-1",
        ]

    def test_scroll_direction_and_step(self, actuator: XdotoolActuator) -> None:
        assert actuator._build_args(cmd(CommandKind.SCROLL, dy=25.0)) == ["click", "--repeat", "2", "4"]
        # 0.5 click carried over from the first scroll
        assert actuator._build_args(cmd(CommandKind.SCROLL, dy=-15.0)) == ["click", "--repeat", "1", "5"]

    def test_small_scrolls_accumulate(self, actuator: XdotoolActuator) -> None:
        assert actuator._build_args(cmd(CommandKind.SCROLL, dy=4.0)) is None
        assert actuator._build_args(cmd(CommandKind.SCROLL, dy=4.0)) is None
        assert actuator._build_args(cmd(CommandKind.SCROLL, dy=4.0)) == ["click", "--repeat", "1", "4"]

    def test_to_keysym(self) -> None:
        assert to_keysym("enter") == "Return"
        assert to_keysym("f5") == "F5"
        assert to_keysym("q") == "q"


class TestPerform:
    @pytest.mark.asyncio
    async def test_runs_xdotool(self, actuator: XdotoolActuator) -> None:
        proc = _proc()
        with patch(SUBPROCESS, new=AsyncMock(return_value=proc)) as mock_exec:
            ok = await actuator.perform(cmd(CommandKind.CLICK, button="left", double=False))
        assert ok is True
        assert mock_exec.call_args.args[:3] == ("/usr/bin/xdotool", "click", "1")

    @pytest.mark.asyncio
    async def test_noop_commands_skip_subprocess(self, actuator: XdotoolActuator) -> None:
        with patch(SUBPROCESS, new=AsyncMock()) as mock_exec:
            ok = await actuator.perform(cmd(CommandKind.MODIFIER_LOCK, key="shift"))
        assert ok is True
        mock_exec.assert_not_called()

    @pytest.mark.asyncio
    async def test_nonzero_exit_returns_false(self, actuator: XdotoolActuator) -> None:
        with patch(SUBPROCESS, new=AsyncMock(return_value=_proc(1, b"Can't open display"))):
            ok = await actuator.perform(cmd(CommandKind.KEY_DOWN, key="a"))
        assert ok is False

    @pytest.mark.asyncio
    async def test_spawn_failure_raises(self, actuator: XdotoolActuator) -> None:
        with patch(SUBPROCESS, new=AsyncMock(side_effect=FileNotFoundError("gone"))):
            with pytest.raises(ActuatorError, match="Cannot start"):
                await actuator.perform(cmd(CommandKind.KEY_DOWN, key="a"))

    @pytest.mark.asyncio
    async def test_timeout_kills_process(self, actuator: XdotoolActuator) -> None:
        proc = _proc()

        async def hang() -> tuple[bytes, bytes]:
            await asyncio.sleep(10)
            return b"", b""

        proc.communicate = hang
        actuator._timeout = 0.01
        with patch(SUBPROCESS, new=AsyncMock(return_value=proc)):
            with pytest.raises(ActuatorError, match="timed out"):
                await actuator.perform(cmd(CommandKind.KEY_DOWN, key="a"))
        proc.kill.assert_called_once()

    @pytest.mark.asyncio
    async def test_not_connected_raises(self) -> None:
        with pytest.raises(ActuatorError, match="not connected"):
            await XdotoolActuator().perform(cmd(CommandKind.KEY_DOWN, key="a"))
