"""Tests for the momentary / locked modifier state machine."""

from __future__ import annotations

import pytest

from remotepad.domain.models import CommandKind, ModifierMode, NormalizedCommand
from remotepad.input.modifiers import DEFAULT_LOCK_THRESHOLD, ModifierStateMachine


def _kinds(commands: list[NormalizedCommand]) -> list[tuple[CommandKind, str]]:
    return [(c.kind, c.args.get("key", "")) for c in commands]


@pytest.fixture
def machine(emitted, clock, scheduler) -> ModifierStateMachine:
    return ModifierStateMachine(
        emit=emitted.append, lock_threshold=0.5, clock=clock, call_later=scheduler
    )


class TestMomentary:
    def test_press_emits_key_down(self, machine, emitted) -> None:
        machine.press("shift")
        assert machine.mode("shift") is ModifierMode.PRESSED_MOMENTARY
        assert _kinds(emitted) == [(CommandKind.KEY_DOWN, "shift")]

    def test_quick_release_returns_to_idle(self, machine, emitted, scheduler) -> None:
        machine.press("shift")
        scheduler.advance(0.2)
        machine.release("shift")
        assert machine.mode("shift") is ModifierMode.IDLE
        assert _kinds(emitted) == [
            (CommandKind.KEY_DOWN, "shift"),
            (CommandKind.KEY_UP, "shift"),
        ]
        assert scheduler.pending == []

    def test_timer_does_not_fire_after_release(self, machine, emitted, scheduler) -> None:
        machine.press("shift")
        machine.release("shift")
        scheduler.advance(1.0)
        assert CommandKind.MODIFIER_LOCK not in [c.kind for c in emitted]

    def test_applies_to_one_key_event(self, machine, emitted) -> None:
        machine.press("command")
        assert machine.active_modifiers() == ["command"]
        machine.release_momentary()
        assert machine.active_modifiers() == []
        assert emitted[-1] == NormalizedCommand.of(CommandKind.KEY_UP, key="command")

    def test_physical_release_after_consumption_is_ignored(self, machine, emitted) -> None:
        machine.press("command")
        machine.release_momentary()
        count = len(emitted)
        machine.release("command")
        assert len(emitted) == count

    def test_auto_repeat_down_ignored(self, machine, emitted) -> None:
        machine.press("alt")
        machine.press("alt")
        assert _kinds(emitted) == [(CommandKind.KEY_DOWN, "alt")]

    def test_release_of_untracked_key(self, machine, emitted) -> None:
        machine.release("control")
        assert emitted == []


class TestLocking:
    def test_hold_past_threshold_locks(self, machine, emitted, scheduler) -> None:
        machine.press("shift")
        scheduler.advance(0.5)
        assert machine.mode("shift") is ModifierMode.LOCKED
        assert emitted[-1] == NormalizedCommand.of(CommandKind.MODIFIER_LOCK, key="shift")

    def test_lock_survives_release_and_key_events(self, machine, emitted, scheduler) -> None:
        machine.press("shift")
        scheduler.advance(0.6)
        machine.release("shift")
        machine.release_momentary()
        assert machine.mode("shift") is ModifierMode.LOCKED
        assert machine.active_modifiers() == ["shift"]
        assert CommandKind.KEY_UP not in [c.kind for c in emitted]

    def test_next_tap_unlocks(self, machine, emitted, scheduler) -> None:
        machine.press("shift")
        scheduler.advance(0.6)
        machine.release("shift")

        machine.press("shift")
        assert machine.mode("shift") is ModifierMode.LOCKED
        machine.release("shift")
        assert machine.mode("shift") is ModifierMode.IDLE
        assert _kinds(emitted) == [
            (CommandKind.KEY_DOWN, "shift"),
            (CommandKind.MODIFIER_LOCK, "shift"),
            (CommandKind.KEY_UP, "shift"),
        ]

    def test_explicit_tap_unlocks(self, machine, emitted, scheduler) -> None:
        machine.press("alt")
        scheduler.advance(0.6)
        machine.release("alt")

        machine.tap("alt")
        assert machine.mode("alt") is ModifierMode.IDLE
        assert _kinds(emitted)[-1] == (CommandKind.KEY_UP, "alt")
        assert scheduler.pending == []

    def test_explicit_tap_when_idle(self, machine, emitted, scheduler) -> None:
        machine.tap("alt")
        assert machine.mode("alt") is ModifierMode.IDLE
        assert _kinds(emitted) == [(CommandKind.KEY_DOWN, "alt"), (CommandKind.KEY_UP, "alt")]
        assert scheduler.pending == []

    def test_lazy_promotion_without_scheduler(self, emitted, clock) -> None:
        machine = ModifierStateMachine(emit=emitted.append, lock_threshold=0.5, clock=clock)
        machine.press("control")
        clock.advance(0.7)
        assert machine.active_modifiers() == ["control"]
        assert machine.mode("control") is ModifierMode.LOCKED
        assert emitted[-1].kind is CommandKind.MODIFIER_LOCK

    def test_second_press_gets_fresh_timer(self, machine, emitted, scheduler) -> None:
        machine.press("alt")
        scheduler.advance(0.3)
        machine.release("alt")
        machine.press("alt")
        scheduler.advance(0.3)
        assert machine.mode("alt") is ModifierMode.PRESSED_MOMENTARY
        scheduler.advance(0.25)
        assert machine.mode("alt") is ModifierMode.LOCKED

    def test_default_threshold(self, emitted) -> None:
        assert ModifierStateMachine(emit=emitted.append).lock_threshold == DEFAULT_LOCK_THRESHOLD


class TestMultipleModifiers:
    def test_independent_keys(self, machine, scheduler) -> None:
        machine.press("shift")
        scheduler.advance(0.6)
        machine.release("shift")
        machine.press("command")
        assert machine.active_modifiers() == ["shift", "command"]
        machine.release_momentary()
        assert machine.active_modifiers() == ["shift"]


class TestCancelAndReset:
    def test_cancel_releases_momentary(self, machine, emitted) -> None:
        machine.press("shift")
        machine.cancel("shift")
        assert machine.mode("shift") is ModifierMode.IDLE
        assert emitted[-1].kind is CommandKind.KEY_UP

    def test_cancel_keeps_lock_and_disarms_unlock(self, machine, emitted, scheduler) -> None:
        machine.press("shift")
        scheduler.advance(0.6)
        machine.release("shift")
        machine.press("shift")  # unlock tap begins...
        machine.cancel("shift")  # ...but the pointer slid off the key
        machine.release("shift")
        assert machine.mode("shift") is ModifierMode.LOCKED
        assert CommandKind.KEY_UP not in [c.kind for c in emitted]

    def test_cancel_all(self, machine, emitted) -> None:
        machine.press("shift")
        machine.press("alt")
        machine.cancel()
        assert machine.active_modifiers() == []
        assert [c.kind for c in emitted].count(CommandKind.KEY_UP) == 2

    def test_reset_releases_everything(self, machine, emitted, scheduler) -> None:
        machine.press("shift")
        scheduler.advance(0.6)
        machine.press("command")
        machine.reset()
        ups = [c.args["key"] for c in emitted if c.kind is CommandKind.KEY_UP]
        assert sorted(ups) == ["command", "shift"]
        assert scheduler.pending == []
        assert machine.active_modifiers() == []

    def test_reset_when_idle_emits_nothing(self, machine, emitted) -> None:
        machine.reset()
        assert emitted == []
