"""Shared test fixtures for the remotepad test suite.

Provides common fixtures used across unit tests: a fixed pairing key,
sample payloads and sessions, a manually driven clock and timer
scheduler, and mock actuators.
"""

from __future__ import annotations

import base64
from collections.abc import Callable
from unittest.mock import AsyncMock

import pytest

from remotepad.actuator.base import Actuator
from remotepad.domain.models import NormalizedCommand, PairingPayload, Session
from remotepad.pairing.crypto import PairingCrypto


# ---------------------------------------------------------------------------
# Pairing Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def pairing_key() -> bytes:
    """A fixed 256-bit key."""
    return bytes(range(32))


@pytest.fixture
def encoded_pairing_key(pairing_key: bytes) -> str:
    return base64.urlsafe_b64encode(pairing_key).decode("ascii")


@pytest.fixture
def crypto(pairing_key: bytes) -> PairingCrypto:
    return PairingCrypto(pairing_key)


@pytest.fixture
def sample_payload() -> PairingPayload:
    """A payload as a host on a home LAN would issue it."""
    return PairingPayload(address="192.168.1.5", port=3000, secret="a1b2c3d4e5f60718")


@pytest.fixture
def sample_session() -> Session:
    return Session(address="192.168.1.5", port=3000, secret="a1b2c3d4e5f60718", epoch=1)


# ---------------------------------------------------------------------------
# Time Fixtures
# ---------------------------------------------------------------------------


class FakeClock:
    """A monotonic clock that only moves when told to."""

    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTimer:
    def __init__(self, due: float, callback: Callable[[], None]) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """A ``call_later`` replacement driven by a FakeClock.

    ``advance`` moves the clock and runs every timer that came due, in
    due order.
    """

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.timers: list[FakeTimer] = []

    def __call__(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(self.clock.now + delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def pending(self) -> list[FakeTimer]:
        return [t for t in self.timers if not t.cancelled]

    def advance(self, seconds: float) -> None:
        self.clock.advance(seconds)
        due = sorted(
            (t for t in self.timers if not t.cancelled and t.due <= self.clock.now),
            key=lambda t: t.due,
        )
        for timer in due:
            self.timers.remove(timer)
            timer.callback()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scheduler(clock: FakeClock) -> FakeScheduler:
    return FakeScheduler(clock)


# ---------------------------------------------------------------------------
# Command Collection
# ---------------------------------------------------------------------------


@pytest.fixture
def emitted() -> list[NormalizedCommand]:
    """A list that components under test emit commands into."""
    return []


# ---------------------------------------------------------------------------
# Mock Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_actuator() -> AsyncMock:
    """A mock Actuator whose perform() always succeeds."""
    mock = AsyncMock(spec=Actuator)
    mock.backend = "mock"
    mock.perform.return_value = True
    return mock
