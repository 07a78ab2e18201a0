"""Per-connection input state and command delivery.

A ConnectionContext is created only after a connection authenticates and
lives exactly as long as that connection. It owns the connection's
ModifierStateMachine, gesture recognizers and InputTranslator, collects
the commands they emit in an outbox, and hands them to the shared
actuator in order.

Delivery runs in one background task per connection, so a slow actuator
never holds up the receive loop. Actuator calls are bounded by a timeout.
Failures are logged and the command is dropped; nothing is retried and
the connection stays open.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections import deque
from collections.abc import Callable

from pydantic import ValidationError

from remotepad.actuator.base import Actuator, ActuatorError
from remotepad.config.settings import InputConfig
from remotepad.domain.models import InputEvent, NormalizedCommand
from remotepad.input.gestures import PadGestureRecognizer, ScrollStripRecognizer
from remotepad.input.modifiers import CallLater, ModifierStateMachine, TimerHandle
from remotepad.input.translator import InputTranslator

logger = logging.getLogger(__name__)


def parse_frame(raw: str | bytes) -> InputEvent | None:
    """Parse one ``{"event": ..., "data": {...}}`` frame; None if malformed."""
    try:
        obj = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.debug("Dropping non-JSON frame: %s", e)
        return None
    if not isinstance(obj, dict):
        logger.debug("Dropping frame that is not a JSON object")
        return None
    if obj.get("data") is None:
        obj["data"] = {}
    try:
        return InputEvent.model_validate(obj)
    except ValidationError as e:
        logger.debug("Dropping malformed frame: %d error(s)", e.error_count())
        return None


class ConnectionContext:
    """Input state bundle for one authenticated connection.

    Example usage::

        ctx = ConnectionContext(actuator, settings.input, timeout=2.0, peer="10.0.0.7")
        try:
            async for text in websocket.iter_text():
                await ctx.dispatch(text)
        finally:
            await ctx.close()
    """

    def __init__(
        self,
        actuator: Actuator,
        config: InputConfig | None = None,
        timeout: float = 2.0,
        peer: str = "",
        clock: Callable[[], float] | None = None,
        call_later: CallLater | None = None,
    ) -> None:
        config = config or InputConfig()
        self._actuator = actuator
        self._timeout = timeout
        self.peer = peer
        self._outbox: deque[NormalizedCommand] = deque()
        self._drain_lock = asyncio.Lock()
        self._wakeup = asyncio.Event()
        self._consumer: asyncio.Task[None] | None = None
        self._scheduler = call_later
        self._closed = False

        modifier_kwargs = {"clock": clock} if clock is not None else {}
        self.modifiers = ModifierStateMachine(
            emit=self._outbox.append,
            lock_threshold=config.modifier_lock_s,
            call_later=self._call_later,
            **modifier_kwargs,
        )
        self.pad = PadGestureRecognizer(
            emit=self._outbox.append,
            gain=config.move_gain,
            epsilon=config.move_epsilon,
            tap_time_ms=config.tap_time_ms,
            lockout_ms=config.right_click_lockout_ms,
            hot_zone_fraction=config.hot_zone_fraction,
        )
        self.scroll = ScrollStripRecognizer(emit=self._outbox.append)
        self.translator = InputTranslator(
            emit=self._outbox.append,
            modifiers=self.modifiers,
            pad=self.pad,
            scroll=self.scroll,
        )

    @property
    def closed(self) -> bool:
        return self._closed

    async def dispatch(self, raw: str | bytes) -> None:
        """Handle one inbound frame and queue the commands it produced.

        Returns without waiting for the actuator; the connection's
        delivery task performs the commands in order.
        """
        if self._closed:
            return
        event = parse_frame(raw)
        if event is None:
            return
        self.translator.handle(event)
        self._wake()

    async def drain(self) -> None:
        """Deliver every queued command to the actuator, one at a time, in order."""
        async with self._drain_lock:
            while self._outbox:
                await self._perform(self._outbox.popleft())

    async def close(self) -> None:
        """Tear down: release held modifiers, clear gestures and timers.

        Waits for the delivery task to hand over what is still queued,
        including the releases produced here.
        """
        if self._closed:
            return
        self._closed = True
        self.translator.reset()
        if self._consumer is not None:
            self._wakeup.set()
            await asyncio.gather(self._consumer, return_exceptions=True)
            self._consumer = None
        await self.drain()
        logger.debug("Connection state for %s torn down", self.peer or "client")

    def _wake(self) -> None:
        if not self._outbox:
            return
        if self._consumer is None:
            self._consumer = asyncio.get_running_loop().create_task(self._consume())
        self._wakeup.set()

    async def _consume(self) -> None:
        while True:
            await self._wakeup.wait()
            self._wakeup.clear()
            await self.drain()
            if self._closed and not self._outbox:
                return

    def _call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Schedule a hold timer whose emissions are delivered when it fires."""
        def fire() -> None:
            if self._closed:
                return
            callback()
            self._wake()

        if self._scheduler is not None:
            return self._scheduler(delay, fire)
        return asyncio.get_running_loop().call_later(delay, fire)

    async def _perform(self, command: NormalizedCommand) -> None:
        try:
            ok = await asyncio.wait_for(self._actuator.perform(command), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.warning("Actuator timed out on %s", command)
        except ActuatorError as e:
            logger.warning("Actuator %s failed on %s: %s", e.backend or "backend", command, e)
        except Exception:
            logger.exception("Unexpected actuator error on %s", command)
        else:
            if not ok:
                logger.warning("Actuator refused %s", command)
