"""Dry-run actuator that only logs the commands it receives."""

from __future__ import annotations

import logging
from collections import Counter

from remotepad.actuator.base import Actuator
from remotepad.domain.models import CommandKind, NormalizedCommand

logger = logging.getLogger(__name__)

# Per-sample commands; logged at DEBUG to keep INFO readable
_STREAMED = frozenset({CommandKind.MOVE, CommandKind.SCROLL, CommandKind.DRAG})


class LogActuator(Actuator):
    """Logs every command instead of performing it.

    Useful on hosts without a display server and for watching what a
    client actually sends.
    """

    backend = "log"

    def __init__(self) -> None:
        self.counts: Counter[CommandKind] = Counter()

    async def connect(self) -> None:
        logger.info("Dry-run actuator active; commands will only be logged")

    async def disconnect(self) -> None:
        if self.counts:
            summary = ", ".join(f"{k.value}={n}" for k, n in sorted(self.counts.items()))
            logger.info("Dry-run actuator performed: %s", summary)

    async def perform(self, command: NormalizedCommand) -> bool:
        self.counts[command.kind] += 1
        level = logging.DEBUG if command.kind in _STREAMED else logging.INFO
        logger.log(level, "Command: %s", command)
        return True
