"""Abstract base class for the input actuator.

The actuator is the only part of remotepad that touches the operating
system. Everything upstream produces NormalizedCommand values; a backend
replays them as pointer and keyboard effects. Backends report plain
success or failure; callers log failures and move on.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from remotepad.domain.models import NormalizedCommand

logger = logging.getLogger(__name__)


class Actuator(ABC):
    """Abstract interface for performing normalized commands on the host.

    Example usage::

        async with XdotoolActuator() as actuator:
            ok = await actuator.perform(NormalizedCommand.of(CommandKind.CLICK, button="left"))
    """

    backend: str = ""

    @abstractmethod
    async def connect(self) -> None:
        """Prepare the backend (locate tools, open devices).

        Raises:
            ActuatorError: If the backend cannot be used on this host.
        """
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        """Release backend resources. Safe to call more than once."""
        ...

    @abstractmethod
    async def perform(self, command: NormalizedCommand) -> bool:
        """Perform one command.

        Returns:
            True if the OS effect was applied, False if it was refused.

        Raises:
            ActuatorError: If the backend itself failed (tool missing,
                timed out).
        """
        ...

    async def __aenter__(self) -> Actuator:
        await self.connect()
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        await self.disconnect()


class ActuatorError(Exception):
    """Raised when an actuator backend fails."""

    def __init__(self, message: str, backend: str = "") -> None:
        super().__init__(message)
        self.backend = backend
