"""Serve the host app on the session's port, rebinding after regeneration.

A session regeneration moves the host to a new port, so the running
uvicorn server is asked to exit and a new one is started on the listener
the SessionManager bound for the new session. Clients of the old epoch
are disconnected by that shutdown.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from collections.abc import Callable

import uvicorn

from remotepad.actuator.base import Actuator
from remotepad.config.settings import Settings
from remotepad.domain.models import Session
from remotepad.host.server import create_app
from remotepad.pairing.crypto import PairingCrypto
from remotepad.pairing.session import PortBindError, SessionManager

logger = logging.getLogger(__name__)


class HostRunner:
    """Runs the host until interrupted.

    Example usage::

        runner = HostRunner(settings, manager, crypto, actuator, on_session=print_code)
        asyncio.run(runner.run())
    """

    def __init__(
        self,
        settings: Settings,
        manager: SessionManager,
        crypto: PairingCrypto,
        actuator: Actuator,
        on_session: Callable[[Session, str], None] | None = None,
    ) -> None:
        self._settings = settings
        self._manager = manager
        self._crypto = crypto
        self._actuator = actuator
        self._on_session = on_session
        self._server: uvicorn.Server | None = None
        self._rebind = False
        self._stopping = False

    def regenerate(self) -> Session:
        """New session, then restart the server on its port."""
        session = self._manager.regenerate()
        self._announce(session)
        self._rebind = True
        if self._server is not None:
            self._server.should_exit = True
        return session

    def stop(self) -> None:
        self._stopping = True
        if self._server is not None:
            self._server.should_exit = True

    async def run(self) -> None:
        """Serve sessions until stopped.

        Raises:
            PortBindError: If the first session cannot bind a port.
        """
        if self._manager.current is None:
            self._announce(self._manager.regenerate())
        self._install_sighup()

        try:
            while not self._stopping:
                listener = self._manager.take_listener()
                if listener is None:
                    self._announce(self._manager.regenerate())
                    continue

                self._rebind = False
                self._server = uvicorn.Server(self._server_config())
                session = self._manager.current
                logger.info(
                    "Serving epoch %d on port %d", session.epoch if session else 0,
                    listener.getsockname()[1],
                )
                try:
                    await self._server.serve(sockets=[listener])
                finally:
                    listener.close()

                if not self._rebind:
                    # Ctrl-C or a fatal server error, not a regeneration
                    break
        finally:
            self._server = None
            self._manager.close()
            self._remove_sighup()

    def _server_config(self) -> uvicorn.Config:
        app = create_app(
            manager=self._manager,
            crypto=self._crypto,
            actuator=self._actuator,
            input_config=self._settings.input,
            actuator_timeout=self._settings.actuator.timeout,
            admin_hosts=self._settings.server.admin_hosts,
            on_regenerate=self.regenerate,
        )
        return uvicorn.Config(
            app,
            log_level=self._settings.logging.level.lower(),
            timeout_graceful_shutdown=2,
        )

    def _announce(self, session: Session) -> None:
        code = self._crypto.issue(session.payload())
        if self._on_session is not None:
            self._on_session(session, code)

    def _install_sighup(self) -> None:
        if not hasattr(signal, "SIGHUP"):
            return
        try:
            asyncio.get_running_loop().add_signal_handler(signal.SIGHUP, self._on_sighup)
        except (NotImplementedError, RuntimeError) as e:
            logger.debug("SIGHUP regeneration unavailable: %s", e)

    def _remove_sighup(self) -> None:
        if not hasattr(signal, "SIGHUP"):
            return
        try:
            asyncio.get_running_loop().remove_signal_handler(signal.SIGHUP)
        except (NotImplementedError, RuntimeError):
            pass

    def _on_sighup(self) -> None:
        logger.info("SIGHUP received, regenerating session")
        try:
            self.regenerate()
        except PortBindError as e:
            logger.error("Regeneration failed, keeping epoch %d: %s", self._manager.epoch, e)
