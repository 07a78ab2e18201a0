"""Process-wide pairing session and the gate that checks connections against it.

The SessionManager is the single writer: ``regenerate`` binds a fresh
listening port, draws a new secret and publishes a new immutable Session
in one reference assignment. Readers (the SessionGate) take one snapshot
of that reference per check, so they always see a whole Session from a
single epoch.
"""

from __future__ import annotations

import logging
import secrets
import socket
import threading

from remotepad.domain.models import Session

logger = logging.getLogger(__name__)

MAX_PORT = 65535


class PortBindError(OSError):
    """Raised when no candidate port in the scan range could be bound."""

    def __init__(self, message: str, base_port: int = 0, attempts: int = 0) -> None:
        super().__init__(message)
        self.base_port = base_port
        self.attempts = attempts


class AuthenticationError(Exception):
    """Raised when a connection presents a secret that is not current."""


def bind_first_free(host: str, base_port: int, max_attempts: int = 100) -> socket.socket:
    """Bind and listen on the first free port at or above ``base_port``.

    The returned socket stays open, so the port cannot be taken between
    probing and serving.

    Raises:
        PortBindError: If ``max_attempts`` consecutive ports all fail.
    """
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    last_port = min(base_port + max_attempts, MAX_PORT + 1)
    for port in range(base_port, last_port):
        sock = socket.socket(family, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((host, port))
            sock.listen()
        except OSError as e:
            sock.close()
            logger.debug("Port %d unavailable (%s), trying next", port, e)
            continue
        logger.info("Bound %s:%d", host, port)
        return sock
    raise PortBindError(
        f"No free port in {base_port}..{last_port - 1} on {host}",
        base_port=base_port,
        attempts=last_port - base_port,
    )


class SessionManager:
    """Owns the current Session and its listening socket.

    Example usage::

        manager = SessionManager(address="192.168.1.5", base_port=3000)
        session = manager.regenerate()
        listener = manager.take_listener()  # hand to the server
    """

    def __init__(
        self,
        address: str,
        host: str = "0.0.0.0",
        base_port: int = 3000,
        max_port_attempts: int = 100,
        secret_bytes: int = 16,
    ) -> None:
        self._address = address
        self._host = host
        self._base_port = base_port
        self._max_port_attempts = max_port_attempts
        self._secret_bytes = secret_bytes
        self._current: Session | None = None
        self._listener: socket.socket | None = None
        self._write_lock = threading.Lock()

    @property
    def current(self) -> Session | None:
        return self._current

    @property
    def epoch(self) -> int:
        session = self._current
        return session.epoch if session else 0

    def regenerate(self) -> Session:
        """Replace the current session with a new port, secret and epoch.

        Raises:
            PortBindError: If no port could be bound; the previous session
                stays current.
        """
        with self._write_lock:
            listener = bind_first_free(self._host, self._base_port, self._max_port_attempts)
            port = listener.getsockname()[1]
            session = Session(
                address=self._address,
                port=port,
                secret=secrets.token_hex(self._secret_bytes),
                epoch=self.epoch + 1,
            )
            stale_listener = self._listener
            self._current = session
            self._listener = listener

        if stale_listener is not None:
            stale_listener.close()
        logger.info(
            "Session regenerated: epoch=%d port=%d secret=%s",
            session.epoch, session.port, session.fingerprint,
        )
        return session

    def take_listener(self) -> socket.socket | None:
        """Hand the bound socket to the caller, who then owns closing it."""
        with self._write_lock:
            listener, self._listener = self._listener, None
        return listener

    def close(self) -> None:
        """Close a listener that was never taken."""
        listener = self.take_listener()
        if listener is not None:
            listener.close()


class SessionGate:
    """Authenticates inbound connections against the current session only."""

    def __init__(self, manager: SessionManager) -> None:
        self._manager = manager

    def authenticate(self, provided: object) -> bool:
        """Constant-time comparison of ``provided`` with the current secret."""
        return self._match(self._manager.current, provided)

    def require(self, provided: object) -> Session:
        """Return the session ``provided`` authenticates against.

        Raises:
            AuthenticationError: If the secret is missing or not current.
        """
        session = self._manager.current
        if session is None or not self._match(session, provided):
            raise AuthenticationError("Invalid or expired pairing secret")
        return session

    @staticmethod
    def _match(session: Session | None, provided: object) -> bool:
        if session is None or not isinstance(provided, str) or not provided:
            return False
        return secrets.compare_digest(
            provided.encode("utf-8"), session.secret.encode("utf-8")
        )
