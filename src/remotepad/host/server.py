"""FastAPI application for the host side of remotepad.

Routes:
    GET  /status              -- liveness check, never reveals the secret
    WS   /ws                  -- authenticated event stream
    GET  /pairing             -- current pairing code (admin hosts only)
    POST /pairing/regenerate  -- new port, secret and epoch (admin hosts only)

The WebSocket handshake is authenticated before it is accepted; a bad or
stale secret closes it with policy-violation code 1008 and no per-connection
state is created.
"""

from __future__ import annotations

import logging
import platform as _platform
from collections.abc import Callable
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect, status
from pydantic import BaseModel, Field

from remotepad.actuator.base import Actuator
from remotepad.config.settings import InputConfig
from remotepad.domain.models import Session
from remotepad.host.connection import ConnectionContext
from remotepad.pairing.crypto import PairingCrypto
from remotepad.pairing.session import AuthenticationError, PortBindError, SessionGate, SessionManager

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_HOSTS = ("127.0.0.1", "::1", "localhost")


class HostStatus(BaseModel):
    ok: bool = True
    port: int | None = None
    platform: str = Field(default_factory=lambda: _platform.system().lower())
    arch: str = Field(default_factory=_platform.machine)
    epoch: int = 0


class PairingInfo(BaseModel):
    code: str
    address: str
    port: int
    epoch: int
    fingerprint: str


def extract_token(websocket: WebSocket) -> str | None:
    """The presented secret: ``token`` query param, else a Bearer header."""
    token = websocket.query_params.get("token")
    if token:
        return token
    auth = websocket.headers.get("authorization", "")
    scheme, _, value = auth.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    return None


def create_app(
    manager: SessionManager,
    crypto: PairingCrypto,
    actuator: Actuator,
    input_config: InputConfig | None = None,
    actuator_timeout: float = 2.0,
    admin_hosts: list[str] | tuple[str, ...] = DEFAULT_ADMIN_HOSTS,
    on_regenerate: Callable[[], Session] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        manager: Owner of the current session.
        crypto: Issues pairing codes for the admin routes.
        actuator: Shared backend every connection delivers commands to.
        input_config: Gesture and modifier tuning for new connections.
        actuator_timeout: Upper bound on a single actuator call.
        admin_hosts: Client hosts allowed on the /pairing routes.
        on_regenerate: Called by POST /pairing/regenerate; defaults to
            ``manager.regenerate``. The runner passes a callback that
            also rebinds the server on the new port.
    """
    gate = SessionGate(manager)
    allowed_admins = frozenset(admin_hosts)
    regenerate = on_regenerate or manager.regenerate

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # Startup
        await actuator.connect()
        logger.info("Host started (actuator: %s)", actuator.backend or type(actuator).__name__)
        yield
        # Shutdown
        await actuator.disconnect()
        logger.info("Host stopped")

    app = FastAPI(
        title="remotepad Host",
        description="Pairing and input event stream for remotepad clients",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.manager = manager
    app.state.connections = set()

    def require_admin(request: Request) -> None:
        host = request.client.host if request.client else ""
        if host not in allowed_admins:
            logger.warning("Pairing admin request from non-admin host %s refused", host or "?")
            raise HTTPException(status_code=403, detail="Pairing admin is local only")

    def pairing_info(session: Session) -> PairingInfo:
        return PairingInfo(
            code=crypto.issue(session.payload()),
            address=session.address,
            port=session.port,
            epoch=session.epoch,
            fingerprint=session.fingerprint,
        )

    @app.get("/status")
    async def get_status() -> HostStatus:
        session = manager.current
        return HostStatus(port=session.port if session else None, epoch=manager.epoch)

    @app.get("/pairing")
    async def get_pairing(request: Request) -> PairingInfo:
        require_admin(request)
        session = manager.current
        if session is None:
            raise HTTPException(status_code=503, detail="No active session")
        return pairing_info(session)

    @app.post("/pairing/regenerate")
    async def regenerate_pairing(request: Request) -> PairingInfo:
        require_admin(request)
        try:
            session = regenerate()
        except PortBindError as e:
            logger.error("Regeneration failed: %s", e)
            raise HTTPException(status_code=503, detail="No free port for a new session") from e
        return pairing_info(session)

    @app.websocket("/ws")
    async def event_stream(websocket: WebSocket) -> None:
        peer = websocket.client.host if websocket.client else "?"
        try:
            session = gate.require(extract_token(websocket))
        except AuthenticationError as e:
            logger.warning("Rejected connection from %s: %s", peer, e)
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return

        await websocket.accept()
        ctx = ConnectionContext(
            actuator, input_config, timeout=actuator_timeout, peer=peer
        )
        app.state.connections.add(ctx)
        logger.info("Client %s connected (epoch %d)", peer, session.epoch)
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
                raw = message.get("text")
                if raw is None:
                    raw = message.get("bytes")
                if raw is not None:
                    await ctx.dispatch(raw)
        except WebSocketDisconnect:
            pass
        finally:
            await ctx.close()
            app.state.connections.discard(ctx)
            logger.info("Client %s disconnected", peer)

    return app
