"""Client side of the pairing handshake and event stream.

The client never sees the host's session directly: it reads a pairing
code (captured by a code reader), decodes it with the shared pairing key,
and presents the recovered secret when it opens the event stream.
"""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator
from urllib.parse import urlencode

import httpx
import websockets
from websockets.exceptions import InvalidHandshake, WebSocketException

from remotepad.domain.models import PairingPayload
from remotepad.pairing.crypto import PairingCrypto

logger = logging.getLogger(__name__)


class ClientError(Exception):
    """Raised when the host cannot be reached or refuses the client."""


def _host_part(address: str) -> str:
    return f"[{address}]" if ":" in address else address


class EventStream:
    """An open, authenticated event stream to the host."""

    def __init__(self, websocket: Any) -> None:
        self._ws = websocket

    async def send(self, event: str, **data: Any) -> None:
        """Send one ``{"event": ..., "data": {...}}`` frame."""
        frame = json.dumps({"event": event, "data": data}, separators=(",", ":"))
        try:
            await self._ws.send(frame)
        except WebSocketException as e:
            raise ClientError(f"Event stream closed: {e}") from e

    async def close(self) -> None:
        await self._ws.close()


class RemoteClient:
    """Talks to one host described by a decoded pairing payload.

    Example usage::

        client = RemoteClient.from_code(scanned_text, key=settings.pairing.key.get_secret_value())
        print(await client.status())
        async with client.connect() as stream:
            await stream.send("move", dx=5, dy=-3)
            await stream.send("keyTap", key="a", modifiers=["cmd"])
    """

    def __init__(self, payload: PairingPayload, timeout: float = 5.0) -> None:
        self.payload = payload
        self._timeout = timeout

    @classmethod
    def from_code(cls, code: str, key: str | bytes, timeout: float = 5.0) -> RemoteClient:
        """Decode a pairing code with the shared key.

        Raises:
            PairingDecodeError: If the code is malformed or the key is wrong.
            ValueError: If the key itself is not a valid pairing key.
        """
        crypto = PairingCrypto(key) if isinstance(key, bytes) else PairingCrypto.from_encoded_key(key)
        return cls(crypto.read(code), timeout=timeout)

    @property
    def base_url(self) -> str:
        return f"http://{_host_part(self.payload.address)}:{self.payload.port}"

    @property
    def ws_url(self) -> str:
        query = urlencode({"token": self.payload.secret})
        return f"ws://{_host_part(self.payload.address)}:{self.payload.port}/ws?{query}"

    async def status(self) -> dict[str, Any]:
        """Liveness check: the host's ``/status`` document.

        Raises:
            ClientError: If the host is unreachable or answers with an error.
        """
        try:
            async with httpx.AsyncClient(base_url=self.base_url, timeout=self._timeout) as http:
                resp = await http.get("/status")
                resp.raise_for_status()
                return resp.json()
        except httpx.HTTPError as e:
            raise ClientError(f"Status request to {self.base_url} failed: {e}") from e

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[EventStream]:
        """Open the authenticated event stream.

        Raises:
            ClientError: If the host is unreachable or rejects the secret
                (the client must re-pair).
        """
        try:
            ws = await websockets.connect(self.ws_url, open_timeout=self._timeout)
        except InvalidHandshake as e:
            raise ClientError(f"Host refused the connection, pair again: {e}") from e
        except (OSError, TimeoutError) as e:
            raise ClientError(f"Cannot reach host at {self.base_url}: {e}") from e

        logger.info("Connected to %s:%d", self.payload.address, self.payload.port)
        stream = EventStream(ws)
        try:
            yield stream
        finally:
            await stream.close()
            logger.info("Disconnected from %s:%d", self.payload.address, self.payload.port)
