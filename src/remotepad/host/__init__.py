"""Host side of remotepad: the authenticated event stream.

Public API:
    ConnectionContext -- per-connection input state
    create_app -- FastAPI application factory
    HostRunner -- serves sessions and rebinds after regeneration
"""

from remotepad.host.connection import ConnectionContext
from remotepad.host.server import create_app

__all__ = ["ConnectionContext", "HostRunner", "create_app"]


def __getattr__(name: str) -> type:
    """Lazy import so the app can be built without uvicorn installed."""
    if name == "HostRunner":
        from remotepad.host.runner import HostRunner
        return HostRunner
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
