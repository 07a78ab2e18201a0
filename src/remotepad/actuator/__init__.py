"""Input actuator module for remotepad.

Replays normalized commands as pointer and keyboard effects on the host
through pluggable backends.

Public API:
    Actuator -- Abstract base class
    ActuatorError -- Backend failure
    LogActuator -- Dry-run backend that only logs
    XdotoolActuator -- X11 backend driving the xdotool binary
    create_actuator -- Build the backend named in the configuration
"""

from remotepad.actuator.base import Actuator, ActuatorError
from remotepad.config.settings import ActuatorConfig

__all__ = ["Actuator", "ActuatorError", "LogActuator", "XdotoolActuator", "create_actuator"]


def __getattr__(name: str) -> type:
    """Lazy import for concrete implementations."""
    if name == "LogActuator":
        from remotepad.actuator.log_backend import LogActuator
        return LogActuator
    if name == "XdotoolActuator":
        from remotepad.actuator.xdotool_backend import XdotoolActuator
        return XdotoolActuator
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def create_actuator(config: ActuatorConfig) -> Actuator:
    """Instantiate the actuator backend selected by ``config.backend``."""
    if config.backend == "log":
        from remotepad.actuator.log_backend import LogActuator
        return LogActuator()
    from remotepad.actuator.xdotool_backend import XdotoolActuator
    return XdotoolActuator(timeout=config.timeout, scroll_step=config.scroll_step)
