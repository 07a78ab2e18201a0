"""Core domain models for the remotepad system.

These models represent the data flowing through the pairing and input
layers: the pairing payload carried inside a pairing code, the host's
current session, raw pointer samples from the handheld device, inbound
event frames, and the normalized commands handed to the input actuator.
"""

from __future__ import annotations

import enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class CommandKind(str, enum.Enum):
    """The normalized command vocabulary understood by an actuator."""

    MOVE = "move"
    CLICK = "click"
    SCROLL = "scroll"
    KEY_TAP = "key_tap"
    KEY_DOWN = "key_down"
    KEY_UP = "key_up"
    MODIFIER_LOCK = "modifier_lock"
    TOGGLE_CAPS_LOCK = "toggle_caps_lock"
    SPECIAL_KEY = "special_key"
    MEDIA_KEY = "media_key"
    TYPE_TEXT = "type_text"
    MOUSE_DOWN = "mouse_down"
    MOUSE_UP = "mouse_up"
    DRAG = "drag"


class ModifierMode(str, enum.Enum):
    """Lifecycle of a single modifier key on one connection."""

    IDLE = "idle"
    PRESSED_MOMENTARY = "pressed_momentary"  # Down, applies to the next key only
    LOCKED = "locked"  # Held past the lock threshold, stays on until re-tapped


class GesturePhase(str, enum.Enum):
    """Lifecycle of a pointer gesture on one surface."""

    IDLE = "idle"
    TAP_PENDING = "tap_pending"
    DRAGGING = "dragging"


class Surface(str, enum.Enum):
    """Pointer surfaces on the handheld controller."""

    PAD = "pad"
    SCROLL = "scroll"


# ---------------------------------------------------------------------------
# Pairing Models
# ---------------------------------------------------------------------------


class PairingPayload(BaseModel):
    """What a pairing code carries: where to connect and what to present.

    Strict types keep the decoded payload exactly as issued; a port sent
    as a string or boolean is a malformed code, not something to coerce.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    address: StrictStr = Field(min_length=1, description="Host LAN address")
    port: StrictInt = Field(ge=1, le=65535, description="Host event-stream port")
    secret: StrictStr = Field(min_length=1, description="Shared connection secret")


class Session(BaseModel):
    """The host's currently valid pairing state.

    Replaced wholesale on regeneration; ``epoch`` increases by one each
    time so stale sessions can be told apart.
    """

    model_config = ConfigDict(frozen=True)

    address: str = Field(description="Address advertised to clients")
    port: int = Field(ge=1, le=65535, description="Port the host is bound to")
    secret: str = Field(repr=False, description="Secret clients must present")
    epoch: int = Field(ge=0, description="Regeneration counter")

    @property
    def fingerprint(self) -> str:
        """A short, loggable prefix of the secret."""
        return self.secret[:4] + "..."

    def payload(self) -> PairingPayload:
        return PairingPayload(address=self.address, port=self.port, secret=self.secret)


# ---------------------------------------------------------------------------
# Pointer Models
# ---------------------------------------------------------------------------


class SurfaceRect(BaseModel):
    """Bounding rectangle of a pointer surface, in client coordinates."""

    model_config = ConfigDict(frozen=True)

    left: float = 0.0
    top: float = 0.0
    width: float = Field(default=0.0, ge=0.0)
    height: float = Field(default=0.0, ge=0.0)

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    def in_hot_zone(self, x: float, y: float, fraction: float) -> bool:
        """Whether (x, y) falls in the bottom-right ``fraction`` of the surface."""
        return (
            x > self.right - self.width * fraction
            and y > self.bottom - self.height * fraction
        )


class PointerSample(BaseModel):
    """One position sample from a pointer surface. ``t`` is in milliseconds."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    t: float


# ---------------------------------------------------------------------------
# Event / Command Models
# ---------------------------------------------------------------------------


class InputEvent(BaseModel):
    """A named event frame received from a client."""

    model_config = ConfigDict(frozen=True)

    event: str = Field(description="Event name, e.g. 'move' or 'keyTap'")
    data: dict[str, Any] = Field(default_factory=dict, description="Event payload")


class NormalizedCommand(BaseModel):
    """An immutable command for the input actuator.

    Commands are produced once and handed to the actuator exactly once;
    they are never queued for retry.
    """

    model_config = ConfigDict(frozen=True)

    kind: CommandKind
    args: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def of(cls, kind: CommandKind, **args: Any) -> NormalizedCommand:
        return cls(kind=kind, args=args)

    def __str__(self) -> str:
        if not self.args:
            return self.kind.value
        parts = ", ".join(f"{k}={v!r}" for k, v in self.args.items())
        return f"{self.kind.value}({parts})"
