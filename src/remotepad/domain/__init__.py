"""Domain models for remotepad.

This package contains the core data structures, enumerations, and value
objects used throughout the system. All models use Pydantic v2 for
validation and serialization.
"""

from remotepad.domain.models import (
    CommandKind,
    GesturePhase,
    InputEvent,
    ModifierMode,
    NormalizedCommand,
    PairingPayload,
    PointerSample,
    Session,
    Surface,
    SurfaceRect,
)

__all__ = [
    "CommandKind",
    "GesturePhase",
    "InputEvent",
    "ModifierMode",
    "NormalizedCommand",
    "PairingPayload",
    "PointerSample",
    "Session",
    "Surface",
    "SurfaceRect",
]
