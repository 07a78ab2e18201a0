"""Key and modifier name normalization.

Clients send free-form key names ("ESC", "option", "caps_lock"); the
actuator understands one canonical, lowercase vocabulary. Both tables
are read-only.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType

CAPS_LOCK = "capslock"

# ---------------------------------------------------------------------------
# Key name -> canonical key (None = handled on the client, never forwarded)
# ---------------------------------------------------------------------------

KEY_MAP: Mapping[str, str | None] = MappingProxyType({
    # Lock keys
    "caps_lock": CAPS_LOCK,
    "caps": CAPS_LOCK,
    # Modifiers
    "option": "alt",
    "alt": "alt",
    "command": "command",
    "cmd": "command",
    "control": "control",
    "ctrl": "control",
    "shift": "shift",
    # Client-side only
    "fn": None,
    # Editing
    "delete": "delete",
    "backspace": "backspace",
    "enter": "enter",
    "return": "enter",
    "space": "space",
    " ": "space",
    "tab": "tab",
    "esc": "escape",
    # Navigation
    "left": "left",
    "right": "right",
    "up": "up",
    "down": "down",
    "arrowleft": "left",
    "arrowright": "right",
    "arrowup": "up",
    "arrowdown": "down",
    "pageup": "pageup",
    "page_up": "pageup",
    "pagedown": "pagedown",
    "page_down": "pagedown",
})

# ---------------------------------------------------------------------------
# Modifier name -> canonical modifier
# ---------------------------------------------------------------------------

MODIFIER_MAP: Mapping[str, str] = MappingProxyType({
    "shift": "shift",
    "control": "control",
    "ctrl": "control",
    "option": "alt",
    "alt": "alt",
    "command": "command",
    "cmd": "command",
})

MODIFIER_KEYS: frozenset[str] = frozenset(MODIFIER_MAP.values())


def normalize_key(name: str | None) -> str | None:
    """Map a key name to its canonical form.

    Lookup is case-insensitive. Names not in the table pass through
    lowercased. Returns None for empty input and for keys reserved for
    the client (e.g. "fn"); callers must drop those.
    """
    if not isinstance(name, str) or not name:
        return None
    lower = name.lower()
    if lower in KEY_MAP:
        return KEY_MAP[lower]
    return lower


def normalize_modifiers(names: Iterable[object] | None) -> list[str]:
    """Map modifier names to canonical modifiers.

    Unknown names are dropped, never forwarded. Order is kept and
    duplicates (e.g. left and right shift) collapse to one entry.
    """
    result: list[str] = []
    for name in names or ():
        if not isinstance(name, str):
            continue
        canonical = MODIFIER_MAP.get(name.lower())
        if canonical is not None and canonical not in result:
            result.append(canonical)
    return result


def is_modifier(canonical_key: str | None) -> bool:
    """Whether a canonical key is one of the tracked modifiers."""
    return canonical_key in MODIFIER_KEYS
