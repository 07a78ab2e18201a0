"""Input normalization for remotepad.

Turns noisy device input (pointer samples, modifier key presses,
free-form key names) into the small NormalizedCommand vocabulary.

Public API:
    InputTranslator -- per-connection event router
    ModifierStateMachine -- momentary / locked modifier tracking
    PadGestureRecognizer -- tap / right-tap / drag on the main pad
    ScrollStripRecognizer -- scroll deltas on the scroll strip
    normalize_key, normalize_modifiers -- static name tables
"""

from remotepad.input.gestures import PadGestureRecognizer, ScrollStripRecognizer
from remotepad.input.keymap import normalize_key, normalize_modifiers
from remotepad.input.modifiers import ModifierStateMachine
from remotepad.input.translator import InputTranslator

__all__ = [
    "InputTranslator",
    "ModifierStateMachine",
    "PadGestureRecognizer",
    "ScrollStripRecognizer",
    "normalize_key",
    "normalize_modifiers",
]
