"""Pairing layer for remotepad.

Issues and reads encrypted pairing codes, owns the process-wide session
(port, secret, epoch) and authenticates inbound connections against it.

Public API:
    PairingCrypto -- issue/read pairing codes
    SessionManager -- regenerate the current session
    SessionGate -- authenticate a presented secret
"""

from remotepad.pairing.crypto import PairingCrypto, PairingDecodeError, generate_key
from remotepad.pairing.session import (
    AuthenticationError,
    PortBindError,
    SessionGate,
    SessionManager,
)

__all__ = [
    "AuthenticationError",
    "PairingCrypto",
    "PairingDecodeError",
    "PortBindError",
    "SessionGate",
    "SessionManager",
    "generate_key",
]
