"""Encryption of the pairing payload into a transport-safe pairing code.

A pairing code is::

    base64(ciphertext) "." base64(iv)

where the ciphertext is AES-256-CBC (PKCS7 padded) over the canonical
JSON form of a PairingPayload. Every call to ``issue`` draws a fresh
16-byte IV, so two codes for the same payload never share a keystream
start. The "." separator cannot occur inside standard base64.

There is no MAC over the ciphertext: a tampered code is only rejected
when it fails to unpad or parse.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import os

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from pydantic import ValidationError

from remotepad.domain.models import PairingPayload

logger = logging.getLogger(__name__)

SEPARATOR = "."
KEY_SIZE = 32
IV_SIZE = 16
_BLOCK_BITS = algorithms.AES.block_size


class PairingDecodeError(ValueError):
    """Raised when a pairing code cannot be decoded into a payload.

    Recoverable: the caller should let the operator scan another code.
    """


def generate_key() -> str:
    """A new random pairing key, urlsafe-base64 encoded."""
    return base64.urlsafe_b64encode(os.urandom(KEY_SIZE)).decode("ascii")


def decode_key(encoded: str) -> bytes:
    """Decode a urlsafe-base64 pairing key.

    Raises:
        ValueError: If the text is not base64 or not a 256-bit key.
    """
    try:
        key = base64.urlsafe_b64decode(encoded.encode("ascii"))
    except (binascii.Error, UnicodeEncodeError) as e:
        raise ValueError(f"Pairing key is not valid base64: {e}") from e
    if len(key) != KEY_SIZE:
        raise ValueError(f"Pairing key must be {KEY_SIZE} bytes, got {len(key)}")
    return key


class PairingCrypto:
    """Issues and reads pairing codes under one symmetric key.

    The host calls ``issue`` to turn its current session into a code for
    the code renderer; the client calls ``read`` on whatever the code
    reader captured.

    Example usage::

        crypto = PairingCrypto.from_encoded_key(settings.pairing.key.get_secret_value())
        code = crypto.issue(PairingPayload(address="192.168.1.5", port=3000, secret="s3cr3t"))
        payload = crypto.read(code)
    """

    def __init__(self, key: bytes) -> None:
        if len(key) != KEY_SIZE:
            raise ValueError(f"Pairing key must be {KEY_SIZE} bytes, got {len(key)}")
        self._key = key

    @classmethod
    def from_encoded_key(cls, encoded: str) -> PairingCrypto:
        return cls(decode_key(encoded))

    @staticmethod
    def serialize(payload: PairingPayload) -> str:
        """Canonical text form: compact JSON with sorted keys."""
        return json.dumps(
            payload.model_dump(mode="json"), sort_keys=True, separators=(",", ":")
        )

    def issue(self, payload: PairingPayload) -> str:
        """Encrypt a payload into a pairing code."""
        iv = os.urandom(IV_SIZE)
        padder = padding.PKCS7(_BLOCK_BITS).padder()
        plaintext = padder.update(self.serialize(payload).encode("utf-8")) + padder.finalize()

        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(plaintext) + encryptor.finalize()

        return SEPARATOR.join(
            (
                base64.b64encode(ciphertext).decode("ascii"),
                base64.b64encode(iv).decode("ascii"),
            )
        )

    def read(self, code: str) -> PairingPayload:
        """Decrypt and validate a pairing code.

        Raises:
            PairingDecodeError: On a wrong part count, bad base64, wrong
                IV or block length, bad padding, non-JSON plaintext, or a
                missing/invalid address, port or secret.
        """
        if not isinstance(code, str):
            raise PairingDecodeError("Pairing code must be text")
        parts = code.strip().split(SEPARATOR)
        if len(parts) != 2:
            raise PairingDecodeError(
                f"Pairing code must have exactly 2 parts, got {len(parts)}"
            )

        try:
            ciphertext = base64.b64decode(parts[0], validate=True)
            iv = base64.b64decode(parts[1], validate=True)
        except (binascii.Error, ValueError) as e:
            raise PairingDecodeError(f"Pairing code is not valid base64: {e}") from e

        if len(iv) != IV_SIZE:
            raise PairingDecodeError(f"IV must be {IV_SIZE} bytes, got {len(iv)}")
        if not ciphertext or len(ciphertext) % IV_SIZE:
            raise PairingDecodeError("Ciphertext is not a whole number of blocks")

        decryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()
        unpadder = padding.PKCS7(_BLOCK_BITS).unpadder()
        try:
            plaintext = unpadder.update(padded) + unpadder.finalize()
        except ValueError as e:
            raise PairingDecodeError("Invalid padding (wrong key or corrupted code)") from e

        try:
            data = json.loads(plaintext.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise PairingDecodeError(f"Decrypted payload is not JSON: {e}") from e
        if not isinstance(data, dict):
            raise PairingDecodeError("Decrypted payload is not a JSON object")

        try:
            payload = PairingPayload.model_validate(data)
        except ValidationError as e:
            fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err["loc"])
            raise PairingDecodeError(f"Pairing payload invalid ({fields or 'unknown'})") from e

        logger.debug("Read pairing code for %s:%d", payload.address, payload.port)
        return payload
