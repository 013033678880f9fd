"""
Encryption utilities for stored credentials.
Uses AES-256-GCM from the cryptography library.
"""

import base64
import os
from typing import Any, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt
from pydantic import BaseModel, StrictBool, StrictStr, ValidationError, field_validator

from .constants import ENCRYPTION_ALGORITHM, KEY_DERIVATION_SALT
from .errors import EncryptionError

KEY_LENGTH = 32
IV_LENGTH = 12
TAG_LENGTH = 16


class EncryptedPayload(BaseModel):
    """Encrypted value as stored in mapping and connection files.

    Fields are strictly typed: ``encrypted`` must be the boolean ``true`` and
    the other fields must be strings.
    """
    encrypted: StrictBool
    algorithm: StrictStr
    iv: StrictStr
    tag: StrictStr
    ciphertext: StrictStr

    class Config:
        frozen = True

    @field_validator("encrypted")
    @classmethod
    def must_be_true(cls, value: bool) -> bool:
        if not value:
            raise ValueError("encrypted must be true")
        return value


def parse_encrypted_payload(value: Any) -> Optional[EncryptedPayload]:
    """Return the payload if ``value`` has the encrypted shape, else None."""
    if isinstance(value, EncryptedPayload):
        return value
    try:
        return EncryptedPayload.model_validate(value)
    except ValidationError:
        return None


def is_encrypted_payload(value: Any) -> bool:
    return parse_encrypted_payload(value) is not None


def generate_key() -> bytes:
    """Generate a random 256-bit key."""
    return os.urandom(KEY_LENGTH)


def derive_key(passphrase: str) -> bytes:
    """Derive a 256-bit key from a passphrase with scrypt."""
    kdf = Scrypt(salt=KEY_DERIVATION_SALT, length=KEY_LENGTH, n=2**14, r=8, p=1)
    return kdf.derive(passphrase.encode("utf-8"))


def encrypt(plaintext: str, key: bytes) -> EncryptedPayload:
    """
    Encrypt a string.

    Args:
        plaintext: The text to encrypt
        key: 32-byte key

    Returns:
        EncryptedPayload with a fresh random IV
    """
    try:
        iv = os.urandom(IV_LENGTH)
        sealed = AESGCM(key).encrypt(iv, plaintext.encode("utf-8"), None)
    except (ValueError, TypeError) as e:
        raise EncryptionError("Failed to encrypt data", cause=e) from e

    # AESGCM appends the tag to the ciphertext
    ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
    return EncryptedPayload(
        encrypted=True,
        algorithm=ENCRYPTION_ALGORITHM,
        iv=_b64encode(iv),
        tag=_b64encode(tag),
        ciphertext=_b64encode(ciphertext),
    )


def decrypt(payload: EncryptedPayload, key: bytes) -> str:
    """
    Decrypt a payload produced by ``encrypt``.

    Raises:
        EncryptionError: On a wrong key or tampered payload
    """
    try:
        if payload.algorithm != ENCRYPTION_ALGORITHM:
            raise ValueError(f"Unsupported algorithm: {payload.algorithm}")
        iv = base64.b64decode(payload.iv, validate=True)
        tag = base64.b64decode(payload.tag, validate=True)
        ciphertext = base64.b64decode(payload.ciphertext, validate=True)
        plaintext = AESGCM(key).decrypt(iv, ciphertext + tag, None)
        return plaintext.decode("utf-8")
    except (InvalidTag, ValueError, TypeError) as e:
        raise EncryptionError("Failed to decrypt data. Check your encryption key.", cause=e) from e


def _b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")
