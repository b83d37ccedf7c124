"""
Vault Crypto Core — PIN key derivation, encryption/decryption, and serialization.

- Key: SHA-256(UTF-8 PIN) → AES-256-GCM key (deterministic, no salt)
- Encryption: fresh random 96-bit nonce per call, 128-bit tag appended
- Record: ``{"iv": [12 ints], "secret": [ints]}`` as stored in the local medium

Security Note:
    Never log PINs, plaintext or ciphertext values.
    A failed tag check is always reported as AuthenticationError, whatever
    the cause (wrong PIN or tampered data).
"""
import os
import hashlib
import logging

import orjson
from pydantic import BaseModel, Field, field_validator
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..exceptions import AuthenticationError

logger = logging.getLogger("toosla.vault")

NONCE_SIZE = 12  # 96-bit nonce
TAG_SIZE = 16  # 128-bit GCM tag
KEY_LENGTH = 32  # AES-256


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

def derive_key(pin: str) -> AESGCM:
    """Derive the AES-GCM cipher for a PIN.

    The key is the SHA-256 digest of the UTF-8 encoded PIN, so the same PIN
    always gives the same key and a PIN can be verified by re-deriving the
    key and attempting a decryption.

    Args:
        pin: User PIN.

    Returns:
        AESGCM cipher keyed with the 32-byte digest.
    """
    digest = hashlib.sha256(pin.encode("utf-8")).digest()
    return AESGCM(digest)


# ---------------------------------------------------------------------------
# Authenticated encryption
# ---------------------------------------------------------------------------

def encrypt(key: AESGCM, plaintext: bytes) -> tuple[bytes, bytes]:
    """Encrypt plaintext with a fresh nonce.

    Args:
        key: Cipher returned by derive_key().
        plaintext: Data to encrypt.

    Returns:
        Tuple of (iv, ciphertext + GCM tag).
    """
    iv = os.urandom(NONCE_SIZE)
    return iv, key.encrypt(iv, plaintext, None)


def decrypt(key: AESGCM, iv: bytes, ciphertext: bytes) -> bytes:
    """Decrypt and verify ciphertext.

    Args:
        key: Cipher returned by derive_key().
        iv: Nonce used at encryption time.
        ciphertext: Encrypted payload with the GCM tag appended.

    Returns:
        Decrypted plaintext bytes.

    Raises:
        AuthenticationError: If the tag does not verify.
    """
    if len(iv) != NONCE_SIZE or len(ciphertext) < TAG_SIZE:
        raise AuthenticationError("cannot decrypt")
    try:
        return key.decrypt(iv, ciphertext, None)
    except InvalidTag as exc:
        raise AuthenticationError("cannot decrypt") from exc


# ---------------------------------------------------------------------------
# Record serialization
# ---------------------------------------------------------------------------

class SecretRecord(BaseModel):
    """Persisted shape of an encrypted secret."""

    iv: list[int] = Field(min_length=NONCE_SIZE, max_length=NONCE_SIZE)
    secret: list[int] = Field(min_length=TAG_SIZE)

    @field_validator("iv", "secret")
    @classmethod
    def validate_bytes(cls, v: list[int]) -> list[int]:
        """Every entry must be a byte value."""
        if any(b < 0 or b > 255 for b in v):
            raise ValueError("byte values must be in range 0..255")
        return v

    @classmethod
    def seal(cls, pin: str, data: str) -> "SecretRecord":
        """Encrypt ``data`` with the key derived from ``pin``."""
        iv, ciphertext = encrypt(derive_key(pin), data.encode("utf-8"))
        return cls(iv=list(iv), secret=list(ciphertext))

    def open(self, pin: str) -> str:
        """Decrypt the record with the key derived from ``pin``.

        Raises:
            AuthenticationError: If the PIN is wrong or the record was tampered.
        """
        plaintext = decrypt(derive_key(pin), bytes(self.iv), bytes(self.secret))
        return plaintext.decode("utf-8")

    def dumps(self) -> str:
        return orjson.dumps(self.model_dump()).decode("utf-8")

    @classmethod
    def loads(cls, data: str) -> "SecretRecord":
        """Parse a stored record.

        Raises:
            ValueError: If the stored text is not a valid record.
        """
        return cls.model_validate(orjson.loads(data))
