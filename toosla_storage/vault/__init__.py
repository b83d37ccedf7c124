"""Secret Vault — PIN protected secrets in the local medium.

Security Note (Threat Model):
    The PIN is derived into a key with a single SHA-256 digest; a short
    PIN can be brute forced by anyone reading the local medium. The vault
    protects secrets at rest from casual inspection, not from an offline
    attacker with time to spare.
"""

from .crypto import SecretRecord, derive_key, encrypt, decrypt
from .password_manager import PasswordManager

__all__ = [
    "PasswordManager",
    "SecretRecord",
    "derive_key",
    "encrypt",
    "decrypt",
]
