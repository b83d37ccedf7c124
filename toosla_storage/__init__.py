"""Toosla Storage — local data mirrored to a remote storage, PIN protected secrets.

Security Note (Threat Model):
    Application data in the local mirror and in the remote snapshot is
    plain text. Only the secrets kept by the PasswordManager are
    encrypted, with a key derived from the user PIN.
"""

from .version import __version__
from .config import StorageConfig
from .exceptions import (
    TooslaError,
    ValidationError,
    NotFoundError,
    AuthenticationError,
    DecryptionError,
    StorageError,
    RemoteError,
    AuthorizationError,
    ConflictError,
    NetworkError,
)
from .medium import MemoryMedium, JSONFileMedium
from .mirror import LocalMirror
from .client import StorageClient, RetryPolicy, NoRetry, LoginResult, ReadResult
from .storage import TooslaStorage
from .vault import PasswordManager, SecretRecord
from .registry import Toosla

__all__ = [
    "__version__",
    "StorageConfig",
    "TooslaError",
    "ValidationError",
    "NotFoundError",
    "AuthenticationError",
    "DecryptionError",
    "StorageError",
    "RemoteError",
    "AuthorizationError",
    "ConflictError",
    "NetworkError",
    "MemoryMedium",
    "JSONFileMedium",
    "LocalMirror",
    "StorageClient",
    "RetryPolicy",
    "NoRetry",
    "LoginResult",
    "ReadResult",
    "TooslaStorage",
    "PasswordManager",
    "SecretRecord",
    "Toosla",
]
