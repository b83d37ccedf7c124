"""Toosla Storage exceptions.

Local failures (validation, missing secrets, wrong PIN) are raised to the
immediate caller; remote failures carry the HTTP status (``None`` when the
request never got a response) and the message sent back by the server.
"""
from typing import Optional


class TooslaError(Exception):
    """Base class for every error raised by toosla_storage."""


class ValidationError(TooslaError, ValueError):
    """A required input is missing or blank."""


class NotFoundError(TooslaError, LookupError):
    """No secret is stored under the requested label."""


class AuthenticationError(TooslaError):
    """Authenticated decryption failed (wrong key or tampered data)."""


class DecryptionError(TooslaError):
    """A secret can not be decrypted with the given PIN."""


class StorageError(TooslaError):
    """The local medium is unreadable or can not be written."""


class RemoteError(TooslaError):
    """Base class for failures reported by the remote storage."""

    def __init__(
        self,
        message: str = "",
        status: Optional[int] = None
    ) -> None:
        self.status = status
        self.message = message
        super().__init__(
            f"[{status}] {message}" if status is not None else message
        )


class AuthorizationError(RemoteError):
    """The remote storage rejected the credentials or the api key (401)."""


class ConflictError(RemoteError):
    """The remote copy changed after our last known timestamp (412)."""


class NetworkError(RemoteError):
    """Transport failure, timeout or unexpected status."""
