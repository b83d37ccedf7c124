"""
Storage Configuration — Remote endpoint and sync settings.

Reads settings from environment variables:
    TOOSLA_URL = <base url of the Toosla API, e.g. https://toosla.me>
    TOOSLA_REMOTE_PATH = <path of the snapshot document on the remote storage>
    TOOSLA_TIMEOUT = <seconds before a remote call is abandoned>
    TOOSLA_SYNC_INTERVAL = <seconds between periodic reconciliations>

Security Note:
    Credentials are never part of the configuration; they live encrypted
    in the secret vault under ``storage.credentials``.
"""
import os
import logging
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator

from .conf import (
    DEFAULT_URL,
    DEFAULT_REMOTE_PATH,
    DEFAULT_TIMEOUT,
    DEFAULT_SYNC_INTERVAL,
    API_STORAGE_LOGIN,
    API_STORAGE_READ,
    API_STORAGE_WRITE,
)

logger = logging.getLogger("toosla.storage")


class StorageConfig(BaseModel):
    """Validated remote storage configuration."""

    url: str = Field(default=DEFAULT_URL)
    remote_path: str = Field(default=DEFAULT_REMOTE_PATH)
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    sync_interval: float = Field(default=DEFAULT_SYNC_INTERVAL, ge=1)

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate the endpoint is an http(s) URL; drop any trailing slash."""
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"Unsupported storage url: {v}")
        return v.rstrip("/")

    @field_validator("remote_path")
    @classmethod
    def validate_remote_path(cls, v: str) -> str:
        """Remote paths are absolute."""
        if not v or not v.strip():
            raise ValueError("remote_path can not be null or empty")
        v = v.strip()
        return v if v.startswith("/") else "/" + v

    @property
    def login_url(self) -> str:
        return self.url + API_STORAGE_LOGIN

    @property
    def read_url(self) -> str:
        return self.url + API_STORAGE_READ

    @property
    def write_url(self) -> str:
        return self.url + API_STORAGE_WRITE

    @classmethod
    def from_env(cls) -> "StorageConfig":
        """Create StorageConfig by loading values from environment.

        Unset variables fall back to the field defaults.

        Returns:
            Populated StorageConfig instance.
        """
        values = {}
        for field, name in (
            ("url", "TOOSLA_URL"),
            ("remote_path", "TOOSLA_REMOTE_PATH"),
            ("timeout", "TOOSLA_TIMEOUT"),
            ("sync_interval", "TOOSLA_SYNC_INTERVAL"),
        ):
            value = os.environ.get(name)
            if value is not None:
                values[field] = value
        config = cls(**values)
        logger.debug(
            "Storage configured for %s (timeout=%ss)", config.url, config.timeout
        )
        return config
