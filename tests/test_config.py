"""Tests for StorageConfig and the timestamp helpers."""
from datetime import datetime, timezone, timedelta

import pytest
from pydantic import ValidationError as PydanticValidationError

from toosla_storage import StorageConfig
from toosla_storage.utils import format_timestamp, parse_timestamp


class TestStorageConfig:
    """Tests for StorageConfig."""

    def test_defaults(self):
        """Test default endpoint and derived urls."""
        config = StorageConfig()
        assert config.url == "http://localhost:9090"
        assert config.remote_path == "/Toosla/data.json"
        assert config.login_url == "http://localhost:9090/api/storage/login"
        assert config.read_url == "http://localhost:9090/api/storage/read"
        assert config.write_url == "http://localhost:9090/api/storage/write"

    def test_trailing_slash_removed(self):
        """Test a trailing slash in the url is dropped."""
        config = StorageConfig(url="https://toosla.me/")
        assert config.read_url == "https://toosla.me/api/storage/read"

    def test_remote_path_made_absolute(self):
        """Test remote paths always start with a slash."""
        assert StorageConfig(remote_path="Toosla/x.json").remote_path == "/Toosla/x.json"

    @pytest.mark.parametrize("values", [
        {"url": "ftp://toosla.me"},
        {"url": "toosla.me"},
        {"timeout": 0},
        {"sync_interval": 0},
        {"remote_path": "  "},
    ])
    def test_invalid(self, values):
        """Test invalid settings are refused."""
        with pytest.raises(PydanticValidationError):
            StorageConfig(**values)

    def test_from_env(self, monkeypatch):
        """Test values are read from the environment."""
        monkeypatch.setenv("TOOSLA_URL", "https://toosla.me")
        monkeypatch.setenv("TOOSLA_REMOTE_PATH", "/Other/data.json")
        monkeypatch.setenv("TOOSLA_TIMEOUT", "2.5")
        monkeypatch.setenv("TOOSLA_SYNC_INTERVAL", "60")
        config = StorageConfig.from_env()
        assert config.url == "https://toosla.me"
        assert config.remote_path == "/Other/data.json"
        assert config.timeout == 2.5
        assert config.sync_interval == 60

    def test_from_env_defaults(self, monkeypatch):
        """Test unset variables fall back to defaults."""
        for name in ("TOOSLA_URL", "TOOSLA_REMOTE_PATH", "TOOSLA_TIMEOUT", "TOOSLA_SYNC_INTERVAL"):
            monkeypatch.delenv(name, raising=False)
        assert StorageConfig.from_env() == StorageConfig()


class TestTimestamps:
    """Tests for format_timestamp/parse_timestamp."""

    def test_format_milliseconds(self):
        """Test ISO-8601 UTC with milliseconds."""
        value = datetime(2025, 6, 1, 10, 0, 0, 123456, tzinfo=timezone.utc)
        assert format_timestamp(value) == "2025-06-01T10:00:00.123Z"

    def test_format_converts_to_utc(self):
        """Test aware timestamps are converted to UTC."""
        value = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone(timedelta(hours=2)))
        assert format_timestamp(value) == "2025-06-01T10:00:00.000Z"

    def test_parse_iso(self):
        """Test ISO-8601 with a Z suffix."""
        assert parse_timestamp("2025-06-01T10:00:00.123Z") == datetime(
            2025, 6, 1, 10, 0, 0, 123000, tzinfo=timezone.utc
        )

    def test_parse_http_date(self):
        """Test the HTTP date format."""
        assert parse_timestamp("Sun, 01 Jun 2025 10:00:00 GMT") == datetime(
            2025, 6, 1, 10, 0, 0, tzinfo=timezone.utc
        )

    def test_parse_naive_is_utc(self):
        """Test timestamps without zone are taken as UTC."""
        assert parse_timestamp("2025-06-01T10:00:00").tzinfo is not None

    @pytest.mark.parametrize("value", [None, "", "  ", "yesterday"])
    def test_parse_invalid(self, value):
        """Test missing or unparsable values give None."""
        assert parse_timestamp(value) is None
