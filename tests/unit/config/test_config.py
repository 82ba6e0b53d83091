"""Unit tests for config.py — AppConfig and load_config()."""

import os
from unittest.mock import patch

import pytest

from file_cloud.config import AppConfig, load_config

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

# Minimal set of required environment variables for load_config()
_REQUIRED_ENV = {
    "FC_CLIENT_ID": "test-client-id",
    "FC_CLIENT_SECRET": "test-secret",
    "FC_TENANT_ID": "test-tenant-id",
    "FC_DRIVE_USER": "user@contoso.onmicrosoft.com",
}


def _config(**overrides: object) -> AppConfig:
    values: dict[str, object] = {
        "client_id": "cid",
        "client_secret": "cs",
        "tenant_id": "tid",
        "drive_user": "u",
    }
    values.update(overrides)
    return AppConfig(**values)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# AppConfig tests
# ---------------------------------------------------------------------------


class TestAppConfig:
    def test_navigation_defaults(self) -> None:
        config = _config()
        assert config.root_folder_name == "Home"
        assert config.max_history_size == 100
        assert config.breadcrumb_max_items == 5

    def test_upload_defaults(self) -> None:
        config = _config()
        assert config.upload_chunk_size == 3_276_800
        assert config.upload_chunk_size % (320 * 1024) == 0
        assert config.max_concurrent_uploads == 3
        assert config.slow_upload is False
        assert config.debug_chunk_size == 4096
        assert config.debug_chunk_delay == 0.05

    def test_is_frozen(self) -> None:
        config = _config()
        with pytest.raises(AttributeError):
            config.slow_upload = True  # type: ignore[misc]

    def test_defaults_can_be_overridden(self) -> None:
        config = _config(root_folder_name="Início", max_history_size=10)
        assert config.root_folder_name == "Início"
        assert config.max_history_size == 10


# ---------------------------------------------------------------------------
# load_config tests
# ---------------------------------------------------------------------------


class TestLoadConfig:
    def test_reads_required_values_from_env(self) -> None:
        with patch.dict(os.environ, _REQUIRED_ENV, clear=True):
            config = load_config()
        assert config.client_id == "test-client-id"
        assert config.client_secret == "test-secret"
        assert config.tenant_id == "test-tenant-id"
        assert config.drive_user == "user@contoso.onmicrosoft.com"

    def test_uses_defaults_when_optional_values_missing(self) -> None:
        with patch.dict(os.environ, _REQUIRED_ENV, clear=True):
            config = load_config()
        assert config == _config(
            client_id="test-client-id",
            client_secret="test-secret",
            tenant_id="test-tenant-id",
            drive_user="user@contoso.onmicrosoft.com",
        )

    def test_reads_optional_values_from_env(self) -> None:
        env = {
            **_REQUIRED_ENV,
            "FC_ROOT_FOLDER_NAME": "Drive",
            "FC_MAX_HISTORY_SIZE": "25",
            "FC_BREADCRUMB_MAX_ITEMS": "7",
            "FC_UPLOAD_CHUNK_SIZE": "655360",
            "FC_MAX_CONCURRENT_UPLOADS": "5",
            "FC_DEBUG_CHUNK_SIZE": "1024",
            "FC_DEBUG_CHUNK_DELAY": "0.2",
        }
        with patch.dict(os.environ, env, clear=True):
            config = load_config()
        assert config.root_folder_name == "Drive"
        assert config.max_history_size == 25
        assert config.breadcrumb_max_items == 7
        assert config.upload_chunk_size == 655360
        assert config.max_concurrent_uploads == 5
        assert config.debug_chunk_size == 1024
        assert config.debug_chunk_delay == 0.2

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("true", True), ("1", True), ("YES", True), ("false", False), ("0", False), ("", False)],
    )
    def test_parses_slow_upload_flag(self, raw: str, expected: bool) -> None:
        with patch.dict(os.environ, {**_REQUIRED_ENV, "FC_SLOW_UPLOAD": raw}, clear=True):
            config = load_config()
        assert config.slow_upload is expected

    def test_raises_key_error_when_drive_user_missing(self) -> None:
        env = {k: v for k, v in _REQUIRED_ENV.items() if k != "FC_DRIVE_USER"}
        with patch.dict(os.environ, env, clear=True), pytest.raises(KeyError):
            load_config()

    @pytest.mark.parametrize("raw", ["1000", "0", "-327680", "327681"])
    def test_rejects_chunk_size_off_the_session_range_grid(self, raw: str) -> None:
        env = {**_REQUIRED_ENV, "FC_UPLOAD_CHUNK_SIZE": raw}
        with patch.dict(os.environ, env, clear=True), pytest.raises(ValueError, match="327680"):
            load_config()

    def test_rejects_non_numeric_chunk_size(self) -> None:
        env = {**_REQUIRED_ENV, "FC_UPLOAD_CHUNK_SIZE": "lots"}
        with patch.dict(os.environ, env, clear=True), pytest.raises(ValueError):
            load_config()
