"""Tests for TOML profile loading and config models."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from schema_sync.config import (
    ConnectionConfig,
    DatabaseProfile,
    TableErrorPolicy,
    load_sync_config,
)
from schema_sync.config.loader import DEFAULT_CONFIG_FILE

FULL_TOML = """
[profiles.local]
host = "127.0.0.1"
user = "root"
password = "stored"
database = "shop"
description = "Local MySQL 8"

[profiles.staging]
host = "staging.db.internal"
port = 3307
user = "deploy"
password_env = "STAGING_MYSQL_PASSWORD"

[sync]
table_error_policy = "abort"
debounce_seconds = 2.5
"""


class TestLoadSyncConfig:
    """Verify loading schema_sync.toml."""

    def test_load_valid_toml(self, tmp_path: Path) -> None:
        config_file = tmp_path / DEFAULT_CONFIG_FILE
        config_file.write_text(FULL_TOML)

        config = load_sync_config(config_file)

        assert set(config.profiles) == {"local", "staging"}
        local = config.profiles["local"]
        assert local.port == 3306
        assert local.database == "shop"
        assert local.description == "Local MySQL 8"
        assert config.profiles["staging"].port == 3307
        assert config.sync.table_error_policy == TableErrorPolicy.ABORT
        assert config.sync.debounce_seconds == 2.5

    def test_sync_section_optional(self, tmp_path: Path) -> None:
        config_file = tmp_path / DEFAULT_CONFIG_FILE
        config_file.write_text('[profiles.a]\nhost = "h"\nuser = "u"\n')

        config = load_sync_config(config_file)
        assert config.sync.table_error_policy == TableErrorPolicy.CONTINUE
        assert config.sync.debounce_seconds == 1.0

    def test_empty_profiles(self, tmp_path: Path) -> None:
        config_file = tmp_path / DEFAULT_CONFIG_FILE
        config_file.write_text("")
        assert load_sync_config(config_file).profiles == {}

    def test_file_not_found_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_sync_config(tmp_path / "missing.toml")

    def test_invalid_toml_raises_value_error(self, tmp_path: Path) -> None:
        config_file = tmp_path / DEFAULT_CONFIG_FILE
        config_file.write_text("[profiles.local\nhost = ")
        with pytest.raises(ValueError, match="Invalid TOML"):
            load_sync_config(config_file)

    def test_unknown_policy_rejected(self, tmp_path: Path) -> None:
        config_file = tmp_path / DEFAULT_CONFIG_FILE
        config_file.write_text('[profiles]\n[sync]\ntable_error_policy = "retry"\n')
        with pytest.raises(ValidationError):
            load_sync_config(config_file)

    def test_default_path_reads_from_cwd_at_runtime(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        (tmp_path / DEFAULT_CONFIG_FILE).write_text(FULL_TOML)
        monkeypatch.chdir(tmp_path)
        assert "local" in load_sync_config().profiles

    def test_default_path_missing_raises_from_cwd(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        monkeypatch.chdir(tmp_path)
        with pytest.raises(FileNotFoundError):
            load_sync_config()


class TestConnectionModels:
    """Verify credential models."""

    def test_defaults(self) -> None:
        config = ConnectionConfig(host="localhost", user="root")
        assert config.port == 3306
        assert config.password == ""

    @pytest.mark.parametrize("port", [0, 70000])
    def test_port_range(self, port: int) -> None:
        with pytest.raises(ValidationError):
            ConnectionConfig(host="h", user="u", port=port)

    def test_empty_host_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ConnectionConfig(host="", user="u")

    def test_password_env_overrides_stored_password(self) -> None:
        profile = DatabaseProfile(host="h", user="u", password="stored", password_env="PW_VAR")
        with patch.dict(os.environ, {"PW_VAR": "from-env"}):
            assert profile.connection_config().password == "from-env"

    def test_password_env_unset_keeps_stored(self) -> None:
        profile = DatabaseProfile(host="h", user="u", password="stored", password_env="PW_VAR")
        with patch.dict(os.environ, {}, clear=True):
            assert profile.connection_config().password == "stored"

    def test_connection_config_drops_profile_fields(self) -> None:
        profile = DatabaseProfile(host="h", port=3307, user="u", database="shop")
        config = profile.connection_config()
        assert type(config) is ConnectionConfig
        assert config.port == 3307
