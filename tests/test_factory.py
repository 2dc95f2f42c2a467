"""Tests for profile resolution, connect_and_validate() and get_adapter().

The lock file path is patched to a tmp_path location and the MySQL
adapter is replaced with a fake async context manager, so no server is
needed.
"""

import inspect
import os
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

import schema_sync.factory as factory_module
from schema_sync.adapters.mysql import AsyncMySQLAdapter
from schema_sync.factory import (
    ProfileNotFoundError,
    clear_profile_lock,
    connect_and_validate,
    get_active_profile,
    get_active_profile_name,
    get_adapter,
    read_profile_lock,
    write_profile_lock,
)

CONFIG_TOML = """
[profiles.local]
host = "127.0.0.1"
user = "root"
database = "shop"

[profiles.rds]
host = "shop.rds.amazonaws.com"
user = "admin"
database = "shop_prod"
"""


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "schema_sync.toml"
    path.write_text(CONFIG_TOML)
    return path


@pytest.fixture
def lock_file(tmp_path: Path):
    path = tmp_path / ".db-profile"
    with patch("schema_sync.factory._PROFILE_LOCK_FILE", path):
        yield path


def _clean_env() -> dict[str, str]:
    return {k: v for k, v in os.environ.items() if not k.endswith("DB_PROFILE")}


class FakeAdapter:
    """Stands in for AsyncMySQLAdapter inside ``async with``."""

    instances: list["FakeAdapter"] = []

    def __init__(self, config, database=None, *, error=None, columns=None) -> None:
        self.config = config
        self.database = database
        self.ping = AsyncMock(return_value=True, side_effect=error)
        self.query = AsyncMock(return_value=columns or [])
        self.closed = False
        FakeAdapter.instances.append(self)

    async def __aenter__(self) -> "FakeAdapter":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.closed = True


def _patch_adapter(**kwargs):
    FakeAdapter.instances = []

    def build(config, database=None):
        return FakeAdapter(config, database, **kwargs)

    return patch("schema_sync.factory.AsyncMySQLAdapter", side_effect=build)


# ============================================================================
# Profile lock file
# ============================================================================


class TestProfileLock:
    """Verify lock file read/write/clear."""

    def test_round_trip(self, lock_file: Path) -> None:
        assert read_profile_lock() is None
        write_profile_lock("local")
        assert lock_file.read_text() == "local"
        assert read_profile_lock() == "local"
        clear_profile_lock()
        assert not lock_file.exists()

    def test_blank_lock_is_none(self, lock_file: Path) -> None:
        lock_file.write_text("  \n")
        assert read_profile_lock() is None

    def test_clear_missing_is_noop(self, lock_file: Path) -> None:
        clear_profile_lock()
        assert not lock_file.exists()

    def test_lock_file_in_working_directory(self) -> None:
        source = inspect.getsource(factory_module)
        assert 'Path.cwd() / ".db-profile"' in source


class TestActiveProfileName:
    """Verify env var, then lock file, then error."""

    def test_env_var(self, lock_file: Path) -> None:
        with patch.dict(os.environ, {"DB_PROFILE": "local"}):
            assert get_active_profile_name() == "local"

    def test_env_prefix(self, lock_file: Path) -> None:
        with patch.dict(os.environ, {"SHOP_DB_PROFILE": "rds"}):
            assert get_active_profile_name(env_prefix="SHOP_") == "rds"

    def test_env_beats_lock(self, lock_file: Path) -> None:
        lock_file.write_text("rds")
        with patch.dict(os.environ, {"DB_PROFILE": "local"}):
            assert get_active_profile_name() == "local"

    def test_lock_file_fallback(self, lock_file: Path) -> None:
        lock_file.write_text("rds")
        with patch.dict(os.environ, _clean_env(), clear=True):
            assert get_active_profile_name() == "rds"

    def test_raises_when_no_profile(self, lock_file: Path) -> None:
        with patch.dict(os.environ, _clean_env(), clear=True):
            with pytest.raises(ProfileNotFoundError, match="SHOP_DB_PROFILE=<name>"):
                get_active_profile_name(env_prefix="SHOP_")

    def test_get_active_profile(self, lock_file: Path, config_file: Path) -> None:
        with patch.dict(os.environ, {"DB_PROFILE": "rds"}):
            name, profile = get_active_profile(config_path=config_file)
        assert name == "rds"
        assert profile.database == "shop_prod"

    def test_get_active_profile_unknown_name(self, lock_file: Path, config_file: Path) -> None:
        with patch.dict(os.environ, {"DB_PROFILE": "nope"}):
            with pytest.raises(ProfileNotFoundError, match="Available profiles: local, rds"):
                get_active_profile(config_path=config_file)


# ============================================================================
# connect_and_validate
# ============================================================================


class TestConnectAndValidate:
    """Verify connection, validation and lock writing."""

    @pytest.mark.asyncio
    async def test_success_writes_lock(self, lock_file: Path, config_file: Path) -> None:
        with _patch_adapter():
            result = await connect_and_validate("local", config_path=config_file)

        assert result.success is True
        assert result.profile_name == "local"
        assert lock_file.read_text() == "local"
        adapter = FakeAdapter.instances[0]
        assert adapter.database == "shop"
        assert adapter.closed is True

    @pytest.mark.asyncio
    async def test_validate_only_skips_lock(self, lock_file: Path, config_file: Path) -> None:
        with _patch_adapter():
            result = await connect_and_validate(
                "local", config_path=config_file, validate_only=True
            )
        assert result.success is True
        assert not lock_file.exists()

    @pytest.mark.asyncio
    async def test_connect_failure(self, lock_file: Path, config_file: Path) -> None:
        with _patch_adapter(error=ConnectionError("Can't connect to MySQL server")):
            result = await connect_and_validate("local", config_path=config_file)

        assert result.success is False
        assert result.error == "Failed to connect to database: Can't connect to MySQL server"
        assert not lock_file.exists()

    @pytest.mark.asyncio
    async def test_unknown_profile(self, lock_file: Path, config_file: Path) -> None:
        result = await connect_and_validate("nope", config_path=config_file)
        assert result.success is False
        assert "Available: local, rds" in result.error

    @pytest.mark.asyncio
    async def test_no_profile_configured(self, lock_file: Path, config_file: Path) -> None:
        with patch.dict(os.environ, _clean_env(), clear=True):
            result = await connect_and_validate(config_path=config_file)
        assert result.success is False
        assert "No database profile configured" in result.error

    @pytest.mark.asyncio
    async def test_missing_config_file(self, lock_file: Path, tmp_path: Path) -> None:
        result = await connect_and_validate("local", config_path=tmp_path / "absent.toml")
        assert result.success is False
        assert "Sync config not found" in result.error

    @pytest.mark.asyncio
    async def test_schema_drift(self, lock_file: Path, config_file: Path) -> None:
        columns = [{"table_name": "users", "column_name": "id"}]
        with _patch_adapter(columns=columns):
            result = await connect_and_validate(
                "local",
                expected_columns={"users": {"id", "email"}, "posts": {"id"}},
                config_path=config_file,
            )

        assert result.success is False
        assert result.schema_valid is False
        assert result.error == "Schema validation failed: 2 errors"
        assert not lock_file.exists()

    @pytest.mark.asyncio
    async def test_schema_matches(self, lock_file: Path, config_file: Path) -> None:
        columns = [{"table_name": "users", "column_name": "id"}]
        with _patch_adapter(columns=columns):
            result = await connect_and_validate(
                "local", expected_columns={"users": {"id"}}, config_path=config_file
            )

        assert result.success is True
        assert result.schema_valid is True
        assert lock_file.read_text() == "local"


# ============================================================================
# get_adapter
# ============================================================================


class TestGetAdapter:
    """Verify adapter construction from profiles."""

    def test_is_coroutine_function(self) -> None:
        assert inspect.iscoroutinefunction(get_adapter)

    @pytest.mark.asyncio
    async def test_named_profile(self, config_file: Path) -> None:
        with patch.object(AsyncMySQLAdapter, "__init__", return_value=None) as mock_init:
            adapter = await get_adapter("rds", config_path=config_file)

        assert isinstance(adapter, AsyncMySQLAdapter)
        config = mock_init.call_args.args[0]
        assert config.host == "shop.rds.amazonaws.com"
        assert mock_init.call_args.kwargs["database"] == "shop_prod"

    @pytest.mark.asyncio
    async def test_database_override(self, config_file: Path) -> None:
        with patch.object(AsyncMySQLAdapter, "__init__", return_value=None) as mock_init:
            await get_adapter("local", database="scratch", config_path=config_file)
        assert mock_init.call_args.kwargs["database"] == "scratch"

    @pytest.mark.asyncio
    async def test_active_profile(self, lock_file: Path, config_file: Path) -> None:
        lock_file.write_text("local")
        with patch.dict(os.environ, _clean_env(), clear=True), \
             patch.object(AsyncMySQLAdapter, "__init__", return_value=None) as mock_init:
            await get_adapter(config_path=config_file)
        assert mock_init.call_args.kwargs["database"] == "shop"

    @pytest.mark.asyncio
    async def test_unknown_profile_raises(self, config_file: Path) -> None:
        with pytest.raises(ProfileNotFoundError):
            await get_adapter("nope", config_path=config_file)

    @pytest.mark.asyncio
    async def test_no_caching(self, config_file: Path) -> None:
        with patch.object(AsyncMySQLAdapter, "__init__", return_value=None):
            first = await get_adapter("local", config_path=config_file)
            second = await get_adapter("local", config_path=config_file)
        assert first is not second
