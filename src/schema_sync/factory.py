"""Connection profile resolution and adapter factory.

Profiles live in ``schema_sync.toml``.  The active profile is chosen by:

1. ``{prefix}DB_PROFILE`` env var (for initial connect or CI/CD)
2. ``.db-profile`` lock file in the working directory (written by a
   successful ``schema-sync connect``)
3. Otherwise ``ProfileNotFoundError``
"""

import logging
import os
from pathlib import Path

from schema_sync.adapters.mysql import AsyncMySQLAdapter
from schema_sync.config.loader import load_sync_config
from schema_sync.config.models import ConnectionConfig, DatabaseProfile
from schema_sync.schema.comparator import validate_schema
from schema_sync.schema.introspector import SchemaIntrospector
from schema_sync.schema.models import ConnectionResult

logger = logging.getLogger(__name__)

# Profile lock file path
_PROFILE_LOCK_FILE = Path.cwd() / ".db-profile"


class ProfileNotFoundError(Exception):
    """Raised when no database profile is configured."""

    pass


# ============================================================================
# Profile Lock File Operations
# ============================================================================


def read_profile_lock() -> str | None:
    """Read profile name from lock file.

    Returns:
        Profile name if lock file exists, None otherwise
    """
    if _PROFILE_LOCK_FILE.exists():
        return _PROFILE_LOCK_FILE.read_text().strip() or None
    return None


def write_profile_lock(profile_name: str) -> None:
    """Write profile name to lock file.

    Only call this after a successful connection test.
    """
    _PROFILE_LOCK_FILE.write_text(profile_name)


def clear_profile_lock() -> None:
    """Remove profile lock file."""
    if _PROFILE_LOCK_FILE.exists():
        _PROFILE_LOCK_FILE.unlink()


def get_active_profile_name(env_prefix: str = "") -> str:
    """Get active profile name from env var or lock file.

    Args:
        env_prefix: Prepended to ``DB_PROFILE`` for the env var lookup
            (``"APP_"`` reads ``APP_DB_PROFILE``).

    Raises:
        ProfileNotFoundError: If no profile is configured
    """
    env_profile = os.environ.get(f"{env_prefix}DB_PROFILE")
    if env_profile:
        return env_profile

    lock_profile = read_profile_lock()
    if lock_profile:
        return lock_profile

    raise ProfileNotFoundError(
        "No database profile configured.\n"
        f"Run: {env_prefix}DB_PROFILE=<name> schema-sync connect"
    )


def get_active_profile(
    env_prefix: str = "",
    config_path: Path | None = None,
) -> tuple[str, DatabaseProfile]:
    """Get active profile name and configuration.

    Raises:
        ProfileNotFoundError: If no profile is configured or the
            configured name is missing from schema_sync.toml
        FileNotFoundError: If schema_sync.toml does not exist
    """
    profile_name = get_active_profile_name(env_prefix=env_prefix)
    config = load_sync_config(config_path)

    if profile_name not in config.profiles:
        raise ProfileNotFoundError(
            f"Profile '{profile_name}' not found in schema_sync.toml.\n"
            f"Available profiles: {', '.join(config.profiles.keys())}"
        )

    return profile_name, config.profiles[profile_name]


def resolve_connection(profile: DatabaseProfile) -> ConnectionConfig:
    """Resolve a profile to credentials, reading ``password_env`` if set.

    Example:
        >>> profile = DatabaseProfile(host="db", user="app", password="stored")
        >>> resolve_connection(profile).password
        'stored'
    """
    return profile.connection_config()


# ============================================================================
# Connection and Validation
# ============================================================================


async def connect_and_validate(
    profile_name: str | None = None,
    expected_columns: dict[str, set[str]] | None = None,
    env_prefix: str = "",
    config_path: Path | None = None,
    validate_only: bool = False,
) -> ConnectionResult:
    """Connect to a profile's database and optionally validate its schema.

    Writes the profile lock on success (unless *validate_only*), so later
    commands pick the same profile without an env var.

    Args:
        profile_name: Profile from schema_sync.toml.  If None, resolved
            from the env var or lock file.
        expected_columns: Table name to column names, usually
            ``expected_columns(document)``.  When None only connectivity
            is checked.
        env_prefix: Prefix for the ``DB_PROFILE`` env var lookup.
        config_path: Alternate schema_sync.toml location.
        validate_only: Skip writing the lock file.

    Example:
        result = await connect_and_validate("local")
        if not result.success:
            print(result.error)
    """
    if profile_name is None:
        try:
            profile_name = get_active_profile_name(env_prefix=env_prefix)
        except ProfileNotFoundError as e:
            return ConnectionResult(success=False, error=str(e))

    try:
        config = load_sync_config(config_path)
    except (FileNotFoundError, ValueError) as e:
        return ConnectionResult(success=False, profile_name=profile_name, error=str(e))

    if profile_name not in config.profiles:
        available = ", ".join(config.profiles.keys())
        return ConnectionResult(
            success=False,
            profile_name=profile_name,
            error=f"Profile '{profile_name}' not found. Available: {available}",
        )

    profile = config.profiles[profile_name]

    try:
        async with AsyncMySQLAdapter(
            resolve_connection(profile), database=profile.database
        ) as client:
            introspector = SchemaIntrospector(client)
            await introspector.test_connection()
            actual_columns = (
                await introspector.get_column_names() if expected_columns is not None else None
            )
    except Exception as e:
        logger.warning(f"Connection to profile {profile_name} failed: {e}")
        return ConnectionResult(
            success=False,
            profile_name=profile_name,
            error=f"Failed to connect to database: {e}",
        )

    if actual_columns is None:
        if not validate_only:
            write_profile_lock(profile_name)
        return ConnectionResult(success=True, profile_name=profile_name)

    validation = validate_schema(actual_columns, expected_columns)
    if not validation.valid:
        return ConnectionResult(
            success=False,
            profile_name=profile_name,
            schema_valid=False,
            schema_report=validation,
            error=f"Schema validation failed: {validation.error_count} errors",
        )

    if not validate_only:
        write_profile_lock(profile_name)
    return ConnectionResult(
        success=True,
        profile_name=profile_name,
        schema_valid=True,
        schema_report=validation,
    )


# ============================================================================
# Database Adapter Factory
# ============================================================================


async def get_adapter(
    profile_name: str | None = None,
    database: str | None = None,
    env_prefix: str = "",
    config_path: Path | None = None,
) -> AsyncMySQLAdapter:
    """Create an adapter for a profile.  No caching; the caller closes it.

    Args:
        profile_name: Profile from schema_sync.toml.  If None, the active
            profile is used.
        database: Database to select.  Defaults to the profile's
            ``database``.

    Raises:
        ProfileNotFoundError: If no profile is configured or found.
    """
    if profile_name is None:
        profile_name, profile = get_active_profile(env_prefix=env_prefix, config_path=config_path)
    else:
        config = load_sync_config(config_path)
        if profile_name not in config.profiles:
            raise ProfileNotFoundError(
                f"Profile '{profile_name}' not found. "
                f"Available: {', '.join(config.profiles.keys())}"
            )
        profile = config.profiles[profile_name]

    return AsyncMySQLAdapter(resolve_connection(profile), database=database or profile.database)
