"""Backend client factory.

Supports two configuration modes:
1. Profile mode (db-builder.toml + .db-builder-profile): named backends
2. Direct mode ({prefix}DB_BUILDER_API_URL or the default production URL)

Usage:
    from db_builder.factory import get_client

    client = get_client(env_prefix="APP_")
    async with client:
        me = await client.get_current_user()
"""

import logging
import os
from pathlib import Path

from db_builder.client.http import DEFAULT_API_URL, ApiClient
from db_builder.client.tokens import FileTokenStore, TokenStore
from db_builder.config.loader import default_config_path, load_client_config
from db_builder.config.models import DEFAULT_SESSION_FILE, ClientConfig, ClientProfile

logger = logging.getLogger(__name__)

# Profile lock file path
_PROFILE_LOCK_FILE = Path.cwd() / ".db-builder-profile"


class ProfileNotFoundError(Exception):
    """Raised when no backend profile is configured."""

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

    Only call this after the profile's backend answered a login.
    """
    _PROFILE_LOCK_FILE.write_text(profile_name)


def clear_profile_lock() -> None:
    """Remove profile lock file."""
    if _PROFILE_LOCK_FILE.exists():
        _PROFILE_LOCK_FILE.unlink()


def get_active_profile_name(env_prefix: str = "") -> str:
    """Get active profile name from env var or lock file.

    Priority:
    1. {env_prefix}DB_BUILDER_PROFILE env var
    2. .db-builder-profile file (profile of the last successful login)
    3. Raise ProfileNotFoundError

    Raises:
        ProfileNotFoundError: If no profile is configured
    """
    env_profile = os.environ.get(f"{env_prefix}DB_BUILDER_PROFILE")
    if env_profile:
        return env_profile

    lock_profile = read_profile_lock()
    if lock_profile:
        return lock_profile

    raise ProfileNotFoundError(
        "No backend profile configured.\n"
        f"Set {env_prefix}DB_BUILDER_PROFILE=<name> or run: db-builder login --profile <name>"
    )


def get_active_profile(
    env_prefix: str = "",
    config_path: Path | None = None,
) -> tuple[str, ClientProfile]:
    """Get active profile name and configuration.

    Raises:
        ProfileNotFoundError: If no profile configured
        FileNotFoundError: If db-builder.toml is missing
        KeyError: If profile not found in db-builder.toml
    """
    profile_name = get_active_profile_name(env_prefix=env_prefix)
    config = load_client_config(config_path)
    return profile_name, _profile_from(config, profile_name)


def _profile_from(config: ClientConfig, profile_name: str) -> ClientProfile:
    if profile_name not in config.profiles:
        raise KeyError(
            f"Profile '{profile_name}' not found in db-builder.toml.\n"
            f"Available profiles: {', '.join(config.profiles.keys())}"
        )
    return config.profiles[profile_name]


# ============================================================================
# Client Factory
# ============================================================================


def resolve_profile(
    profile_name: str | None = None,
    env_prefix: str = "",
    config_path: Path | None = None,
) -> tuple[str | None, ClientProfile, str]:
    """Resolve connection settings for a new client.

    An explicit ``profile_name`` must exist in the config file.  Otherwise
    the active profile is used when a config file exists and a profile is
    selected; failing that, ``{env_prefix}DB_BUILDER_API_URL`` or the
    default backend URL.

    Returns:
        Tuple of (profile name or None, ClientProfile, session file)

    Raises:
        FileNotFoundError: If ``profile_name`` is given but no config exists
        KeyError: If the selected profile is not in the config
    """
    path = config_path or default_config_path()

    if profile_name is not None:
        config = load_client_config(path)
        return profile_name, _profile_from(config, profile_name), config.session_file

    if path.exists():
        config = load_client_config(path)
        try:
            name = get_active_profile_name(env_prefix=env_prefix)
        except ProfileNotFoundError:
            logger.debug("No active profile; falling back to direct mode")
        else:
            return name, _profile_from(config, name), config.session_file
        session_file = config.session_file
    else:
        session_file = DEFAULT_SESSION_FILE

    base_url = os.environ.get(f"{env_prefix}DB_BUILDER_API_URL") or DEFAULT_API_URL
    return None, ClientProfile(base_url=base_url), session_file


def get_client(
    profile_name: str | None = None,
    env_prefix: str = "",
    config_path: Path | None = None,
    token_store: TokenStore | None = None,
) -> ApiClient:
    """Build an ``ApiClient`` for the resolved profile.

    The session is persisted in the profile's session file unless a
    ``token_store`` is given.

    Example:
        >>> client = get_client("staging")
        >>> client.base_url
        'https://staging.example.com/api/v1'
    """
    name, profile, session_file = resolve_profile(profile_name, env_prefix, config_path)
    logger.debug("Using profile %s (%s)", name or "<direct>", profile.base_url)

    if token_store is None:
        token_store = FileTokenStore(Path(session_file))

    return ApiClient(
        base_url=profile.base_url,
        token_store=token_store,
        retry_count=profile.retry_count,
        retry_delay=profile.retry_delay,
        timeout=profile.timeout,
    )
