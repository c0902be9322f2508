"""TOML configuration loader.

Usage:
    from db_builder.config.loader import load_client_config

    config = load_client_config(Path("db-builder.toml"))
    profile = config.profiles["prod"]
"""

import tomllib
from pathlib import Path

from db_builder.config.models import DEFAULT_SESSION_FILE, ClientConfig, ClientProfile

CONFIG_FILE_NAME = "db-builder.toml"


def default_config_path() -> Path:
    """``db-builder.toml`` in the current working directory."""
    return Path.cwd() / CONFIG_FILE_NAME


def load_client_config(config_path: Path | None = None) -> ClientConfig:
    """Load client configuration from TOML file.

    Args:
        config_path: Path to db-builder.toml (default: current directory)

    Returns:
        ClientConfig with all profiles

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config format is invalid
    """
    if config_path is None:
        config_path = default_config_path()

    if not config_path.exists():
        raise FileNotFoundError(
            f"Client config not found: {config_path}\n"
            f"Create {CONFIG_FILE_NAME} with at least one [profiles.<name>] table."
        )

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    profiles = {}
    for name, profile_data in data.get("profiles", {}).items():
        profiles[name] = ClientProfile(**profile_data)

    session_settings = data.get("session", {})

    return ClientConfig(
        profiles=profiles,
        session_file=session_settings.get("file", DEFAULT_SESSION_FILE),
    )
