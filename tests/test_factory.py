"""Tests for profile resolution and the client factory."""

import os
import textwrap
from pathlib import Path
from unittest.mock import patch

import pytest

from db_builder.client.http import DEFAULT_API_URL, ApiClient
from db_builder.client.tokens import AUTH_TOKEN_KEY, FileTokenStore, MemoryTokenStore
from db_builder.factory import (
    ProfileNotFoundError,
    clear_profile_lock,
    get_active_profile,
    get_active_profile_name,
    get_client,
    read_profile_lock,
    resolve_profile,
    write_profile_lock,
)

ENV_KEYS = ("DB_BUILDER_PROFILE", "DB_BUILDER_API_URL", "APP_DB_BUILDER_PROFILE", "APP_DB_BUILDER_API_URL")


def _clean_env() -> dict[str, str]:
    return {k: v for k, v in os.environ.items() if k not in ENV_KEYS}


def _write_config(tmp_path: Path) -> Path:
    config_file = tmp_path / "db-builder.toml"
    config_file.write_text(textwrap.dedent("""\
        [profiles.prod]
        base_url = "https://api.example.com/api/v1"
        retry_count = 1

        [profiles.local]
        base_url = "http://localhost:3000/api/v1"
        timeout = 5

        [session]
        file = "session.json"
    """))
    return config_file


class TestProfileLock:
    """Lock file read/write/clear."""

    def test_roundtrip(self, tmp_path: Path) -> None:
        lock_file = tmp_path / ".db-builder-profile"
        with patch("db_builder.factory._PROFILE_LOCK_FILE", lock_file):
            assert read_profile_lock() is None
            write_profile_lock("prod")
            assert read_profile_lock() == "prod"
            clear_profile_lock()
            assert not lock_file.exists()
            clear_profile_lock()

    def test_blank_lock_is_none(self, tmp_path: Path) -> None:
        lock_file = tmp_path / ".db-builder-profile"
        lock_file.write_text("  \n")
        with patch("db_builder.factory._PROFILE_LOCK_FILE", lock_file):
            assert read_profile_lock() is None


class TestGetActiveProfileName:
    def test_env_var_wins(self, tmp_path: Path) -> None:
        """{prefix}DB_BUILDER_PROFILE beats the lock file."""
        lock_file = tmp_path / ".db-builder-profile"
        lock_file.write_text("local")
        env = {**_clean_env(), "APP_DB_BUILDER_PROFILE": "prod"}
        with patch.dict(os.environ, env, clear=True), \
             patch("db_builder.factory._PROFILE_LOCK_FILE", lock_file):
            assert get_active_profile_name(env_prefix="APP_") == "prod"

    def test_lock_file_fallback(self, tmp_path: Path) -> None:
        lock_file = tmp_path / ".db-builder-profile"
        lock_file.write_text("local")
        with patch.dict(os.environ, _clean_env(), clear=True), \
             patch("db_builder.factory._PROFILE_LOCK_FILE", lock_file):
            assert get_active_profile_name() == "local"

    def test_raises_when_no_profile(self, tmp_path: Path) -> None:
        with patch.dict(os.environ, _clean_env(), clear=True), \
             patch("db_builder.factory._PROFILE_LOCK_FILE", tmp_path / "missing"):
            with pytest.raises(ProfileNotFoundError, match="db-builder login --profile"):
                get_active_profile_name()


class TestGetActiveProfile:
    def test_returns_profile(self, tmp_path: Path) -> None:
        config_file = _write_config(tmp_path)
        env = {**_clean_env(), "DB_BUILDER_PROFILE": "local"}
        with patch.dict(os.environ, env, clear=True):
            name, profile = get_active_profile(config_path=config_file)
        assert name == "local"
        assert profile.timeout == 5

    def test_unknown_profile(self, tmp_path: Path) -> None:
        config_file = _write_config(tmp_path)
        env = {**_clean_env(), "DB_BUILDER_PROFILE": "staging"}
        with patch.dict(os.environ, env, clear=True):
            with pytest.raises(KeyError, match="Available profiles: prod, local"):
                get_active_profile(config_path=config_file)


class TestResolveProfile:
    """Profile mode vs direct mode."""

    def test_explicit_profile(self, tmp_path: Path) -> None:
        name, profile, session_file = resolve_profile("prod", config_path=_write_config(tmp_path))
        assert name == "prod"
        assert profile.base_url == "https://api.example.com/api/v1"
        assert session_file == "session.json"

    def test_explicit_profile_needs_config(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            resolve_profile("prod", config_path=tmp_path / "missing.toml")

    def test_active_profile_from_config(self, tmp_path: Path) -> None:
        env = {**_clean_env(), "DB_BUILDER_PROFILE": "local"}
        with patch.dict(os.environ, env, clear=True):
            name, profile, _ = resolve_profile(config_path=_write_config(tmp_path))
        assert name == "local"

    def test_direct_mode_env_url(self, tmp_path: Path) -> None:
        env = {**_clean_env(), "APP_DB_BUILDER_API_URL": "http://custom/api/v1"}
        with patch.dict(os.environ, env, clear=True), \
             patch("db_builder.factory._PROFILE_LOCK_FILE", tmp_path / "missing"):
            name, profile, session_file = resolve_profile(
                env_prefix="APP_", config_path=tmp_path / "missing.toml"
            )
        assert name is None
        assert profile.base_url == "http://custom/api/v1"
        assert session_file == ".db-builder-session.json"

    def test_direct_mode_default_url_keeps_config_session(self, tmp_path: Path) -> None:
        """Config present but no active profile: default URL, config session file."""
        with patch.dict(os.environ, _clean_env(), clear=True), \
             patch("db_builder.factory._PROFILE_LOCK_FILE", tmp_path / "missing"):
            name, profile, session_file = resolve_profile(config_path=_write_config(tmp_path))
        assert name is None
        assert profile.base_url == DEFAULT_API_URL
        assert session_file == "session.json"


class TestGetClient:
    def test_client_from_profile(self, tmp_path: Path) -> None:
        client = get_client("local", config_path=_write_config(tmp_path), token_store=MemoryTokenStore())
        assert isinstance(client, ApiClient)
        assert client.base_url == "http://localhost:3000/api/v1"
        assert client.timeout == 5
        assert client.retry_count == 3

    def test_default_store_is_session_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """The session file is picked up relative to the cwd."""
        monkeypatch.chdir(tmp_path)
        FileTokenStore(tmp_path / "session.json").set(AUTH_TOKEN_KEY, "saved")
        client = get_client("prod", config_path=_write_config(tmp_path))
        assert client.token == "saved"
        assert client.retry_count == 1
