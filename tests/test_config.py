"""Tests for the db-builder.toml loader and config models."""

import textwrap
from pathlib import Path

import pytest
from pydantic import ValidationError

from db_builder.config import load_client_config
from db_builder.config.models import DEFAULT_SESSION_FILE, ClientConfig, ClientProfile


class TestLoadClientConfig:
    """load_client_config() as a standalone TOML loader."""

    def test_load_valid_toml(self, tmp_path: Path) -> None:
        """Profiles and session settings are parsed."""
        toml_content = textwrap.dedent("""\
            [profiles.prod]
            base_url = "https://api.example.com/api/v1"
            description = "Production"
            timeout = 10
            retry_count = 5

            [profiles.local]
            base_url = "http://localhost:3000/api/v1"
            retry_delay = 0.5

            [session]
            file = ".sessions/prod.json"
        """)
        config_file = tmp_path / "db-builder.toml"
        config_file.write_text(toml_content)

        config = load_client_config(config_file)

        assert isinstance(config, ClientConfig)
        assert set(config.profiles) == {"prod", "local"}
        prod = config.profiles["prod"]
        assert prod.description == "Production"
        assert prod.timeout == 10
        assert prod.retry_count == 5
        assert config.profiles["local"].retry_delay == 0.5
        assert config.session_file == ".sessions/prod.json"

    def test_load_minimal_toml(self, tmp_path: Path) -> None:
        """Defaults fill everything but base_url."""
        config_file = tmp_path / "db-builder.toml"
        config_file.write_text('[profiles.dev]\nbase_url = "http://dev/api/v1"\n')

        config = load_client_config(config_file)
        dev = config.profiles["dev"]
        assert (dev.timeout, dev.retry_count, dev.retry_delay) == (30.0, 3, 1.0)
        assert config.session_file == DEFAULT_SESSION_FILE

    def test_load_empty_profiles(self, tmp_path: Path) -> None:
        config_file = tmp_path / "db-builder.toml"
        config_file.write_text("")
        assert load_client_config(config_file).profiles == {}

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError, match="db-builder.toml"):
            load_client_config(tmp_path / "db-builder.toml")

    def test_default_path_uses_cwd(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        """Without a path, db-builder.toml in the cwd is read."""
        (tmp_path / "db-builder.toml").write_text('[profiles.a]\nbase_url = "http://a"\n')
        monkeypatch.chdir(tmp_path)
        assert list(load_client_config().profiles) == ["a"]

    def test_invalid_profile(self, tmp_path: Path) -> None:
        """Out-of-range values are rejected."""
        config_file = tmp_path / "db-builder.toml"
        config_file.write_text('[profiles.a]\nbase_url = "http://a"\nretry_count = -1\n')
        with pytest.raises(ValidationError):
            load_client_config(config_file)


class TestClientProfile:
    def test_requires_base_url(self) -> None:
        with pytest.raises(ValidationError):
            ClientProfile()

    def test_timeout_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            ClientProfile(base_url="http://a", timeout=0)
