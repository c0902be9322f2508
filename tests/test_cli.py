"""Tests for the db-builder CLI.

Commands run through ``build_parser().parse_args`` and the ``cmd_*``
functions.  Backend traffic goes to an ``httpx.MockTransport``; output is
captured from a wide rich ``Console``.
"""

import inspect
import io
import json
from pathlib import Path
from unittest.mock import patch

import httpx
import pytest
from rich.console import Console

from db_builder.apikeys import generate_api_key, generate_project_api_key
from db_builder.cli import (
    _async_compare,
    _async_tables,
    build_parser,
    cmd_compare,
    cmd_delete_project,
    cmd_import,
    cmd_mask_key,
    cmd_price,
    cmd_profiles,
    cmd_projects,
    cmd_tables,
    main,
)
from db_builder.client.http import ApiClient
from db_builder.client.tokens import AUTH_TOKEN_KEY, USER_KEY, FileTokenStore, MemoryTokenStore
from db_builder.models.project import Field, FieldRelationship, Project, Table

BASE_URL = "https://api.test/api/v1"


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


@pytest.fixture
def output():
    """Replace the CLI console with one writing to a buffer."""
    buffer = io.StringIO()
    with patch("db_builder.cli.console", Console(file=buffer, width=200)):
        yield buffer


def _project() -> Project:
    rel = FieldRelationship(
        id="r1", source_field_id="f2", target_table_id="t2", target_field_id="f3"
    )
    return Project(
        id="p1",
        name="Shop",
        tables=[
            Table(
                id="t1",
                name="orders",
                fields=[
                    Field(id="f1", name="total", type="currency", required=True),
                    Field(id="f2", name="status", relationships=[rel]),
                ],
            ),
            Table(id="t2", name="customers", fields=[Field(id="f3", name="id")]),
        ],
    )


def _mock_client(routes: dict[str, object]) -> ApiClient:
    """ApiClient answering GET ``/api/v1<path>`` from ``routes``."""

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/api/v1")
        if path not in routes:
            return httpx.Response(404, json={"resource": path})
        return httpx.Response(200, json=routes[path])

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ApiClient(BASE_URL, token_store=MemoryTokenStore(), http_client=http, retry_count=0)


def _run(argv: list[str]) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


# ------------------------------------------------------------------
# Parser
# ------------------------------------------------------------------


class TestCLIArguments:
    """Argument structure and dispatch."""

    def test_prog_name(self) -> None:
        assert build_parser().prog == "db-builder"

    def test_global_options_reach_command(self) -> None:
        """--env-prefix and --profile are parsed before the subcommand."""
        with patch("sys.argv", ["db-builder", "--env-prefix", "APP_", "--profile", "prod", "whoami"]):
            with patch("db_builder.cli.cmd_whoami", return_value=0) as mock_whoami:
                assert main() == 0
        args = mock_whoami.call_args[0][0]
        assert args.env_prefix == "APP_"
        assert args.profile == "prod"

    def test_login_requires_email(self) -> None:
        with patch("sys.argv", ["db-builder", "login"]):
            with pytest.raises(SystemExit) as exc_info:
                main()
            assert exc_info.value.code == 2

    def test_command_required(self) -> None:
        with patch("sys.argv", ["db-builder"]):
            with pytest.raises(SystemExit):
                main()

    def test_price_cycle_choices(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["price", "--catalog", "c.json", "--cycle", "weekly"])


class TestAsyncWrapping:
    """Backend commands wrap async implementations with asyncio.run()."""

    def test_backend_commands_use_asyncio_run(self) -> None:
        for cmd in (cmd_tables, cmd_compare, cmd_projects, cmd_delete_project):
            assert "asyncio.run" in inspect.getsource(cmd)

    def test_local_commands_are_sync(self) -> None:
        for cmd in (cmd_profiles, cmd_price, cmd_mask_key):
            assert "asyncio.run" not in inspect.getsource(cmd)

    def test_async_implementations(self) -> None:
        assert inspect.iscoroutinefunction(_async_tables)
        assert inspect.iscoroutinefunction(_async_compare)


# ------------------------------------------------------------------
# Local commands
# ------------------------------------------------------------------


class TestMaskKey:
    def test_account_key(self, output) -> None:
        key = generate_api_key()
        assert _run(["mask-key", key]) == 0
        text = output.getvalue()
        assert key[:8] in text
        assert key not in text
        assert "account key" in text

    def test_project_key(self, output) -> None:
        assert _run(["mask-key", generate_project_api_key("p1", "Shop")]) == 0
        assert "project key" in output.getvalue()

    def test_invalid_key(self, output) -> None:
        assert _run(["mask-key", "not-a-key"]) == 1
        assert "Not a valid API key" in output.getvalue()


class TestPrice:
    def _catalog(self, tmp_path: Path) -> str:
        path = tmp_path / "pricing.json"
        path.write_text(json.dumps({
            "plans": [
                {"id": "free", "name": "Free", "price": 0},
                {"id": "basic", "name": "Basic", "price": 100, "campaignId": "c1"},
                {"id": "pro", "name": "Pro", "price": 250},
            ],
            "campaigns": [
                {"id": "c1", "name": "Spring", "discountType": "percentage", "discountValue": 20},
            ],
        }))
        return str(path)

    def test_single_plan(self, tmp_path, output) -> None:
        assert _run(["price", "--catalog", self._catalog(tmp_path), "basic"]) == 0
        text = output.getvalue()
        assert "80 TRY" in text
        assert "Spring" in text

    def test_all_available_plans(self, tmp_path, output) -> None:
        assert _run(["price", "--catalog", self._catalog(tmp_path), "--cycle", "yearly"]) == 0
        text = output.getvalue()
        assert "Basic" in text
        assert "Pro" in text
        assert "Free" not in text
        assert "800 TRY" in text

    def test_unknown_plan(self, tmp_path, output) -> None:
        assert _run(["price", "--catalog", self._catalog(tmp_path), "gold"]) == 1
        assert "gold" in output.getvalue()

    def test_missing_catalog(self, tmp_path, output) -> None:
        assert _run(["price", "--catalog", str(tmp_path / "nope.json")]) == 1
        assert "Error reading catalog" in output.getvalue()


class TestProfiles:
    def test_lists_profiles(self, tmp_path, output) -> None:
        config_file = tmp_path / "db-builder.toml"
        config_file.write_text(
            '[profiles.prod]\nbase_url = "https://api.example.com/api/v1"\n'
            'description = "Production"\n\n'
            '[profiles.local]\nbase_url = "http://localhost:3000/api/v1"\n'
        )
        with patch("db_builder.cli.read_profile_lock", return_value="prod"):
            assert _run(["--config", str(config_file), "profiles"]) == 0
        text = output.getvalue()
        assert "prod" in text
        assert "local" in text
        assert "Production" in text
        assert "current profile" in text

    def test_missing_config(self, tmp_path, output) -> None:
        assert _run(["--config", str(tmp_path / "missing.toml"), "profiles"]) == 1
        assert "Error" in output.getvalue()


# ------------------------------------------------------------------
# Backend commands
# ------------------------------------------------------------------


class TestBackendCommands:
    def test_tables(self, output) -> None:
        client = _mock_client({"/data/projects/p1": {"success": True, "data": _project().to_wire()}})
        with patch("db_builder.cli.get_client", return_value=client):
            assert _run(["tables", "p1"]) == 0
        text = output.getvalue()
        assert "orders" in text
        assert "currency" in text
        assert "one-to-many -> customers.id" in text

    def test_tables_not_found(self, output) -> None:
        with patch("db_builder.cli.get_client", return_value=_mock_client({})):
            assert _run(["tables", "p404"]) == 1
        assert "not found" in output.getvalue()

    def test_compare_reports_missing_columns(self, output) -> None:
        client = _mock_client({
            "/data/projects/p1": {"success": True, "data": _project().to_wire()},
            "/debug/tables-detailed": {
                "success": True,
                "data": [
                    {"table_name": "orders", "columns": ["id", "total"]},
                    {"table_name": "customers", "columns": ["id"]},
                    {"table_name": "pg_audit", "columns": ["id"]},
                ],
            },
        })
        with patch("db_builder.cli.get_client", return_value=client):
            assert _run(["compare", "p1"]) == 1
        text = output.getvalue()
        assert "orders.status" in text
        assert "pg_audit" not in text

    def test_compare_valid(self, output) -> None:
        client = _mock_client({
            "/data/projects/p1": {"success": True, "data": _project().to_wire()},
            "/debug/tables-detailed": [
                {"table_name": "orders", "columns": ["total", "status"]},
                {"table_name": "customers", "columns": ["id"]},
            ],
        })
        with patch("db_builder.cli.get_client", return_value=client):
            assert _run(["compare", "p1"]) == 0
        assert "All tables and fields exist" in output.getvalue()

    def test_projects_requires_login(self, output) -> None:
        with patch("db_builder.cli.get_client", return_value=_mock_client({})):
            assert _run(["projects"]) == 1
        assert "Not logged in" in output.getvalue()

    def test_delete_requires_confirm(self, output) -> None:
        with patch("db_builder.cli.get_client") as mock_get_client:
            assert _run(["delete-project", "p1"]) == 1
        mock_get_client.assert_not_called()
        assert "--confirm" in output.getvalue()

    def test_profile_error_reported(self, output) -> None:
        with patch("db_builder.cli.get_client", side_effect=KeyError("Profile 'x' not found")):
            assert _run(["--profile", "x", "whoami"]) == 1
        assert "Profile 'x' not found" in output.getvalue()


class TestImportCommand:
    def test_invalid_file(self, tmp_path, output) -> None:
        with patch("db_builder.cli.get_client") as mock_get_client:
            assert _run(["import", str(tmp_path / "missing.json")]) == 1
        mock_get_client.assert_not_called()
        assert "Invalid export" in output.getvalue()

    def test_dry_run(self, tmp_path, output) -> None:
        path = tmp_path / "export.json"
        path.write_text(json.dumps({
            "metadata": {"created_at": "2026-01-01", "project_id": "p1", "version": "1.0"},
            "project": _project().to_wire(),
        }))
        with patch("db_builder.cli.get_client", return_value=_mock_client({})):
            assert _run(["import", str(path), "--dry-run"]) == 0
        text = output.getvalue()
        assert "(dry run)" in text
        assert "2 tables, 3 fields, 1 relationships" in text


class TestSessionCommands:
    def test_logout_clears_session_file(self, tmp_path, monkeypatch, output) -> None:
        """Logout removes the stored session without building a client."""
        monkeypatch.chdir(tmp_path)
        config_file = tmp_path / "db-builder.toml"
        config_file.write_text(
            '[profiles.prod]\nbase_url = "https://api.example.com/api/v1"\n\n'
            '[session]\nfile = "session.json"\n'
        )
        store = FileTokenStore(tmp_path / "session.json")
        store.set(AUTH_TOKEN_KEY, "t")
        store.set(USER_KEY, "{}")
        lock_file = tmp_path / ".db-builder-profile"
        lock_file.write_text("prod")

        with patch("db_builder.factory._PROFILE_LOCK_FILE", lock_file), \
             patch("db_builder.cli.get_client") as mock_get_client:
            assert _run(["--config", str(config_file), "--profile", "prod", "logout"]) == 0

        mock_get_client.assert_not_called()
        assert not (tmp_path / "session.json").exists()
        assert not lock_file.exists()
        assert "Logged out" in output.getvalue()

    def test_logout_unknown_profile(self, tmp_path, output) -> None:
        config_file = tmp_path / "db-builder.toml"
        config_file.write_text('[profiles.prod]\nbase_url = "https://api.example.com/api/v1"\n')
        assert _run(["--config", str(config_file), "--profile", "staging", "logout"]) == 1
        assert "staging" in output.getvalue()

    def test_whoami_malformed_user(self, output) -> None:
        client = _mock_client({"/auth/me": {"user": {"email": "a@example.com"}}})
        client.set_tokens("t")
        with patch("db_builder.cli.get_client", return_value=client):
            assert _run(["whoami"]) == 1
        assert "Unexpected user payload" in output.getvalue()

    def test_whoami(self, output) -> None:
        client = _mock_client({"/auth/me": {"user": {"id": "u1", "email": "a@example.com"}}})
        client.set_tokens("t")
        with patch("db_builder.cli.get_client", return_value=client):
            assert _run(["whoami"]) == 0
        assert "a@example.com" in output.getvalue()
