"""End-to-end tests for the authkeeper CLI commands."""

from __future__ import annotations

import base64
import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import httpx
import pytest
from typer.testing import CliRunner

from authkeeper import __version__
from authkeeper.app import app
from authkeeper.auth import FileStore
from authkeeper.auth.credential_store import CredentialStore
from authkeeper.client import SessionClient
from authkeeper.config import config_path, session_store_path

runner = CliRunner()

BASE = "https://app.example.com"
HEADER = "Basic aWFuQG1lOmZyZWQ="


def _invoke(*args: str):
    return runner.invoke(app, ["--no-color", "--base-url", BASE, *args])


@pytest.fixture
def server(monkeypatch: pytest.MonkeyPatch) -> dict:
    """Route the CLI's HTTP traffic to an in-memory server.

    ``state["password"]`` is the only password the server accepts;
    ``state["requests"]`` collects every request it saw.
    """
    state: dict = {"password": "fred", "requests": [], "status": None}

    def handler(request: httpx.Request) -> httpx.Response:
        state["requests"].append(request)
        if state["status"] is not None:
            return httpx.Response(state["status"], json={"message": "forced"})
        if request.url.host == "cdn.example.com":
            return httpx.Response(200, json={"public": True})
        secret = f"ian@me:{state['password']}".encode()
        expected = "Basic " + base64.b64encode(secret).decode()
        if request.headers.get("Authorization") != expected:
            return httpx.Response(401, json={"message": "bad credentials"})
        if request.url.path == "/api/authenticate":
            return httpx.Response(200, json={})
        return httpx.Response(200, json={"path": request.url.path})

    transport = httpx.MockTransport(handler)
    monkeypatch.setattr(
        "authkeeper.commands.session.probe_client",
        lambda config: httpx.Client(transport=transport),
    )
    monkeypatch.setattr(
        "authkeeper.commands.session.session_client",
        lambda session: SessionClient(session, transport=transport),
    )
    monkeypatch.setenv("APP_PASSWORD", "fred")
    return state


def _stored() -> CredentialStore:
    return CredentialStore(FileStore(session_store_path()))


def _login() -> None:
    result = _invoke("login", "ian@me", "-s", "env:APP_PASSWORD")
    assert result.exit_code == 0, result.output


class TestVersion:
    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestLogin:
    def test_login_success(self, isolated_config: Path, server: dict) -> None:
        result = _invoke("login", "ian@me", "--password-source", "env:APP_PASSWORD")
        assert result.exit_code == 0, result.output
        assert 'Logged in as "ian@me"' in result.output
        assert _stored().auth_header == HEADER

        probe = server["requests"][0]
        assert str(probe.url) == f"{BASE}/api/authenticate"

    def test_login_rejected(
        self, isolated_config: Path, server: dict, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("APP_PASSWORD", "wrong")
        result = _invoke("login", "ian@me", "-s", "env:APP_PASSWORD")
        assert result.exit_code == 3
        assert "Authentication rejected" in result.output
        assert _stored().is_empty()

    def test_login_missing_password_env(
        self, isolated_config: Path, server: dict, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("APP_PASSWORD")
        result = _invoke("login", "ian@me", "-s", "env:APP_PASSWORD")
        assert result.exit_code == 1
        assert "APP_PASSWORD" in result.output
        assert server["requests"] == []

    def test_login_extra_header(self, isolated_config: Path, server: dict) -> None:
        result = _invoke("login", "ian@me", "-s", "env:APP_PASSWORD", "-H", "X-Trace=abc")
        assert result.exit_code == 0, result.output
        assert server["requests"][0].headers["X-Trace"] == "abc"

    def test_login_bad_header(self, isolated_config: Path, server: dict) -> None:
        result = _invoke("login", "ian@me", "-s", "env:APP_PASSWORD", "-H", "nonsense")
        assert result.exit_code == 2
        assert "NAME=VALUE" in result.output


class TestSessionCommands:
    def test_status_logged_in(self, isolated_config: Path, server: dict) -> None:
        _login()
        result = runner.invoke(app, ["--no-color", "--json", "--base-url", BASE, "status"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["username"] == "ian@me"
        assert data["authenticated"] is True

    def test_status_logged_out(self, isolated_config: Path) -> None:
        result = _invoke("status")
        assert result.exit_code == 3
        assert "authenticated\tFalse" in result.output

    def test_status_purges_expired_session(self, isolated_config: Path) -> None:
        _stored().save("ian@me", HEADER, datetime.now(timezone.utc) - timedelta(minutes=181))
        result = _invoke("status")
        assert result.exit_code == 3
        assert _stored().is_empty()

    def test_logout(self, isolated_config: Path, server: dict) -> None:
        _login()
        result = _invoke("logout")
        assert result.exit_code == 0
        assert "Logged out" in result.output
        assert _stored().is_empty()

    def test_activity(self, isolated_config: Path, server: dict) -> None:
        _login()
        before = _stored().last_activity
        result = _invoke("activity")
        assert result.exit_code == 0, result.output
        assert "Session extended" in result.output
        assert _stored().last_activity >= before

    def test_activity_without_session(self, isolated_config: Path) -> None:
        result = _invoke("activity")
        assert result.exit_code == 3
        assert "No active session" in result.output


class TestGet:
    def test_get_sends_stored_credentials(self, isolated_config: Path, server: dict) -> None:
        _login()
        result = _invoke("get", f"{BASE}/api/things")
        assert result.exit_code == 0, result.output
        assert "path\t/api/things" in result.output
        assert server["requests"][-1].headers["Authorization"] == HEADER

    def test_get_other_host_has_no_credentials(self, isolated_config: Path, server: dict) -> None:
        _login()
        result = _invoke("get", "https://cdn.example.com/lib.js")
        assert result.exit_code == 0, result.output
        assert "Authorization" not in server["requests"][-1].headers
        assert _stored().auth_header == HEADER

    def test_get_401_clears_session(self, isolated_config: Path, server: dict) -> None:
        _login()
        server["status"] = 401
        result = _invoke("get", f"{BASE}/api/things")
        assert result.exit_code == 3
        assert "session was cleared" in result.output
        assert _stored().is_empty()

    def test_get_not_found(self, isolated_config: Path, server: dict) -> None:
        server["status"] = 404
        result = _invoke("get", f"{BASE}/missing")
        assert result.exit_code == 4
        assert "forced" in result.output


class TestConfigCommands:
    def test_show_defaults(self, isolated_config: Path) -> None:
        result = runner.invoke(app, ["--no-color", "--json", "config", "show"])
        assert result.exit_code == 0, result.output
        assert '"session_minutes": 180.0' in result.output

    def test_set_session_minutes(self, isolated_config: Path) -> None:
        result = runner.invoke(app, ["--no-color", "config", "set", "session_minutes", "30"])
        assert result.exit_code == 0, result.output
        assert json.loads(config_path().read_text())["session_minutes"] == 30

    def test_set_invalid_value(self, isolated_config: Path) -> None:
        result = runner.invoke(app, ["--no-color", "config", "set", "session_minutes", "0"])
        assert result.exit_code == 2
        assert not config_path().exists()

    def test_set_unknown_key(self, isolated_config: Path) -> None:
        result = runner.invoke(app, ["--no-color", "config", "set", "colour", "blue"])
        assert result.exit_code == 2
        assert "Unknown setting" in result.output

    def test_add_endpoint(self, isolated_config: Path) -> None:
        result = runner.invoke(
            app, ["--no-color", "config", "add-endpoint", "https://api.example.com/v1"]
        )
        assert result.exit_code == 0, result.output
        assert "api.example.com" in result.output
        assert json.loads(config_path().read_text())["endpoints"] == [
            "https://api.example.com/v1"
        ]

    def test_add_endpoint_without_base(self, isolated_config: Path) -> None:
        result = runner.invoke(app, ["--no-color", "config", "add-endpoint"])
        assert result.exit_code == 2

    def test_set_header(self, isolated_config: Path) -> None:
        result = runner.invoke(
            app, ["--no-color", "config", "set-header", "X-Requested-With", "authkeeper"]
        )
        assert result.exit_code == 0, result.output
        assert json.loads(config_path().read_text())["headers"] == {
            "X-Requested-With": "authkeeper"
        }

    def test_configured_endpoint_used_by_get(self, isolated_config: Path, server: dict) -> None:
        runner.invoke(app, ["--no-color", "config", "add-endpoint", "https://api.example.com"])
        _login()
        result = _invoke("get", "https://api.example.com/things")
        assert result.exit_code == 0, result.output
        assert server["requests"][-1].headers["Authorization"] == HEADER
