"""Tests for SessionClient and AsyncSessionClient."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from authkeeper.client import AsyncSessionClient, SessionClient
from authkeeper.client.sync_client import build_error
from authkeeper.exceptions import (
    AuthError,
    ConnectionError_,
    NotFoundError,
    RequestError,
    ServerError,
)

HEADER = "Basic aWFuQG1lOmZyZWQ="
API = "https://app.example.com"


def _transport(seen: list[httpx.Request], status: int = 200, **kwargs) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(status, **kwargs)

    return httpx.MockTransport(handler)


def _failing_transport() -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    return httpx.MockTransport(handler)


@pytest.fixture
def logged_in(session):
    session.add_endpoint()
    session.set_credentials("ian@me", "fred")
    return session


class TestBuildError:
    def _response(self, status: int, **kwargs) -> httpx.Response:
        return httpx.Response(status, request=httpx.Request("GET", API), **kwargs)

    def test_success_returns_none(self) -> None:
        assert build_error(self._response(204)) is None

    @pytest.mark.parametrize(
        ("status", "expected"),
        [
            (401, AuthError),
            (403, AuthError),
            (404, NotFoundError),
            (409, RequestError),
            (500, ServerError),
            (503, ServerError),
        ],
    )
    def test_mapping(self, status: int, expected: type) -> None:
        assert isinstance(build_error(self._response(status)), expected)

    def test_status_code_on_auth_error(self) -> None:
        error = build_error(self._response(401))
        assert isinstance(error, AuthError)
        assert error.status_code == 401

    def test_message_from_json(self) -> None:
        error = build_error(self._response(404, json={"message": "no such thing"}))
        assert str(error) == "HTTP 404: no such thing"

    def test_message_from_text(self) -> None:
        error = build_error(self._response(500, text="upstream exploded"))
        assert str(error) == "HTTP 500: upstream exploded"

    def test_bare_status(self) -> None:
        assert str(build_error(self._response(500))) == "HTTP 500"


class TestSessionClient:
    def test_authorises_registered_host(self, logged_in) -> None:
        seen: list[httpx.Request] = []
        with SessionClient(logged_in, base_url=API, transport=_transport(seen)) as client:
            response = client.get("/api/things")

        assert response.status_code == 200
        assert str(seen[0].url) == f"{API}/api/things"
        assert seen[0].headers["Authorization"] == HEADER
        assert seen[0].headers["Accept"] == "application/json"

    def test_unregistered_host_gets_no_header(self, logged_in) -> None:
        seen: list[httpx.Request] = []
        with SessionClient(logged_in, transport=_transport(seen)) as client:
            client.get("https://cdn.example.com/lib.js")
        assert "Authorization" not in seen[0].headers

    def test_logged_out_sends_no_header(self, session) -> None:
        session.add_endpoint()
        seen: list[httpx.Request] = []
        with SessionClient(session, transport=_transport(seen)) as client:
            client.get(f"{API}/api/things")
        assert "Authorization" not in seen[0].headers

    def test_401_logs_out_and_raises(self, logged_in, recorder) -> None:
        seen: list[httpx.Request] = []
        with SessionClient(logged_in, transport=_transport(seen, 401)) as client:
            with pytest.raises(AuthError) as exc_info:
                client.get(f"{API}/api/things")

        assert exc_info.value.status_code == 401
        assert logged_in.get_auth() is None
        assert recorder.names == ["logout", "authentication-failure"]

    def test_next_request_after_401_is_unauthenticated(self, logged_in) -> None:
        seen: list[httpx.Request] = []
        with SessionClient(logged_in, transport=_transport(seen, 401)) as client:
            with pytest.raises(AuthError):
                client.get(f"{API}/one")
            with pytest.raises(AuthError):
                client.get(f"{API}/two")
        assert "Authorization" in seen[0].headers
        assert "Authorization" not in seen[1].headers

    def test_403_keeps_session(self, logged_in, recorder) -> None:
        seen: list[httpx.Request] = []
        with SessionClient(logged_in, transport=_transport(seen, 403)) as client:
            with pytest.raises(AuthError):
                client.get(f"{API}/api/things")
        assert logged_in.get_auth() == HEADER
        assert recorder.names == []

    def test_server_error(self, logged_in) -> None:
        seen: list[httpx.Request] = []
        with SessionClient(logged_in, transport=_transport(seen, 500)) as client:
            with pytest.raises(ServerError):
                client.get(f"{API}/api/things")
        assert logged_in.get_auth() == HEADER

    def test_connection_error(self, logged_in) -> None:
        with SessionClient(logged_in, transport=_failing_transport()) as client:
            with pytest.raises(ConnectionError_):
                client.get(f"{API}/api/things")

    def test_post_json(self, logged_in) -> None:
        seen: list[httpx.Request] = []
        with SessionClient(logged_in, transport=_transport(seen, 201)) as client:
            client.post(f"{API}/api/things", json_body={"name": "x"})
        assert seen[0].method == "POST"
        assert json.loads(seen[0].content) == {"name": "x"}

    def test_session_headers_sent(self, logged_in) -> None:
        logged_in.headers["X-Requested-With"] = "authkeeper"
        seen: list[httpx.Request] = []
        with SessionClient(logged_in, transport=_transport(seen)) as client:
            client.delete(f"{API}/api/things/1")
        assert seen[0].headers["X-Requested-With"] == "authkeeper"

    def test_requires_context_manager(self, logged_in) -> None:
        with pytest.raises(AssertionError):
            SessionClient(logged_in).get(f"{API}/x")


class TestAsyncSessionClient:
    def test_authorises_registered_host(self, logged_in) -> None:
        seen: list[httpx.Request] = []

        async def _run() -> httpx.Response:
            async with AsyncSessionClient(logged_in, transport=_transport(seen)) as client:
                return await client.get(f"{API}/api/things")

        response = asyncio.run(_run())
        assert response.status_code == 200
        assert seen[0].headers["Authorization"] == HEADER

    def test_401_logs_out_and_raises(self, logged_in, recorder) -> None:
        seen: list[httpx.Request] = []

        async def _run() -> None:
            async with AsyncSessionClient(logged_in, transport=_transport(seen, 401)) as client:
                await client.get(f"{API}/api/things")

        with pytest.raises(AuthError):
            asyncio.run(_run())
        assert logged_in.get_auth() is None
        assert recorder.names == ["logout", "authentication-failure"]

    def test_connection_error(self, logged_in) -> None:
        async def _run() -> None:
            async with AsyncSessionClient(logged_in, transport=_failing_transport()) as client:
                await client.get(f"{API}/api/things")

        with pytest.raises(ConnectionError_):
            asyncio.run(_run())
