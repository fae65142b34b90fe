"""Asynchronous HTTP client -- mirrors :class:`~authkeeper.client.sync_client.SessionClient`.

:class:`AsyncSessionClient` wraps :class:`httpx.AsyncClient` with the same
request authorisation and error mapping as the synchronous client, for
applications running inside an asyncio event loop.

The session itself is synchronous: every hook reads or clears the stored
credentials without suspending, so no session state changes while a request
is awaited except through the session's own operations.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from authkeeper.auth.session import SessionManager
from authkeeper.client.interceptor import AuthInterceptor
from authkeeper.client.sync_client import build_error
from authkeeper.exceptions import AuthError, ConnectionError_


class AsyncSessionClient:
    """Asynchronous HTTP client that sends the session's credentials.

    Must be used as an async context manager.

    Args:
        session: The session providing credentials and endpoints.
        base_url: Prefix for relative request URLs.  Defaults to the
            session's ``base_url``.
        timeout: Request timeout in seconds.  Defaults to the session's
            ``request.timeout``.
        transport: Optional async httpx transport.

    Example::

        async with AsyncSessionClient(session) as client:
            response = await client.get("/api/things")
    """

    def __init__(
        self,
        session: SessionManager,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._session = session
        self._interceptor = AuthInterceptor(session)
        self._base_url = base_url if base_url is not None else session.config.base_url
        self._timeout = timeout if timeout is not None else session.config.request.timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def interceptor(self) -> AuthInterceptor:
        return self._interceptor

    async def __aenter__(self) -> AsyncSessionClient:
        hooks = self._interceptor.async_event_hooks()
        self._client = httpx.AsyncClient(
            base_url=self._base_url or "",
            timeout=self._timeout,
            verify=self._session.config.request.verify_ssl,
            follow_redirects=True,
            transport=self._transport,
            event_hooks={"request": hooks["request"]},
        )
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def request(
        self,
        method: str,
        url: str,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        json_body: Optional[Any] = None,
        body: Optional[str] = None,
        data: Optional[dict[str, Any]] = None,
    ) -> httpx.Response:
        """Send a request, authorising it when it targets a registered endpoint.

        Behaves identically to
        :meth:`~authkeeper.client.sync_client.SessionClient.request` but is
        non-blocking.
        """
        assert self._client is not None, "Client not initialised -- use as async context manager"

        merged_headers: dict[str, str] = {"Accept": "application/json"}
        merged_headers.update(headers or {})

        kwargs: dict[str, Any] = {"params": params, "headers": merged_headers}
        if data is not None:
            kwargs["data"] = data
        elif json_body is not None:
            kwargs["json"] = json_body
        elif body is not None:
            kwargs["content"] = body

        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TransportError as exc:
            raise ConnectionError_(f"Request to {url} failed: {exc}") from exc

        exc = build_error(response)
        if exc is not None:
            if isinstance(exc, AuthError):
                self._interceptor.on_response_error(exc)
            raise exc
        return response

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", url, **kwargs)

    async def put(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PUT", url, **kwargs)

    async def patch(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PATCH", url, **kwargs)

    async def delete(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("DELETE", url, **kwargs)
