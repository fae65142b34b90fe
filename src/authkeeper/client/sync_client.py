"""Synchronous HTTP client bound to an authentication session.

This module provides :class:`SessionClient`, a thin layer over
:class:`httpx.Client` that:

- **Authorises requests** -- the
  :class:`~authkeeper.client.interceptor.AuthInterceptor` request hook adds
  the stored header to requests for registered endpoints.
- **Reports rejections** -- a ``401`` is routed through the interceptor's
  response-error hook, which logs the session out before the
  :class:`~authkeeper.exceptions.AuthError` reaches the caller.
- **Maps errors** -- other error statuses and transport failures become
  typed :mod:`authkeeper.exceptions`.

See Also:
    :class:`~authkeeper.client.async_client.AsyncSessionClient` for the
    equivalent non-blocking implementation.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from authkeeper.auth.session import SessionManager
from authkeeper.client.interceptor import AuthInterceptor
from authkeeper.exceptions import (
    AuthError,
    ConnectionError_,
    NotFoundError,
    RequestError,
    ServerError,
)


def build_error(response: httpx.Response) -> Optional[Exception]:
    """Return the typed exception for an error *response*, or ``None`` below 400."""
    status = response.status_code
    if status < 400:
        return None

    try:
        detail = response.json()
        if isinstance(detail, dict):
            msg = detail.get("message") or detail.get("error") or detail.get("detail") or ""
        else:
            msg = str(detail)
    except ValueError:
        msg = response.text[:200] if response.text else ""

    prefix = f"HTTP {status}"
    full_msg = f"{prefix}: {msg}" if msg else prefix

    if status in (401, 403):
        return AuthError(full_msg, status_code=status)
    if status == 404:
        return NotFoundError(full_msg)
    if status >= 500:
        return ServerError(full_msg)
    return RequestError(full_msg)


class SessionClient:
    """Synchronous HTTP client that sends the session's credentials.

    Must be used as a context manager so that the underlying transport is
    opened and closed properly.

    Args:
        session: The session providing credentials and endpoints.
        base_url: Prefix for relative request URLs.  Defaults to the
            session's ``base_url``.
        timeout: Request timeout in seconds.  Defaults to the session's
            ``request.timeout``.
        transport: Optional httpx transport, e.g. :class:`httpx.MockTransport`.

    Example::

        with SessionClient(session) as client:
            response = client.get("/api/things")
    """

    def __init__(
        self,
        session: SessionManager,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._session = session
        self._interceptor = AuthInterceptor(session)
        self._base_url = base_url if base_url is not None else session.config.base_url
        self._timeout = timeout if timeout is not None else session.config.request.timeout
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    @property
    def interceptor(self) -> AuthInterceptor:
        return self._interceptor

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> SessionClient:
        self._client = httpx.Client(
            base_url=self._base_url or "",
            timeout=self._timeout,
            verify=self._session.config.request.verify_ssl,
            follow_redirects=True,
            transport=self._transport,
            event_hooks={"request": [self._interceptor.on_request]},
        )
        return self

    def __exit__(self, *args: object) -> None:
        if self._client:
            self._client.close()
            self._client = None

    # ------------------------------------------------------------------ #
    # Public request methods
    # ------------------------------------------------------------------ #

    def request(
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

        Args:
            method: HTTP method (GET, POST, PUT, PATCH, DELETE).
            url: Absolute URL, or a path relative to the base URL.
            params: Query parameters.
            headers: Extra request headers.
            json_body: JSON-serialisable body.
            body: Raw string body.
            data: Form-encoded body.

        Returns:
            The :class:`httpx.Response` from the server.

        Raises:
            AuthError: On 401 / 403.  A 401 also logs the session out.
            NotFoundError: On 404.
            RequestError: On any other 4xx.
            ServerError: On 5xx.
            ConnectionError_: On network or timeout errors.
        """
        assert self._client is not None, "Client not initialised -- use as context manager"

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
            response = self._client.request(method, url, **kwargs)
        except httpx.TransportError as exc:
            raise ConnectionError_(f"Request to {url} failed: {exc}") from exc

        self._map_response_error(response)
        return response

    def get(self, url: str, **kwargs: Any) -> httpx.Response:
        """Send a GET request."""
        return self.request("GET", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> httpx.Response:
        """Send a POST request."""
        return self.request("POST", url, **kwargs)

    def put(self, url: str, **kwargs: Any) -> httpx.Response:
        """Send a PUT request."""
        return self.request("PUT", url, **kwargs)

    def patch(self, url: str, **kwargs: Any) -> httpx.Response:
        """Send a PATCH request."""
        return self.request("PATCH", url, **kwargs)

    def delete(self, url: str, **kwargs: Any) -> httpx.Response:
        """Send a DELETE request."""
        return self.request("DELETE", url, **kwargs)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _map_response_error(self, response: httpx.Response) -> None:
        """Raise a typed exception for error HTTP status codes."""
        exc = build_error(response)
        if exc is None:
            return
        if isinstance(exc, AuthError):
            self._interceptor.on_response_error(exc)
        raise exc
