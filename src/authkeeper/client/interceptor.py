"""Request and response hooks that connect a session to an HTTP pipeline.

:class:`AuthInterceptor` exposes the two hooks an HTTP pipeline needs:

* an **outgoing-request hook** that adds the stored ``Authorization`` header
  (and the session's extra headers) to requests for registered endpoints;
* a **response-error hook** that logs the session out when the server
  answers ``401`` and then lets the failure continue to the caller.

The hooks can be wired into any :class:`httpx.Client` or
:class:`httpx.AsyncClient` through ``event_hooks``::

    interceptor = AuthInterceptor(session)
    client = httpx.Client(event_hooks=interceptor.event_hooks())

or used through :class:`~authkeeper.client.sync_client.SessionClient`, which
installs them for you.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

import httpx

from authkeeper.auth.session import SessionManager
from authkeeper.exceptions import AuthError

logger = logging.getLogger(__name__)

UNAUTHORIZED = 401


def _status_of(error: BaseException) -> Optional[int]:
    if isinstance(error, AuthError):
        return error.status_code
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    return None


class AuthInterceptor:
    """Outgoing-request and response-error hooks bound to one session.

    The interceptor keeps no state of its own; every decision reads the
    session at the time of the call.

    Args:
        session: The session whose header and endpoints are used.
    """

    def __init__(self, session: SessionManager) -> None:
        self._session = session

    @property
    def session(self) -> SessionManager:
        return self._session

    # ------------------------------------------------------------------ #
    # Outgoing requests
    # ------------------------------------------------------------------ #

    def apply(self, url: str, headers: dict[str, str]) -> dict[str, str]:
        """Return the headers a request to *url* should be sent with.

        When *url* targets a registered endpoint and a header is stored, the
        result is a copy of *headers* with ``Authorization`` and every extra
        session header set.  Otherwise it is an unmodified copy.

        Args:
            url: The absolute request URL.
            headers: The request's current headers.
        """
        merged = dict(headers)
        if not self._session.is_endpoint(url):
            return merged
        auth = self._session.get_auth()
        if not auth:
            return merged
        merged["Authorization"] = auth
        merged.update(self._session.headers)
        return merged

    def on_request(self, request: httpx.Request) -> None:
        """httpx ``request`` event hook: authorise *request* in place."""
        request.headers.update(self.apply(str(request.url), {}))

    # ------------------------------------------------------------------ #
    # Responses
    # ------------------------------------------------------------------ #

    def on_response(self, response: httpx.Response) -> None:
        """httpx ``response`` event hook: report a ``401`` to the session.

        The response itself is passed on to the caller unchanged.
        """
        if response.status_code == UNAUTHORIZED:
            logger.debug("401 from %s", response.request.url)
            self._session.handle_auth_failure()

    def on_response_error(self, error: BaseException) -> None:
        """Response-error hook: report a ``401`` failure, then re-raise *error*.

        The error is never swallowed; callers can write
        ``interceptor.on_response_error(exc)`` inside an ``except`` block in
        place of ``raise``.

        Raises:
            BaseException: Always *error* itself.
        """
        if _status_of(error) == UNAUTHORIZED:
            self._session.handle_auth_failure()
        raise error

    # ------------------------------------------------------------------ #
    # httpx wiring
    # ------------------------------------------------------------------ #

    def event_hooks(self) -> dict[str, list[Callable[..., Any]]]:
        """Return ``event_hooks`` for an :class:`httpx.Client`."""
        return {"request": [self.on_request], "response": [self.on_response]}

    def async_event_hooks(self) -> dict[str, list[Callable[..., Any]]]:
        """Return ``event_hooks`` for an :class:`httpx.AsyncClient`."""

        async def _on_request(request: httpx.Request) -> None:
            self.on_request(request)

        async def _on_response(response: httpx.Response) -> None:
            self.on_response(response)

        return {"request": [_on_request], "response": [_on_response]}
