"""Authentication probe -- verify freshly entered credentials.

:meth:`AuthenticationProbe.login` stores the credentials right away, then
sends a single ``GET`` to the configured ``authenticate_url`` carrying the
new header.  A ``200`` confirms the user; anything else (including a network
failure) purges the credentials again.

The probe talks to the server through its own plain :class:`httpx.Client`,
never through a client that has the
:class:`~authkeeper.client.interceptor.AuthInterceptor` installed, so its
request is not rewritten by the hooks the login itself feeds.

There is no retry and, unless the host supplies a client with one, no
timeout: a request that never completes leaves the future pending.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional

import httpx

from authkeeper.auth.endpoints import resolve_url
from authkeeper.auth.session import SessionManager
from authkeeper.events import SessionEvent
from authkeeper.exceptions import AuthError

logger = logging.getLogger(__name__)


class LoginFuture(Future):
    """Single-resolution result of a login attempt.

    A standard :class:`concurrent.futures.Future` (``result()``,
    ``exception()``, ``add_done_callback()``; awaitable through
    :func:`asyncio.wrap_future`) with two chaining conveniences.  Callbacks
    registered after the outcome is known run immediately.

    Example::

        probe.login("ian@me", "fred") \\
            .success(lambda: print("welcome")) \\
            .error(lambda exc: print("rejected:", exc))
    """

    def success(self, fn: Callable[[], Any]) -> LoginFuture:
        """Call *fn* with no arguments if the login succeeds.  Returns ``self``."""

        def _callback(future: Future) -> None:
            if not future.cancelled() and future.exception() is None:
                fn()

        self.add_done_callback(_callback)
        return self

    def error(self, fn: Callable[[BaseException], Any]) -> LoginFuture:
        """Call *fn* with the failure if the login fails.  Returns ``self``."""

        def _callback(future: Future) -> None:
            if future.cancelled():
                return
            exc = future.exception()
            if exc is not None:
                fn(exc)

        self.add_done_callback(_callback)
        return self


class AuthenticationProbe:
    """Check credentials against the server and report the outcome.

    Args:
        session: The session manager that receives the credentials.
        client: The HTTP client used for the check.  Defaults to a new
            :class:`httpx.Client` with no timeout, owned (and closed) by the
            probe.  It must not have the auth interceptor installed.
        max_workers: Size of the worker pool that waits for responses.

    Example::

        probe = AuthenticationProbe(session)
        future = probe.login("ian@me", "fred")
        future.result()  # raises AuthError if the server said no
    """

    def __init__(
        self,
        session: SessionManager,
        client: Optional[httpx.Client] = None,
        max_workers: int = 4,
    ) -> None:
        self._session = session
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=None, follow_redirects=True)
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="authkeeper-probe"
        )

    @property
    def authenticate_url(self) -> str:
        """The absolute URL the probe requests."""
        config = self._session.config
        return str(resolve_url(config.authenticate_url, config.base_url))

    def login(
        self,
        username: str,
        password: str,
        headers: Optional[dict[str, str]] = None,
    ) -> LoginFuture:
        """Store the credentials and verify them with one request.

        The credentials are stored before the request is sent, so
        :meth:`~SessionManager.get_auth` returns the new header while the
        check is in flight.  On a ``200`` response a ``login`` event carrying
        *username* is emitted and the future resolves to ``None``; otherwise
        the session is logged out, ``authentication-failed`` is emitted with
        *username*, and the future fails with
        :class:`~authkeeper.exceptions.AuthError`.

        Args:
            username: The user name.
            password: The clear-text password.
            headers: Extra headers for this request only.  They override the
                session's own extra headers.

        Returns:
            A :class:`LoginFuture` settled once the response arrives.
        """
        logger.debug("Login requested for %s", username)
        self._session.set_credentials(username, password)

        request_headers = {
            "Accept": "application/json",
            "Authorization": self._session.get_auth() or "",
        }
        request_headers.update(self._session.headers)
        request_headers.update(headers or {})

        future = LoginFuture()
        future.set_running_or_notify_cancel()
        self._executor.submit(self._verify, future, username, request_headers)
        return future

    def close(self) -> None:
        """Wait for in-flight checks, then release the worker pool and client."""
        self._executor.shutdown(wait=True)
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> AuthenticationProbe:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _verify(
        self,
        future: LoginFuture,
        username: str,
        headers: dict[str, str],
    ) -> None:
        try:
            response = self._client.get(self.authenticate_url, headers=headers)
        except httpx.HTTPError as exc:
            logger.debug("Authentication request failed: %s", exc)
            self._reject(future, username, AuthError(f"Authentication request failed: {exc}"))
            return
        except Exception as exc:
            self._reject(future, username, exc)
            return

        if response.status_code != 200:
            self._reject(
                future,
                username,
                AuthError(
                    f"Authentication rejected: HTTP {response.status_code}",
                    status_code=response.status_code,
                ),
            )
            return

        logger.debug("Successfully authenticated")
        self._session.events.emit(SessionEvent.LOGIN, username)
        future.set_result(None)

    def _reject(self, future: LoginFuture, username: str, error: BaseException) -> None:
        logger.debug("Test authentication failed")
        self._session.logout()
        self._session.events.emit(SessionEvent.AUTHENTICATION_FAILED, username)
        future.set_exception(error)
