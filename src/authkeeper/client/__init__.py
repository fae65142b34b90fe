"""HTTP integration for authkeeper sessions.

Classes:
    :class:`AuthInterceptor` -- request and response-error hooks, usable as
    httpx ``event_hooks`` on any client.
    :class:`SessionClient` -- blocking client backed by :class:`httpx.Client`.
    :class:`AsyncSessionClient` -- non-blocking client backed by
    :class:`httpx.AsyncClient`.

Example::

    from authkeeper.client import SessionClient

    with SessionClient(session) as client:
        resp = client.get("/users")
"""

from authkeeper.client.async_client import AsyncSessionClient
from authkeeper.client.interceptor import AuthInterceptor
from authkeeper.client.sync_client import SessionClient

__all__ = ["AsyncSessionClient", "AuthInterceptor", "SessionClient"]
