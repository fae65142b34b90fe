"""Authentication session core.

The main entry points are:

- :class:`SessionManager` -- owns the credential lifecycle and liveness.
- :class:`AuthenticationProbe` -- verifies credentials with one request and
  returns a :class:`LoginFuture`.
- :class:`EndpointRegistry` -- the set of hostnames that need credentials.
- :class:`KeyValueStore` and its :class:`MemoryStore` / :class:`FileStore`
  backends, wrapped by :class:`CredentialStore`.
- :func:`encode_basic_auth` -- builds a ``Basic`` header value.

Typical usage::

    from authkeeper.auth import AuthenticationProbe, SessionManager

    session = SessionManager(config)
    AuthenticationProbe(session).login("ian@me", "fred").result()
"""

from authkeeper.auth.basic import encode_basic_auth
from authkeeper.auth.credential_store import (
    CredentialStore,
    FileStore,
    KeyValueStore,
    MemoryStore,
)
from authkeeper.auth.endpoints import EndpointRegistry
from authkeeper.auth.monitor import LivenessMonitor
from authkeeper.auth.probe import AuthenticationProbe, LoginFuture
from authkeeper.auth.session import SessionManager

__all__ = [
    "AuthenticationProbe",
    "CredentialStore",
    "EndpointRegistry",
    "FileStore",
    "KeyValueStore",
    "LivenessMonitor",
    "LoginFuture",
    "MemoryStore",
    "SessionManager",
    "encode_basic_auth",
]
