"""Session manager -- owner of the credential lifecycle.

The :class:`SessionManager` is the central object of authkeeper.  A host
application constructs exactly one per user session and hands it to the
:class:`~authkeeper.auth.probe.AuthenticationProbe` (which writes
credentials into it) and the
:class:`~authkeeper.client.interceptor.AuthInterceptor` (which reads the
current header from it).

State lives in a :class:`~authkeeper.auth.credential_store.CredentialStore`
as three fields -- username, encoded header and last-activity timestamp --
that are always written and cleared together.  A session is *current* while
less than ``session_minutes`` have passed since the last recorded activity;
a background :class:`~authkeeper.auth.monitor.LivenessMonitor` and every
call to :meth:`SessionManager.username` log out sessions that are not.

See Also:
    :mod:`authkeeper.events` for the events emitted here.
"""

from __future__ import annotations

import logging
import threading
from datetime import timedelta
from typing import Optional

from authkeeper.auth.basic import encode_basic_auth
from authkeeper.auth.credential_store import CredentialStore, KeyValueStore, MemoryStore
from authkeeper.auth.endpoints import EndpointRegistry
from authkeeper.auth.monitor import LivenessMonitor
from authkeeper.clock import Clock, minutes_between, utcnow
from authkeeper.events import EventBus, EventName, Handler, SessionEvent, Subscription
from authkeeper.models import SessionConfig, SessionState

logger = logging.getLogger(__name__)


class SessionManager:
    """Hold Basic-Auth credentials and track whether the session is live.

    Construction checks the store once, so a persisted session that has
    already expired is purged immediately, and then starts the liveness
    monitor unless *start_monitor* is ``False``.  Call :meth:`close` (or use
    the manager as a context manager) to stop the monitor.

    Args:
        config: Session settings.  Defaults to :class:`SessionConfig` defaults.
        store: Backend for the three session fields.  Defaults to a fresh
            :class:`~authkeeper.auth.credential_store.MemoryStore`.
        events: Bus on which lifecycle events are emitted.  A private bus is
            created when omitted.
        clock: Source of the current time.
        start_monitor: Whether to run the periodic liveness check.

    Example::

        with SessionManager(SessionConfig(session_minutes=30)) as session:
            session.on(SessionEvent.LOGOUT, lambda: print("signed out"))
            session.set_credentials("ian@me", "fred")
            session.get_auth()  # 'Basic aWFuQG1lOmZyZWQ='
    """

    def __init__(
        self,
        config: Optional[SessionConfig] = None,
        store: Optional[KeyValueStore] = None,
        events: Optional[EventBus] = None,
        clock: Optional[Clock] = None,
        start_monitor: bool = True,
    ) -> None:
        self._config = config or SessionConfig()
        self._store = CredentialStore(store or MemoryStore(), prefix=self._config.key_prefix)
        self._events = events or EventBus()
        self._clock = clock or utcnow
        self._lock = threading.RLock()

        self.headers: dict[str, str] = dict(self._config.headers)
        self.endpoints = EndpointRegistry(self._config.base_url)
        for endpoint in self._config.endpoints:
            self.endpoints.add(endpoint)

        self._monitor = LivenessMonitor(
            self.confirm_current, self._config.check_interval_seconds
        )
        logger.debug("Session manager constructed")

        self.confirm_current()
        if start_monitor:
            self._monitor.start()

    # ------------------------------------------------------------------ #
    # Properties
    # ------------------------------------------------------------------ #

    @property
    def config(self) -> SessionConfig:
        return self._config

    @property
    def events(self) -> EventBus:
        return self._events

    @property
    def monitor(self) -> LivenessMonitor:
        return self._monitor

    # ------------------------------------------------------------------ #
    # Credential lifecycle
    # ------------------------------------------------------------------ #

    def set_credentials(self, username: str, password: str) -> None:
        """Store the Basic-Auth header for *username* and start a fresh session.

        The password itself is never stored, only the encoded header.

        Args:
            username: The user name.
            password: The clear-text password.
        """
        logger.debug("Setting credentials for user: %s", username)
        header = encode_basic_auth(username, password)
        with self._lock:
            self._store.save(username, header, self._clock())

    def record_activity(self) -> None:
        """Mark the session as active now without touching the credentials."""
        with self._lock:
            self._store.touch(self._clock())

    def is_current(self) -> bool:
        """Return ``True`` while less than ``session_minutes`` have passed since the last activity.

        A session with no recorded activity is never current.
        """
        last_activity = self._store.last_activity
        if last_activity is None:
            return False
        elapsed = minutes_between(last_activity, self._clock())
        return elapsed < self._config.session_minutes

    def confirm_current(self) -> None:
        """Log out if the session is not current.

        An already-empty session is left alone, so repeated calls emit at
        most one ``logout`` event.  The event is emitted after the lock is
        released, so handlers may use the session from other threads.
        """
        with self._lock:
            if self.is_current() or self._store.is_empty():
                return
            logger.debug("Authentication credentials missing or out of date")
            self._store.clear()
        self._events.emit(SessionEvent.LOGOUT)

    def logout(self) -> None:
        """Clear the stored session and emit ``logout``.

        Safe to call when no one is logged in.
        """
        logger.debug("Logging out")
        with self._lock:
            self._store.clear()
        self._events.emit(SessionEvent.LOGOUT)

    def handle_auth_failure(self) -> None:
        """Respond to a server-side rejection of the stored credentials.

        Logs out, then emits ``authentication-failure``.
        """
        logger.debug("Authentication failure reported by server")
        self.logout()
        self._events.emit(SessionEvent.AUTHENTICATION_FAILURE)

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    def get_auth(self) -> Optional[str]:
        """Return the stored ``Authorization`` header value, if any.

        The liveness of the session is not checked.
        """
        return self._store.auth_header

    def username(self) -> Optional[str]:
        """Return the current username, logging out first if the session expired."""
        self.confirm_current()
        return self._store.username

    def state(self) -> SessionState:
        """Return a snapshot of the session for display."""
        with self._lock:
            last_activity = self._store.last_activity
            expires_at = None
            if last_activity is not None:
                expires_at = last_activity + timedelta(minutes=self._config.session_minutes)
            return SessionState(
                username=self._store.username,
                authenticated=self.is_current() and self._store.auth_header is not None,
                last_activity=last_activity,
                expires_at=expires_at,
            )

    # ------------------------------------------------------------------ #
    # Endpoints and events
    # ------------------------------------------------------------------ #

    def add_endpoint(self, url: Optional[str] = None) -> str:
        """Register *url*'s hostname (or the base URL's) as protected."""
        return self.endpoints.add(url)

    def is_endpoint(self, url: str) -> bool:
        """Return ``True`` if requests to *url* must carry credentials."""
        return self.endpoints.contains(url)

    def on(self, name: EventName, handler: Handler) -> Subscription:
        """Subscribe *handler* to a session event."""
        return self._events.on(name, handler)

    # ------------------------------------------------------------------ #
    # Teardown
    # ------------------------------------------------------------------ #

    def close(self) -> None:
        """Stop the liveness monitor.  Stored credentials are kept."""
        self._monitor.stop()

    def __enter__(self) -> SessionManager:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
