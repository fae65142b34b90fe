"""Event bus and the named events a session produces.

A :class:`~authkeeper.auth.session.SessionManager` announces every
lifecycle transition on an :class:`EventBus`.  Host applications subscribe
to drive their UI, e.g. returning to a login screen on
``authentication-failure``.

Produced events and their payloads:

* ``login(username)`` -- the authentication probe accepted the credentials.
* ``logout()`` -- the stored credentials were cleared.
* ``authentication-failed(username)`` -- the probe rejected the credentials.
* ``authentication-failure()`` -- an authenticated request came back 401.

Handlers run synchronously, in subscription order, on the thread that
emitted the event.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Any, Callable, Union

logger = logging.getLogger(__name__)

Handler = Callable[..., Any]


class SessionEvent(str, Enum):
    """Names of the events emitted by the session manager and the probe."""

    LOGIN = "login"
    LOGOUT = "logout"
    AUTHENTICATION_FAILED = "authentication-failed"
    AUTHENTICATION_FAILURE = "authentication-failure"


EventName = Union[SessionEvent, str]


def _key(name: EventName) -> str:
    if isinstance(name, SessionEvent):
        return name.value
    return name


class Subscription:
    """Handle returned by :meth:`EventBus.on`; call :meth:`unsubscribe` to detach."""

    def __init__(self, bus: EventBus, name: str, handler: Handler) -> None:
        self._bus = bus
        self.name = name
        self.handler = handler

    def unsubscribe(self) -> None:
        """Stop delivering events to the handler.  Safe to call more than once."""
        self._bus._remove(self)


class EventBus:
    """Minimal publish/subscribe hub keyed by event name.

    Example::

        bus = EventBus()
        sub = bus.on(SessionEvent.LOGIN, lambda username: print("hello", username))
        bus.emit(SessionEvent.LOGIN, "ian@me")
        sub.unsubscribe()
    """

    def __init__(self) -> None:
        self._subscriptions: dict[str, list[Subscription]] = {}
        self._lock = threading.Lock()

    def on(self, name: EventName, handler: Handler) -> Subscription:
        """Subscribe *handler* to the event *name*.

        Args:
            name: A :class:`SessionEvent` or any event name string.
            handler: Called with the event payload as positional arguments.

        Returns:
            A :class:`Subscription` that can detach the handler.
        """
        subscription = Subscription(self, _key(name), handler)
        with self._lock:
            self._subscriptions.setdefault(subscription.name, []).append(subscription)
        return subscription

    def emit(self, name: EventName, *payload: Any) -> None:
        """Deliver an event to every current subscriber.

        The subscriber list is copied before delivery, so handlers may
        subscribe or unsubscribe while the event is being dispatched.  An
        exception raised by one handler is logged and does not stop delivery
        to the remaining handlers.

        Args:
            name: The event to emit.
            *payload: Positional arguments passed to each handler.
        """
        key = _key(name)
        with self._lock:
            subscriptions = list(self._subscriptions.get(key, ()))
        logger.debug("Emitting %r to %d handler(s)", key, len(subscriptions))
        for subscription in subscriptions:
            try:
                subscription.handler(*payload)
            except Exception:
                logger.exception("Handler for event %r raised", key)

    def handler_count(self, name: EventName) -> int:
        """Return the number of handlers subscribed to *name*."""
        with self._lock:
            return len(self._subscriptions.get(_key(name), ()))

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            handlers = self._subscriptions.get(subscription.name)
            if handlers and subscription in handlers:
                handlers.remove(subscription)
