"""Exception hierarchy for authkeeper.

All exceptions inherit from :class:`AuthkeeperError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`authkeeper.exit_codes`.
The CLI entry point in :func:`authkeeper.app.main` catches ``AuthkeeperError``
and exits with that code.

Expired sessions are never reported through exceptions: the session manager
logs them out silently and announces it with a ``logout`` event.

Subclass hierarchy::

    AuthkeeperError (exit 1)
    +-- InvalidUsageError   (exit 2)
    +-- AuthError           (exit 3)
    +-- NotFoundError       (exit 4)
    +-- ServerError         (exit 5)
    +-- RequestError        (exit 5)
    +-- ConnectionError_    (exit 6)
    +-- ConfigError         (exit 1)
    +-- StoreError          (exit 8)
"""

from __future__ import annotations

from authkeeper.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_SERVER_ERROR,
    EXIT_STORE_ERROR,
)


class AuthkeeperError(Exception):
    """Base exception for all authkeeper errors.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(AuthkeeperError):
    """Raised for invalid arguments, such as a URL with no resolvable hostname."""

    exit_code = EXIT_INVALID_USAGE


class AuthError(AuthkeeperError):
    """Raised when the server rejects credentials (probe failure, 401/403).

    Args:
        message: Human-readable error description.
        status_code: The HTTP status that triggered the error, or ``None``
            when the request never produced a response.
    """

    exit_code = EXIT_AUTH_FAILURE

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(AuthkeeperError):
    """Raised when the server returns HTTP 404."""

    exit_code = EXIT_NOT_FOUND


class ServerError(AuthkeeperError):
    """Raised when the server returns an HTTP 5xx error."""

    exit_code = EXIT_SERVER_ERROR


class RequestError(AuthkeeperError):
    """Raised for 4xx responses other than 401, 403 and 404."""

    exit_code = EXIT_SERVER_ERROR


class ConnectionError_(AuthkeeperError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class ConfigError(AuthkeeperError):
    """Raised for configuration problems (invalid JSON, bad credential sources)."""

    exit_code = EXIT_GENERIC_FAILURE


class StoreError(AuthkeeperError):
    """Raised when the session store file cannot be read or written."""

    exit_code = EXIT_STORE_ERROR
