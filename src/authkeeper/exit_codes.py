"""Numeric process exit codes used by the ``authkeeper`` CLI.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~authkeeper.exceptions.AuthkeeperError` subclass, so
shell scripts can branch on the failure class without parsing stderr.

Example::

    $ authkeeper login ian@me --password-source env:PW
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- the server rejected the credentials
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments."""

EXIT_AUTH_FAILURE = 3
"""Authentication failed or no live session exists."""

EXIT_NOT_FOUND = 4
"""The requested resource was not found (HTTP 404)."""

EXIT_SERVER_ERROR = 5
"""The remote server answered with an error status."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_STORE_ERROR = 8
"""The session store could not be read or written."""
