"""Session commands -- log in, inspect, extend and use a stored session.

The CLI keeps its session in a :class:`~authkeeper.auth.FileStore` under the
data directory, so a login survives between invocations until it goes idle
for ``session_minutes`` or the server rejects it.

Typical workflow::

    authkeeper login ian@me --password-source env:APP_PASSWORD
    authkeeper get https://app.example.com/api/things
    authkeeper status
    authkeeper logout
"""

from __future__ import annotations

from typing import Optional

import httpx
import typer

from authkeeper.auth import AuthenticationProbe, FileStore, SessionManager
from authkeeper.client import SessionClient
from authkeeper.config import resolve_config, resolve_credential, session_store_path
from authkeeper.exceptions import AuthError, AuthkeeperError, InvalidUsageError
from authkeeper.exit_codes import EXIT_AUTH_FAILURE
from authkeeper.models import SessionConfig
from authkeeper.output import debug, error, format_response, get_output, success


def open_session(ctx: typer.Context) -> SessionManager:
    """Build the CLI's session manager from the resolved configuration.

    The liveness monitor is not started; a CLI invocation is too short for
    it to matter, and construction already purges an expired session.  The
    base URL's host is always protected, in addition to the configured
    endpoints.
    """
    obj = ctx.obj or {}
    config = resolve_config(cli_base_url=obj.get("base_url"))
    session = SessionManager(
        config,
        store=FileStore(session_store_path()),
        start_monitor=False,
    )
    if config.base_url:
        session.add_endpoint()
    return session


def probe_client(config: SessionConfig) -> httpx.Client:
    """Return the plain client used for the credential check.

    Unlike the library default, the CLI bounds the check with the configured
    request timeout.
    """
    return httpx.Client(timeout=config.request.timeout, verify=config.request.verify_ssl)


def session_client(session: SessionManager) -> SessionClient:
    """Return the client used by ``get``."""
    return SessionClient(session)


def _parse_headers(values: Optional[list[str]]) -> dict[str, str]:
    headers: dict[str, str] = {}
    for item in values or []:
        name, sep, value = item.partition("=")
        if not sep or not name.strip():
            raise InvalidUsageError(f"Header must be NAME=VALUE, got {item!r}")
        headers[name.strip()] = value.strip()
    return headers


def login_command(
    ctx: typer.Context,
    username: str = typer.Argument(help="User name to authenticate as."),
    password_source: str = typer.Option(
        "prompt",
        "--password-source",
        "-s",
        help="Where to read the password: env:VAR, file:/path, or prompt.",
    ),
    header: Optional[list[str]] = typer.Option(
        None, "--header", "-H", help="Extra header for the check, as NAME=VALUE."
    ),
) -> None:
    """Verify credentials against the server and store the session."""
    try:
        password = resolve_credential(password_source)
        headers = _parse_headers(header)
        session = open_session(ctx)
    except AuthkeeperError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    client = probe_client(session.config)
    with client, AuthenticationProbe(session, client=client) as probe:
        debug(f"Checking credentials at {probe.authenticate_url}")
        try:
            probe.login(username, password, headers=headers).result()
        except AuthkeeperError as exc:
            error(str(exc))
            raise typer.Exit(code=exc.exit_code) from None

    success(f'Logged in as "{username}".')


def logout_command(ctx: typer.Context) -> None:
    """Forget the stored session."""
    session = open_session(ctx)
    session.logout()
    success("Logged out.")


def status_command(ctx: typer.Context) -> None:
    """Show who is logged in and when the session expires."""
    session = open_session(ctx)
    state = session.state()
    get_output().format_response(state.model_dump(mode="json"))
    if not state.authenticated:
        raise typer.Exit(code=EXIT_AUTH_FAILURE)


def activity_command(ctx: typer.Context) -> None:
    """Extend the stored session without logging in again."""
    session = open_session(ctx)
    if not session.is_current():
        error("No active session. Log in first.")
        raise typer.Exit(code=EXIT_AUTH_FAILURE)
    session.record_activity()
    state = session.state()
    success(f"Session extended until {state.expires_at:%Y-%m-%d %H:%M:%S %Z}.")


def get_command(
    ctx: typer.Context,
    url: str = typer.Argument(help="Absolute URL, or a path relative to the base URL."),
) -> None:
    """Send an authenticated GET request and print the response body."""
    try:
        session = open_session(ctx)
        with session_client(session) as client:
            response = client.get(url)
    except AuthError as exc:
        error(str(exc))
        if exc.status_code == 401:
            error("The server rejected the stored credentials; the session was cleared.")
        raise typer.Exit(code=exc.exit_code) from None
    except AuthkeeperError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    try:
        body = response.json()
    except ValueError:
        body = response.text
    format_response(body)
