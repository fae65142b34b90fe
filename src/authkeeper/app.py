"""Typer application and CLI entry point for authkeeper.

This module wires the top-level Typer application and registers the built-in
commands (``login``, ``logout``, ``status``, ``activity``, ``get`` and the
``config`` group).

:func:`main` is the console-script entry point declared in
``pyproject.toml``.  :class:`~authkeeper.exceptions.AuthkeeperError`
instances exit with their ``exit_code``; any other exception is written to a
crash log under the data directory.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from authkeeper import __version__
from authkeeper.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="authkeeper",
    help="Keep an HTTP Basic Authentication session for API calls.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"authkeeper {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    base_url: Optional[str] = typer.Option(
        None, "--base-url", "-b", help="Application URL that relative URLs resolve against."
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-essential output."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
) -> None:
    """Root callback executed before every command.

    Installs the global :class:`~authkeeper.output.OutputManager` and, with
    ``--verbose``, routes library log records to stderr.  Shared options are
    stored in ``ctx.obj``.
    """
    from authkeeper.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    output = OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose)
    set_output(output)

    if verbose:
        _setup_logging(no_color)

    ctx.ensure_object(dict)
    ctx.obj["base_url"] = base_url


def _setup_logging(no_color: bool) -> None:
    """Send ``authkeeper`` debug logs to stderr through Rich."""
    handler = RichHandler(
        console=Console(stderr=True, no_color=no_color),
        show_time=False,
        show_path=False,
    )
    logger = logging.getLogger("authkeeper")
    logger.setLevel(logging.DEBUG)
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        logger.addHandler(handler)


def _register_commands() -> None:
    from authkeeper.commands.config import config_app
    from authkeeper.commands.session import (
        activity_command,
        get_command,
        login_command,
        logout_command,
        status_command,
    )

    app.command("login")(login_command)
    app.command("logout")(logout_command)
    app.command("status")(status_command)
    app.command("activity")(activity_command)
    app.command("get")(get_command)
    app.add_typer(config_app, name="config", help="Configuration management.")


_register_commands()


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from authkeeper.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``authkeeper`` console script.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from authkeeper.exceptions import AuthkeeperError
        from authkeeper.output import error

        if isinstance(exc, AuthkeeperError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
