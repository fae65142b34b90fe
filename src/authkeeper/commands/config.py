"""Config commands -- view and edit the CLI's session configuration.

Commands::

    authkeeper config show
    authkeeper config set session_minutes 30
    authkeeper config add-endpoint https://api.example.com
    authkeeper config set-header X-Requested-With authkeeper
"""

from __future__ import annotations

from typing import Optional

import typer
from pydantic import ValidationError

from authkeeper.auth import EndpointRegistry
from authkeeper.config import config_path, load_config, save_config
from authkeeper.exceptions import AuthkeeperError
from authkeeper.exit_codes import EXIT_INVALID_USAGE
from authkeeper.models import SessionConfig
from authkeeper.output import error, get_output, info, success

config_app = typer.Typer(no_args_is_help=True)

SETTABLE_KEYS = ("authenticate_url", "session_minutes", "check_interval_seconds", "base_url")


def _load() -> SessionConfig:
    try:
        return load_config()
    except AuthkeeperError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


@config_app.command("show")
def config_show() -> None:
    """Print the configuration file contents."""
    config = _load()
    info(f"Config file: {config_path()}")
    get_output().format_response(config.model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help=f"One of: {', '.join(SETTABLE_KEYS)}."),
    value: str = typer.Argument(help="New value."),
) -> None:
    """Change a single setting."""
    if key not in SETTABLE_KEYS:
        error(f"Unknown setting '{key}'. Choose one of: {', '.join(SETTABLE_KEYS)}.")
        raise typer.Exit(code=EXIT_INVALID_USAGE)

    config = _load()
    try:
        updated = SessionConfig.model_validate({**config.model_dump(), key: value})
    except ValidationError as exc:
        error(f"Invalid value for {key}: {exc.errors()[0]['msg']}")
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None

    save_config(updated)
    success(f"{key} = {getattr(updated, key)}")


@config_app.command("add-endpoint")
def config_add_endpoint(
    url: Optional[str] = typer.Argument(
        None, help="URL or bare hostname that needs credentials. Defaults to the base URL."
    ),
) -> None:
    """Register a protected endpoint."""
    config = _load()
    try:
        host = EndpointRegistry(config.base_url).add(url)
    except AuthkeeperError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    entry = url if url is not None else config.base_url
    if entry not in config.endpoints:
        config.endpoints = [*config.endpoints, entry]
        save_config(config)
    success(f"Requests to {host} will carry credentials.")


@config_app.command("set-header")
def config_set_header(
    name: str = typer.Argument(help="Header name."),
    value: str = typer.Argument(help="Header value."),
) -> None:
    """Add an extra header to every authenticated request."""
    config = _load()
    config.headers = {**config.headers, name: value}
    save_config(config)
    success(f"{name}: {value}")
