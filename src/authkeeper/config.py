"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for the ``authkeeper`` CLI:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.authkeeper/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Session config** -- a single :class:`~authkeeper.models.SessionConfig`
  JSON file. See :func:`load_config` and :func:`save_config`.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables and the config file into the effective settings.
* **Credential resolution** -- :func:`resolve_credential` reads a password
  from an env var, a file, or an interactive prompt.

Library users normally build a :class:`~authkeeper.models.SessionConfig`
directly and never touch this module.
"""

from __future__ import annotations

import getpass
import json
import os
import platform
import sys
import tempfile
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from authkeeper.exceptions import ConfigError
from authkeeper.models import SessionConfig

_APP_NAME = "authkeeper"
_CONFIG_FILENAME = "config.json"
_SESSION_FILENAME = "session.json"

ENV_BASE_URL = "AUTHKEEPER_BASE_URL"
ENV_AUTHENTICATE_URL = "AUTHKEEPER_AUTHENTICATE_URL"
ENV_SESSION_MINUTES = "AUTHKEEPER_SESSION_MINUTES"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/authkeeper/`` (default ``~/.config/authkeeper/``).
    On macOS/Windows: ``~/.authkeeper/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (session store, crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/authkeeper/`` (default ``~/.local/share/authkeeper/``).
    On macOS/Windows: ``~/.authkeeper/data/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


def session_store_path() -> Path:
    """Return the path of the CLI's persistent session store."""
    return get_data_dir() / _SESSION_FILENAME


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems.  On any failure the
    temp file is cleaned up.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close below
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Session config ---


def config_path() -> Path:
    """Path to the config file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_config() -> SessionConfig:
    """Load the session configuration from the config directory.

    Returns:
        The deserialised :class:`~authkeeper.models.SessionConfig`, or a
        default instance when the file does not exist.

    Raises:
        ConfigError: If the file contains invalid JSON or fails validation.
    """
    path = config_path()
    if not path.is_file():
        return SessionConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return SessionConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc


def save_config(config: SessionConfig) -> None:
    """Persist the session configuration atomically."""
    data = config.model_dump(mode="json")
    _atomic_write(config_path(), json.dumps(data, indent=2) + "\n")


# --- Precedence resolution ---


def resolve_config(
    cli_base_url: Optional[str] = None,
    cli_authenticate_url: Optional[str] = None,
) -> SessionConfig:
    """Resolve the effective session configuration.

    Precedence (high to low):
        1. CLI flags (``cli_base_url``, ``cli_authenticate_url``)
        2. Environment variables (``AUTHKEEPER_BASE_URL``,
           ``AUTHKEEPER_AUTHENTICATE_URL``, ``AUTHKEEPER_SESSION_MINUTES``)
        3. Config file (``~/.config/authkeeper/config.json``)
        4. Defaults

    Raises:
        ConfigError: If the config file is invalid or an environment value
            cannot be used.
    """
    config = load_config()
    overrides: dict[str, object] = {}

    env_base_url = os.environ.get(ENV_BASE_URL)
    if env_base_url:
        overrides["base_url"] = env_base_url
    env_authenticate_url = os.environ.get(ENV_AUTHENTICATE_URL)
    if env_authenticate_url:
        overrides["authenticate_url"] = env_authenticate_url
    env_minutes = os.environ.get(ENV_SESSION_MINUTES)
    if env_minutes:
        try:
            overrides["session_minutes"] = float(env_minutes)
        except ValueError:
            raise ConfigError(
                f"{ENV_SESSION_MINUTES} must be a number of minutes, got {env_minutes!r}"
            ) from None

    if cli_base_url is not None:
        overrides["base_url"] = cli_base_url
    if cli_authenticate_url is not None:
        overrides["authenticate_url"] = cli_authenticate_url

    if not overrides:
        return config
    try:
        return SessionConfig.model_validate({**config.model_dump(), **overrides})
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration override: {exc}") from exc


# --- Credential source resolution ---


def resolve_credential(source: str) -> str:
    """Resolve a password from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace
        - ``"prompt"`` -- prompts interactively (requires a TTY)

    Raises:
        ConfigError: If the source can't be resolved.
    """
    if source.startswith("env:"):
        var_name = source[4:]
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigError(
                f"Environment variable '{var_name}' is not set (source: {source})"
            )
        return value

    if source.startswith("file:"):
        path = Path(source[5:]).expanduser()
        if not path.is_file():
            raise ConfigError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc

    if source == "prompt":
        if not sys.stdin.isatty():
            raise ConfigError(
                "Cannot prompt for a password: stdin is not a TTY (source: prompt)"
            )
        return getpass.getpass("Password: ")

    raise ConfigError(f"Unknown credential source format: {source}")
