"""Pydantic models shared across authkeeper modules.

**Configuration models** -- serialised as JSON in the user's config
directory and passed to :class:`~authkeeper.auth.session.SessionManager`:
    :class:`RequestConfig` and :class:`SessionConfig`.

**State models** -- read-only views produced at runtime:
    :class:`SessionState`.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_AUTHENTICATE_URL = "/api/authenticate"
DEFAULT_SESSION_MINUTES = 180.0
DEFAULT_CHECK_INTERVAL_SECONDS = 60.0


class RequestConfig(BaseModel):
    """HTTP settings for the session clients and the CLI's probe client."""

    timeout: float = Field(default=30, gt=0, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")


class SessionConfig(BaseModel):
    """Settings for one authentication session.

    ``authenticate_url`` and ``session_minutes`` are the two settings every
    host relies on; the remaining fields describe where the application
    lives and what it sends along with authenticated requests.

    Example::

        SessionConfig(
            base_url="https://app.example.com",
            authenticate_url="/api/authenticate",
            session_minutes=30,
            endpoints=["https://api.example.com"],
        )
    """

    model_config = ConfigDict(validate_assignment=True)

    authenticate_url: str = Field(
        default=DEFAULT_AUTHENTICATE_URL,
        description="URL of the credential check, resolved against base_url",
    )
    session_minutes: float = Field(
        default=DEFAULT_SESSION_MINUTES,
        gt=0,
        description="Minutes of inactivity tolerated before a forced logout",
    )
    check_interval_seconds: float = Field(
        default=DEFAULT_CHECK_INTERVAL_SECONDS,
        gt=0,
        description="Period of the background liveness check",
    )
    base_url: Optional[str] = Field(
        default=None,
        description="Location of the application, used to resolve relative URLs",
    )
    headers: dict[str, str] = Field(
        default_factory=dict,
        description="Extra headers attached to every authenticated request",
    )
    endpoints: list[str] = Field(
        default_factory=list,
        description="URLs or bare hostnames registered as protected at startup",
    )
    key_prefix: str = Field(default="", description="Prefix for session store keys")
    request: RequestConfig = Field(default_factory=RequestConfig)


class SessionState(BaseModel):
    """Snapshot of a session as seen by the host application."""

    username: Optional[str] = None
    authenticated: bool = False
    last_activity: Optional[datetime] = None
    expires_at: Optional[datetime] = None
