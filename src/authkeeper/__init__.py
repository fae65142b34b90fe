"""authkeeper -- client-side HTTP Basic Authentication session manager.

This package keeps a user's Basic-Auth credentials for an application,
decides which outgoing requests must carry an ``Authorization`` header,
injects that header into an :mod:`httpx` pipeline, and logs the session out
when it goes idle or the server rejects it.  Interested parties learn about
every transition through named events.

Typical embedding::

    from authkeeper.auth import AuthenticationProbe, SessionManager
    from authkeeper.client import SessionClient
    from authkeeper.models import SessionConfig

    session = SessionManager(SessionConfig(base_url="https://app.example.com"))
    session.add_endpoint()
    AuthenticationProbe(session).login("ian@me", "fred").result()

    with SessionClient(session) as client:
        client.get("/api/things")

Modules:
    auth: Session state machine, endpoint registry, liveness monitor, probe.
    client: Interceptor hooks and session-aware httpx clients.
    events: In-process event bus and the session event names.
    models: Pydantic configuration and state models.
    config: XDG-aware configuration loading and precedence resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    app: Typer CLI entry point.
"""

__version__ = "0.1.0"
