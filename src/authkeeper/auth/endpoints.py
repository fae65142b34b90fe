"""Registry of hostnames whose requests must carry credentials.

An *endpoint* is a hostname.  URLs are resolved against the application's
``base_url`` (its "current location") exactly like a browser resolves a
link, and only the hostname of the result is kept.  Membership is therefore
independent of scheme, port, path and query: ``http://api.example.com:8080/x``
and ``https://api.example.com/y`` name the same endpoint.

A value with no scheme that does not start with ``/``, ``.``, ``?`` or ``#``
is a bare hostname (``api.example.com``, ``localhost:8080``), not a path.
"""

from __future__ import annotations

import logging
import threading
from typing import Iterator, Optional

import httpx

from authkeeper.exceptions import InvalidUsageError

logger = logging.getLogger(__name__)


_RELATIVE_PREFIXES = ("/", ".", "?", "#")


def _as_reference(url: str) -> str:
    if "://" in url or url.startswith(_RELATIVE_PREFIXES):
        return url
    return f"//{url}"


def resolve_url(url: str, base_url: Optional[str] = None) -> httpx.URL:
    """Resolve *url* against *base_url*, returning an :class:`httpx.URL`.

    Raises:
        httpx.InvalidURL: If either URL cannot be parsed.
    """
    if base_url:
        return httpx.URL(base_url).join(url)
    return httpx.URL(url)


class EndpointRegistry:
    """Set of protected hostnames.

    Args:
        base_url: The application's location.  Relative URLs resolve against
            it, and :meth:`add` registers its hostname when called without a
            URL.

    Example::

        registry = EndpointRegistry("https://app.example.com/index.html")
        registry.add()                              # app.example.com
        registry.add("https://api.example.com/v1")  # api.example.com
        assert registry.contains("/fred")
        assert "http://api.example.com:8080/" in registry
    """

    def __init__(self, base_url: Optional[str] = None) -> None:
        self._base_url = base_url
        self._hosts: set[str] = set()
        self._lock = threading.Lock()

    @property
    def base_url(self) -> Optional[str]:
        return self._base_url

    def hostname(self, url: Optional[str] = None) -> Optional[str]:
        """Return the lower-cased hostname *url* resolves to.

        Args:
            url: A full or relative URL, or a bare hostname.  ``None`` means
                the base URL.

        Returns:
            The hostname, or ``None`` when the URL is unparsable or does not
            resolve to a host (for example a relative URL with no base).
        """
        target = url if url is not None else self._base_url
        if target is None:
            return None
        try:
            host = resolve_url(_as_reference(str(target)), self._base_url).host
        except httpx.InvalidURL:
            return None
        return host.lower() or None

    def add(self, url: Optional[str] = None) -> str:
        """Register the hostname of *url*, or of the base URL when omitted.

        Adding a hostname that is already registered changes nothing.

        Returns:
            The registered hostname.

        Raises:
            InvalidUsageError: If no hostname can be resolved.
        """
        host = self.hostname(url)
        if host is None:
            where = url if url is not None else "the current location"
            raise InvalidUsageError(
                f"Cannot resolve a hostname for {where!r}; "
                "pass an absolute URL or configure a base_url"
            )
        with self._lock:
            if host not in self._hosts:
                self._hosts.add(host)
                logger.debug("Registered endpoint %s", host)
        return host

    def contains(self, url: str) -> bool:
        """Return ``True`` if *url* resolves to a registered hostname."""
        host = self.hostname(url)
        if host is None:
            return False
        with self._lock:
            return host in self._hosts

    def __contains__(self, url: object) -> bool:
        return isinstance(url, str) and self.contains(url)

    def __len__(self) -> int:
        with self._lock:
            return len(self._hosts)

    def __iter__(self) -> Iterator[str]:
        with self._lock:
            return iter(sorted(self._hosts))
