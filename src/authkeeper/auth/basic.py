"""HTTP Basic authentication header encoding.

The ``username:password`` pair is joined with a colon, UTF-8 encoded,
Base64-encoded, and prefixed with ``Basic`` per :rfc:`7617`.
"""

from __future__ import annotations

import base64

BASIC_SCHEME = "Basic"


def b64encode_text(text: str) -> str:
    """Base64-encode a string using its UTF-8 bytes and return ASCII text."""
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def encode_basic_auth(username: str, password: str) -> str:
    """Build an ``Authorization`` header value for *username* and *password*.

    Example::

        >>> encode_basic_auth("ian@me", "fred")
        'Basic aWFuQG1lOmZyZWQ='
    """
    return f"{BASIC_SCHEME} {b64encode_text(f'{username}:{password}')}"
