"""Persistent key-value storage for session credentials.

The session manager needs only three operations from its storage --
``get``, ``set`` and ``remove`` by string key -- captured by the
:class:`KeyValueStore` interface.  Two backends are provided:

- :class:`MemoryStore` -- a process-local dict, the default.
- :class:`FileStore` -- a single JSON object on disk, written atomically via
  :func:`tempfile.NamedTemporaryFile` and ``os.replace`` with ``0o600``
  permissions so that the encoded header is never world-readable, even
  momentarily.

:class:`CredentialStore` sits on top of a backend and maps the three logical
session fields to their store keys (``username``, ``auth``,
``last-activity``), optionally namespaced by a prefix.

See Also:
    :class:`~authkeeper.auth.session.SessionManager` -- the only writer.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Optional

from authkeeper.clock import format_timestamp, parse_timestamp
from authkeeper.exceptions import StoreError

logger = logging.getLogger(__name__)

USERNAME_KEY = "username"
AUTH_KEY = "auth"
LAST_ACTIVITY_KEY = "last-activity"


class KeyValueStore(ABC):
    """String-keyed storage for session fields."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the value stored under *key*, or ``None`` when absent."""
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store *value* under *key*, replacing any previous value."""
        ...

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete *key*.  Removing a missing key is a no-op."""
        ...


class MemoryStore(KeyValueStore):
    """Keep session fields in a dict for the lifetime of the process."""

    def __init__(self, initial: Optional[dict[str, str]] = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._data)


class FileStore(KeyValueStore):
    """Keep session fields in a JSON file so a session survives restarts.

    Every ``set`` and ``remove`` rewrites the whole file atomically: content
    is written to a temporary file in the same directory, fsynced, then
    renamed into place.  A file that does not contain a JSON object is
    treated as empty and replaced on the next write.

    Args:
        path: Location of the JSON file.  Parent directories are created on
            first write.

    Raises:
        StoreError: From any operation when the file cannot be read or
            written.

    Example::

        store = FileStore(Path("~/.local/share/authkeeper/session.json").expanduser())
        store.set("username", "ian@me")
        assert store.get("username") == "ian@me"
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        """The filesystem path of the store file."""
        return self._path

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)

    def remove(self, key: str) -> None:
        with self._lock:
            data = self._read()
            if key not in data:
                return
            del data[key]
            self._write(data)

    def _read(self) -> dict[str, str]:
        if not self._path.is_file():
            return {}
        try:
            text = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StoreError(f"Cannot read session store {self._path}: {exc}") from exc
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            logger.warning("Ignoring unreadable session store at %s", self._path)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring non-object session store at %s", self._path)
            return {}
        return {str(k): str(v) for k, v in data.items() if v is not None}

    def _write(self, data: dict[str, str]) -> None:
        text = json.dumps(data, indent=2, sort_keys=True) + "\n"

        fd = None
        tmp_path: Optional[str] = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd = tempfile.NamedTemporaryFile(
                mode="w",
                dir=self._path.parent,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
                delete=False,
                encoding="utf-8",
            )
            tmp_path = fd.name
            # Restrict permissions before any content is written
            os.chmod(tmp_path, 0o600)
            fd.write(text)
            fd.flush()
            os.fsync(fd.fileno())
            fd.close()
            fd = None
            os.replace(tmp_path, self._path)
        except BaseException as exc:
            if fd is not None:
                fd.close()
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except OSError:
                    pass
            if isinstance(exc, OSError):
                raise StoreError(
                    f"Cannot write session store {self._path}: {exc}"
                ) from exc
            raise


class CredentialStore:
    """Typed access to the three session fields held in a :class:`KeyValueStore`.

    The adapter does no locking of its own; the session manager serialises
    writes so that the three fields always change together.

    Args:
        backend: The key-value store to read and write.
        prefix: Prepended to every key (``"app."`` gives ``"app.username"``).
    """

    def __init__(self, backend: KeyValueStore, prefix: str = "") -> None:
        self._backend = backend
        self._prefix = prefix

    @property
    def backend(self) -> KeyValueStore:
        return self._backend

    def key(self, name: str) -> str:
        """Return the full store key for the logical field *name*."""
        return f"{self._prefix}{name}"

    @property
    def username(self) -> Optional[str]:
        return self._backend.get(self.key(USERNAME_KEY))

    @property
    def auth_header(self) -> Optional[str]:
        return self._backend.get(self.key(AUTH_KEY))

    @property
    def last_activity(self) -> Optional[datetime]:
        """The last recorded activity, or ``None`` if absent or unparsable."""
        return parse_timestamp(self._backend.get(self.key(LAST_ACTIVITY_KEY)))

    def save(self, username: str, auth_header: str, last_activity: datetime) -> None:
        """Persist all three session fields."""
        self._backend.set(self.key(USERNAME_KEY), username)
        self._backend.set(self.key(AUTH_KEY), auth_header)
        self.touch(last_activity)

    def touch(self, last_activity: datetime) -> None:
        """Persist a new last-activity timestamp."""
        self._backend.set(self.key(LAST_ACTIVITY_KEY), format_timestamp(last_activity))

    def clear(self) -> None:
        """Remove all three session fields."""
        self._backend.remove(self.key(AUTH_KEY))
        self._backend.remove(self.key(LAST_ACTIVITY_KEY))
        self._backend.remove(self.key(USERNAME_KEY))

    def is_empty(self) -> bool:
        """Return ``True`` when none of the session fields is stored."""
        return all(
            self._backend.get(self.key(name)) is None
            for name in (USERNAME_KEY, AUTH_KEY, LAST_ACTIVITY_KEY)
        )
