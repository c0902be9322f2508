"""Token storage for the authenticated session.

Holds the three session keys (``auth_token``, ``refresh_token``, ``user``).
``MemoryTokenStore`` lives as long as the process; ``FileTokenStore`` keeps
the session in a small JSON file so CLI invocations can share it.

Usage:
    from db_builder.client.tokens import FileTokenStore

    store = FileTokenStore(Path(".db-builder-session.json"))
    store.set(AUTH_TOKEN_KEY, "abc")
"""

import json
import logging
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

AUTH_TOKEN_KEY = "auth_token"
REFRESH_TOKEN_KEY = "refresh_token"
USER_KEY = "user"

SESSION_KEYS = (AUTH_TOKEN_KEY, REFRESH_TOKEN_KEY, USER_KEY)


class TokenStore(Protocol):
    """Key-value storage for session credentials."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryTokenStore:
    """In-process token store."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class FileTokenStore:
    """Token store persisted as a JSON object on disk.

    The file is rewritten on every change and deleted once empty.  A corrupt
    file is treated as an empty session.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text())
        except json.JSONDecodeError:
            logger.warning("Ignoring unreadable session file %s", self._path)
            return {}
        if not isinstance(data, dict):
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _save(self, data: dict[str, str]) -> None:
        if not data:
            if self._path.exists():
                self._path.unlink()
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(data, indent=2))

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def remove(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._save(data)
