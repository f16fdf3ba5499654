"""
Credential store: the bearer token and the signed-in user's profile.
Process-wide; read on every dispatch, written by login/logout and by token renewal.
"""
import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from club_client.config import CREDENTIALS_PATH

logger = logging.getLogger(__name__)

TOKEN_KEY = "token"
USER_KEY = "user"


class CredentialStore(ABC):
    """get/set/clear for the two persisted keys, token and user."""

    @abstractmethod
    def get_token(self) -> str | None: ...

    @abstractmethod
    def set_token(self, token: str) -> None: ...

    @abstractmethod
    def get_user(self) -> dict[str, Any] | None: ...

    @abstractmethod
    def set_user(self, user: dict[str, Any]) -> None: ...

    @abstractmethod
    def clear(self) -> None:
        """Delete both token and user."""


class MemoryCredentialStore(CredentialStore):
    def __init__(self) -> None:
        self._data: dict[str, Any] = {}

    def get_token(self) -> str | None:
        return self._data.get(TOKEN_KEY)

    def set_token(self, token: str) -> None:
        self._data[TOKEN_KEY] = token
        self._saved()

    def get_user(self) -> dict[str, Any] | None:
        return self._data.get(USER_KEY)

    def set_user(self, user: dict[str, Any]) -> None:
        self._data[USER_KEY] = user
        self._saved()

    def clear(self) -> None:
        self._data.clear()
        self._cleared()

    def _saved(self) -> None:
        pass

    def _cleared(self) -> None:
        pass


class FileCredentialStore(MemoryCredentialStore):
    """
    Memory store mirrored to a JSON file (owner read/write only).
    A missing or unreadable file starts empty; clear() removes the file.
    """

    def __init__(self, path: str | Path) -> None:
        super().__init__()
        self.path = Path(path)
        self._data = self._load()

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Ignoring unreadable credentials file %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            return {}
        return {k: v for k, v in data.items() if k in (TOKEN_KEY, USER_KEY)}

    def _saved(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(self._data, f, indent=2)
        os.chmod(self.path, 0o600)

    def _cleared(self) -> None:
        if self.path.exists():
            self.path.unlink()


def open_store(path: str | None = None) -> CredentialStore:
    """File store when a path is configured, else memory."""
    path = CREDENTIALS_PATH if path is None else path
    if path:
        return FileCredentialStore(path)
    return MemoryCredentialStore()
