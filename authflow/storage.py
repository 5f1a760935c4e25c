"""
Durable token storage.

A single key-value slot holding the current session token. SessionStore is
the only writer; everything else reads session state through it.
"""

import json
import logging
from pathlib import Path
from typing import Optional, Protocol

from .errors import PersistenceError

logger = logging.getLogger(__name__)


class TokenStorage(Protocol):
    """Key-value store that survives process restarts."""

    def get(self) -> Optional[str]:
        ...

    def set(self, token: str) -> None:
        ...

    def clear(self) -> None:
        ...


class JsonFileTokenStorage:
    """
    Token storage backed by a JSON file.

    The file holds a single object, e.g. {"token": "..."}. A missing file or
    empty value means no session.
    """

    def __init__(self, file_path: Path, key: str = "token"):
        """
        Initialize file storage.

        Args:
            file_path: Path to the JSON file (created on first write)
            key: Key under which the token is stored
        """
        self.file_path = Path(file_path)
        self.key = key

    def _ensure_data_dir(self):
        """Ensure the data directory exists."""
        self.file_path.parent.mkdir(parents=True, exist_ok=True)

    def get(self) -> Optional[str]:
        """Read the stored token, or None if absent."""
        if not self.file_path.exists():
            return None

        try:
            data = json.loads(self.file_path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Could not read token file {self.file_path}: {e}") from e

        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed token file {self.file_path}")
            return None

        token = data.get(self.key)
        return token or None

    def set(self, token: str) -> None:
        """Write the token, replacing any previous value."""
        try:
            self._ensure_data_dir()
            self.file_path.write_text(json.dumps({self.key: token}))
        except OSError as e:
            raise PersistenceError(f"Could not write token file {self.file_path}: {e}") from e
        logger.debug("Token saved to storage")

    def clear(self) -> None:
        """Remove the stored token."""
        try:
            self.file_path.unlink(missing_ok=True)
        except OSError as e:
            raise PersistenceError(f"Could not clear token file {self.file_path}: {e}") from e
        logger.debug("Token storage cleared")


class MemoryTokenStorage:
    """In-process token storage, used in tests and short-lived tools."""

    def __init__(self, token: Optional[str] = None):
        self._token = token

    def get(self) -> Optional[str]:
        return self._token or None

    def set(self, token: str) -> None:
        self._token = token

    def clear(self) -> None:
        self._token = None
