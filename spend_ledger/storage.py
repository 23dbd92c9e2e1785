"""Key-value persistence adapters for the spend ledger.

Adapters store opaque strings under string keys. They know nothing about
entries or budgets; encoding and shape validation live in
:mod:`spend_ledger.persistence`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import quote, unquote

from .exceptions import PersistenceError

RECORD_SUFFIX = ".json"


class KeyValueStorage(ABC):
    """Minimal string key-value store. Implementations raise PersistenceError on failure."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None when the key is absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key``; removing an absent key is not an error."""

    @abstractmethod
    def keys(self) -> List[str]:
        """Return every stored key."""


class MemoryStorage(KeyValueStorage):
    """Process-local storage, used when nothing durable is configured."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._records: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._records.get(key)

    def set(self, key: str, value: str) -> None:
        self._records[key] = value

    def delete(self, key: str) -> None:
        self._records.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._records)


class JSONStorage(KeyValueStorage):
    """One file per key under a base directory, with crash-safe writes."""

    def __init__(self, base_path: Path) -> None:
        self._base_path = Path(base_path)
        try:
            self._base_path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PersistenceError(f"Unable to create data directory {self._base_path}") from exc

    def _path_for(self, key: str) -> Path:
        # Keys contain ':' which is not portable in file names.
        return self._base_path / (quote(key, safe="") + RECORD_SUFFIX)

    def get(self, key: str) -> Optional[str]:
        path = self._path_for(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            raise PersistenceError(f"Unable to read from {path}") from exc

    def set(self, key: str, value: str) -> None:
        path = self._path_for(key)
        temp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            with temp_path.open("w", encoding="utf-8") as handle:
                handle.write(value)
                handle.flush()
            # Use replace for atomic move on POSIX; ensures crash-safe persistence.
            temp_path.replace(path)
        except OSError as exc:
            raise PersistenceError(f"Unable to write to {path}") from exc

    def delete(self, key: str) -> None:
        path = self._path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise PersistenceError(f"Unable to delete {path}") from exc

    def keys(self) -> List[str]:
        try:
            names = [path.name for path in self._base_path.glob("*" + RECORD_SUFFIX)]
        except OSError as exc:
            raise PersistenceError(f"Unable to list {self._base_path}") from exc
        return sorted(unquote(name[: -len(RECORD_SUFFIX)]) for name in names)

    @property
    def base_path(self) -> Path:
        return self._base_path
