from datetime import date
from typing import List, Optional

import pytest

from spend_ledger.exceptions import PersistenceError
from spend_ledger.ledger import Ledger
from spend_ledger.storage import KeyValueStorage, MemoryStorage

TODAY = date(2026, 3, 14)


class FailingStorage(KeyValueStorage):
    """Reads succeed from an in-memory copy; every write raises."""

    def __init__(self, error: Exception = None) -> None:
        self._inner = MemoryStorage()
        self._error = error or PersistenceError("disk full")

    def get(self, key: str) -> Optional[str]:
        return self._inner.get(key)

    def set(self, key: str, value: str) -> None:
        raise self._error

    def delete(self, key: str) -> None:
        raise self._error

    def keys(self) -> List[str]:
        return self._inner.keys()


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def ledger(storage):
    return Ledger(storage, today=lambda: TODAY)


@pytest.fixture
def reload(storage):
    """Build a fresh ledger over the same storage, as a restart would."""

    def _reload() -> Ledger:
        return Ledger(storage, today=lambda: TODAY)

    return _reload


@pytest.fixture
def failing_storage():
    return FailingStorage()
