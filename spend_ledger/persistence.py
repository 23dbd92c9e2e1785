"""Mapping of ledger partitions onto a key-value storage adapter.

Writes are best effort: a failing adapter is logged and remembered in
``last_error`` but never raises into the caller, so the in-memory ledger keeps
working for the rest of the session.
"""

from __future__ import annotations

import json
import logging
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, TypeVar

from .exceptions import PersistenceError, ValidationError
from .models import Entry
from .storage import KeyValueStorage
from .validators import (
    parse_amount,
    parse_budget_value,
    validate_date,
    validate_month_key,
    validate_optional_text,
    validate_required_str,
)

logger = logging.getLogger(__name__)

KEY_PREFIX = "spend_tracker:"
CATEGORIES_KEY = KEY_PREFIX + "categories"
ENTRIES_PREFIX = KEY_PREFIX + "entries:"
BUDGETS_PREFIX = KEY_PREFIX + "budgets:"
# Single-list snapshot written by the first release, before month partitions existed.
LEGACY_KEY = "spend_tracker.v1"

T = TypeVar("T")


def entries_key(month: str) -> str:
    return ENTRIES_PREFIX + month


def budgets_key(month: str) -> str:
    return BUDGETS_PREFIX + month


def entry_from_record(record: object) -> Entry:
    """Validate the shape of a stored entry record and hydrate it."""
    if not isinstance(record, dict):
        raise ValidationError("entry record must be an object")
    amount = record.get("amount")
    if isinstance(amount, bool) or not isinstance(amount, (str, int, float)):
        raise ValidationError("amount must be a number or numeric string")
    return Entry(
        id=validate_required_str(record.get("id"), "id"),
        date=validate_date(record.get("date")),
        amount=parse_amount(amount),
        category=validate_required_str(record.get("category"), "category"),
        what=validate_required_str(record.get("what"), "what"),
        location=validate_optional_text(record.get("location"), "location"),
    )


class LedgerRecords:
    """Reads and writes the categories, entries and budgets partitions."""

    def __init__(self, storage: Optional[KeyValueStorage]) -> None:
        self._storage = storage
        self.last_error: Optional[PersistenceError] = None
        if storage is None:
            logger.warning("No storage configured; ledger changes will not survive a restart")

    @property
    def available(self) -> bool:
        return self._storage is not None

    # Low-level guarded access -------------------------------------------
    def _guard(
        self, action: str, key: str, operation: Callable[[KeyValueStorage], T]
    ) -> Tuple[bool, Optional[T]]:
        if self._storage is None:
            return False, None
        try:
            return True, operation(self._storage)
        except PersistenceError as exc:
            self._record_failure(action, key, exc)
        except Exception as exc:  # adapters are external code and may raise anything
            error = PersistenceError(f"Unexpected error while trying to {action} {key}")
            error.__cause__ = exc
            self._record_failure(action, key, error)
        return False, None

    def _record_failure(self, action: str, key: str, exc: PersistenceError) -> None:
        self.last_error = exc
        logger.warning("Could not %s %s: %s", action, key, exc)

    def _read(self, key: str) -> Any:
        _, raw = self._guard("read", key, lambda storage: storage.get(key))
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Discarding unparseable record %s", key)
            return None

    def _write(self, key: str, payload: Any) -> bool:
        encoded = json.dumps(payload)
        done, _ = self._guard("write", key, lambda storage: storage.set(key, encoded))
        if done:
            self.last_error = None
        return done

    def _delete(self, key: str) -> bool:
        done, _ = self._guard("delete", key, lambda storage: storage.delete(key))
        if done:
            self.last_error = None
        return done

    def keys(self) -> List[str]:
        _, keys = self._guard("list", KEY_PREFIX + "*", lambda storage: list(storage.keys()))
        return keys or []

    def _months(self, prefix: str) -> List[str]:
        months = []
        for key in self.keys():
            if not key.startswith(prefix):
                continue
            try:
                months.append(validate_month_key(key[len(prefix):]))
            except ValidationError:
                logger.warning("Ignoring record with malformed month key %s", key)
        return sorted(months)

    # Categories ------------------------------------------------------------
    def load_categories(self) -> List[str]:
        payload = self._read(CATEGORIES_KEY)
        if not isinstance(payload, list):
            if payload is not None:
                logger.warning("Discarding malformed category list")
            return []
        return [name for name in payload if isinstance(name, str)]

    def save_categories(self, names: Iterable[str]) -> bool:
        return self._write(CATEGORIES_KEY, list(names))

    # Entries ---------------------------------------------------------------
    def entry_months(self) -> List[str]:
        return self._months(ENTRIES_PREFIX)

    def load_entries(self, month: str) -> List[Entry]:
        return self._entries_from_payload(self._read(entries_key(month)), entries_key(month))

    def save_entries(self, month: str, entries: Iterable[Entry]) -> bool:
        records = [entry.to_dict() for entry in entries]
        if not records:
            return self._delete(entries_key(month))
        return self._write(entries_key(month), records)

    def load_legacy_entries(self) -> Optional[List[Entry]]:
        payload = self._read(LEGACY_KEY)
        if payload is None:
            return None
        return self._entries_from_payload(payload, LEGACY_KEY)

    def drop_legacy(self) -> bool:
        return self._delete(LEGACY_KEY)

    def _entries_from_payload(self, payload: Any, key: str) -> List[Entry]:
        if payload is None:
            return []
        if not isinstance(payload, list):
            logger.warning("Discarding malformed entry list %s", key)
            return []
        entries: List[Entry] = []
        for record in payload:
            try:
                entries.append(entry_from_record(record))
            except ValidationError as exc:
                logger.warning("Discarding malformed entry in %s: %s", key, exc)
        return entries

    # Budgets ---------------------------------------------------------------
    def budget_months(self) -> List[str]:
        return self._months(BUDGETS_PREFIX)

    def load_budgets(self, month: str) -> Dict[str, Decimal]:
        payload = self._read(budgets_key(month))
        if payload is None:
            return {}
        if not isinstance(payload, dict):
            logger.warning("Discarding malformed budget table %s", budgets_key(month))
            return {}
        return {str(name): parse_budget_value(value) for name, value in payload.items()}

    def save_budgets(self, month: str, budgets: Dict[str, Decimal]) -> bool:
        if not budgets:
            return self._delete(budgets_key(month))
        return self._write(budgets_key(month), {name: str(value) for name, value in budgets.items()})

    # Bulk ------------------------------------------------------------------
    def clear_namespace(self) -> int:
        """Delete every record belonging to this application; returns how many were targeted."""
        owned = [key for key in self.keys() if key.startswith(KEY_PREFIX) or key == LEGACY_KEY]
        for key in owned:
            self._delete(key)
        return len(owned)
