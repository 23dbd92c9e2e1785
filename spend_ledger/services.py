"""Framework-agnostic business services for the spend ledger."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Optional
from uuid import uuid4

from .aggregation import sort_entries
from .exceptions import DuplicateError, EmptyNameError, RecordNotFoundError
from .models import CategoryName, Entry
from .persistence import LedgerRecords
from .validators import (
    parse_amount,
    parse_budget_value,
    validate_date,
    validate_month_key,
    validate_optional_text,
    validate_required_str,
)

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = (
    "Bills",
    "Car",
    "Food",
    "Fun",
    "Gas",
    "Hygiene",
    "Other",
    "Subscriptions",
    "Supplements",
)
# Form selection used when no category is left to pick from.
FALLBACK_CATEGORY = "Other"


class CategoryService:
    """Manages the global, case-insensitively unique set of category names."""

    def __init__(self, records: LedgerRecords) -> None:
        self._records = records
        self._names: List[str] = []
        self.load()

    def add(self, name: object) -> str:
        if not isinstance(name, str) or not name.strip():
            raise EmptyNameError("Category name cannot be empty")
        cleaned = validate_required_str(name, "name")
        existing = self.canonical(cleaned)
        if existing is not None:
            raise DuplicateError(f"Category '{existing}' already exists")
        self._names.append(cleaned)
        self._persist()
        return cleaned

    def remove(self, name: str) -> str:
        """Remove a category and return the stored spelling that was removed."""
        stored = self._get_or_raise(name)
        self._names.remove(stored)
        if not self._names:
            logger.info("Last category removed; restoring defaults")
            self._names = list(DEFAULT_CATEGORIES)
        self._persist()
        return stored

    def list(self) -> List[str]:
        return sorted(self._names)

    def canonical(self, name: str) -> Optional[str]:
        """Return the stored spelling of ``name`` or None if it is not registered."""
        wanted = name.strip().lower()
        for stored in self._names:
            if stored.lower() == wanted:
                return stored
        return None

    def contains(self, name: str) -> bool:
        return self.canonical(name) is not None

    def first(self) -> str:
        names = self.list()
        return names[0] if names else FALLBACK_CATEGORY

    def reset(self) -> None:
        self._names = list(DEFAULT_CATEGORIES)
        self._persist()

    def load(self) -> None:
        stored = self._records.load_categories()
        names = _normalize_names(stored)
        if not names:
            names = list(DEFAULT_CATEGORIES)
        self._names = names
        if names != stored:
            self._persist()

    def _persist(self) -> None:
        self._records.save_categories(self.list())

    def _get_or_raise(self, name: str) -> str:
        stored = self.canonical(name) if isinstance(name, str) else None
        if stored is None:
            raise RecordNotFoundError(f"Category {name} not found")
        return stored


class EntryService:
    """Manages spending entries and writes them back per month partition."""

    def __init__(self, records: LedgerRecords) -> None:
        self._records = records
        self._entries: Dict[str, Entry] = {}
        self.load()  # Hydrate in-memory cache from persistence on construction.

    # Public API -----------------------------------------------------------
    def add(self, payload: Dict[str, object]) -> Entry:
        data = self._validate_payload(payload)
        entry = Entry(**data)
        self._entries[entry.id] = entry
        self._persist([entry.month])
        return entry

    def update(self, entry_id: str, changes: Dict[str, object]) -> Entry:
        existing = self._get_or_raise(entry_id)
        # Merge existing serialised data with incoming changes to support partial updates.
        merged_payload = {**existing.to_dict(), **changes}
        data = self._validate_payload(merged_payload, current=existing)
        updated = Entry(**data)
        self._entries[entry_id] = updated
        # A date edit may move the entry into another month partition.
        self._persist([existing.month, updated.month])
        return updated

    def delete(self, entry_id: str) -> Entry:
        entry = self._get_or_raise(entry_id)
        del self._entries[entry_id]
        self._persist([entry.month])
        return entry

    def get(self, entry_id: str) -> Entry:
        """Return an entry or raise if it does not exist."""
        return self._get_or_raise(entry_id)

    def for_month(self, month: str) -> List[Entry]:
        month = validate_month_key(month)
        return sort_entries(entry for entry in self._entries.values() if entry.month == month)

    def months(self) -> List[str]:
        return sorted({entry.month for entry in self._entries.values()})

    def clear_month(self, month: str) -> List[str]:
        """Remove every entry of ``month`` and return the removed ids."""
        month = validate_month_key(month)
        removed = [entry_id for entry_id, entry in self._entries.items() if entry.month == month]
        for entry_id in removed:
            del self._entries[entry_id]
        self._persist([month])
        return removed

    def clear_all(self) -> None:
        months = self.months()
        self._entries = {}
        self._persist(months)

    def is_category_in_use(self, category_name: CategoryName) -> bool:
        return any(entry.category == category_name for entry in self._entries.values())

    def load(self) -> None:
        """Load every month partition and fold in the legacy single-list snapshot."""
        self._entries = {}
        misplaced = set()
        for month in self._records.entry_months():
            for entry in self._records.load_entries(month):
                if entry.id in self._entries:
                    logger.warning("Skipping duplicate entry %s in %s", entry.id, month)
                    continue
                if entry.month != month:
                    misplaced.update((month, entry.month))
                self._entries[entry.id] = entry

        legacy = self._records.load_legacy_entries()
        if legacy is not None:
            imported = [entry for entry in legacy if entry.id not in self._entries]
            for entry in imported:
                self._entries[entry.id] = entry
            logger.info("Imported %d entries from legacy snapshot", len(imported))
            if self._persist({entry.month for entry in imported}):
                self._records.drop_legacy()

        if misplaced:
            self._persist(misplaced)

    # Internal helpers -----------------------------------------------------
    def _persist(self, months: Iterable[str]) -> bool:
        ok = True
        for month in sorted(set(months)):
            ok = self._records.save_entries(month, self.for_month(month)) and ok
        return ok

    def _get_or_raise(self, entry_id: str) -> Entry:
        try:
            return self._entries[entry_id]
        except KeyError as exc:
            raise RecordNotFoundError(f"Entry {entry_id} not found") from exc

    def _validate_payload(
        self, payload: Dict[str, object], *, current: Optional[Entry] = None
    ) -> Dict[str, object]:
        # The id is never taken from the payload.
        return {
            "id": current.id if current else str(uuid4()),
            "date": validate_date(payload.get("date")),
            "amount": parse_amount(payload.get("amount"), "amount"),
            "category": validate_required_str(payload.get("category"), "category"),
            "what": validate_required_str(payload.get("what"), "what"),
            "location": validate_optional_text(payload.get("location"), "location"),
        }


class BudgetService:
    """Manages per-month, per-category spending limits."""

    def __init__(self, records: LedgerRecords) -> None:
        self._records = records
        self._budgets: Dict[str, Dict[str, Decimal]] = {}
        self.load()

    def set(self, month: str, category: CategoryName, raw_value: object) -> Decimal:
        """Store a limit; unusable values are stored as zero rather than rejected."""
        month = validate_month_key(month)
        category = validate_required_str(category, "category")
        value = parse_budget_value(raw_value)
        self._budgets.setdefault(month, {})[category] = value
        self._persist(month)
        return value

    def get(self, month: str, category: CategoryName) -> Decimal:
        return self._budgets.get(month, {}).get(category, Decimal("0"))

    def for_month(self, month: str) -> Dict[str, Decimal]:
        month = validate_month_key(month)
        return dict(self._budgets.get(month, {}))

    def remove_category(self, category: CategoryName) -> int:
        """Drop the limits for ``category`` in every month, ignoring case; returns rows removed."""
        wanted = category.lower()
        removed = 0
        for month, table in list(self._budgets.items()):
            matches = [name for name in table if name.lower() == wanted]
            for name in matches:
                del table[name]
            if matches:
                removed += len(matches)
                self._persist(month)
        return removed

    def clear_month(self, month: str) -> None:
        month = validate_month_key(month)
        self._budgets.pop(month, None)
        self._persist(month)

    def clear_all(self) -> None:
        months = list(self._budgets)
        self._budgets = {}
        for month in months:
            self._persist(month)

    def load(self) -> None:
        self._budgets = {
            month: self._records.load_budgets(month) for month in self._records.budget_months()
        }

    def _persist(self, month: str) -> None:
        self._records.save_budgets(month, self._budgets.get(month, {}))


def _normalize_names(raw_names: Iterable[object]) -> List[str]:
    names: List[str] = []
    seen = set()
    for raw in raw_names:
        if not isinstance(raw, str):
            continue
        name = raw.strip()
        if not name or name.lower() in seen:
            continue
        seen.add(name.lower())
        names.append(name)
    return names
