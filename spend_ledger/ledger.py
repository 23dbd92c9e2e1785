"""Ledger facade: the single object presentation layers talk to."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, fields
from datetime import date
from decimal import Decimal
from typing import Callable, Dict, List, Optional

from .aggregation import MonthSummary, summarize_month
from .exceptions import EditStateError, PersistenceError, RecordNotFoundError, ValidationError
from .models import CategoryName, Entry, month_of
from .persistence import LedgerRecords
from .services import BudgetService, CategoryService, EntryService
from .storage import KeyValueStorage
from .validators import validate_month_key

logger = logging.getLogger(__name__)


@dataclass
class EntryForm:
    """Raw values of the add-entry form, kept as typed by the user."""

    date: str
    category: str
    amount: str = ""
    location: str = ""
    what: str = ""

    def to_payload(self) -> Dict[str, object]:
        return asdict(self)


@dataclass
class EditDraft:
    """Working copy of an entry while it is being edited."""

    entry_id: str
    date: str
    amount: str
    category: str
    location: str
    what: str

    @classmethod
    def from_entry(cls, entry: Entry) -> "EditDraft":
        return cls(
            entry_id=entry.id,
            date=entry.date.isoformat(),
            amount=str(entry.amount),
            category=entry.category,
            location=entry.location,
            what=entry.what,
        )

    def to_changes(self) -> Dict[str, object]:
        changes = asdict(self)
        del changes["entry_id"]
        return changes


_DRAFT_FIELDS = {item.name for item in fields(EditDraft)} - {"entry_id"}


class Ledger:
    """Owns categories, entries and budgets for the lifetime of the process.

    Construction loads everything from ``storage``. When ``storage`` is None
    the ledger runs purely in memory.
    """

    def __init__(
        self,
        storage: Optional[KeyValueStorage] = None,
        *,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._today = today
        self._records = LedgerRecords(storage)
        self.categories = CategoryService(self._records)
        self.entries = EntryService(self._records)
        self.budgets = BudgetService(self._records)
        self._month = month_of(today())
        self._draft: Optional[EditDraft] = None
        self.form = self._fresh_form(self.categories.first())

    # State ------------------------------------------------------------------
    @property
    def month(self) -> str:
        return self._month

    @property
    def editing_id(self) -> Optional[str]:
        return self._draft.entry_id if self._draft else None

    @property
    def is_editing(self) -> bool:
        return self._draft is not None

    @property
    def draft(self) -> Optional[EditDraft]:
        return self._draft

    @property
    def last_persistence_error(self) -> Optional[PersistenceError]:
        return self._records.last_error

    @property
    def storage_ok(self) -> bool:
        return self._records.available and self._records.last_error is None

    def select_month(self, month: str) -> str:
        """Switch the viewed month. An open edit survives the switch."""
        self._month = validate_month_key(month)
        if not self.is_editing:
            self.reset_form()
        return self._month

    def _resolve_month(self, month: Optional[str]) -> str:
        return self._month if month is None else validate_month_key(month)

    # Form -------------------------------------------------------------------
    def _fresh_form(self, category: str) -> EntryForm:
        return EntryForm(date=self._today().isoformat(), category=category)

    def reset_form(self) -> EntryForm:
        """Today's date and blank inputs; the selected category is kept."""
        self.form = self._fresh_form(self.form.category)
        return self.form

    def submit_form(self, *, register_category: bool = False) -> Entry:
        entry = self.add_entry(**self.form.to_payload(), register_category=register_category)
        # Keep date and category for quick successive entries.
        self.form.amount = ""
        self.form.location = ""
        self.form.what = ""
        return entry

    # Entries ----------------------------------------------------------------
    def add_entry(
        self,
        date: object,
        amount: object,
        category: object,
        location: object = "",
        what: object = "",
        *,
        register_category: bool = False,
    ) -> Entry:
        entry = self.entries.add(
            {"date": date, "amount": amount, "category": category, "location": location, "what": what}
        )
        if register_category and not self.categories.contains(entry.category):
            self.categories.add(entry.category)
        return entry

    def update_entry(self, entry_id: str, changes: Dict[str, object]) -> Entry:
        return self.entries.update(entry_id, changes)

    def delete_entry(self, entry_id: str) -> Entry:
        entry = self.entries.delete(entry_id)
        if self.editing_id == entry_id:
            # Deleting always wins over an open edit.
            self._draft = None
        return entry

    def get_entry(self, entry_id: str) -> Entry:
        return self.entries.get(entry_id)

    def entries_for_month(self, month: Optional[str] = None) -> List[Entry]:
        return self.entries.for_month(self._resolve_month(month))

    # Editing ----------------------------------------------------------------
    def start_edit(self, entry_id: str) -> EditDraft:
        entry = self.entries.get(entry_id)
        self._draft = EditDraft.from_entry(entry)
        return self._draft

    def update_draft(self, **changes: object) -> EditDraft:
        draft = self._require_draft()
        unknown = set(changes) - _DRAFT_FIELDS
        if unknown:
            raise ValidationError(f"Unknown draft fields: {', '.join(sorted(unknown))}")
        for name, value in changes.items():
            setattr(draft, name, value)
        return draft

    def cancel_edit(self) -> None:
        self._draft = None

    def save_edit(self) -> Entry:
        """Commit the draft. On a validation error the draft stays open."""
        draft = self._require_draft()
        try:
            entry = self.entries.update(draft.entry_id, draft.to_changes())
        except RecordNotFoundError:
            self._draft = None
            raise
        self._draft = None
        return entry

    def _require_draft(self) -> EditDraft:
        if self._draft is None:
            raise EditStateError("No entry is being edited")
        return self._draft

    # Categories -------------------------------------------------------------
    def list_categories(self) -> List[CategoryName]:
        return self.categories.list()

    def add_category(self, name: object) -> CategoryName:
        return self.categories.add(name)

    def remove_category(self, name: str) -> CategoryName:
        """Remove a category and its budgets in every month; entries keep the name."""
        removed = self.categories.remove(name)
        dropped = self.budgets.remove_category(removed)
        logger.debug("Removed category %s and %d budget rows", removed, dropped)
        if self.form.category == removed:
            self.form.category = self.categories.first()
        return removed

    def is_category_in_use(self, name: CategoryName) -> bool:
        return self.entries.is_category_in_use(name)

    # Budgets ----------------------------------------------------------------
    def set_budget(self, category: CategoryName, raw_value: object, month: Optional[str] = None) -> Decimal:
        return self.budgets.set(self._resolve_month(month), self._budget_category(category), raw_value)

    def get_budget(self, category: CategoryName, month: Optional[str] = None) -> Decimal:
        return self.budgets.get(self._resolve_month(month), self._budget_category(category))

    def _budget_category(self, category: object) -> object:
        # Registered names are stored under their registry spelling.
        if isinstance(category, str):
            return self.categories.canonical(category) or category
        return category

    def budgets_for_month(self, month: Optional[str] = None) -> Dict[CategoryName, Decimal]:
        return self.budgets.for_month(self._resolve_month(month))

    # Aggregation ------------------------------------------------------------
    def summary(self, month: Optional[str] = None) -> MonthSummary:
        month = self._resolve_month(month)
        return summarize_month(
            month,
            self.entries.for_month(month),
            self.categories.list(),
            self.budgets.for_month(month),
        )

    # Bulk -------------------------------------------------------------------
    def clear_month(self, month: Optional[str] = None) -> int:
        month = self._resolve_month(month)
        removed = self.entries.clear_month(month)
        self.budgets.clear_month(month)
        if self.editing_id in removed:
            self._draft = None
        logger.info("Cleared %d entries and budgets for %s", len(removed), month)
        return len(removed)

    def clear_all(self) -> None:
        self.entries.clear_all()
        self.budgets.clear_all()
        self._records.clear_namespace()
        self.categories.reset()
        self._month = month_of(self._today())
        self._draft = None
        self.form = self._fresh_form(self.categories.first())
        logger.info("Cleared all ledger data")
