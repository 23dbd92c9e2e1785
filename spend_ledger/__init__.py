"""Core ledger state and aggregation for the spend tracker."""

from .aggregation import BudgetProgress, MonthSummary
from .exceptions import (
    DuplicateError,
    EditStateError,
    EmptyNameError,
    PersistenceError,
    RecordNotFoundError,
    ValidationError,
)
from .ledger import EditDraft, EntryForm, Ledger
from .models import CategoryName, Entry, month_of
from .services import BudgetService, CategoryService, EntryService
from .storage import JSONStorage, KeyValueStorage, MemoryStorage

__all__ = [
    "BudgetProgress",
    "BudgetService",
    "CategoryName",
    "CategoryService",
    "DuplicateError",
    "EditDraft",
    "EditStateError",
    "EmptyNameError",
    "Entry",
    "EntryForm",
    "EntryService",
    "JSONStorage",
    "KeyValueStorage",
    "Ledger",
    "MemoryStorage",
    "MonthSummary",
    "PersistenceError",
    "RecordNotFoundError",
    "ValidationError",
    "month_of",
]
