"""Read-only aggregation over a month's entries and budgets.

Everything here is a pure function of its arguments; callers pass snapshots
and nothing is mutated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .models import CategoryName, Entry

__all__ = [
    "BudgetProgress",
    "MonthSummary",
    "PERCENT_CAP",
    "biggest_category",
    "budget_progress",
    "category_totals",
    "month_total",
    "sort_entries",
    "summarize_month",
]

ZERO = Decimal("0")
PERCENT_CAP = Decimal("999")
HUNDRED = Decimal("100")


def _clamp(value: Decimal, low: Decimal, high: Decimal) -> Decimal:
    return max(low, min(high, value))


def sort_entries(entries: Iterable[Entry]) -> List[Entry]:
    """Newest first; entries sharing a date are ordered by descending id."""
    return sorted(entries, key=lambda entry: (entry.date.isoformat(), entry.id), reverse=True)


def month_total(entries: Iterable[Entry]) -> Decimal:
    return sum((entry.amount for entry in entries), start=ZERO)


def category_totals(
    entries: Iterable[Entry], categories: Iterable[CategoryName]
) -> Dict[CategoryName, Decimal]:
    """Spending per category name.

    Every known category is reported, even at zero. Names referenced by
    entries but missing from ``categories`` (orphans) are accumulated too.
    Keys come back in lexicographic order.
    """
    totals: Dict[CategoryName, Decimal] = {name: ZERO for name in categories}
    for entry in entries:
        totals[entry.category] = totals.get(entry.category, ZERO) + entry.amount
    return {name: totals[name] for name in sorted(totals)}


def biggest_category(totals: Mapping[CategoryName, Decimal]) -> Optional[Tuple[CategoryName, Decimal]]:
    """Return the category with the highest total, or None when nothing was spent.

    Ties go to the name that sorts first.
    """
    best: Optional[Tuple[CategoryName, Decimal]] = None
    for name in sorted(totals):
        value = totals[name]
        if value > ZERO and (best is None or value > best[1]):
            best = (name, value)
    return best


@dataclass(frozen=True)
class BudgetProgress:
    category: CategoryName
    budget: Decimal
    spent: Decimal

    @property
    def has_budget(self) -> bool:
        return self.budget > ZERO

    @property
    def remaining(self) -> Decimal:
        return self.budget - self.spent

    @property
    def over(self) -> bool:
        return self.has_budget and self.remaining < ZERO

    @property
    def percent(self) -> Optional[Decimal]:
        """Share of the budget spent, capped at 999; None means no budget is set."""
        if not self.has_budget:
            return None
        return _clamp(self.spent / self.budget * HUNDRED, ZERO, PERCENT_CAP)

    @property
    def bar_percent(self) -> Decimal:
        percent = self.percent
        return ZERO if percent is None else _clamp(percent, ZERO, HUNDRED)

    def to_dict(self) -> Dict[str, Any]:
        percent = self.percent
        return {
            "category": self.category,
            "budget": str(self.budget),
            "spent": str(self.spent),
            "remaining": str(self.remaining),
            "over": self.over,
            "percent": None if percent is None else str(round(percent)),
        }


def budget_progress(category: CategoryName, budget: Decimal, spent: Decimal) -> BudgetProgress:
    return BudgetProgress(category=category, budget=budget, spent=spent)


@dataclass(frozen=True)
class MonthSummary:
    month: str
    entries: List[Entry]
    total: Decimal
    category_totals: Dict[CategoryName, Decimal]
    biggest: Optional[Tuple[CategoryName, Decimal]]
    progress: List[BudgetProgress] = field(default_factory=list)
    orphans: List[CategoryName] = field(default_factory=list)

    @property
    def entry_count(self) -> int:
        return len(self.entries)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "month": self.month,
            "total": str(self.total),
            "entry_count": self.entry_count,
            "biggest_category": (
                None if self.biggest is None
                else {"category": self.biggest[0], "total": str(self.biggest[1])}
            ),
            "category_totals": {name: str(value) for name, value in self.category_totals.items()},
            "orphans": list(self.orphans),
            "budgets": [item.to_dict() for item in self.progress],
            "entries": [entry.to_dict() for entry in self.entries],
        }


def summarize_month(
    month: str,
    entries: Iterable[Entry],
    categories: Iterable[CategoryName],
    budgets: Mapping[CategoryName, Decimal],
) -> MonthSummary:
    """Compute every month-level figure from one snapshot of entries and budgets."""
    ordered = sort_entries(entries)
    known = list(categories)
    totals = category_totals(ordered, known)
    known_set = set(known)
    names = sorted(set(totals) | set(budgets))
    return MonthSummary(
        month=month,
        entries=ordered,
        total=month_total(ordered),
        category_totals=totals,
        biggest=biggest_category(totals),
        progress=[
            budget_progress(name, budgets.get(name, ZERO), totals.get(name, ZERO)) for name in names
        ],
        orphans=[name for name in totals if name not in known_set],
    )
