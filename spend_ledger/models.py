"""Data models for the spend ledger domain."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict

__all__ = ["CategoryName", "Entry", "month_of", "parse_date"]

# Entries reference categories by bare name; the name may no longer exist in the registry.
CategoryName = str

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def month_of(day: date) -> str:
    """Return the ``YYYY-MM`` month key an entry dated ``day`` belongs to."""
    return f"{day.year:04d}-{day.month:02d}"


def parse_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` string into a date."""
    value = value.strip()
    if not DATE_PATTERN.fullmatch(value):
        raise ValueError(f"Invalid date {value!r}")
    return date.fromisoformat(value)


@dataclass(frozen=True)
class Entry:
    id: str
    date: date
    amount: Decimal
    category: CategoryName
    what: str
    location: str = ""

    @property
    def month(self) -> str:
        return month_of(self.date)

    def to_dict(self) -> Dict[str, Any]:
        """Serialise the entry to JSON-friendly natives."""
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "amount": str(self.amount),
            "category": self.category,
            "location": self.location,
            "what": self.what,
        }
