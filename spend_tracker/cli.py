"""Console interface for the spend tracker."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from decimal import Decimal
from pathlib import Path
from typing import Callable, List, Optional

from spend_ledger.aggregation import MonthSummary
from spend_ledger.exceptions import (
    EditStateError,
    PersistenceError,
    RecordNotFoundError,
    ValidationError,
)
from spend_ledger.ledger import Ledger
from spend_ledger.models import Entry
from spend_ledger.storage import JSONStorage
from spend_ledger.validators import validate_month_key

NO_VALUE = "—"


def _parse_month(value: str) -> str:
    try:
        return validate_month_key(value)
    except ValidationError as exc:
        raise argparse.ArgumentTypeError(f"Invalid month '{value}'. Expected format YYYY-MM.") from exc


def money(amount: Decimal) -> str:
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def _load_ledger(data_dir: Path) -> Ledger:
    try:
        storage = JSONStorage(data_dir)
    except PersistenceError as exc:
        logging.getLogger(__name__).warning("Storage unavailable, running in memory: %s", exc)
        return Ledger(None)
    return Ledger(storage)


def _format_entry(entry: Entry) -> str:
    return (
        f"[{entry.id}] {entry.date.isoformat()} {money(entry.amount)}\n"
        f"  Category: {entry.category} | Location: {entry.location or NO_VALUE}\n"
        f"  What: {entry.what}\n"
    )


def _format_summary(summary: MonthSummary) -> str:
    biggest = (
        f"{summary.biggest[0]} ({money(summary.biggest[1])})" if summary.biggest else NO_VALUE
    )
    lines = [
        f"Month: {summary.month}",
        f"Month total: {money(summary.total)}",
        f"Biggest category: {biggest}",
        f"Entries: {summary.entry_count}",
        "",
        "Category totals:",
    ]
    for item in summary.progress:
        label = f"{item.category} (old)" if item.category in summary.orphans else item.category
        if item.percent is None:
            budget = "No budget"
        else:
            state = (
                f"over by {money(-item.remaining)}" if item.over else f"{money(item.remaining)} left"
            )
            budget = f"{round(item.percent)}% of {money(item.budget)}, {state}"
        lines.append(f"  {label}: {money(item.spent)} | {budget}")
    return "\n".join(lines)


def _confirm(prompt: str, assume_yes: bool, ask: Callable[[str], str] = input) -> bool:
    if assume_yes:
        return True
    answer = ask(f"{prompt} [y/N] ")
    return answer.strip().lower() in {"y", "yes"}


def handle_entry(args: argparse.Namespace, ledger: Ledger) -> None:
    if args.command == "add":
        entry = ledger.add_entry(
            args.date,
            args.amount,
            args.category,
            args.location or "",
            args.what,
            register_category=args.register,
        )
        print("Entry added:\n" + _format_entry(entry))
    elif args.command == "list":
        entries = ledger.entries_for_month(args.month)
        if not entries:
            print("No entries yet for this month.")
            return
        for entry in entries:
            print(_format_entry(entry))
    elif args.command == "edit":
        changes = {
            "date": args.date,
            "amount": args.amount,
            "category": args.category,
            "location": args.location,
            "what": args.what,
        }
        cleaned = {k: v for k, v in changes.items() if v is not None}
        ledger.start_edit(args.id)
        ledger.update_draft(**cleaned)
        entry = ledger.save_edit()
        print("Entry updated:\n" + _format_entry(entry))
    elif args.command == "delete":
        if not _confirm("Delete this entry?", args.yes):
            print("Aborted.")
            return
        ledger.delete_entry(args.id)
        print(f"Entry {args.id} deleted.")


def handle_category(args: argparse.Namespace, ledger: Ledger) -> None:
    if args.command == "list":
        for name in ledger.list_categories():
            print(name)
    elif args.command == "add":
        name = ledger.add_category(args.name)
        print(f"Category {name} added.")
    elif args.command == "remove":
        if ledger.is_category_in_use(args.name):
            prompt = (
                f'"{args.name}" is used by existing entries. Removing it will not delete '
                "those entries. Continue?"
            )
        else:
            prompt = f'Remove category "{args.name}"?'
        if not _confirm(prompt, args.yes):
            print("Aborted.")
            return
        removed = ledger.remove_category(args.name)
        print(f"Category {removed} removed.")


def handle_budget(args: argparse.Namespace, ledger: Ledger) -> None:
    if args.command == "set":
        value = ledger.set_budget(args.category, args.value, month=args.month)
        print(f"Budget for {args.category} in {args.month or ledger.month}: {money(value)}")
    elif args.command == "list":
        budgets = ledger.budgets_for_month(args.month)
        if not budgets:
            print("No budgets set for this month.")
            return
        for name, value in sorted(budgets.items()):
            print(f"{name}: {money(value)}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Spend Tracker CLI")
    parser.add_argument(
        "--data-dir",
        default=Path(os.getenv("SPEND_TRACKER_DATA_DIR", "data")),
        type=Path,
        help="Directory to store JSON data (default: ./data)",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="entity", required=True)

    entry_parser = subparsers.add_parser("entry", help="Manage spending entries")
    entry_sub = entry_parser.add_subparsers(dest="command", required=True)

    entry_add = entry_sub.add_parser("add", help="Record a new entry")
    entry_add.add_argument("date", help="YYYY-MM-DD")
    entry_add.add_argument("amount")
    entry_add.add_argument("category")
    entry_add.add_argument("what")
    entry_add.add_argument("--location")
    entry_add.add_argument(
        "--register",
        action="store_true",
        help="Add the category to the list if it is not there yet",
    )

    entry_list = entry_sub.add_parser("list", help="List entries of a month")
    entry_list.add_argument("--month", type=_parse_month)

    entry_edit = entry_sub.add_parser("edit", help="Edit an existing entry")
    entry_edit.add_argument("id")
    entry_edit.add_argument("--date")
    entry_edit.add_argument("--amount")
    entry_edit.add_argument("--category")
    entry_edit.add_argument("--location")
    entry_edit.add_argument("--what")

    entry_delete = entry_sub.add_parser("delete", help="Delete an entry")
    entry_delete.add_argument("id")
    entry_delete.add_argument("--yes", action="store_true")

    category_parser = subparsers.add_parser("category", help="Manage categories")
    category_sub = category_parser.add_subparsers(dest="command", required=True)
    category_sub.add_parser("list", help="List categories")
    category_add = category_sub.add_parser("add", help="Add a category")
    category_add.add_argument("name")
    category_remove = category_sub.add_parser("remove", help="Remove a category")
    category_remove.add_argument("name")
    category_remove.add_argument("--yes", action="store_true")

    budget_parser = subparsers.add_parser("budget", help="Manage monthly budgets")
    budget_sub = budget_parser.add_subparsers(dest="command", required=True)
    budget_set = budget_sub.add_parser("set", help="Set a category budget")
    budget_set.add_argument("category")
    budget_set.add_argument("value")
    budget_set.add_argument("--month", type=_parse_month)
    budget_list = budget_sub.add_parser("list", help="List budgets of a month")
    budget_list.add_argument("--month", type=_parse_month)

    summary_parser = subparsers.add_parser("summary", help="Show month totals and budgets")
    summary_parser.add_argument("--month", type=_parse_month)

    clear_month = subparsers.add_parser("clear-month", help="Delete a month's entries and budgets")
    clear_month.add_argument("--month", type=_parse_month)
    clear_month.add_argument("--yes", action="store_true")

    clear_all = subparsers.add_parser("clear-all", help="Delete everything and restore defaults")
    clear_all.add_argument("--yes", action="store_true")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ledger = _load_ledger(args.data_dir)

    try:
        if args.entity == "entry":
            handle_entry(args, ledger)
        elif args.entity == "category":
            handle_category(args, ledger)
        elif args.entity == "budget":
            handle_budget(args, ledger)
        elif args.entity == "summary":
            print(_format_summary(ledger.summary(args.month)))
        elif args.entity == "clear-month":
            month = args.month or ledger.month
            if not _confirm(f"Clear all entries and budgets for {month}?", args.yes):
                print("Aborted.")
                return 0
            removed = ledger.clear_month(month)
            print(f"Cleared {removed} entries for {month}.")
        elif args.entity == "clear-all":
            prompt = "Clear everything? All months, entries and budgets; categories reset to default."
            if not _confirm(prompt, args.yes):
                print("Aborted.")
                return 0
            ledger.clear_all()
            print("All data cleared.")
        else:  # pragma: no cover - argparse should prevent this
            parser.error(f"Unknown entity: {args.entity}")
            return 2
    except ValidationError as exc:
        print(f"Validation error: {exc}", file=sys.stderr)
        return 1
    except RecordNotFoundError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    except EditStateError as exc:
        print(str(exc), file=sys.stderr)
        return 1

    if ledger.last_persistence_error is not None:
        print(f"Warning: changes were not saved: {ledger.last_persistence_error}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
