from decimal import Decimal

import pytest

from spend_tracker.cli import main, money


@pytest.fixture
def run(tmp_path):
    def _run(*argv):
        return main(["--data-dir", str(tmp_path), *argv])

    return _run


def _added_id(output: str) -> str:
    line = next(line for line in output.splitlines() if line.startswith("["))
    return line[1:line.index("]")]


def test_money_formatting():
    assert money(Decimal("1234.5")) == "$1,234.50"
    assert money(Decimal("-20")) == "-$20.00"


def test_add_list_and_summary(run, capsys):
    assert run("entry", "add", "2026-01-05", "12.50", "Food", "Groceries", "--location", "Costco") == 0
    assert run("entry", "add", "2026-01-06", "30", "Gas", "Fill up") == 0
    assert run("budget", "set", "Food", "10", "--month", "2026-01") == 0
    capsys.readouterr()

    assert run("entry", "list", "--month", "2026-01") == 0
    listing = capsys.readouterr().out
    assert "Groceries" in listing
    assert "Fill up" in listing

    assert run("summary", "--month", "2026-01") == 0
    summary = capsys.readouterr().out
    assert "Month total: $42.50" in summary
    assert "Biggest category: Gas ($30.00)" in summary
    assert "Food: $12.50 | 125% of $10.00, over by $2.50" in summary
    assert "Car: $0.00 | No budget" in summary


def test_invalid_amount_reports_error(run, capsys):
    assert run("entry", "add", "2026-01-05", "abc", "Food", "Groceries") == 1
    assert "Validation error" in capsys.readouterr().err


def test_edit_entry(run, capsys):
    run("entry", "add", "2026-01-05", "12.50", "Food", "Groceries")
    entry_id = _added_id(capsys.readouterr().out)

    assert run("entry", "edit", entry_id, "--date", "2026-02-01") == 0
    capsys.readouterr()
    run("entry", "list", "--month", "2026-02")
    assert entry_id in capsys.readouterr().out


def test_delete_requires_confirmation(run, capsys, monkeypatch):
    run("entry", "add", "2026-01-05", "12.50", "Food", "Groceries")
    entry_id = _added_id(capsys.readouterr().out)

    monkeypatch.setattr("builtins.input", lambda prompt: "n")
    assert run("entry", "delete", entry_id) == 0
    assert "Aborted." in capsys.readouterr().out

    monkeypatch.setattr("builtins.input", lambda prompt: "y")
    assert run("entry", "delete", entry_id) == 0
    assert "deleted" in capsys.readouterr().out
    assert run("entry", "delete", entry_id, "--yes") == 1


def test_remove_used_category_keeps_orphan_totals(run, capsys):
    run("entry", "add", "2026-01-05", "12.50", "Food", "Groceries")
    assert run("category", "remove", "Food", "--yes") == 0
    capsys.readouterr()

    run("summary", "--month", "2026-01")
    assert "Food (old): $12.50" in capsys.readouterr().out


def test_duplicate_category(run, capsys):
    assert run("category", "add", "Pets") == 0
    assert run("category", "add", "PETS") == 1
    assert "already exists" in capsys.readouterr().err


def test_clear_all(run, capsys):
    run("entry", "add", "2026-01-05", "12.50", "Food", "Groceries")
    run("category", "add", "Pets")
    assert run("clear-all", "--yes") == 0
    capsys.readouterr()

    run("category", "list")
    assert "Pets" not in capsys.readouterr().out
    run("entry", "list", "--month", "2026-01")
    assert "No entries yet" in capsys.readouterr().out
