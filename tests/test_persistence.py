import json
from decimal import Decimal

from spend_ledger.persistence import LEGACY_KEY, LedgerRecords
from spend_ledger.services import DEFAULT_CATEGORIES


def _entry(**overrides):
    record = {
        "id": "e1",
        "date": "2026-01-05",
        "amount": 12.5,
        "category": "Food",
        "location": "Costco",
        "what": "Groceries",
    }
    record.update(overrides)
    return record


def test_malformed_records_are_discarded(storage, reload):
    storage.set("spend_tracker:categories", "not json")
    storage.set(
        "spend_tracker:entries:2026-01",
        json.dumps([
            _entry(),
            _entry(id="e2", amount="abc"),
            _entry(id="e3", what="   "),
            _entry(id="e4", date="2026-01-99"),
            _entry(id="e5", amount=True),
            "garbage",
        ]),
    )
    storage.set("spend_tracker:entries:2026-02", json.dumps({"not": "a list"}))
    storage.set("spend_tracker:budgets:2026-01", json.dumps({"Food": "abc", "Gas": -3, "Car": 40}))

    ledger = reload()

    assert ledger.list_categories() == sorted(DEFAULT_CATEGORIES)
    assert [entry.id for entry in ledger.entries_for_month("2026-01")] == ["e1"]
    assert ledger.entries_for_month("2026-02") == []
    assert ledger.budgets_for_month("2026-01") == {
        "Food": Decimal("0"),
        "Gas": Decimal("0"),
        "Car": Decimal("40"),
    }


def test_blank_category_list_falls_back_to_defaults(storage, reload):
    storage.set("spend_tracker:categories", json.dumps(["  ", "", 3]))
    ledger = reload()
    assert ledger.list_categories() == sorted(DEFAULT_CATEGORIES)


def test_stored_categories_are_trimmed_and_deduplicated(storage, reload):
    storage.set("spend_tracker:categories", json.dumps([" Pets ", "pets", "Travel"]))
    ledger = reload()
    assert ledger.list_categories() == ["Pets", "Travel"]


def test_month_round_trip_reproduces_entries_and_budgets(ledger, reload):
    ledger.add_entry("2026-01-05", "12.50", "Food", "Costco", "Groceries")
    ledger.add_entry("2026-01-07", "40", "Gas", "", "Fill up")
    ledger.set_budget("Food", "200", month="2026-01")

    restored = reload()

    assert restored.entries_for_month("2026-01") == ledger.entries_for_month("2026-01")
    assert restored.budgets_for_month("2026-01") == {"Food": Decimal("200")}


def test_entry_in_wrong_partition_is_placed_by_its_date(storage, reload):
    storage.set("spend_tracker:entries:2026-01", json.dumps([_entry(date="2026-02-03")]))

    ledger = reload()

    assert ledger.entries_for_month("2026-01") == []
    assert [entry.id for entry in ledger.entries_for_month("2026-02")] == ["e1"]
    assert storage.get("spend_tracker:entries:2026-01") is None
    assert json.loads(storage.get("spend_tracker:entries:2026-02"))[0]["id"] == "e1"


def test_legacy_snapshot_is_imported_into_month_partitions(storage, reload):
    storage.set(
        LEGACY_KEY,
        json.dumps([
            dict(_entry(), month="2026-01"),
            dict(_entry(id="e2", date="2025-12-24", category="Fun"), month="2025-12"),
        ]),
    )

    ledger = reload()

    assert [entry.id for entry in ledger.entries_for_month("2026-01")] == ["e1"]
    assert [entry.id for entry in ledger.entries_for_month("2025-12")] == ["e2"]
    assert storage.get(LEGACY_KEY) is None
    assert storage.get("spend_tracker:entries:2025-12") is not None


def test_empty_partitions_are_deleted(ledger, storage):
    entry = ledger.add_entry("2026-01-05", "3", "Food", "", "Coffee")
    assert storage.get("spend_tracker:entries:2026-01") is not None

    ledger.delete_entry(entry.id)

    assert storage.get("spend_tracker:entries:2026-01") is None


def test_write_failures_are_remembered_not_raised(failing_storage, caplog):
    records = LedgerRecords(failing_storage)

    assert records.save_categories(["Food"]) is False
    assert records.last_error is not None
    assert "Could not write" in caplog.text


def test_unexpected_adapter_errors_are_wrapped():
    records = LedgerRecords(_Exploding())

    assert records.keys() == []
    assert records.load_categories() == []
    assert records.last_error is not None


class _Exploding:
    def get(self, key):
        raise RuntimeError("boom")

    def set(self, key, value):
        raise RuntimeError("boom")

    def delete(self, key):
        raise RuntimeError("boom")

    def keys(self):
        raise RuntimeError("boom")
