import pytest

from api.app import create_app
from spend_ledger.storage import MemoryStorage


@pytest.fixture
def app(tmp_path):
    app = create_app(data_dir=tmp_path)
    app.config.update(TESTING=True)
    return app


@pytest.fixture
def client(app):
    return app.test_client()


def _add(client, **overrides):
    payload = {
        "date": "2026-01-05",
        "amount": "12.50",
        "category": "Food",
        "location": "Costco",
        "what": "Groceries",
    }
    payload.update(overrides)
    return client.post("/entries", json=payload)


def test_entry_lifecycle(client):
    response = _add(client)
    assert response.status_code == 201
    entry = response.get_json()
    assert entry["amount"] == "12.50"

    listing = client.get("/months/2026-01/entries").get_json()
    assert [item["id"] for item in listing["items"]] == [entry["id"]]

    updated = client.put(f"/entries/{entry['id']}", json={"date": "2026-02-01"})
    assert updated.status_code == 200
    assert client.get("/months/2026-01/entries").get_json()["items"] == []

    assert client.delete(f"/entries/{entry['id']}").status_code == 204
    assert client.get(f"/entries/{entry['id']}").status_code == 404


def test_invalid_entry_is_rejected(client):
    response = _add(client, amount="0")
    assert response.status_code == 400
    assert response.get_json()["error"] == "Validation error"


def test_non_json_body_is_rejected(client):
    response = client.post("/entries", data="amount=3")
    assert response.status_code == 400


def test_category_endpoints(client):
    assert client.post("/categories", json={"name": " Pets "}).get_json() == {"name": "Pets"}
    assert client.post("/categories", json={"name": "pets"}).status_code == 409
    assert client.post("/categories", json={"name": "  "}).status_code == 400
    assert "Pets" in client.get("/categories").get_json()["items"]
    assert client.delete("/categories/Pets").status_code == 204
    assert client.delete("/categories/Pets").status_code == 404


def test_budgets_and_summary(client):
    _add(client, amount="120")
    assert client.put("/months/2026-01/budgets/Food", json={"value": "100"}).status_code == 200
    client.put("/months/2026-01/budgets/Gas", json={"value": "oops"})

    budgets = client.get("/months/2026-01/budgets").get_json()["items"]
    assert budgets == {"Food": "100", "Gas": "0"}

    summary = client.get("/months/2026-01/summary").get_json()
    assert summary["total"] == "120"
    assert summary["biggest_category"] == {"category": "Food", "total": "120"}
    assert summary["storage_ok"] is True
    food = next(item for item in summary["budgets"] if item["category"] == "Food")
    assert food["over"] is True
    assert food["remaining"] == "-20"


def test_bad_month_key(client):
    assert client.get("/months/2026-13/summary").status_code == 400


def test_clear_month_and_clear_all(client):
    _add(client)
    _add(client, date="2026-02-03")
    assert client.delete("/months/2026-01").get_json() == {"removed": 1}
    assert client.get("/months/2026-02/entries").get_json()["items"]
    assert client.delete("/data").status_code == 204
    assert client.get("/months/2026-02/entries").get_json()["items"] == []


def test_data_survives_app_restart(tmp_path):
    first = create_app(data_dir=tmp_path).test_client()
    _add(first)

    second = create_app(data_dir=tmp_path).test_client()
    assert len(second.get("/months/2026-01/entries").get_json()["items"]) == 1


def test_explicit_storage_and_dev_cors(monkeypatch):
    monkeypatch.setenv("SPEND_TRACKER_ENV", "dev")
    app = create_app(storage=MemoryStorage())
    response = app.test_client().get("/categories", headers={"Origin": "http://example.com"})
    assert response.status_code == 200
    assert response.headers.get("Access-Control-Allow-Origin") in {"*", "http://example.com"}
