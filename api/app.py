"""Flask REST API exposing the spend ledger."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request
from flask_cors import CORS

from spend_ledger.exceptions import (
    DuplicateError,
    EditStateError,
    PersistenceError,
    RecordNotFoundError,
    ValidationError,
)
from spend_ledger.ledger import Ledger
from spend_ledger.storage import JSONStorage, KeyValueStorage


def create_app(data_dir: Optional[Path] = None, storage: Optional[KeyValueStorage] = None) -> Flask:
    app = Flask(__name__)

    env_name = os.getenv("SPEND_TRACKER_ENV", "prod").lower()
    if env_name in {"dev", "development"}:
        CORS(app, resources={r"/*": {"origins": "*"}}, supports_credentials=True)
    else:
        allowed_origins = os.getenv("SPEND_TRACKER_ALLOWED_ORIGINS")
        if allowed_origins:
            origins = [origin.strip() for origin in allowed_origins.split(",") if origin.strip()]
            CORS(app, resources={r"/*": {"origins": origins}}, supports_credentials=True)
        else:
            CORS(app)

    if storage is None:
        try:
            storage = JSONStorage(Path(data_dir or os.getenv("SPEND_TRACKER_DATA_DIR", "data")))
        except PersistenceError as exc:
            # The ledger still works in memory; only durability is lost.
            app.logger.error("Storage unavailable, running in memory: %s", exc)
    ledger = Ledger(storage)
    app.extensions["spend_ledger"] = ledger

    def _success(payload: Any, status: int = 200):
        if status == 204:
            return ("", status)
        return jsonify(payload), status

    def _handle_error(exc: Exception, status: int, message: str):
        app.logger.error("%s: %s", message, exc)
        return jsonify({"error": message, "details": str(exc)}), status

    @app.errorhandler(DuplicateError)
    def handle_duplicate(exc: DuplicateError):
        return _handle_error(exc, 409, "Duplicate category")

    @app.errorhandler(ValidationError)
    def handle_validation_error(exc: ValidationError):
        return _handle_error(exc, 400, "Validation error")

    @app.errorhandler(RecordNotFoundError)
    def handle_not_found(exc: RecordNotFoundError):
        return _handle_error(exc, 404, "Record not found")

    @app.errorhandler(EditStateError)
    def handle_edit_state(exc: EditStateError):
        return _handle_error(exc, 409, "Edit state error")

    def _json_body() -> Dict[str, Any]:
        if not request.is_json:
            raise ValidationError("Request content must be application/json")
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise ValidationError("Malformed JSON body")
        return data

    @app.get("/categories")
    def list_categories():
        return _success({"items": ledger.list_categories()})

    @app.post("/categories")
    def create_category():
        payload = _json_body()
        name = ledger.add_category(payload.get("name"))
        return _success({"name": name}, 201)

    @app.delete("/categories/<name>")
    def delete_category(name: str):
        ledger.remove_category(name)
        return _success({}, 204)

    @app.get("/months/<month>/entries")
    def list_entries(month: str):
        entries = ledger.entries_for_month(month)
        return _success({"items": [entry.to_dict() for entry in entries]})

    @app.post("/entries")
    def create_entry():
        payload = _json_body()
        entry = ledger.add_entry(
            payload.get("date"),
            payload.get("amount"),
            payload.get("category"),
            payload.get("location", ""),
            payload.get("what"),
            register_category=bool(payload.get("register_category", False)),
        )
        return _success(entry.to_dict(), 201)

    @app.get("/entries/<entry_id>")
    def get_entry(entry_id: str):
        return _success(ledger.get_entry(entry_id).to_dict())

    @app.put("/entries/<entry_id>")
    def update_entry(entry_id: str):
        payload = _json_body()
        return _success(ledger.update_entry(entry_id, payload).to_dict())

    @app.delete("/entries/<entry_id>")
    def delete_entry(entry_id: str):
        ledger.delete_entry(entry_id)
        return _success({}, 204)

    @app.get("/months/<month>/budgets")
    def list_budgets(month: str):
        budgets = ledger.budgets_for_month(month)
        return _success({"items": {name: str(value) for name, value in budgets.items()}})

    @app.put("/months/<month>/budgets/<category>")
    def set_budget(month: str, category: str):
        payload = _json_body()
        value = ledger.set_budget(category, payload.get("value"), month=month)
        return _success({"category": category, "value": str(value)})

    @app.get("/months/<month>/summary")
    def month_summary(month: str):
        body = ledger.summary(month).to_dict()
        body["storage_ok"] = ledger.storage_ok
        return _success(body)

    @app.delete("/months/<month>")
    def clear_month(month: str):
        removed = ledger.clear_month(month)
        return _success({"removed": removed})

    @app.delete("/data")
    def clear_all():
        ledger.clear_all()
        return _success({}, 204)

    return app
