# web_app/export_api.py
from __future__ import annotations

import json

from flask import Blueprint, Response, current_app, jsonify
from werkzeug.utils import secure_filename

from budgetbook import exporter
from budgetbook.dates import today_str
from web_app.helpers import get_store, json_body, require_user

export_api = Blueprint("export_api", __name__, url_prefix="/api/users/<user_id>")


@export_api.url_value_preprocessor
def _check_user(endpoint, values):
    require_user((values or {}).get("user_id"))


def _attachment(payload: dict, filename: str) -> Response:
    body = json.dumps(payload, ensure_ascii=False, indent=2)
    return Response(
        body,
        mimetype="application/json",
        headers={"Content-Disposition": f'attachment; filename="{secure_filename(filename)}"'},
    )


@export_api.get("/export")
def export_all(user_id: str):
    data = exporter.export_all(get_store(), user_id)
    return _attachment(data, f"budget-export-{data['user']['name']}-{today_str()}.json")


@export_api.get("/export/month/<int:year>/<int:month>")
def export_month(user_id: str, year: int, month: int):
    data = exporter.export_month(get_store(), user_id, year, month)
    return _attachment(data, f"budget-{data['user']['name']}-{year}-{month:02d}.json")


@export_api.get("/export/year/<int:year>")
def export_year(user_id: str, year: int):
    data = exporter.export_year(get_store(), user_id, year)
    return _attachment(data, f"budget-{data['user']['name']}-{year}.json")


@export_api.post("/import")
def import_data(user_id: str):
    counts = exporter.import_data(get_store(), user_id, json_body())
    current_app.logger.info("Imported data for user %s: %s", user_id, counts)
    return jsonify({"message": "Import completed successfully", "imported": counts})
