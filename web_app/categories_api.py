# web_app/categories_api.py
from __future__ import annotations

import uuid

from flask import Blueprint, jsonify

from budgetbook.dates import now_iso
from budgetbook.defaults import default_icon
from budgetbook.errors import NotFound, ValidationError
from budgetbook.validation import category_payload
from web_app.helpers import get_store, json_body, require_user

categories_api = Blueprint("categories_api", __name__, url_prefix="/api/users/<user_id>/categories")


@categories_api.url_value_preprocessor
def _check_user(endpoint, values):
    require_user((values or {}).get("user_id"))


@categories_api.get("")
def list_categories(user_id: str):
    return jsonify(get_store().get_all("categories", user_id))


@categories_api.get("/<category_id>")
def get_category(user_id: str, category_id: str):
    cat = get_store().get_by_id("categories", category_id, user_id)
    if not cat:
        raise NotFound("Category not found")
    return jsonify(cat)


@categories_api.post("")
def create_category(user_id: str):
    fields = category_payload(json_body())
    now = now_iso()
    cat = {
        "id": str(uuid.uuid4()),
        "userId": user_id,
        "name": fields["name"],
        "type": fields["type"],
        "icon": fields.get("icon") or default_icon(fields["type"]),
        "createdAt": now,
        "updatedAt": now,
    }
    get_store().insert("categories", cat, user_id)
    return jsonify(cat), 201


@categories_api.put("/<category_id>")
def update_category(user_id: str, category_id: str):
    store = get_store()
    if not store.get_by_id("categories", category_id, user_id):
        raise NotFound("Category not found")
    fields = category_payload(json_body(), partial=True)
    return jsonify(store.update("categories", category_id, fields, user_id))


@categories_api.delete("/<category_id>")
def delete_category(user_id: str, category_id: str):
    store = get_store()
    if not store.get_by_id("categories", category_id, user_id):
        raise NotFound("Category not found")

    in_use = any(t.get("categoryId") == category_id for t in store.get_all("transactions", user_id)) \
        or any(r.get("categoryId") == category_id for r in store.get_all("recurring", user_id))
    if in_use:
        raise ValidationError(
            "Category is in use: it is used by existing transactions or recurring items. "
            "Please reassign them first."
        )

    store.delete("categories", category_id, user_id)
    return jsonify({"message": "Category deleted successfully"})
