# web_app/recurring_api.py
from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from budgetbook.errors import BudgetError, NotFound, ValidationError
from budgetbook.recurring import new_template
from budgetbook.validation import query_type, recurring_payload
from web_app.helpers import category_ref, get_engine, get_store, json_body, require_category, require_user, with_category

recurring_api = Blueprint("recurring_api", __name__, url_prefix="/api/users/<user_id>/recurring")


@recurring_api.url_value_preprocessor
def _check_user(endpoint, values):
    require_user((values or {}).get("user_id"))


@recurring_api.get("")
def list_recurring(user_id: str):
    store = get_store()
    rows = store.get_all("recurring", user_id)

    tx_type = query_type(request.args)
    if tx_type:
        rows = [r for r in rows if r.get("type") == tx_type]

    active = (request.args.get("isActive") or "").strip().lower()
    if active:
        if active not in ("true", "false"):
            raise ValidationError("isActive must be true or false")
        rows = [r for r in rows if bool(r.get("isActive")) == (active == "true")]

    rows.sort(key=lambda r: r.get("nextDueDate") or "")
    return jsonify(with_category(rows, store.get_all("categories", user_id)))


@recurring_api.get("/<recurring_id>")
def get_recurring(user_id: str, recurring_id: str):
    store = get_store()
    rec = store.get_by_id("recurring", recurring_id, user_id)
    if not rec:
        raise NotFound("Recurring transaction not found")
    cat = store.get_by_id("categories", rec.get("categoryId"), user_id)
    return jsonify({**rec, "category": category_ref(cat)})


@recurring_api.post("")
def create_recurring(user_id: str):
    fields = recurring_payload(json_body())
    cat = require_category(user_id, fields["categoryId"])
    rec = new_template(user_id, fields)
    get_store().insert("recurring", rec, user_id)
    return jsonify({**rec, "category": category_ref(cat)}), 201


@recurring_api.put("/<recurring_id>")
def update_recurring(user_id: str, recurring_id: str):
    store = get_store()
    if not store.get_by_id("recurring", recurring_id, user_id):
        raise NotFound("Recurring transaction not found")
    fields = recurring_payload(json_body(), partial=True)
    if "categoryId" in fields:
        require_category(user_id, fields["categoryId"])
    rec = store.update("recurring", recurring_id, fields, user_id)
    cat = store.get_by_id("categories", rec.get("categoryId"), user_id)
    return jsonify({**rec, "category": category_ref(cat)})


@recurring_api.delete("/<recurring_id>")
def delete_recurring(user_id: str, recurring_id: str):
    # spawned transactions keep their recurringId back-reference
    if not get_store().delete("recurring", recurring_id, user_id):
        raise NotFound("Recurring transaction not found")
    return jsonify({"message": "Recurring transaction deleted successfully"})


@recurring_api.post("/<recurring_id>/process")
def process_recurring(user_id: str, recurring_id: str):
    try:
        tx = get_engine().process_specific_recurring(recurring_id, user_id)
    except BudgetError as e:
        return jsonify({"success": False, "error": e.message}), e.status
    current_app.logger.info("Manually processed recurring %s for user %s", recurring_id, user_id)
    return jsonify({
        "success": True,
        "message": "Recurring transaction processed successfully",
        "transaction": tx,
    })
