# web_app/transactions_api.py
from __future__ import annotations

import uuid

from flask import Blueprint, jsonify, request

from budgetbook.aggregate import in_month, in_year
from budgetbook.dates import now_iso, today_str
from budgetbook.errors import NotFound
from budgetbook.validation import month_query, query_date, query_int, query_type, transaction_payload
from web_app.helpers import category_ref, get_store, json_body, require_category, require_user, with_category

transactions_api = Blueprint("transactions_api", __name__, url_prefix="/api/users/<user_id>/transactions")


@transactions_api.url_value_preprocessor
def _check_user(endpoint, values):
    require_user((values or {}).get("user_id"))


@transactions_api.get("")
def list_transactions(user_id: str):
    """
    Query:
      month=0-11 & year=YYYY   (month needs year; year alone filters the year)
      startDate / endDate      inclusive, YYYY-MM-DD
      type=income|expense, categoryId
      limit (1-1000), offset
    """
    store = get_store()
    rows = store.get_all("transactions", user_id)

    period = month_query(request.args)
    if period["month"] is not None and period["year"] is not None:
        rows = [t for t in rows if in_month(t, period["month"], period["year"])]
    elif period["year"] is not None:
        rows = [t for t in rows if in_year(t, period["year"])]

    start = query_date(request.args, "startDate")
    end = query_date(request.args, "endDate")
    if start:
        rows = [t for t in rows if (t.get("date") or "") >= start]
    if end:
        rows = [t for t in rows if (t.get("date") or "") <= end]

    tx_type = query_type(request.args)
    if tx_type:
        rows = [t for t in rows if t.get("type") == tx_type]

    category_id = (request.args.get("categoryId") or "").strip()
    if category_id:
        rows = [t for t in rows if t.get("categoryId") == category_id]

    # newest first; createdAt breaks ties within a day
    rows.sort(key=lambda t: (t.get("date") or "", t.get("createdAt") or ""), reverse=True)

    total = len(rows)
    limit = query_int(request.args, "limit", 1, 1000)
    offset = query_int(request.args, "offset", 0, default=0)
    if limit is not None:
        rows = rows[offset: offset + limit]

    return jsonify({
        "transactions": with_category(rows, store.get_all("categories", user_id)),
        "total": total,
        "limit": limit if limit is not None else total,
        "offset": offset,
    })


@transactions_api.get("/<transaction_id>")
def get_transaction(user_id: str, transaction_id: str):
    store = get_store()
    tx = store.get_by_id("transactions", transaction_id, user_id)
    if not tx:
        raise NotFound("Transaction not found")
    cat = store.get_by_id("categories", tx.get("categoryId"), user_id)
    return jsonify({**tx, "category": category_ref(cat)})


@transactions_api.post("")
def create_transaction(user_id: str):
    fields = transaction_payload(json_body())
    cat = require_category(user_id, fields["categoryId"])
    now = now_iso()
    tx = {
        "id": str(uuid.uuid4()),
        "userId": user_id,
        "categoryId": fields["categoryId"],
        "amount": fields["amount"],
        "type": fields["type"],
        "date": fields.get("date") or today_str(),
        "notes": fields.get("notes") or "",
        "isRecurring": False,
        "recurringId": None,
        "createdAt": now,
        "updatedAt": now,
    }
    get_store().insert("transactions", tx, user_id)
    return jsonify({**tx, "category": category_ref(cat)}), 201


@transactions_api.put("/<transaction_id>")
def update_transaction(user_id: str, transaction_id: str):
    store = get_store()
    if not store.get_by_id("transactions", transaction_id, user_id):
        raise NotFound("Transaction not found")
    fields = transaction_payload(json_body(), partial=True)
    if "categoryId" in fields:
        require_category(user_id, fields["categoryId"])
    tx = store.update("transactions", transaction_id, fields, user_id)
    cat = store.get_by_id("categories", tx.get("categoryId"), user_id)
    return jsonify({**tx, "category": category_ref(cat)})


@transactions_api.delete("/<transaction_id>")
def delete_transaction(user_id: str, transaction_id: str):
    if not get_store().delete("transactions", transaction_id, user_id):
        raise NotFound("Transaction not found")
    return jsonify({"message": "Transaction deleted successfully"})
