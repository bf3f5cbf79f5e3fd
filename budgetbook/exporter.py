# budgetbook/exporter.py
"""
Portable JSON export / import of one user's data.

Exports reference categories by *name* so a file can be imported into a
different user whose category ids differ.
"""
from __future__ import annotations

import uuid
from typing import Any, Dict, List, Tuple

from budgetbook.aggregate import category_names, in_month, in_year, year_breakdown
from budgetbook.config import VERSION
from budgetbook.dates import month_name, now_iso
from budgetbook.defaults import default_icon
from budgetbook.errors import NotFound, ValidationError
from budgetbook.recurring import new_template
from budgetbook.store import RecordStore
from budgetbook.validation import import_category_row, import_recurring_row, import_transaction_row

IMPORT_MODES = ("merge", "replace")


def _user(store: RecordStore, user_id: str) -> Dict[str, Any]:
    user = store.get_user(user_id)
    if not user:
        raise NotFound("User not found")
    return user


def _tx_row(t: Dict[str, Any], names: Dict[str, str], with_type: bool = True) -> Dict[str, Any]:
    row = {
        "amount": t.get("amount"),
        "categoryName": names.get(t.get("categoryId")) or "Unknown",
        "date": t.get("date"),
        "notes": t.get("notes", ""),
    }
    if with_type:
        row["type"] = t.get("type")
    return row


def _totals(transactions: List[Dict[str, Any]]) -> Dict[str, Any]:
    income = sum(float(t.get("amount") or 0.0) for t in transactions if t.get("type") == "income")
    expenses = sum(float(t.get("amount") or 0.0) for t in transactions if t.get("type") == "expense")
    return {
        "totalIncome": income,
        "totalExpenses": expenses,
        "difference": income - expenses,
        "transactionCount": len(transactions),
    }


def export_all(store: RecordStore, user_id: str) -> Dict[str, Any]:
    user = _user(store, user_id)
    categories = store.get_all("categories", user_id)
    names = category_names(categories)
    return {
        "exportedAt": now_iso(),
        "version": VERSION,
        "user": {"name": user.get("name"), "createdAt": user.get("createdAt")},
        "categories": [{"name": c.get("name"), "type": c.get("type"), "icon": c.get("icon")} for c in categories],
        "transactions": [
            {**_tx_row(t, names), "isRecurring": bool(t.get("isRecurring"))}
            for t in store.get_all("transactions", user_id)
        ],
        "recurring": [
            {
                "name": r.get("name"),
                "amount": r.get("amount"),
                "type": r.get("type"),
                "categoryName": names.get(r.get("categoryId")) or "Unknown",
                "frequency": r.get("frequency"),
                "startDate": r.get("startDate"),
                "nextDueDate": r.get("nextDueDate"),
                "notes": r.get("notes", ""),
                "isActive": bool(r.get("isActive")),
            }
            for r in store.get_all("recurring", user_id)
        ],
    }


def export_month(store: RecordStore, user_id: str, year: int, month: int) -> Dict[str, Any]:
    """``month`` is 1-12 here, as it appears in the export URL."""
    if not 1 <= month <= 12:
        raise ValidationError("Invalid year or month")
    user = _user(store, user_id)
    names = category_names(store.get_all("categories", user_id))
    rows = [t for t in store.get_all("transactions", user_id) if in_month(t, month - 1, year)]
    return {
        "exportedAt": now_iso(),
        "version": VERSION,
        "period": {"year": year, "month": month, "monthName": month_name(month - 1)},
        "user": {"name": user.get("name")},
        "summary": _totals(rows),
        "income": [_tx_row(t, names, with_type=False) for t in rows if t.get("type") == "income"],
        "expenses": [_tx_row(t, names, with_type=False) for t in rows if t.get("type") == "expense"],
    }


def export_year(store: RecordStore, user_id: str, year: int) -> Dict[str, Any]:
    user = _user(store, user_id)
    names = category_names(store.get_all("categories", user_id))
    rows = [t for t in store.get_all("transactions", user_id) if in_year(t, year)]
    return {
        "exportedAt": now_iso(),
        "version": VERSION,
        "period": {"year": year},
        "user": {"name": user.get("name")},
        "summary": _totals(rows),
        "monthlyBreakdown": year_breakdown(rows, year),
        "transactions": [_tx_row(t, names) for t in rows],
    }


# ---------------- import ----------------
def _clean_import(data: Dict[str, Any]) -> Dict[str, List[Dict[str, Any]]]:
    """Validate every row up front so a bad file writes nothing."""
    for key in ("categories", "transactions", "recurring"):
        if key in data and not isinstance(data[key], list):
            raise ValidationError(f"'{key}' must be a list")
    return {
        "categories": [import_category_row(c) for c in data.get("categories") or []],
        "transactions": [import_transaction_row(t) for t in data.get("transactions") or []],
        "recurring": [import_recurring_row(r) for r in data.get("recurring") or []],
    }


def import_data(store: RecordStore, user_id: str, payload: Dict[str, Any]) -> Dict[str, int]:
    """
    Import an export file. ``replace`` wipes transactions and recurring first;
    categories are always merged by (case-insensitive name, type). Rows whose
    category does not resolve for their type are skipped.
    """
    _user(store, user_id)
    if not isinstance(payload, dict) or not isinstance(payload.get("data"), dict):
        raise ValidationError("Import data is required")
    mode = payload.get("mode") or "merge"
    if mode not in IMPORT_MODES:
        raise ValidationError('Mode must be "merge" or "replace"')
    data = _clean_import(payload["data"])

    now = now_iso()
    if mode == "replace":
        store.delete_all("transactions", user_id)
        store.delete_all("recurring", user_id)

    existing = store.get_all("categories", user_id)
    by_key: Dict[Tuple[str, str], str] = {}
    for c in existing:
        by_key.setdefault(((c.get("name") or "").lower(), c.get("type")), c["id"])

    new_categories = []
    for c in data["categories"]:
        key = (c["name"].lower(), c["type"])
        if key in by_key:
            continue
        cat = {
            "id": str(uuid.uuid4()),
            "userId": user_id,
            "name": c["name"],
            "type": c["type"],
            "icon": c.get("icon") or default_icon(c["type"]),
            "createdAt": now,
            "updatedAt": now,
        }
        by_key[key] = cat["id"]
        new_categories.append(cat)
    if new_categories:
        store.insert_many("categories", new_categories, user_id)

    transactions = []
    for t in data["transactions"]:
        cat_id = by_key.get((t["categoryName"].lower(), t["type"]))
        if not cat_id:
            continue
        transactions.append({
            "id": str(uuid.uuid4()),
            "userId": user_id,
            "categoryId": cat_id,
            "amount": t["amount"],
            "type": t["type"],
            "date": t["date"],
            "notes": t["notes"],
            "isRecurring": t["isRecurring"],
            "recurringId": None,
            "createdAt": now,
            "updatedAt": now,
        })
    if transactions:
        store.insert_many("transactions", transactions, user_id)

    templates = []
    for r in data["recurring"]:
        cat_id = by_key.get((r["categoryName"].lower(), r["type"]))
        if not cat_id:
            continue
        templates.append(new_template(user_id, {**r, "categoryId": cat_id}))
    if templates:
        store.insert_many("recurring", templates, user_id)

    return {
        "categories": len(new_categories),
        "transactions": len(transactions),
        "recurring": len(templates),
    }
