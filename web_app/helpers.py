# web_app/helpers.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from flask import current_app, request

from budgetbook.errors import NotFound, ValidationError
from budgetbook.recurring import RecurringEngine
from budgetbook.store import RecordStore


def get_store() -> RecordStore:
    return current_app.extensions["budget_store"]


def get_engine() -> RecurringEngine:
    return current_app.extensions["recurring_engine"]


def json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        raise ValidationError("Request body must be JSON")
    return data


def require_user(user_id: str) -> Dict[str, Any]:
    user = get_store().get_user(user_id)
    if not user:
        raise NotFound("User not found")
    return user


def require_category(user_id: str, category_id: str) -> Dict[str, Any]:
    """Category referenced from a transaction/template payload; 400 when it is not this user's."""
    cat = get_store().get_by_id("categories", category_id, user_id)
    if not cat:
        raise ValidationError("Invalid category")
    return cat


def category_ref(cat: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not cat:
        return None
    return {"id": cat.get("id"), "name": cat.get("name"), "icon": cat.get("icon")}


def with_category(rows: List[Dict[str, Any]], categories: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    by_id = {c.get("id"): c for c in categories}
    return [{**r, "category": category_ref(by_id.get(r.get("categoryId")))} for r in rows]
