# budgetbook/validation.py
# Payload and query-string checks for the JSON API. Each function returns a
# cleaned dict or raises ValidationError with a user-facing message.
from __future__ import annotations

import uuid
from typing import Any, Dict, Mapping, Optional

from budgetbook.dates import is_date_str
from budgetbook.errors import ValidationError
from budgetbook.recurring import Frequency

TYPES = ("income", "expense")
MAX_AMOUNT = 999999999
MAX_NOTES = 500


def _name(value, max_len: int) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Name is required")
    value = value.strip()
    if len(value) > max_len:
        raise ValidationError(f"Name must be {max_len} characters or less")
    return value


def _amount(value) -> float:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError("Amount must be a positive number")
    if value <= 0:
        raise ValidationError("Amount must be a positive number")
    if value > MAX_AMOUNT:
        raise ValidationError("Amount is too large")
    return float(value)


def _type(value) -> str:
    if value not in TYPES:
        raise ValidationError('Type must be "income" or "expense"')
    return value


def _uuid(value, label: str) -> str:
    if not value:
        raise ValidationError(f"{label} is required")
    try:
        uuid.UUID(str(value))
    except ValueError:
        raise ValidationError("Invalid UUID format") from None
    return str(value)


def _date(value, label: str = "Date") -> str:
    if not is_date_str(value):
        raise ValidationError(f"{label} must be in YYYY-MM-DD format")
    return value


def _notes(value) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError("Notes must be a string")
    if len(value) > MAX_NOTES:
        raise ValidationError(f"Notes must be {MAX_NOTES} characters or less")
    return value


def _require_some(out: Dict[str, Any]) -> Dict[str, Any]:
    if not out:
        raise ValidationError("At least one field must be provided")
    return out


def _body(data) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValidationError("Request body must be a JSON object")
    return data


# ---------- users ----------
def user_payload(data) -> Dict[str, Any]:
    data = _body(data)
    return {"name": _name(data.get("name"), 100)}


# ---------- categories ----------
def category_payload(data, partial: bool = False) -> Dict[str, Any]:
    data = _body(data)
    out: Dict[str, Any] = {}
    if not partial or "name" in data:
        out["name"] = _name(data.get("name"), 50)
    if not partial or "type" in data:
        out["type"] = _type(data.get("type"))
    if data.get("icon") is not None:
        icon = data.get("icon")
        if not isinstance(icon, str) or len(icon) > 50:
            raise ValidationError("Icon must be a string of 50 characters or less")
        out["icon"] = icon
    return _require_some(out) if partial else out


# ---------- transactions ----------
def transaction_payload(data, partial: bool = False) -> Dict[str, Any]:
    data = _body(data)
    out: Dict[str, Any] = {}
    if not partial or "amount" in data:
        out["amount"] = _amount(data.get("amount"))
    if not partial or "type" in data:
        out["type"] = _type(data.get("type"))
    if not partial or "categoryId" in data:
        out["categoryId"] = _uuid(data.get("categoryId"), "Category ID")
    if data.get("date") is not None:
        out["date"] = _date(data.get("date"))
    if "notes" in data:
        out["notes"] = _notes(data.get("notes"))
    return _require_some(out) if partial else out


# ---------- recurring ----------
def recurring_payload(data, partial: bool = False) -> Dict[str, Any]:
    data = _body(data)
    out: Dict[str, Any] = {}
    if not partial or "name" in data:
        out["name"] = _name(data.get("name"), 100)
    if not partial or "amount" in data:
        out["amount"] = _amount(data.get("amount"))
    if not partial or "type" in data:
        out["type"] = _type(data.get("type"))
    if not partial or "categoryId" in data:
        out["categoryId"] = _uuid(data.get("categoryId"), "Category ID")
    if not partial or "frequency" in data:
        out["frequency"] = Frequency.parse(data.get("frequency")).value
    if data.get("startDate") is not None:
        if partial:
            raise ValidationError("startDate cannot be changed")
        out["startDate"] = _date(data.get("startDate"), "startDate")
    if partial and data.get("nextDueDate") is not None:
        out["nextDueDate"] = _date(data.get("nextDueDate"), "nextDueDate")
    if "notes" in data:
        out["notes"] = _notes(data.get("notes"))
    if partial and "isActive" in data:
        if not isinstance(data.get("isActive"), bool):
            raise ValidationError("isActive must be true or false")
        out["isActive"] = data["isActive"]
    return _require_some(out) if partial else out


# ---------- import rows ----------
# Rows in an import file name their category instead of carrying its id, but
# amounts, dates and notes follow the same rules as the API.
def _category_name(value) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("categoryName is required")
    return value.strip()


def import_category_row(row) -> Dict[str, Any]:
    row = _body(row)
    out = {"name": _name(row.get("name"), 50), "type": _type(row.get("type"))}
    icon = row.get("icon")
    if icon is not None:
        if not isinstance(icon, str) or len(icon) > 50:
            raise ValidationError("Icon must be a string of 50 characters or less")
        out["icon"] = icon
    return out


def import_transaction_row(row) -> Dict[str, Any]:
    row = _body(row)
    return {
        "amount": _amount(row.get("amount")),
        "type": _type(row.get("type")),
        "categoryName": _category_name(row.get("categoryName")),
        "date": _date(row.get("date")),
        "notes": _notes(row.get("notes")),
        "isRecurring": bool(row.get("isRecurring", False)),
    }


def import_recurring_row(row) -> Dict[str, Any]:
    row = _body(row)
    out = {
        "name": _name(row.get("name"), 100),
        "amount": _amount(row.get("amount")),
        "type": _type(row.get("type")),
        "categoryName": _category_name(row.get("categoryName")),
        "frequency": Frequency.parse(row.get("frequency")).value,
        "notes": _notes(row.get("notes")),
        "isActive": bool(row.get("isActive", True)),
    }
    for key in ("startDate", "nextDueDate"):
        if row.get(key) is not None:
            out[key] = _date(row.get(key), key)
    return out


# ---------- query strings ----------
def query_int(args: Mapping[str, str], key: str, lo: int, hi: Optional[int] = None,
              default: Optional[int] = None) -> Optional[int]:
    raw = args.get(key)
    if raw is None or str(raw).strip() == "":
        return default
    try:
        value = int(str(raw).strip())
    except ValueError:
        raise ValidationError(f"'{key}' must be an integer") from None
    if value < lo or (hi is not None and value > hi):
        bound = f"between {lo} and {hi}" if hi is not None else f"at least {lo}"
        raise ValidationError(f"'{key}' must be {bound}")
    return value


def month_query(args: Mapping[str, str]) -> Dict[str, Optional[int]]:
    """month is 0-11, year 2000-2100; both optional."""
    return {
        "month": query_int(args, "month", 0, 11),
        "year": query_int(args, "year", 2000, 2100),
    }


def query_type(args: Mapping[str, str]) -> Optional[str]:
    value = (args.get("type") or "").strip()
    if not value:
        return None
    return _type(value)


def query_date(args: Mapping[str, str], key: str) -> Optional[str]:
    value = (args.get(key) or "").strip()
    if not value:
        return None
    return _date(value, key)
