# budgetbook/aggregate.py
# Month/year roll-ups for the stats and export endpoints.
#
# Months are 0-indexed (0 = January) everywhere in this module, matching the
# query parameters the UI sends. Transaction dates are matched by splitting the
# 'YYYY-MM-DD' string, never by building a datetime, so no timezone shift can
# move a transaction into the neighbouring month.
from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Tuple

from budgetbook.dates import month_abbr, month_key, month_name, months_back, split_date, today
from budgetbook.errors import InvalidFrequency
from budgetbook.recurring import monthly_equivalent

logger = logging.getLogger(__name__)

UNKNOWN_CATEGORY = "Unknown"


def resolve_anchor(month: Optional[int], year: Optional[int], ref: Optional[date] = None) -> Tuple[int, int]:
    """
    Fill a missing month/year from the server's clock. Clients in another
    timezone should always send both; the fallback can be a month off
    around midnight on the 1st.
    """
    if month is None or year is None:
        ref = ref or today()
        logger.debug("Stats anchor not supplied; using server date %s", ref.isoformat())
    m = month if month is not None else ref.month - 1
    y = year if year is not None else ref.year
    return m, y


def in_month(tx: Dict[str, Any], month: int, year: int) -> bool:
    try:
        y, m, _ = split_date(tx.get("date"))
    except ValueError:
        return False
    return y == year and m - 1 == month


def in_year(tx: Dict[str, Any], year: int) -> bool:
    try:
        y, _, _ = split_date(tx.get("date"))
    except ValueError:
        return False
    return y == year


def _sum(transactions: Iterable[Dict[str, Any]], kind: str) -> float:
    return sum(float(t.get("amount") or 0.0) for t in transactions if t.get("type") == kind)


def category_names(categories: Iterable[Dict[str, Any]]) -> Dict[str, str]:
    return {c.get("id"): c.get("name") for c in (categories or [])}


def category_breakdown(transactions: Iterable[Dict[str, Any]], names: Dict[str, str]) -> Dict[str, Dict[str, float]]:
    out: Dict[str, Dict[str, float]] = defaultdict(lambda: {"income": 0.0, "expenses": 0.0})
    for t in transactions:
        name = names.get(t.get("categoryId")) or UNKNOWN_CATEGORY
        amount = float(t.get("amount") or 0.0)
        if t.get("type") == "income":
            out[name]["income"] += amount
        else:
            out[name]["expenses"] += amount
    return dict(out)


def month_totals(transactions: List[Dict[str, Any]], month: int, year: int,
                 categories: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    rows = [t for t in transactions if in_month(t, month, year)]
    income = _sum(rows, "income")
    expenses = _sum(rows, "expense")
    return {
        "month": month_abbr(month),
        "year": year,
        "fullDate": month_key(month, year),
        "income": income,
        "expenses": expenses,
        "difference": income - expenses,
        "transactionCount": len(rows),
        "categoryBreakdown": category_breakdown(rows, category_names(categories)),
    }


def monthly_breakdown(transactions, categories, months: int = 6,
                      month: Optional[int] = None, year: Optional[int] = None) -> List[Dict[str, Any]]:
    """One row per month, newest (the anchor) first."""
    m, y = resolve_anchor(month, year)
    return [month_totals(transactions, tm, ty, categories) for tm, ty in months_back(m, y, months)]


def comparison(transactions, months: int = 12,
               month: Optional[int] = None, year: Optional[int] = None) -> List[Dict[str, Any]]:
    """Income vs expenses per month, oldest first, with savings rate in percent."""
    m, y = resolve_anchor(month, year)
    out = []
    for tm, ty in months_back(m, y, months):
        rows = [t for t in transactions if in_month(t, tm, ty)]
        income = _sum(rows, "income")
        expenses = _sum(rows, "expense")
        out.append({
            "label": f"{month_abbr(tm)} {ty}",
            "month": month_abbr(tm),
            "year": ty,
            "income": income,
            "expenses": expenses,
            "savings": income - expenses,
            "savingsRate": round((income - expenses) / income * 100.0, 1) if income > 0 else 0,
        })
    out.reverse()
    return out


def summary(transactions, recurring, month: Optional[int] = None, year: Optional[int] = None) -> Dict[str, Any]:
    m, y = resolve_anchor(month, year)
    current = [t for t in transactions if in_month(t, m, y)]
    income = _sum(current, "income")
    expenses = _sum(current, "expense")

    active = [r for r in (recurring or []) if r.get("isActive")]
    rec_income = rec_expenses = 0.0
    for r in active:
        try:
            per_month = monthly_equivalent(r.get("amount") or 0.0, r.get("frequency"))
        except InvalidFrequency:
            logger.warning("Recurring %s has unknown frequency %r; left out of summary",
                           r.get("id"), r.get("frequency"))
            continue
        if r.get("type") == "income":
            rec_income += per_month
        elif r.get("type") == "expense":
            rec_expenses += per_month

    return {
        "currentMonth": {"income": income, "expenses": expenses, "difference": income - expenses},
        "recurring": {"monthlyExpenses": rec_expenses, "monthlyIncome": rec_income, "count": len(active)},
        "totals": {
            "transactions": len(transactions),
            "income": _sum(transactions, "income"),
            "expenses": _sum(transactions, "expense"),
        },
    }


def year_breakdown(transactions, year: int) -> List[Dict[str, Any]]:
    """Twelve rows for a calendar year; ``month`` here is 1-indexed for export files."""
    out = []
    for m in range(12):
        rows = [t for t in transactions if in_month(t, m, year)]
        income = _sum(rows, "income")
        expenses = _sum(rows, "expense")
        out.append({
            "month": m + 1,
            "monthName": month_name(m),
            "income": income,
            "expenses": expenses,
            "difference": income - expenses,
            "transactionCount": len(rows),
        })
    return out
