# web_app/stats_api.py
# Clients should always pass month (0-11) and year; without them the server's
# own date picks the anchor month.
from __future__ import annotations

from flask import Blueprint, jsonify, request

from budgetbook import aggregate
from budgetbook.validation import month_query, query_int
from web_app.helpers import get_store, require_user

stats_api = Blueprint("stats_api", __name__, url_prefix="/api/users/<user_id>/stats")


@stats_api.url_value_preprocessor
def _check_user(endpoint, values):
    require_user((values or {}).get("user_id"))


@stats_api.get("/summary")
def stats_summary(user_id: str):
    store = get_store()
    period = month_query(request.args)
    return jsonify(aggregate.summary(
        store.get_all("transactions", user_id),
        store.get_all("recurring", user_id),
        **period,
    ))


@stats_api.get("/monthly")
def stats_monthly(user_id: str):
    store = get_store()
    period = month_query(request.args)
    months = query_int(request.args, "months", 1, 36, default=6)
    return jsonify(aggregate.monthly_breakdown(
        store.get_all("transactions", user_id),
        store.get_all("categories", user_id),
        months=months,
        **period,
    ))


@stats_api.get("/comparison")
def stats_comparison(user_id: str):
    period = month_query(request.args)
    months = query_int(request.args, "months", 1, 36, default=12)
    return jsonify(aggregate.comparison(get_store().get_all("transactions", user_id), months=months, **period))
