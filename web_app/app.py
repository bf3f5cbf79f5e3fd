# web_app/app.py
import logging
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from budgetbook import config
from budgetbook.dates import now_iso
from budgetbook.errors import BudgetError
from budgetbook.recurring import RecurringEngine
from budgetbook.store import JsonFileStore, MemoryStore, RecordStore
from web_app.categories_api import categories_api
from web_app.export_api import export_api
from web_app.helpers import get_engine
from web_app.recurring_api import recurring_api
from web_app.stats_api import stats_api
from web_app.transactions_api import transactions_api
from web_app.users_api import users_api

API_INDEX = {
    "users": {
        "list": "GET /api/users",
        "get": "GET /api/users/:userId",
        "create": "POST /api/users",
        "update": "PUT /api/users/:userId",
        "delete": "DELETE /api/users/:userId",
    },
    "categories": {
        "list": "GET /api/users/:userId/categories",
        "get": "GET /api/users/:userId/categories/:categoryId",
        "create": "POST /api/users/:userId/categories",
        "update": "PUT /api/users/:userId/categories/:categoryId",
        "delete": "DELETE /api/users/:userId/categories/:categoryId",
    },
    "transactions": {
        "list": "GET /api/users/:userId/transactions",
        "get": "GET /api/users/:userId/transactions/:transactionId",
        "create": "POST /api/users/:userId/transactions",
        "update": "PUT /api/users/:userId/transactions/:transactionId",
        "delete": "DELETE /api/users/:userId/transactions/:transactionId",
    },
    "recurring": {
        "list": "GET /api/users/:userId/recurring",
        "get": "GET /api/users/:userId/recurring/:recurringId",
        "create": "POST /api/users/:userId/recurring",
        "update": "PUT /api/users/:userId/recurring/:recurringId",
        "delete": "DELETE /api/users/:userId/recurring/:recurringId",
        "process": "POST /api/users/:userId/recurring/:recurringId/process",
    },
    "export": {
        "exportAll": "GET /api/users/:userId/export",
        "exportMonth": "GET /api/users/:userId/export/month/:year/:month",
        "exportYear": "GET /api/users/:userId/export/year/:year",
        "import": "POST /api/users/:userId/import",
    },
    "stats": {
        "summary": "GET /api/users/:userId/stats/summary",
        "monthly": "GET /api/users/:userId/stats/monthly",
        "comparison": "GET /api/users/:userId/stats/comparison",
    },
    "admin": {
        "sweep": "POST /api/admin/sweep",
    },
}


def _make_store(cfg) -> RecordStore:
    if cfg.get("STORE_BACKEND") == "memory":
        return MemoryStore()
    return JsonFileStore(cfg["DATA_DIR"])


def create_app(config_overrides: Optional[Dict[str, Any]] = None, store: Optional[RecordStore] = None) -> Flask:
    app = Flask(__name__)
    app.config.update(config.load_settings())
    app.config.update(config_overrides or {})
    app.secret_key = app.config["SECRET_KEY"]
    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")), logging.INFO))

    store = store or _make_store(app.config)
    engine = RecurringEngine(store, catch_up=bool(app.config.get("RECURRING_CATCH_UP")))
    app.extensions["budget_store"] = store
    app.extensions["recurring_engine"] = engine
    app.logger.info("[Config] store=%s data_dir=%s catch_up=%s",
                    type(store).__name__, app.config.get("DATA_DIR"), engine.catch_up)

    # ---- Blueprints ----
    for bp in (users_api, categories_api, transactions_api, recurring_api, stats_api, export_api):
        app.register_blueprint(bp)

    # ------------------ MIDDLEWARE ------------------
    @app.before_request
    def log_request():
        app.logger.info("%s %s", request.method, request.path)

    @app.after_request
    def add_no_cache_headers(resp):
        resp.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, max-age=0"
        resp.headers["Pragma"] = "no-cache"
        resp.headers["Expires"] = "0"
        return resp

    # ------------------ ERRORS ------------------
    @app.errorhandler(BudgetError)
    def handle_budget_error(e: BudgetError):
        if e.status >= 500:
            app.logger.exception("Request failed: %s", e.message)
        return jsonify({"error": e.message}), e.status

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({
            "error": "Not Found",
            "message": f"Route {request.method} {request.path} not found",
            "hint": "Visit /api for API documentation",
        }), 404

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        if isinstance(e, HTTPException):
            return jsonify({"error": e.name, "message": e.description}), e.code
        app.logger.exception("Server error")
        return jsonify({
            "error": "Internal Server Error",
            "message": str(e) if app.debug else "An unexpected error occurred",
        }), 500

    # ------------------ ROUTES ------------------
    @app.get("/healthz")
    def healthz():
        return "ok", 200

    @app.get("/health")
    def health():
        return jsonify({"status": "healthy", "timestamp": now_iso(), "version": config.VERSION})

    @app.get("/api")
    def api_index():
        return jsonify({
            "name": "Budgeting App API",
            "version": config.VERSION,
            "description": "API for managing personal budgets",
            "endpoints": API_INDEX,
        })

    @app.post("/api/admin/sweep")
    def run_sweep():
        processed = get_engine().process_recurring_transactions()
        return jsonify(ok=True, processed=processed)

    # ------------------ RECURRING SWEEP ------------------
    if app.config.get("SWEEP_ON_STARTUP"):
        try:
            engine.process_recurring_transactions()
        except Exception:
            app.logger.exception("Startup recurring sweep failed")

    if app.config.get("SCHEDULER_ENABLED"):
        from web_app.scheduler import start_scheduler
        app.extensions["sweep_scheduler"] = start_scheduler(app, engine)

    return app


# ------------------ MAIN ------------------
if __name__ == "__main__":
    create_app().run(debug=True)
