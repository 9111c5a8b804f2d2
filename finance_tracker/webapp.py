"""Flask JSON API for the Finance Tracker."""

from __future__ import annotations

import datetime as dt
from functools import wraps
from typing import Any, Dict, Mapping, Optional, Tuple

import structlog
from flask import Flask, current_app, g, jsonify, request
from werkzeug.exceptions import HTTPException

from . import admin as admin_store
from . import auth
from . import categories as category_store
from . import goals as goal_store
from . import ledger
from . import profile as profile_store
from . import savings as saving_store
from .config import AppConfig
from .db import init_app as init_database
from .errors import AuthError, FinanceError, Forbidden, ValidationError
from .logging_setup import configure_logging
from .models import User, db
from .payloads import is_blank, parse_optional_date
from .reports import build_planned_report, build_summary, build_weekly_report
from .serializers import (
    admin_user_dict,
    category_dict,
    goal_dict,
    planned_expense_dict,
    profile_dict,
    saving_dict,
    transaction_dict,
    user_dict,
)

log = structlog.get_logger(__name__)


def login_required(view):
    @wraps(view)
    def wrapped_view(**kwargs):
        if g.user is None:
            raise g.auth_error or AuthError("Access token required")
        return view(**kwargs)

    return wrapped_view


def admin_required(view):
    @wraps(view)
    @login_required
    def wrapped_view(**kwargs):
        if not auth.is_admin(g.user):
            raise Forbidden("Access denied. Admin rights required.")
        return view(**kwargs)

    return wrapped_view


def _bearer_token() -> Optional[str]:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def _load_logged_in_user() -> None:
    g.user = None
    g.auth_error = None
    token = _bearer_token()
    if token is None:
        return
    try:
        user_id = auth.resolve_user(token)
    except AuthError as exc:
        g.auth_error = exc
        return
    g.user = db.session.get(User, user_id)


def _json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _year_month(args: Mapping[str, Any]) -> Tuple[int, int]:
    today = dt.date.today()
    try:
        year = int(args["year"]) if not is_blank(args.get("year")) else today.year
        month = int(args["month"]) if not is_blank(args.get("month")) else today.month
    except ValueError as exc:
        raise ValidationError("Year and month must be integers") from exc
    if not 1 <= month <= 12 or not 1 <= year <= 9999:
        raise ValidationError("Invalid month")
    return year, month


def _allow_future() -> bool:
    return bool(current_app.config.get("ALLOW_FUTURE_TRANSACTIONS"))


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(FinanceError)
    def handle_finance_error(exc: FinanceError):
        db.session.rollback()
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return jsonify({"error": exc.description}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc: Exception):
        db.session.rollback()
        log.exception("unhandled_error", path=request.path, method=request.method)
        return jsonify({"error": "Internal server error"}), 500


def create_app(
    config: Optional[AppConfig] = None,
    config_path: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> Flask:
    cfg = config or AppConfig.load(config_path)
    app = Flask(__name__)
    app.config.update(cfg.to_flask())
    if overrides:
        app.config.update(overrides)
    app.json.ensure_ascii = False

    configure_logging(app.config["LOG_LEVEL"])
    init_database(app)
    app.before_request(_load_logged_in_user)
    _register_error_handlers(app)

    # Auth

    @app.route("/auth/register", methods=["POST"])
    def register():
        data = _json_body()
        user = auth.register_user(data.get("login"), data.get("password"), data.get("email"), data.get("name"))
        return jsonify({"token": auth.issue_token(user), "user": user_dict(user, auth.is_admin(user))}), 201

    @app.route("/auth/login", methods=["POST"])
    def login():
        data = _json_body()
        user = auth.authenticate(data.get("login"), data.get("password"))
        return jsonify({"token": auth.issue_token(user), "user": user_dict(user, auth.is_admin(user))})

    @app.route("/auth/me")
    @login_required
    def me():
        return jsonify({"user": user_dict(g.user, auth.is_admin(g.user))})

    # Categories

    @app.route("/categories", methods=["GET", "POST"])
    @login_required
    def categories():
        if request.method == "POST":
            data = _json_body()
            category = category_store.create_category(g.user.id, data.get("name"), data.get("color"), data.get("icon"))
            return jsonify(category_dict(category)), 201
        return jsonify([category_dict(c) for c in category_store.list_categories(g.user.id)])

    @app.route("/categories/<int:category_id>", methods=["GET", "DELETE"])
    @login_required
    def category_detail(category_id: int):
        if request.method == "DELETE":
            category_store.delete_category(g.user.id, category_id)
            return jsonify({"message": "Category deleted successfully"})
        return jsonify(category_dict(category_store.get_category(g.user.id, category_id)))

    # Transactions

    @app.route("/transactions", methods=["GET", "POST"])
    @login_required
    def transactions():
        if request.method == "POST":
            txn = ledger.create_transaction(g.user.id, _json_body(), allow_future=_allow_future())
            return jsonify(transaction_dict(txn)), 201
        filters = ledger.parse_filters(request.args)
        return jsonify([transaction_dict(t) for t in ledger.list_transactions(g.user.id, **filters)])

    @app.route("/transactions/<int:transaction_id>", methods=["GET", "PUT", "DELETE"])
    @login_required
    def transaction_detail(transaction_id: int):
        if request.method == "PUT":
            txn = ledger.update_transaction(g.user.id, transaction_id, _json_body(), allow_future=_allow_future())
            return jsonify(transaction_dict(txn))
        if request.method == "DELETE":
            ledger.delete_transaction(g.user.id, transaction_id)
            return jsonify({"message": "Transaction deleted successfully"})
        return jsonify(transaction_dict(ledger.get_transaction(g.user.id, transaction_id)))

    # Planned expenses

    @app.route("/planned-expenses", methods=["GET", "POST"])
    @login_required
    def planned_expenses():
        if request.method == "POST":
            entry = ledger.create_planned_expense(g.user.id, _json_body())
            return jsonify(planned_expense_dict(entry)), 201
        filters = ledger.parse_filters(request.args)
        return jsonify([planned_expense_dict(p) for p in ledger.list_planned_expenses(g.user.id, **filters)])

    @app.route("/planned-expenses/<int:planned_id>", methods=["GET", "PUT", "DELETE"])
    @login_required
    def planned_expense_detail(planned_id: int):
        if request.method == "PUT":
            return jsonify(planned_expense_dict(ledger.update_planned_expense(g.user.id, planned_id, _json_body())))
        if request.method == "DELETE":
            ledger.delete_planned_expense(g.user.id, planned_id)
            return jsonify({"message": "Planned expense deleted successfully"})
        return jsonify(planned_expense_dict(ledger.get_planned_expense(g.user.id, planned_id)))

    # Savings

    @app.route("/savings", methods=["GET", "POST"])
    @login_required
    def savings():
        if request.method == "POST":
            return jsonify(saving_dict(saving_store.create_saving(g.user.id, _json_body()))), 201
        return jsonify([saving_dict(s) for s in saving_store.list_savings(g.user.id)])

    @app.route("/savings/<int:saving_id>", methods=["GET", "PUT", "DELETE"])
    @login_required
    def saving_detail(saving_id: int):
        if request.method == "PUT":
            return jsonify(saving_dict(saving_store.update_saving(g.user.id, saving_id, _json_body())))
        if request.method == "DELETE":
            saving_store.delete_saving(g.user.id, saving_id)
            return jsonify({"message": "Savings deleted successfully"})
        return jsonify(saving_dict(saving_store.get_saving(g.user.id, saving_id)))

    # Goals

    @app.route("/goals", methods=["GET", "POST"])
    @login_required
    def goals():
        if request.method == "POST":
            return jsonify(goal_dict(goal_store.create_goal(g.user.id, _json_body()))), 201
        return jsonify([goal_dict(goal) for goal in goal_store.list_goals(g.user.id)])

    @app.route("/goals/<int:goal_id>", methods=["GET", "PUT", "DELETE"])
    @login_required
    def goal_detail(goal_id: int):
        if request.method == "PUT":
            return jsonify(goal_dict(goal_store.update_goal(g.user.id, goal_id, _json_body())))
        if request.method == "DELETE":
            goal_store.delete_goal(g.user.id, goal_id)
            return jsonify({"message": "Goal deleted successfully"})
        return jsonify(goal_dict(goal_store.get_goal(g.user.id, goal_id)))

    @app.route("/goals/<int:goal_id>/adjust", methods=["POST"])
    @login_required
    def goal_adjust(goal_id: int):
        data = _json_body()
        return jsonify(goal_dict(goal_store.adjust_goal(g.user.id, goal_id, data.get("delta"))))

    # Profile

    @app.route("/profile", methods=["GET", "PUT"])
    @login_required
    def profile():
        if request.method == "PUT":
            return jsonify(profile_dict(profile_store.update_profile(g.user.id, _json_body())))
        return jsonify(profile_dict(profile_store.get_profile(g.user.id)))

    # Dashboard

    @app.route("/summary")
    @login_required
    def summary():
        start = parse_optional_date(request.args.get("from"), "from")
        end = parse_optional_date(request.args.get("to"), "to")
        user_id = g.user.id
        return jsonify(
            build_summary(
                ledger.list_transactions(user_id),
                saving_store.list_savings(user_id),
                goal_store.list_goals(user_id),
                category_store.list_categories(user_id),
                start=start,
                end=end,
            )
        )

    @app.route("/summary/weekly")
    @login_required
    def summary_weekly():
        year, month = _year_month(request.args)
        return jsonify(build_weekly_report(ledger.list_transactions(g.user.id), year, month))

    @app.route("/summary/planned")
    @login_required
    def summary_planned():
        year, month = _year_month(request.args)
        user_id = g.user.id
        return jsonify(
            build_planned_report(
                ledger.list_planned_expenses(user_id),
                ledger.list_transactions(user_id),
                category_store.list_categories(user_id),
                year,
                month,
            )
        )

    # Administration

    @app.route("/admin/users")
    @admin_required
    def admin_users():
        return jsonify({"users": [admin_user_dict(u) for u in admin_store.list_users()]})

    @app.route("/admin/users/<int:user_id>", methods=["PUT", "DELETE"])
    @admin_required
    def admin_user_detail(user_id: int):
        if request.method == "DELETE":
            admin_store.delete_user(g.user.id, user_id)
            return jsonify({"message": "User deleted successfully"})
        user = admin_store.update_user(g.user.id, user_id, _json_body())
        return jsonify({"user": admin_user_dict(user)})

    return app


if __name__ == "__main__":
    create_app().run(debug=True)
