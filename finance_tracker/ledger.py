"""Ledger store: transactions and planned expenses.

Both collections share one shape (amount, optional description, calendar
date and a category of the same user). Transactions additionally carry an
``income``/``expense`` type; planned expenses are forward-looking budget
entries and take any date.
"""

from __future__ import annotations

import datetime as dt
from typing import Any, Dict, List, Mapping, Optional, Type, Union

import sqlalchemy as sa
import structlog

from .categories import require_owned_category
from .errors import NotFound, ValidationError
from .models import TRANSACTION_TYPES, PlannedExpense, Transaction, db, utcnow
from .payloads import category_ref, is_blank, parse_amount, parse_date, parse_optional_date, parse_text

log = structlog.get_logger(__name__)

LedgerModel = Union[Type[Transaction], Type[PlannedExpense]]


def _label(model: LedgerModel) -> str:
    return "Transaction" if model is Transaction else "Planned expense"


def _event(model: LedgerModel) -> str:
    return "transaction" if model is Transaction else "planned_expense"


def _ordering(model: LedgerModel):
    if model is Transaction:
        return (Transaction.date.desc(), Transaction.created_at.desc(), Transaction.id.desc())
    # Forward planning order: soonest first.
    return (PlannedExpense.date.asc(), PlannedExpense.created_at.desc(), PlannedExpense.id.desc())


def _list(
    model: LedgerModel,
    user_id: int,
    start: Optional[dt.date] = None,
    end: Optional[dt.date] = None,
    category_id: Optional[int] = None,
) -> List[Any]:
    stmt = sa.select(model).where(model.user_id == user_id)
    if start is not None:
        stmt = stmt.where(model.date >= start)
    if end is not None:
        stmt = stmt.where(model.date <= end)
    if category_id is not None:
        stmt = stmt.where(model.category_id == category_id)
    return db.session.scalars(stmt.order_by(*_ordering(model))).unique().all()


def _get(model: LedgerModel, user_id: int, entry_id: int) -> Any:
    entry = db.session.scalars(
        sa.select(model).where(model.id == entry_id, model.user_id == user_id)
    ).first()
    if entry is None:
        raise NotFound(f"{_label(model)} not found")
    return entry


def _parse_entry(model: LedgerModel, user_id: int, data: Mapping[str, Any], allow_future: bool) -> Dict[str, Any]:
    required = ["amount", "date"]
    if model is Transaction:
        required.insert(0, "type")
    missing = [f for f in required if is_blank(data.get(f))]
    if is_blank(category_ref(data)):
        missing.append("categoryId")
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    fields: Dict[str, Any] = {
        "amount": parse_amount(data.get("amount")),
        "date": parse_date(data.get("date")),
        "description": parse_text(data.get("description")),
    }
    if model is Transaction:
        tx_type = str(data.get("type")).strip().lower()
        if tx_type not in TRANSACTION_TYPES:
            raise ValidationError("Type must be income or expense")
        fields["type"] = tx_type
        if not allow_future:
            _reject_future_month(fields["date"])

    fields["category_id"] = require_owned_category(user_id, category_ref(data)).id
    return fields


def _reject_future_month(value: dt.date, today: Optional[dt.date] = None) -> None:
    today = today or dt.date.today()
    if (value.year, value.month) > (today.year, today.month):
        raise ValidationError("Transactions cannot be recorded for future months")


def _create(model: LedgerModel, user_id: int, data: Mapping[str, Any], allow_future: bool = True) -> Any:
    fields = _parse_entry(model, user_id, data, allow_future)
    entry = model(user_id=user_id, **fields)
    db.session.add(entry)
    db.session.commit()
    log.info(f"{_event(model)}_created", user_id=user_id, entry_id=entry.id)
    return entry


def _update(model: LedgerModel, user_id: int, entry_id: int, data: Mapping[str, Any], allow_future: bool = True) -> Any:
    entry = _get(model, user_id, entry_id)
    fields = _parse_entry(model, user_id, data, allow_future)
    for key, value in fields.items():
        setattr(entry, key, value)
    entry.updated_at = utcnow()
    db.session.commit()
    log.info(f"{_event(model)}_updated", user_id=user_id, entry_id=entry.id)
    return entry


def _delete(model: LedgerModel, user_id: int, entry_id: int) -> None:
    result = db.session.execute(
        sa.delete(model)
        .where(model.id == entry_id, model.user_id == user_id)
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:
        db.session.rollback()
        raise NotFound(f"{_label(model)} not found")
    db.session.commit()
    log.info(f"{_event(model)}_deleted", user_id=user_id, entry_id=entry_id)


def parse_filters(args: Mapping[str, Any]) -> Dict[str, Any]:
    """List filters from query-string arguments: ``from``, ``to``, ``categoryId``."""
    filters: Dict[str, Any] = {
        "start": parse_optional_date(args.get("from"), "from"),
        "end": parse_optional_date(args.get("to"), "to"),
        "category_id": None,
    }
    if not is_blank(args.get("categoryId")):
        try:
            filters["category_id"] = int(args["categoryId"])
        except ValueError as exc:
            raise ValidationError("Invalid categoryId") from exc
    return filters


# Transactions

def list_transactions(user_id: int, **filters: Any) -> List[Transaction]:
    return _list(Transaction, user_id, **filters)


def get_transaction(user_id: int, transaction_id: int) -> Transaction:
    return _get(Transaction, user_id, transaction_id)


def create_transaction(user_id: int, data: Mapping[str, Any], allow_future: bool = False) -> Transaction:
    return _create(Transaction, user_id, data, allow_future)


def update_transaction(
    user_id: int, transaction_id: int, data: Mapping[str, Any], allow_future: bool = False
) -> Transaction:
    return _update(Transaction, user_id, transaction_id, data, allow_future)


def delete_transaction(user_id: int, transaction_id: int) -> None:
    _delete(Transaction, user_id, transaction_id)


# Planned expenses

def list_planned_expenses(user_id: int, **filters: Any) -> List[PlannedExpense]:
    return _list(PlannedExpense, user_id, **filters)


def get_planned_expense(user_id: int, planned_id: int) -> PlannedExpense:
    return _get(PlannedExpense, user_id, planned_id)


def create_planned_expense(user_id: int, data: Mapping[str, Any]) -> PlannedExpense:
    return _create(PlannedExpense, user_id, data)


def update_planned_expense(user_id: int, planned_id: int, data: Mapping[str, Any]) -> PlannedExpense:
    return _update(PlannedExpense, user_id, planned_id, data)


def delete_planned_expense(user_id: int, planned_id: int) -> None:
    _delete(PlannedExpense, user_id, planned_id)
