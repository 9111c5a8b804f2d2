"""Category registry.

Categories are per-user labels with a unique name, a hex color and a symbolic
icon. A category cannot be removed while any transaction or planned expense
points at it.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, List

import sqlalchemy as sa
import structlog
from sqlalchemy.exc import IntegrityError

from .config import CategorySeed
from .errors import CategoryInUse, CategoryNotOwned, DuplicateName, NotFound, ValidationError
from .models import Category, PlannedExpense, Transaction, db
from .payloads import is_blank, parse_id

log = structlog.get_logger(__name__)

_HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


def list_categories(user_id: int) -> List[Category]:
    return db.session.scalars(
        sa.select(Category).where(Category.user_id == user_id).order_by(Category.id)
    ).all()


def get_category(user_id: int, category_id: int) -> Category:
    category = db.session.scalars(
        sa.select(Category).where(Category.id == category_id, Category.user_id == user_id)
    ).first()
    if category is None:
        raise NotFound("Category not found")
    return category


def require_owned_category(user_id: int, ref: Any) -> Category:
    """Resolve a category reference from a ledger payload, scoped to the user."""
    category_id = parse_id(ref, "category id")
    try:
        return get_category(user_id, category_id)
    except NotFound as exc:
        raise CategoryNotOwned() from exc


def create_category(user_id: int, name: Any, color: Any, icon: Any) -> Category:
    if is_blank(name) or is_blank(color) or is_blank(icon):
        raise ValidationError("Missing required fields: name, color, icon")
    name = str(name).strip()
    color = str(color).strip()
    if len(name) > 100:
        raise ValidationError("Category name is too long")
    if not _HEX_COLOR.match(color):
        raise ValidationError("Color must be a hex string like #FF8A65")

    category = Category(user_id=user_id, name=name, color=color, icon=str(icon).strip())
    db.session.add(category)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise DuplicateName() from exc
    log.info("category_created", user_id=user_id, category_id=category.id)
    return category


def seed_categories(user_id: int, seeds: Iterable[CategorySeed]) -> None:
    """Stage the starter categories for a new user; the caller commits."""
    for seed in seeds:
        db.session.add(Category(user_id=user_id, name=seed.name, color=seed.color, icon=seed.icon))


def usage_counts(category_id: int) -> tuple[int, int]:
    transaction_count = db.session.scalar(
        sa.select(sa.func.count()).select_from(Transaction).where(Transaction.category_id == category_id)
    )
    planned_count = db.session.scalar(
        sa.select(sa.func.count()).select_from(PlannedExpense).where(PlannedExpense.category_id == category_id)
    )
    return int(transaction_count or 0), int(planned_count or 0)


def delete_category(user_id: int, category_id: int) -> None:
    # Single conditional statement: the usage check and the delete cannot be split by a concurrent insert.
    stmt = (
        sa.delete(Category)
        .where(Category.id == category_id, Category.user_id == user_id)
        .where(~sa.exists().where(Transaction.category_id == category_id))
        .where(~sa.exists().where(PlannedExpense.category_id == category_id))
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    if result.rowcount:
        db.session.commit()
        log.info("category_deleted", user_id=user_id, category_id=category_id)
        return

    db.session.rollback()
    category = get_category(user_id, category_id)
    transaction_count, planned_count = usage_counts(category_id)
    log.info(
        "category_delete_blocked",
        user_id=user_id,
        category_id=category_id,
        transaction_count=transaction_count,
        planned_count=planned_count,
    )
    raise CategoryInUse(category.name, transaction_count, planned_count)
