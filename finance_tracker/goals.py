"""Goals store.

A goal is a savings target with a manually adjusted progress amount. The
progress amount is not derived from the savings store; callers adjust it by
storing a new absolute value. Amounts never drop below zero but may exceed
the target.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Callable, Dict, List, Mapping, Tuple

import sqlalchemy as sa
import structlog

from .errors import NoFieldsProvided, NotFound, ValidationError
from .models import Goal, db, utcnow
from .payloads import is_blank, parse_amount, parse_text

log = structlog.get_logger(__name__)

ZERO = Decimal("0")


def _title(value: Any) -> str:
    if is_blank(value):
        raise ValidationError("Title is required")
    return str(value).strip()


def _target(value: Any) -> Decimal:
    return parse_amount(value, "target amount")


def _current(value: Any) -> Decimal:
    return parse_amount(value, "current amount", allow_zero=True)


# payload key -> (column, parser)
GOAL_FIELDS: Dict[str, Tuple[str, Callable[[Any], Any]]] = {
    "title": ("title", _title),
    "targetAmount": ("target_amount", _target),
    "currentAmount": ("current_amount", _current),
    "description": ("description", parse_text),
}


def build_patch(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Column -> parsed value for every goal field present in ``data``."""
    patch: Dict[str, Any] = {}
    for key, (column, parser) in GOAL_FIELDS.items():
        if key in data:
            patch[column] = parser(data[key])
    return patch


def clamp_amount(current: Decimal, delta: Decimal) -> Decimal:
    """Apply a signed adjustment with a floor of zero and no ceiling."""
    return max(Decimal(current) + Decimal(delta), ZERO)


def list_goals(user_id: int) -> List[Goal]:
    return db.session.scalars(
        sa.select(Goal).where(Goal.user_id == user_id).order_by(Goal.created_at.desc(), Goal.id.desc())
    ).all()


def get_goal(user_id: int, goal_id: int) -> Goal:
    goal = db.session.scalars(sa.select(Goal).where(Goal.id == goal_id, Goal.user_id == user_id)).first()
    if goal is None:
        raise NotFound("Goal not found")
    return goal


def create_goal(user_id: int, data: Mapping[str, Any]) -> Goal:
    if is_blank(data.get("title")) or data.get("targetAmount") is None:
        raise ValidationError("Title and target amount are required")
    goal = Goal(
        user_id=user_id,
        title=_title(data["title"]),
        target_amount=_target(data["targetAmount"]),
        current_amount=ZERO,
        description=parse_text(data.get("description")),
    )
    db.session.add(goal)
    db.session.commit()
    log.info("goal_created", user_id=user_id, goal_id=goal.id)
    return goal


def update_goal(user_id: int, goal_id: int, data: Mapping[str, Any]) -> Goal:
    get_goal(user_id, goal_id)
    patch = build_patch(data)
    if not patch:
        raise NoFieldsProvided()
    patch["updated_at"] = utcnow()

    result = db.session.execute(
        sa.update(Goal)
        .where(Goal.id == goal_id, Goal.user_id == user_id)
        .values(**patch)
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:
        db.session.rollback()
        raise NotFound("Goal not found")
    db.session.commit()
    log.info("goal_updated", user_id=user_id, goal_id=goal_id, fields=sorted(patch))
    return get_goal(user_id, goal_id)


def adjust_goal(user_id: int, goal_id: int, delta: Any) -> Goal:
    if isinstance(delta, bool) or is_blank(delta):
        raise ValidationError("Invalid delta")
    try:
        delta_value = Decimal(str(delta).strip())
    except ArithmeticError as exc:
        raise ValidationError("Invalid delta") from exc
    if not delta_value.is_finite():
        raise ValidationError("Invalid delta")
    goal = get_goal(user_id, goal_id)
    new_amount = clamp_amount(goal.current_amount, delta_value)
    return update_goal(user_id, goal_id, {"currentAmount": str(new_amount)})


def delete_goal(user_id: int, goal_id: int) -> None:
    result = db.session.execute(
        sa.delete(Goal)
        .where(Goal.id == goal_id, Goal.user_id == user_id)
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:
        db.session.rollback()
        raise NotFound("Goal not found")
    db.session.commit()
    log.info("goal_deleted", user_id=user_id, goal_id=goal_id)
