"""Savings store: dated amounts set aside, not linked to categories."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping

import sqlalchemy as sa
import structlog

from .errors import NotFound
from .models import Saving, db, utcnow
from .payloads import parse_amount, parse_date, parse_text, require_fields

log = structlog.get_logger(__name__)


def _parse(data: Mapping[str, Any]) -> Dict[str, Any]:
    require_fields(data, "amount", "date")
    return {
        "amount": parse_amount(data.get("amount")),
        "date": parse_date(data.get("date")),
        "description": parse_text(data.get("description")),
    }


def list_savings(user_id: int) -> List[Saving]:
    return db.session.scalars(
        sa.select(Saving)
        .where(Saving.user_id == user_id)
        .order_by(Saving.date.desc(), Saving.created_at.desc(), Saving.id.desc())
    ).all()


def get_saving(user_id: int, saving_id: int) -> Saving:
    saving = db.session.scalars(
        sa.select(Saving).where(Saving.id == saving_id, Saving.user_id == user_id)
    ).first()
    if saving is None:
        raise NotFound("Savings not found")
    return saving


def create_saving(user_id: int, data: Mapping[str, Any]) -> Saving:
    saving = Saving(user_id=user_id, **_parse(data))
    db.session.add(saving)
    db.session.commit()
    log.info("saving_created", user_id=user_id, saving_id=saving.id)
    return saving


def update_saving(user_id: int, saving_id: int, data: Mapping[str, Any]) -> Saving:
    saving = get_saving(user_id, saving_id)
    for key, value in _parse(data).items():
        setattr(saving, key, value)
    saving.updated_at = utcnow()
    db.session.commit()
    log.info("saving_updated", user_id=user_id, saving_id=saving.id)
    return saving


def delete_saving(user_id: int, saving_id: int) -> None:
    result = db.session.execute(
        sa.delete(Saving)
        .where(Saving.id == saving_id, Saving.user_id == user_id)
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:
        db.session.rollback()
        raise NotFound("Savings not found")
    db.session.commit()
    log.info("saving_deleted", user_id=user_id, saving_id=saving_id)
