"""Administrator operations over user accounts."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping

import sqlalchemy as sa
import structlog
from werkzeug.security import generate_password_hash

from .auth import is_admin, validate_login, validate_password
from .errors import Conflict, Forbidden, NoFieldsProvided, NotFound
from .models import User, db
from .payloads import is_blank, parse_text
from .profile import apply_profile_patch
from .profile import build_patch as build_profile_patch

log = structlog.get_logger(__name__)


def list_users() -> List[User]:
    return db.session.scalars(sa.select(User).order_by(User.created_at.desc(), User.id.desc())).all()


def _get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


def _account_patch(user: User, data: Mapping[str, Any]) -> Dict[str, Any]:
    patch: Dict[str, Any] = {}
    if "login" in data:
        login = validate_login(data["login"])
        taken = db.session.scalar(sa.select(User.id).where(User.login == login, User.id != user.id))
        if taken is not None:
            raise Conflict("User with this login already exists")
        patch["login"] = login
    if "email" in data:
        email = parse_text(data["email"])
        if email:
            taken = db.session.scalar(sa.select(User.id).where(User.email == email, User.id != user.id))
            if taken is not None:
                raise Conflict("User with this email already exists")
        patch["email"] = email
    if "name" in data:
        patch["name"] = parse_text(data["name"])
    if not is_blank(data.get("password")):
        patch["password_hash"] = generate_password_hash(validate_password(data["password"]))
    return patch


def update_user(admin_id: int, user_id: int, data: Mapping[str, Any]) -> User:
    user = _get_user(user_id)
    account_patch = _account_patch(user, data)
    profile_patch = build_profile_patch(data)
    if not account_patch and not profile_patch:
        raise NoFieldsProvided()
    for column, value in account_patch.items():
        setattr(user, column, value)
    apply_profile_patch(user, profile_patch)
    db.session.commit()
    log.info(
        "admin_user_updated",
        admin_id=admin_id,
        user_id=user_id,
        fields=sorted(k for k in (*account_patch, *profile_patch) if k != "password_hash"),
    )
    return user


def delete_user(admin_id: int, user_id: int) -> None:
    user = _get_user(user_id)
    if user.id == admin_id or is_admin(user):
        raise Forbidden("Cannot delete admin user")
    db.session.delete(user)
    db.session.commit()
    log.info("admin_user_deleted", admin_id=admin_id, user_id=user_id)
