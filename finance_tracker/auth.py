"""Identity and access.

Maps a login/password pair to a user, issues signed bearer tokens and
resolves them back to a user id. Tokens are signed with the application's
``SECRET_KEY`` and expire after ``TOKEN_MAX_AGE`` seconds.
"""

from __future__ import annotations

import re
from typing import Any, Optional

import sqlalchemy as sa
import structlog
from flask import current_app
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from sqlalchemy.exc import IntegrityError
from werkzeug.security import check_password_hash, generate_password_hash

from .categories import seed_categories
from .errors import AuthError, Conflict, ValidationError
from .models import Profile, User, db, utcnow
from .payloads import is_blank

log = structlog.get_logger(__name__)

_LOGIN_RE = re.compile(r"^[A-Za-z0-9_]{3,100}$")
_TOKEN_SALT = "finance-tracker-auth"
MIN_PASSWORD_LENGTH = 6


def validate_login(login: Any) -> str:
    login = "" if login is None else str(login).strip()
    if not _LOGIN_RE.match(login):
        raise ValidationError("Login must be at least 3 characters: letters, digits or underscore")
    return login


def validate_password(password: Any) -> str:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return password


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=_TOKEN_SALT)


def issue_token(user: User) -> str:
    return _serializer().dumps({"uid": user.id})


def resolve_user(token: Optional[str]) -> int:
    """Return the user id behind a bearer token or raise ``AuthError``."""
    if not token:
        raise AuthError("Access token required")
    try:
        payload = _serializer().loads(token, max_age=current_app.config["TOKEN_MAX_AGE"])
    except SignatureExpired as exc:
        raise AuthError("Token expired") from exc
    except BadSignature as exc:
        raise AuthError("Invalid token") from exc
    user_id = payload.get("uid") if isinstance(payload, dict) else None
    if not isinstance(user_id, int) or db.session.get(User, user_id) is None:
        raise AuthError("Invalid token")
    return user_id


def is_admin(user: Optional[User]) -> bool:
    return user is not None and user.login == current_app.config["ADMIN_LOGIN"]


def register_user(login: Any, password: Any, email: Any = None, name: Any = None) -> User:
    login = validate_login(login)
    password = validate_password(password)
    email = None if is_blank(email) else str(email).strip()

    if db.session.scalar(sa.select(User.id).where(User.login == login)) is not None:
        raise Conflict("User with this login already exists")
    if email and db.session.scalar(sa.select(User.id).where(User.email == email)) is not None:
        raise Conflict("User with this email already exists")

    user = User(
        login=login,
        email=email,
        name=None if is_blank(name) else str(name).strip(),
        password_hash=generate_password_hash(password),
    )
    user.profile = Profile()
    db.session.add(user)
    try:
        db.session.flush()
        seed_categories(user.id, current_app.config["DEFAULT_CATEGORIES"])
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise Conflict("User with this login already exists") from exc
    log.info("user_registered", user_id=user.id)
    return user


def authenticate(login: Any, password: Any) -> User:
    if is_blank(login) or is_blank(password):
        raise ValidationError("Login and password are required")
    user = db.session.scalars(sa.select(User).where(User.login == str(login).strip())).first()
    if user is None or not check_password_hash(user.password_hash, str(password)):
        log.info("login_failed")
        raise AuthError("Invalid login or password")
    user.login_count = (user.login_count or 0) + 1
    user.last_login_at = utcnow()
    db.session.commit()
    log.info("login_succeeded", user_id=user.id)
    return user
