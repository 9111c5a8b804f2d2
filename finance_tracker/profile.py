"""Profile store: personal details kept apart from credentials."""

from __future__ import annotations

from typing import Any, Callable, Dict, Mapping, Optional, Tuple

import structlog

from .errors import NoFieldsProvided, NotFound, ValidationError
from .models import Profile, User, db
from .payloads import is_blank, parse_optional_date, parse_text

log = structlog.get_logger(__name__)

MAX_AGE = 150


def parse_age(value: Any) -> Optional[int]:
    if is_blank(value):
        return None
    if isinstance(value, bool):
        raise ValidationError("Invalid age")
    try:
        age = int(str(value).strip())
    except ValueError as exc:
        raise ValidationError("Invalid age") from exc
    if not 0 <= age <= MAX_AGE:
        raise ValidationError("Invalid age")
    return age


def _birth_date(value: Any):
    return parse_optional_date(value, "date of birth")


# payload key -> (profile column, parser)
PROFILE_FIELDS: Dict[str, Tuple[str, Callable[[Any], Any]]] = {
    "lastName": ("last_name", parse_text),
    "firstName": ("first_name", parse_text),
    "middleName": ("middle_name", parse_text),
    "age": ("age", parse_age),
    "dateOfBirth": ("date_of_birth", _birth_date),
}


def build_patch(data: Mapping[str, Any]) -> Dict[str, Any]:
    return {column: parser(data[key]) for key, (column, parser) in PROFILE_FIELDS.items() if key in data}


def _load(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    if user.profile is None:
        user.profile = Profile()
    return user


def get_profile(user_id: int) -> User:
    return _load(user_id)


def apply_profile_patch(user: User, patch: Mapping[str, Any]) -> None:
    if user.profile is None:
        user.profile = Profile()
    for column, value in patch.items():
        setattr(user.profile, column, value)


def update_profile(user_id: int, data: Mapping[str, Any]) -> User:
    patch = build_patch(data)
    if not patch:
        raise NoFieldsProvided()
    user = _load(user_id)
    apply_profile_patch(user, patch)
    db.session.commit()
    log.info("profile_updated", user_id=user_id, fields=sorted(patch))
    return user
