"""JSON shapes for API responses.

Identifiers are strings, amounts are numbers, dates are ``YYYY-MM-DD`` and
timestamps are ISO 8601.
"""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Any, Dict, Optional

from .models import Category, Goal, PlannedExpense, Saving, Transaction, User


def money(value: Optional[Decimal]) -> Optional[float]:
    if value is None:
        return None
    return float(round(Decimal(value), 2))


def iso_date(value: Optional[dt.date]) -> Optional[str]:
    return value.isoformat() if value else None


def iso_timestamp(value: Optional[dt.datetime]) -> Optional[str]:
    return value.isoformat() + "Z" if value else None


def category_dict(category: Category) -> Dict[str, Any]:
    return {
        "id": str(category.id),
        "name": category.name,
        "color": category.color,
        "icon": category.icon,
    }


def transaction_dict(txn: Transaction) -> Dict[str, Any]:
    return {
        "id": str(txn.id),
        "type": txn.type,
        "amount": money(txn.amount),
        "description": txn.description or "",
        "date": iso_date(txn.date),
        "category": category_dict(txn.category),
        "createdAt": iso_timestamp(txn.created_at),
        "updatedAt": iso_timestamp(txn.updated_at),
    }


def planned_expense_dict(entry: PlannedExpense) -> Dict[str, Any]:
    return {
        "id": str(entry.id),
        "amount": money(entry.amount),
        "description": entry.description or "",
        "date": iso_date(entry.date),
        "category": category_dict(entry.category),
        "createdAt": iso_timestamp(entry.created_at),
        "updatedAt": iso_timestamp(entry.updated_at),
    }


def saving_dict(saving: Saving) -> Dict[str, Any]:
    return {
        "id": str(saving.id),
        "amount": money(saving.amount),
        "description": saving.description or "",
        "date": iso_date(saving.date),
        "createdAt": iso_timestamp(saving.created_at),
        "updatedAt": iso_timestamp(saving.updated_at),
    }


def goal_dict(goal: Goal) -> Dict[str, Any]:
    return {
        "id": str(goal.id),
        "title": goal.title,
        "targetAmount": money(goal.target_amount),
        "currentAmount": money(goal.current_amount),
        "description": goal.description or "",
        "createdAt": iso_timestamp(goal.created_at),
        "updatedAt": iso_timestamp(goal.updated_at),
    }


def user_dict(user: User, admin: bool = False) -> Dict[str, Any]:
    return {
        "id": str(user.id),
        "login": user.login,
        "email": user.email,
        "name": user.name,
        "isAdmin": admin,
    }


def profile_dict(user: User) -> Dict[str, Any]:
    profile = user.profile
    return {
        "id": str(user.id),
        "login": user.login,
        "email": user.email,
        "name": user.name,
        "lastName": profile.last_name if profile else None,
        "firstName": profile.first_name if profile else None,
        "middleName": profile.middle_name if profile else None,
        "age": profile.age if profile else None,
        "dateOfBirth": iso_date(profile.date_of_birth) if profile else None,
    }


def admin_user_dict(user: User) -> Dict[str, Any]:
    data = profile_dict(user)
    data.update(
        {
            "createdAt": iso_timestamp(user.created_at),
            "lastLoginAt": iso_timestamp(user.last_login_at),
            "loginCount": user.login_count or 0,
        }
    )
    return data
