"""Error taxonomy shared by the stores and the web layer.

Every store raises one of these; the web layer maps them to an HTTP status
and a ``{"error": message}`` body. Anything else is an internal error.
"""

from __future__ import annotations

from typing import Any, Dict


class FinanceError(Exception):
    """Base exception for finance tracker operations."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message}


class ValidationError(FinanceError):
    """Missing or malformed input."""

    status_code = 400


class NoFieldsProvided(ValidationError):
    """A partial update carried no fields."""

    def __init__(self, message: str = "No fields to update"):
        super().__init__(message)


class CategoryNotOwned(ValidationError):
    """Category reference does not resolve to a category of the same user."""

    def __init__(self, message: str = "Category not found"):
        super().__init__(message)


class CategoryInUse(FinanceError):
    """Category deletion blocked by existing references."""

    status_code = 400

    def __init__(self, name: str, transaction_count: int, planned_count: int):
        super().__init__(
            f'Cannot delete category "{name}": it is used by {transaction_count} '
            f"transactions and {planned_count} planned expenses"
        )
        self.transaction_count = transaction_count
        self.planned_count = planned_count

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["transactionCount"] = self.transaction_count
        payload["plannedCount"] = self.planned_count
        return payload


class AuthError(FinanceError):
    """Missing, invalid or expired credential."""

    status_code = 401


class Forbidden(FinanceError):
    status_code = 403


class NotFound(FinanceError):
    """Entity absent or owned by another user."""

    status_code = 404


class Conflict(FinanceError):
    """Unique constraint violation."""

    status_code = 409


class DuplicateName(Conflict):
    def __init__(self, message: str = "Category with this name already exists"):
        super().__init__(message)
