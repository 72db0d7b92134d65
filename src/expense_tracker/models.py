"""Domain models for the expense tracker."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict
from uuid import uuid4


class DuplicateExpenseError(ValueError):
    """Raised when an expense id is already present in the store."""


def parse_amount(value: float | int | str | Decimal) -> float:
    """Convert user-provided numeric values into a finite float.

    Text is accepted so form input can be passed straight through; surrounding
    whitespace is ignored. ``ValueError`` is raised for anything that does not
    parse as a number, and for NaN or infinity, which cannot be persisted.
    """
    if isinstance(value, bool):
        raise ValueError("Amount must be numeric.")
    if isinstance(value, str):
        value = value.strip()
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Amount must be numeric, got {value!r}.") from None
    if not math.isfinite(amount):
        raise ValueError("Amount must be a finite number.")
    return amount


def validate_title(title: str) -> str:
    """Return the stripped title, rejecting empty or blank values."""
    if not isinstance(title, str):
        raise ValueError("Title must be text.")
    cleaned = title.strip()
    if not cleaned:
        raise ValueError("Title must not be empty.")
    return cleaned


def _parse_date(value: datetime | str) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    raise ValueError(f"Unsupported date value {value!r}.")


@dataclass(slots=True)
class Expense:
    """A single expense entry."""

    title: str
    amount: float
    date: datetime = field(default_factory=datetime.now)
    id: str = field(default_factory=lambda: uuid4().hex)

    def to_dict(self) -> Dict[str, Any]:
        """Serialise the expense for JSON storage."""
        return {
            "id": self.id,
            "title": self.title,
            "amount": self.amount,
            "date": self.date.isoformat(),
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Expense":
        """Rehydrate an expense from serialised data.

        Every field is required; a missing or mistyped field raises
        ``ValueError`` so callers can reject the whole payload.
        """
        if not isinstance(payload, dict):
            raise ValueError("Expense payload must be an object.")
        try:
            expense_id = payload["id"]
            title = payload["title"]
            amount = payload["amount"]
            occurred = payload["date"]
        except KeyError as exc:
            raise ValueError(f"Expense payload is missing field {exc.args[0]!r}.") from None
        if not isinstance(expense_id, str) or not expense_id:
            raise ValueError("Expense id must be a non-empty string.")
        if not isinstance(amount, (int, float)):
            raise ValueError("Expense amount must be a number.")
        return cls(
            title=validate_title(title),
            amount=parse_amount(amount),
            date=_parse_date(occurred),
            id=expense_id,
        )
