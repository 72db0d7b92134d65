"""The expense store: ordered expense list plus its persistence."""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Iterator, List, Optional, Tuple

from .models import DuplicateExpenseError, Expense, parse_amount, validate_title
from .storage import EXPENSES_KEY, KeyValueStore, decode_expenses, encode_expenses

logger = logging.getLogger(__name__)


class ExpenseStore:
    """Owns the ordered expense list and keeps storage in step with it.

    The list is loaded from ``storage`` when the store is constructed. Every
    mutating call writes the complete new list under ``key`` before it
    replaces the in-memory list, so a failed write raises and leaves both
    sides as they were.
    """

    def __init__(self, storage: KeyValueStore, *, key: str = EXPENSES_KEY) -> None:
        self.storage = storage
        self.key = key
        self.backup_key = f"{key}.corrupt"
        self.load_error: Optional[Exception] = None
        self._rejected_blob: Optional[str] = None
        self._expenses: List[Expense] = []
        self._load()

    # ------------------------------------------------------------------ #
    # Persistence
    # ------------------------------------------------------------------ #
    def _load(self) -> None:
        blob: Optional[str] = None
        try:
            blob = self.storage.get(self.key)
            if blob is None:
                return
            self._expenses = decode_expenses(blob)
        except (OSError, ValueError) as exc:
            # Unreadable data starts an empty list; the error stays inspectable.
            logger.warning("Discarding unreadable expense data under '%s': %s", self.key, exc)
            self.load_error = exc
            self._rejected_blob = blob
            self._expenses = []
            return
        logger.debug("Loaded %d expense(s)", len(self._expenses))

    def _commit(self, expenses: List[Expense]) -> None:
        if self._rejected_blob is not None:
            # Keep the data that failed to load before it is overwritten.
            self.storage.set(self.backup_key, self._rejected_blob)
            logger.warning("Saved unreadable expense data under '%s'", self.backup_key)
            self._rejected_blob = None
        self.storage.set(self.key, encode_expenses(expenses))
        self._expenses = expenses

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #
    def current_list(self) -> Tuple[Expense, ...]:
        return tuple(self._expenses)

    def get(self, expense_id: str) -> Optional[Expense]:
        for expense in self._expenses:
            if expense.id == expense_id:
                return expense
        return None

    def __len__(self) -> int:
        return len(self._expenses)

    def __iter__(self) -> Iterator[Expense]:
        return iter(tuple(self._expenses))

    # ------------------------------------------------------------------ #
    # Mutations
    # ------------------------------------------------------------------ #
    def add(
        self,
        title: str,
        amount: float | int | str | Decimal,
        *,
        id: Optional[str] = None,
        date: Optional[datetime] = None,
    ) -> Expense:
        """Append a new expense and persist the list."""
        expense = Expense(
            title=validate_title(title),
            amount=parse_amount(amount),
        )
        if id is not None:
            if not isinstance(id, str) or not id:
                raise ValueError("Expense id must be a non-empty string.")
            if self.get(id) is not None:
                raise DuplicateExpenseError(f"Expense id '{id}' already exists")
            expense.id = id
        if date is not None:
            if not isinstance(date, datetime):
                raise ValueError(f"Expense date must be a datetime, got {date!r}.")
            expense.date = date
        self._commit(self._expenses + [expense])
        logger.debug("Added expense %s (%r, %.2f)", expense.id, expense.title, expense.amount)
        return expense

    def update(self, target_id: str, title: str, amount: float | int | str | Decimal) -> bool:
        """Replace title and amount of the expense with ``target_id``.

        Returns ``False`` without touching storage when no expense has that id;
        the id is looked up before the new values are validated.
        """
        for index, expense in enumerate(self._expenses):
            if expense.id == target_id:
                break
        else:
            logger.debug("Ignoring update for unknown expense id %s", target_id)
            return False

        new_title = validate_title(title)
        new_amount = parse_amount(amount)
        updated = Expense(title=new_title, amount=new_amount, date=expense.date, id=expense.id)
        expenses = list(self._expenses)
        expenses[index] = updated
        self._commit(expenses)
        logger.debug("Updated expense %s", target_id)
        return True

    def remove(self, indices: Iterable[int]) -> List[Expense]:
        """Remove the expenses at the given positions of the current list.

        Raises ``IndexError`` if any position is out of range; nothing is
        removed in that case.
        """
        positions = set(indices)
        size = len(self._expenses)
        invalid = sorted(pos for pos in positions if not 0 <= pos < size)
        if invalid:
            raise IndexError(f"Expense positions out of range: {invalid} (list has {size})")
        if not positions:
            return []

        removed = [self._expenses[pos] for pos in sorted(positions)]
        kept = [expense for pos, expense in enumerate(self._expenses) if pos not in positions]
        self._commit(kept)
        logger.debug("Removed %d expense(s) at %s", len(removed), sorted(positions))
        return removed

    def remove_by_id(self, expense_id: str) -> bool:
        """Remove the expense with ``expense_id``; ``False`` if it is absent."""
        for index, expense in enumerate(self._expenses):
            if expense.id == expense_id:
                self.remove([index])
                return True
        return False
