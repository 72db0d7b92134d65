"""Application state and helpers that bridge the UI with the expense store."""

from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from .models import Expense
from .store import ExpenseStore

ChangeListener = Callable[[Sequence[Expense]], None]


class ExpenseViewModel:
    """High-level application state that coordinates UI actions."""

    def __init__(self, store: ExpenseStore) -> None:
        self.store = store
        self.editing: Optional[Expense] = None
        self._listeners: List[ChangeListener] = []

    @property
    def load_warning(self) -> Optional[str]:
        """Describe why stored data was discarded at startup, if it was."""
        error = self.store.load_error
        if error is None:
            return None
        return f"Saved expenses could not be read and were ignored ({error})."

    # ------------------------------------------------------------------ #
    # Listener registration
    # ------------------------------------------------------------------ #
    def add_listener(self, callback: ChangeListener) -> None:
        self._listeners.append(callback)

    def refresh(self) -> None:
        self._notify()

    def _notify(self) -> None:
        expenses = self.store.current_list()
        for listener in self._listeners:
            listener(expenses)

    # ------------------------------------------------------------------ #
    # Form state
    # ------------------------------------------------------------------ #
    @property
    def is_editing(self) -> bool:
        return self.editing is not None

    def begin_add(self) -> None:
        self.editing = None

    def begin_edit(self, expense_id: str) -> Expense:
        expense = self.store.get(expense_id)
        if expense is None:
            raise KeyError(f"Unknown expense id '{expense_id}'")
        self.editing = expense
        return expense

    def cancel_edit(self) -> None:
        self.editing = None

    def submit(self, title: str, amount: str) -> Optional[Expense]:
        """Save the form: update the expense being edited, or add a new one.

        Invalid input raises ``ValueError`` and keeps the form state. Returns
        ``None`` if the expense being edited no longer exists.
        """
        if self.editing is None:
            expense: Optional[Expense] = self.store.add(title, amount)
        else:
            target_id = self.editing.id
            updated = self.store.update(target_id, title, amount)
            expense = self.store.get(target_id) if updated else None
        self.editing = None
        self._notify()
        return expense

    # ------------------------------------------------------------------ #
    # Deletion
    # ------------------------------------------------------------------ #
    def delete_at(self, indices: Iterable[int]) -> List[Expense]:
        removed = self.store.remove(indices)
        if removed:
            self._forget_editing(removed)
            self._notify()
        return removed

    def delete(self, expense_id: str) -> bool:
        expense = self.store.get(expense_id)
        if expense is None or not self.store.remove_by_id(expense_id):
            return False
        self._forget_editing([expense])
        self._notify()
        return True

    def _forget_editing(self, removed: Iterable[Expense]) -> None:
        if self.editing is not None and any(exp.id == self.editing.id for exp in removed):
            self.editing = None

    # ------------------------------------------------------------------ #
    # Display helpers
    # ------------------------------------------------------------------ #
    def expenses_for_table(self) -> Iterable[dict[str, str]]:
        """Return expense data shaped for display tables."""
        for expense in self.store.current_list():
            yield {
                "expense_id": expense.id,
                "date": expense.date.date().isoformat(),
                "title": expense.title,
                "amount": f"{expense.amount:.2f} USD",
            }

    def index_of(self, expense_id: str) -> int:
        for index, expense in enumerate(self.store.current_list()):
            if expense.id == expense_id:
                return index
        raise KeyError(f"Unknown expense id '{expense_id}'")

    def total_amount(self) -> float:
        return sum((expense.amount for expense in self.store.current_list()), 0.0)

    def daily_totals(self) -> List[Tuple[date, float]]:
        """Sum expense amounts per calendar day, oldest day first."""
        totals: dict[date, float] = defaultdict(float)
        for expense in self.store.current_list():
            totals[expense.date.date()] += expense.amount
        return sorted(totals.items())
