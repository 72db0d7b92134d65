"""Custom Tkinter widgets used by the expense tracker."""

from __future__ import annotations

import tkinter as tk
from typing import Any, Mapping

from tkinter import ttk

from .models import parse_amount


class LabeledEntry(ttk.Frame):
    """A label stacked above an entry."""

    def __init__(self, master: tk.Widget, *, label: str, width: int = 28, **kwargs) -> None:
        super().__init__(master, padding=(0, 4))
        self.columnconfigure(0, weight=1)
        self._label = ttk.Label(self, text=label)
        self._label.grid(row=0, column=0, sticky="w", pady=(0, 2))
        self.var = tk.StringVar()
        self._entry = ttk.Entry(self, textvariable=self.var, width=width, **kwargs)
        self._entry.grid(row=1, column=0, sticky="ew")

    def get(self) -> str:
        return self.var.get()

    def set(self, value: str) -> None:
        self.var.set(value)

    def bind(self, sequence: str | None = None, func=None, add=None):  # type: ignore[override]
        return self._entry.bind(sequence, func, add)

    def focus_set(self) -> None:
        self._entry.focus_set()


class CurrencyEntry(LabeledEntry):
    """Entry widget that flags non-numeric amounts when focus leaves it."""

    def __init__(self, master: tk.Widget, *, label: str) -> None:
        super().__init__(master, label=label, width=16)
        vcmd = (self.register(self.is_valid_amount), "%P")
        self._entry.configure(validate="focusout", validatecommand=vcmd)

    @staticmethod
    def is_valid_amount(value: str) -> bool:
        if not value.strip():
            return True
        try:
            parse_amount(value)
        except ValueError:
            return False
        return True


class Table(ttk.Frame):
    """Scrollable Treeview that re-renders its rows in the chosen sort order.

    Rows are kept as dictionaries; clicking a heading sorts by that column and
    clicking it again flips the direction. Numeric cells sort by value and
    ahead of text cells.
    """

    def __init__(
        self,
        master: tk.Widget,
        *,
        columns: tuple[str, ...],
        headings: dict[str, str],
        selectmode: str = "browse",
        column_options: Mapping[str, Mapping[str, Any]] | None = None,
    ) -> None:
        super().__init__(master)
        self.columnconfigure(0, weight=1)
        self.rowconfigure(0, weight=1)
        self._columns = columns
        self._titles = {name: headings.get(name, name.title()) for name in columns}
        self._rows: list[dict[str, str]] = []
        self._key_field = ""
        self.sort_column: str | None = None
        self.sort_descending = False

        self.tree = ttk.Treeview(self, columns=columns, show="headings", selectmode=selectmode)
        self.tree.grid(row=0, column=0, sticky="nsew")
        scrollbar = ttk.Scrollbar(self, orient="vertical", command=self.tree.yview)
        scrollbar.grid(row=0, column=1, sticky="ns")
        self.tree.configure(yscrollcommand=scrollbar.set)

        for name in columns:
            settings = {"anchor": "e" if name == "amount" else "w", "stretch": True}
            settings.update((column_options or {}).get(name, {}))
            self.tree.column(name, **settings)
        self._draw_headings()

    def populate(self, rows: list[dict[str, str]], *, key_field: str) -> None:
        """Show ``rows``, keyed by ``key_field``, keeping surviving selections."""
        self._rows = list(rows)
        self._key_field = key_field
        self._render()

    def selected_keys(self) -> tuple[str, ...]:
        return tuple(self.tree.selection())

    def bind_double_click(self, callback) -> None:
        self.tree.bind("<Double-1>", callback)

    def sort_by(self, column: str) -> None:
        if column == self.sort_column:
            self.sort_descending = not self.sort_descending
        else:
            self.sort_column, self.sort_descending = column, False
        self._render()

    def _ordered_rows(self) -> list[dict[str, str]]:
        if self.sort_column is None:
            return self._rows
        column = self.sort_column
        return sorted(
            self._rows,
            key=lambda row: self.sort_key(row.get(column, "")),
            reverse=self.sort_descending,
        )

    def _render(self) -> None:
        keep = set(self.tree.selection())
        self.tree.delete(*self.tree.get_children())
        for row in self._ordered_rows():
            self.tree.insert(
                "",
                "end",
                iid=row.get(self._key_field, ""),
                values=[row.get(name, "") for name in self._columns],
            )
        reselect = [key for key in keep if self.tree.exists(key)]
        if reselect:
            self.tree.selection_set(reselect)
        self._draw_headings()

    @staticmethod
    def sort_key(value: str) -> tuple[int, object]:
        """Numeric cells (currency suffix ignored) order before text cells."""
        text = value.replace(",", "").strip()
        try:
            return (0, float(text.split(" ", 1)[0]))
        except ValueError:
            return (1, text.lower())

    def _draw_headings(self) -> None:
        for name in self._columns:
            title = self._titles[name]
            if name == self.sort_column:
                title += " ▼" if self.sort_descending else " ▲"
            self.tree.heading(name, text=title, command=lambda col=name: self.sort_by(col))
