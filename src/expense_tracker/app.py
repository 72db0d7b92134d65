"""Tkinter application wiring for the expense tracker."""

from __future__ import annotations

import logging
import tkinter as tk
from pathlib import Path
from tkinter import messagebox, ttk
from typing import Sequence

import matplotlib.dates as mdates
from matplotlib.backends.backend_tkagg import FigureCanvasTkAgg
from matplotlib.figure import Figure

from .models import Expense
from .storage import JsonFileKeyValueStore, StorageError
from .store import ExpenseStore
from .viewmodels import ExpenseViewModel
from .widgets import CurrencyEntry, LabeledEntry, Table

logger = logging.getLogger(__name__)


class ExpenseFormDialog(tk.Toplevel):
    """Modal add/edit form bound to the view-model's editing state."""

    def __init__(self, master: tk.Misc, viewmodel: ExpenseViewModel) -> None:
        super().__init__(master)
        self.viewmodel = viewmodel
        self.saved: Expense | None = None
        editing = viewmodel.editing

        self.title("Edit Expense" if editing else "Add Expense")
        self.transient(master)
        self.resizable(False, False)

        container = ttk.Frame(self, padding=16)
        container.grid(row=0, column=0, sticky="nsew")
        container.columnconfigure(0, weight=1)

        ttk.Label(
            container,
            text="Edit Expense" if editing else "Add Expense",
            style="Header.TLabel",
        ).grid(row=0, column=0, sticky="w", pady=(0, 8))

        self.title_input = LabeledEntry(container, label="Title")
        self.title_input.grid(row=1, column=0, sticky="ew")

        self.amount_input = CurrencyEntry(container, label="Amount")
        self.amount_input.grid(row=2, column=0, sticky="ew")

        if editing:
            self.title_input.set(editing.title)
            self.amount_input.set(f"{editing.amount}")

        button_frame = ttk.Frame(container)
        button_frame.grid(row=3, column=0, sticky="e", pady=(12, 0))
        ttk.Button(button_frame, text="Cancel", command=self._on_cancel).grid(
            row=0, column=0, padx=(0, 6)
        )
        self.save_button = ttk.Button(
            button_frame,
            text="Update Expense" if editing else "Save Expense",
            command=self._on_save,
            style="Primary.TButton",
        )
        self.save_button.grid(row=0, column=1)

        self.title_input.var.trace_add("write", self._update_save_state)
        self.amount_input.var.trace_add("write", self._update_save_state)
        self._update_save_state()

        self.bind("<Return>", lambda _event: self._on_save())
        self.bind("<Escape>", lambda _event: self._on_cancel())
        self.protocol("WM_DELETE_WINDOW", self._on_cancel)
        self.title_input.focus_set()
        self.grab_set()

    def _update_save_state(self, *_args) -> None:
        ready = bool(self.title_input.get().strip() and self.amount_input.get().strip())
        self.save_button.configure(state="normal" if ready else "disabled")

    def _on_save(self) -> None:
        title = self.title_input.get()
        amount = self.amount_input.get()
        if not title.strip() or not amount.strip():
            return
        try:
            self.saved = self.viewmodel.submit(title, amount)
        except ValueError as exc:
            messagebox.showerror("Invalid Expense", str(exc), parent=self)
            return
        except StorageError as exc:
            logger.exception("Saving expense failed")
            messagebox.showerror("Save Failed", str(exc), parent=self)
            return
        self.destroy()

    def _on_cancel(self) -> None:
        self.viewmodel.cancel_edit()
        self.destroy()


class ExpenseApp(tk.Tk):
    """Main application window."""

    def __init__(self, viewmodel: ExpenseViewModel) -> None:
        super().__init__()
        self.title("Expense Tracker")
        self.geometry("720x520")
        self.resizable(True, True)
        self.viewmodel = viewmodel
        self.status_var = tk.StringVar(value="Ready")
        self.total_var = tk.StringVar(value="0.00 USD")
        self.count_var = tk.StringVar(value="0")
        self._chart_window: tk.Toplevel | None = None
        self._chart_canvas: FigureCanvasTkAgg | None = None
        self._chart_figure: Figure | None = None

        self._configure_styles()
        self._build_menu()
        self._build_layout()

        self.viewmodel.add_listener(self._on_data_changed)
        self.viewmodel.refresh()

        warning = self.viewmodel.load_warning
        if warning:
            self._set_status(warning)
            self.after_idle(lambda: messagebox.showwarning("Expense Data", warning, parent=self))

    # ------------------------------------------------------------------ #
    # Layout helpers
    # ------------------------------------------------------------------ #
    def _configure_styles(self) -> None:
        style = ttk.Style(self)
        style.theme_use("clam")
        style.configure("Card.TLabelframe", padding=12)
        style.configure("Card.TLabelframe.Label", font=("Segoe UI", 12, "bold"))
        style.configure("Primary.TButton", font=("Segoe UI", 10, "bold"))
        style.configure("Header.TLabel", font=("Segoe UI", 16, "bold"), foreground="#1f5fbf")

    def _build_layout(self) -> None:
        container = ttk.Frame(self, padding=12)
        container.pack(fill="both", expand=True, padx=12, pady=8)
        container.columnconfigure(0, weight=1)
        container.rowconfigure(1, weight=1)

        self._build_totals_section(container)
        self._build_expenses_section(container)

        status_bar = ttk.Label(self, textvariable=self.status_var, anchor="w", padding=(12, 4))
        status_bar.pack(fill="x", side="bottom")

    def _build_totals_section(self, parent: ttk.Frame) -> None:
        totals_frame = ttk.Frame(parent)
        totals_frame.grid(row=0, column=0, sticky="ew", pady=(0, 8))
        totals_frame.columnconfigure(4, weight=1)

        for idx, (label, var) in enumerate(
            [
                ("Expenses:", self.count_var),
                ("Total:", self.total_var),
            ]
        ):
            ttk.Label(totals_frame, text=label, font=("Segoe UI", 10, "bold")).grid(
                row=0, column=2 * idx, sticky="w", padx=(0 if idx == 0 else 12, 4)
            )
            ttk.Label(totals_frame, textvariable=var, font=("Consolas", 12)).grid(
                row=0, column=2 * idx + 1, sticky="w"
            )

        ttk.Button(
            totals_frame,
            text="Spending Chart",
            command=self._open_chart_window,
        ).grid(row=0, column=5, sticky="e")

    def _build_expenses_section(self, parent: ttk.Frame) -> None:
        expenses_frame = ttk.Labelframe(parent, text="Expenses", style="Card.TLabelframe")
        expenses_frame.grid(row=1, column=0, sticky="nsew")
        expenses_frame.columnconfigure(0, weight=1)
        expenses_frame.rowconfigure(0, weight=1)

        self.expense_table = Table(
            expenses_frame,
            columns=("date", "title", "amount"),
            headings={"date": "Date", "title": "Title", "amount": "Amount"},
            selectmode="extended",
            column_options={
                "date": {"width": 110, "stretch": False},
                "amount": {"width": 120, "anchor": "e", "stretch": False},
            },
        )
        self.expense_table.grid(row=0, column=0, sticky="nsew")
        self.expense_table.bind_double_click(lambda _event: self._handle_edit_expense())
        self.expense_table.tree.bind("<Delete>", lambda _event: self._handle_delete_expenses())

        actions = ttk.Frame(expenses_frame)
        actions.grid(row=1, column=0, sticky="ew", pady=(8, 0))
        for idx in range(3):
            actions.columnconfigure(idx, weight=1)

        ttk.Button(
            actions,
            text="Add Expense",
            style="Primary.TButton",
            command=self._handle_add_expense,
        ).grid(row=0, column=0, sticky="ew")
        ttk.Button(
            actions,
            text="Edit Selected",
            command=self._handle_edit_expense,
        ).grid(row=0, column=1, sticky="ew", padx=6)
        ttk.Button(
            actions,
            text="Delete Selected",
            command=self._handle_delete_expenses,
        ).grid(row=0, column=2, sticky="ew")

    def _build_menu(self) -> None:
        menu_bar = tk.Menu(self)
        file_menu = tk.Menu(menu_bar, tearoff=0)
        file_menu.add_command(label="Add Expense...", command=self._handle_add_expense)
        file_menu.add_command(label="Spending Chart", command=self._open_chart_window)
        file_menu.add_separator()
        file_menu.add_command(label="Exit", command=self.destroy)
        menu_bar.add_cascade(label="File", menu=file_menu)

        help_menu = tk.Menu(menu_bar, tearoff=0)
        help_menu.add_command(label="About", command=self._show_about_dialog)
        menu_bar.add_cascade(label="Help", menu=help_menu)

        self.config(menu=menu_bar)

    # ------------------------------------------------------------------ #
    # Event handlers
    # ------------------------------------------------------------------ #
    def _handle_add_expense(self) -> None:
        self.viewmodel.begin_add()
        self._run_form()

    def _handle_edit_expense(self) -> None:
        selected = self.expense_table.selected_keys()
        if not selected:
            messagebox.showinfo("Select Expense", "Select an expense to edit.", parent=self)
            return
        try:
            self.viewmodel.begin_edit(selected[0])
        except KeyError:
            messagebox.showerror(
                "Expense Missing", "The selected expense could not be found.", parent=self
            )
            return
        self._run_form()

    def _run_form(self) -> None:
        editing = self.viewmodel.is_editing
        dialog = ExpenseFormDialog(self, self.viewmodel)
        dialog.wait_window()
        if dialog.saved is not None:
            verb = "Updated" if editing else "Added"
            self._set_status(f"{verb} expense '{dialog.saved.title}'.")

    def _handle_delete_expenses(self) -> None:
        selected = self.expense_table.selected_keys()
        if not selected:
            messagebox.showinfo("Select Expense", "Select an expense to delete.", parent=self)
            return
        noun = "expense" if len(selected) == 1 else f"{len(selected)} expenses"
        if not messagebox.askyesno("Delete Expense", f"Delete the selected {noun}?", parent=self):
            return
        try:
            positions = [self.viewmodel.index_of(expense_id) for expense_id in selected]
            removed = self.viewmodel.delete_at(positions)
        except (KeyError, IndexError):
            logger.warning("Selection no longer matches the expense list: %s", selected)
            self.viewmodel.refresh()
            return
        except StorageError as exc:
            logger.exception("Deleting expenses failed")
            messagebox.showerror("Delete Failed", str(exc), parent=self)
            return
        self._set_status(f"Deleted {len(removed)} expense(s).")

    def _show_about_dialog(self) -> None:
        messagebox.showinfo(
            "About Expense Tracker",
            "Expense Tracker\nRecord, edit and review your expenses.\n",
            parent=self,
        )

    def _set_status(self, message: str) -> None:
        self.status_var.set(message)

    # ------------------------------------------------------------------ #
    # Data binding
    # ------------------------------------------------------------------ #
    def _on_data_changed(self, expenses: Sequence[Expense]) -> None:
        rows = list(self.viewmodel.expenses_for_table())
        self.expense_table.populate(rows, key_field="expense_id")
        self.count_var.set(str(len(expenses)))
        self.total_var.set(f"{self.viewmodel.total_amount():.2f} USD")
        self._refresh_chart()

    # ------------------------------------------------------------------ #
    # Chart window
    # ------------------------------------------------------------------ #
    def _open_chart_window(self) -> None:
        if self._chart_window is not None and self._chart_window.winfo_exists():
            self._chart_window.lift()
            return

        window = tk.Toplevel(self)
        window.title("Spending Chart")
        window.geometry("640x420")
        window.protocol("WM_DELETE_WINDOW", self._close_chart_window)

        self._chart_figure = Figure(figsize=(6.4, 4.0), dpi=100)
        self._chart_canvas = FigureCanvasTkAgg(self._chart_figure, master=window)
        self._chart_canvas.get_tk_widget().pack(fill="both", expand=True)
        self._chart_window = window
        self._render_chart()

    def _close_chart_window(self) -> None:
        if self._chart_window is not None:
            self._chart_window.destroy()
        self._chart_window = None
        self._chart_canvas = None
        self._chart_figure = None

    def _refresh_chart(self) -> None:
        if self._chart_window is not None and self._chart_window.winfo_exists():
            self._render_chart()

    def _render_chart(self) -> None:
        if self._chart_figure is None or self._chart_canvas is None:
            return
        self._chart_figure.clear()
        ax = self._chart_figure.add_subplot(111)
        totals = self.viewmodel.daily_totals()
        if not totals:
            ax.text(0.5, 0.5, "No expenses yet", ha="center", va="center", transform=ax.transAxes)
            ax.set_axis_off()
        else:
            days = [day for day, _ in totals]
            amounts = [amount for _, amount in totals]
            colors = ["#d62728" if amount >= 0 else "#2ca02c" for amount in amounts]
            ax.bar(days, amounts, color=colors, width=0.8)
            ax.axhline(0, color="#7f7f7f", linewidth=0.8)
            ax.xaxis.set_major_formatter(mdates.DateFormatter("%Y-%m-%d"))
            ax.set_ylabel("USD")
            ax.set_title("Spending per day")
            self._chart_figure.autofmt_xdate()
        self._chart_canvas.draw_idle()


def run_app(data_file: str | Path | None = None) -> None:
    """Convenience helper to start the Tkinter loop."""
    store = ExpenseStore(JsonFileKeyValueStore(data_file))
    viewmodel = ExpenseViewModel(store)
    app = ExpenseApp(viewmodel)
    app.mainloop()
