"""Expense tracker desktop application package."""

__all__ = [
    "app",
    "models",
    "storage",
    "store",
    "viewmodels",
    "widgets",
]
