"""Persistence helpers for the expense tracker."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .models import Expense

logger = logging.getLogger(__name__)

DEFAULT_DATA_FILE = Path("expenses.json")
EXPENSES_KEY = "ExpensesKey"


class StorageError(OSError):
    """Raised when the key-value store cannot be read or written."""


class KeyValueStore(ABC):
    """Minimal string-keyed blob storage."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the blob stored under ``key``, or ``None`` when absent."""

    @abstractmethod
    def set(self, key: str, blob: str) -> None:
        """Store ``blob`` under ``key``, replacing any previous value."""


class MemoryKeyValueStore(KeyValueStore):
    """Dictionary-backed store; nothing survives the process."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, blob: str) -> None:
        self._data[key] = blob


class JsonFileKeyValueStore(KeyValueStore):
    """Key-value store kept as a single JSON object on disk.

    Values are text blobs. The file is rewritten in full on every ``set``
    through a temporary file in the same directory, so a crash mid-write
    leaves the previous contents in place.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path) if path else DEFAULT_DATA_FILE

    def get(self, key: str) -> Optional[str]:
        value = self._read_all().get(key)
        if value is not None and not isinstance(value, str):
            raise StorageError(f"Value stored under '{key}' in {self.path} is not text")
        return value

    def set(self, key: str, blob: str) -> None:
        try:
            data = self._read_all()
        except StorageError:
            backup = self.path.with_name(self.path.name + ".corrupt")
            logger.warning("Moving unreadable data file %s aside to %s", self.path, backup)
            try:
                os.replace(self.path, backup)
            except OSError as exc:
                raise StorageError(f"Unable to move {self.path} aside: {exc}") from exc
            data = {}
        data[key] = blob
        self._write_all(data)

    def _read_all(self) -> Dict[str, object]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise StorageError(f"Unable to read {self.path}: {exc}") from exc
        if not isinstance(payload, dict):
            raise StorageError(f"{self.path} does not contain a JSON object")
        return payload

    def _write_all(self, data: Dict[str, object]) -> None:
        directory = self.path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=directory
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(data, handle, indent=2)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise StorageError(f"Unable to write {self.path}: {exc}") from exc
        logger.debug("Wrote %d key(s) to %s", len(data), self.path)


def encode_expenses(expenses: Iterable[Expense]) -> str:
    """Serialise the full expense list to a JSON text blob."""
    return json.dumps([expense.to_dict() for expense in expenses])


def decode_expenses(blob: str) -> List[Expense]:
    """Rebuild the expense list from a blob written by ``encode_expenses``.

    Raises ``ValueError`` if the blob is not a JSON array of valid expense
    objects with distinct ids.
    """
    payload = json.loads(blob)
    if not isinstance(payload, list):
        raise ValueError("Expense data must be a JSON array.")
    expenses = [Expense.from_dict(item) for item in payload]
    seen: set[str] = set()
    for expense in expenses:
        if expense.id in seen:
            raise ValueError(f"Duplicate expense id '{expense.id}' in stored data.")
        seen.add(expense.id)
    return expenses
