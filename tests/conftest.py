"""Shared test fixtures for the expense tracker tests."""

import sys
from pathlib import Path

import pytest

# Add src to path so tests can import expense_tracker without installing it
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from expense_tracker.storage import JsonFileKeyValueStore, MemoryKeyValueStore  # noqa: E402
from expense_tracker.store import ExpenseStore  # noqa: E402


@pytest.fixture
def memory_kv():
    return MemoryKeyValueStore()


@pytest.fixture
def data_file(tmp_path):
    return tmp_path / "expenses.json"


@pytest.fixture
def file_kv(data_file):
    return JsonFileKeyValueStore(data_file)


@pytest.fixture
def store(memory_kv):
    return ExpenseStore(memory_kv)
