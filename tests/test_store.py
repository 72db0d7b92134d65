"""Tests for the expense store: list management and persistence."""

import json
from datetime import datetime

import pytest

from expense_tracker.models import DuplicateExpenseError
from expense_tracker.storage import (
    EXPENSES_KEY,
    JsonFileKeyValueStore,
    KeyValueStore,
    MemoryKeyValueStore,
    StorageError,
    decode_expenses,
    encode_expenses,
)
from expense_tracker.store import ExpenseStore


def _summary(store):
    return [(expense.title, expense.amount) for expense in store.current_list()]


class FailingKeyValueStore(MemoryKeyValueStore):
    """Memory store whose writes can be switched off."""

    def __init__(self):
        super().__init__()
        self.fail_writes = False

    def set(self, key, blob):
        if self.fail_writes:
            raise StorageError("disk full")
        super().set(key, blob)


class CountingKeyValueStore(MemoryKeyValueStore):
    def __init__(self):
        super().__init__()
        self.writes = 0

    def set(self, key, blob):
        self.writes += 1
        super().set(key, blob)


class TestAdd:
    def test_empty_store_without_saved_data(self, store):
        assert store.current_list() == ()
        assert len(store) == 0
        assert store.load_error is None

    def test_adds_keep_call_order_and_unique_ids(self, store):
        titles = [f"Item {n}" for n in range(10)]
        for n, title in enumerate(titles):
            store.add(title, n)
        assert [expense.title for expense in store.current_list()] == titles
        assert len({expense.id for expense in store.current_list()}) == len(titles)

    def test_accepts_explicit_id_and_date(self, store):
        when = datetime(2023, 12, 24, 18, 0)
        expense = store.add("Gift", 40, id="gift-1", date=when)
        assert expense.id == "gift-1"
        assert expense.date == when
        assert store.get("gift-1") is expense

    def test_date_defaults_to_now(self, store):
        before = datetime.now()
        expense = store.add("Coffee", 3.5)
        assert before <= expense.date <= datetime.now()

    def test_parses_amount_text(self, store):
        assert store.add("Coffee", " 3.50 ").amount == 3.5

    def test_duplicate_id_rejected(self, store):
        store.add("Coffee", 3.5, id="same")
        with pytest.raises(DuplicateExpenseError):
            store.add("Tea", 4, id="same")
        assert _summary(store) == [("Coffee", 3.5)]

    @pytest.mark.parametrize(
        "options", [{"id": 5}, {"id": ""}, {"date": "2024-01-01"}, {"date": 1700000000}]
    )
    def test_rejects_mistyped_id_or_date(self, memory_kv, options):
        store = ExpenseStore(memory_kv)
        with pytest.raises(ValueError):
            store.add("Coffee", 3.5, **options)
        assert memory_kv.get(EXPENSES_KEY) is None

    @pytest.mark.parametrize("title, amount", [("", 1), ("   ", 1), ("Coffee", "abc")])
    def test_invalid_input_rejected(self, memory_kv, title, amount):
        store = ExpenseStore(memory_kv)
        with pytest.raises(ValueError):
            store.add(title, amount)
        assert store.current_list() == ()
        assert memory_kv.get(EXPENSES_KEY) is None


class TestUpdate:
    def test_changes_only_title_and_amount(self, store):
        first = store.add("Coffee", 3.5)
        second = store.add("Book", 12.99)
        assert store.update(first.id, "Tea", 4.0) is True

        updated = store.current_list()[0]
        assert (updated.id, updated.date) == (first.id, first.date)
        assert (updated.title, updated.amount) == ("Tea", 4.0)
        assert store.current_list()[1] == second
        assert len(store) == 2

    def test_unknown_id_is_a_no_op(self):
        kv = CountingKeyValueStore()
        store = ExpenseStore(kv)
        store.add("Coffee", 3.5)
        before = store.current_list()
        assert store.update("missing", "Tea", 4.0) is False
        assert store.current_list() == before
        assert kv.writes == 1

    def test_unknown_id_ignores_invalid_values(self, store):
        store.add("Coffee", 3.5)
        assert store.update("missing", "", "x") is False
        assert _summary(store) == [("Coffee", 3.5)]

    def test_invalid_input_leaves_record_unchanged(self, store):
        expense = store.add("Coffee", 3.5)
        with pytest.raises(ValueError):
            store.update(expense.id, "Tea", "four")
        assert _summary(store) == [("Coffee", 3.5)]

    def test_previous_snapshot_is_not_mutated(self, store):
        expense = store.add("Coffee", 3.5)
        snapshot = store.current_list()
        store.update(expense.id, "Tea", 4.0)
        assert snapshot[0].title == "Coffee"


class TestRemove:
    def test_removes_single_position(self, store):
        for title in ("A", "B", "C", "D"):
            store.add(title, 1)
        removed = store.remove({1})
        assert [expense.title for expense in removed] == ["B"]
        assert [expense.title for expense in store.current_list()] == ["A", "C", "D"]

    def test_removes_several_positions(self, store):
        for title in ("A", "B", "C", "D", "E"):
            store.add(title, 1)
        removed = store.remove([4, 0, 2, 2])
        assert [expense.title for expense in removed] == ["A", "C", "E"]
        assert [expense.title for expense in store.current_list()] == ["B", "D"]

    @pytest.mark.parametrize("indices", [[3], [-1], [0, 5]])
    def test_out_of_range_raises_and_removes_nothing(self, store, indices):
        for title in ("A", "B", "C"):
            store.add(title, 1)
        with pytest.raises(IndexError):
            store.remove(indices)
        assert len(store) == 3

    def test_empty_selection_does_not_write(self):
        kv = CountingKeyValueStore()
        store = ExpenseStore(kv)
        store.add("A", 1)
        assert store.remove([]) == []
        assert kv.writes == 1

    def test_remove_by_id(self, store):
        keep = store.add("Keep", 1)
        drop = store.add("Drop", 2)
        assert store.remove_by_id(drop.id) is True
        assert store.remove_by_id(drop.id) is False
        assert store.current_list() == (keep,)


class TestPersistence:
    """Every mutation rewrites the full list; a new store reloads it."""

    def test_each_mutation_writes_full_list(self):
        kv = CountingKeyValueStore()
        store = ExpenseStore(kv)
        coffee = store.add("Coffee", 3.5)
        store.add("Book", 12.99)
        store.update(coffee.id, "Tea", 4.0)
        store.remove([1])
        assert kv.writes == 4
        assert decode_expenses(kv.get(EXPENSES_KEY)) == list(store.current_list())

    def test_fresh_store_reproduces_last_list(self, data_file):
        store = ExpenseStore(JsonFileKeyValueStore(data_file))
        coffee = store.add("Coffee", 3.5)
        store.add("Book", 12.99)
        store.update(coffee.id, "Tea", 4.0)

        reloaded = ExpenseStore(JsonFileKeyValueStore(data_file))
        assert reloaded.current_list() == store.current_list()
        assert reloaded.load_error is None

    def test_custom_key(self, memory_kv):
        store = ExpenseStore(memory_kv, key="Other")
        store.add("Coffee", 3.5)
        assert memory_kv.get(EXPENSES_KEY) is None
        assert ExpenseStore(memory_kv, key="Other").current_list() == store.current_list()

    @pytest.mark.parametrize("blob", ["garbage", "{}", '[{"id": "a"}]'])
    def test_malformed_blob_loads_empty_with_error(self, blob):
        store = ExpenseStore(MemoryKeyValueStore({EXPENSES_KEY: blob}))
        assert store.current_list() == ()
        assert isinstance(store.load_error, ValueError)

    def test_corrupt_file_loads_empty_with_error(self, data_file):
        data_file.write_text("{broken", encoding="utf-8")
        store = ExpenseStore(JsonFileKeyValueStore(data_file))
        assert store.current_list() == ()
        assert isinstance(store.load_error, StorageError)

        store.add("Coffee", 3.5)
        assert _summary(ExpenseStore(JsonFileKeyValueStore(data_file))) == [("Coffee", 3.5)]

    def test_failed_write_keeps_memory_unchanged(self):
        kv = FailingKeyValueStore()
        store = ExpenseStore(kv)
        coffee = store.add("Coffee", 3.5)
        kv.fail_writes = True

        with pytest.raises(StorageError):
            store.add("Book", 12.99)
        with pytest.raises(StorageError):
            store.update(coffee.id, "Tea", 4.0)
        with pytest.raises(StorageError):
            store.remove([0])
        assert _summary(store) == [("Coffee", 3.5)]

    def test_storage_contract_is_abstract(self):
        with pytest.raises(TypeError):
            KeyValueStore()

    def test_rejected_records_are_kept_after_next_write(self, data_file):
        rent = {"id": "rent", "title": "Rent", "amount": 900.0, "date": "2024-01-01T00:00:00"}
        blank = {"id": "blank", "title": "", "amount": 1.0, "date": "2024-01-02T00:00:00"}
        blob = json.dumps([rent, blank])
        data_file.write_text(json.dumps({EXPENSES_KEY: blob}), encoding="utf-8")

        store = ExpenseStore(JsonFileKeyValueStore(data_file))
        assert store.current_list() == ()
        assert isinstance(store.load_error, ValueError)
        store.add("Coffee", 3.5)
        store.add("Book", 12.99)

        reopened = JsonFileKeyValueStore(data_file)
        assert reopened.get(store.backup_key) == blob
        assert json.loads(reopened.get(store.backup_key))[0]["title"] == "Rent"
        assert _summary(ExpenseStore(reopened)) == [("Coffee", 3.5), ("Book", 12.99)]

    def test_clean_load_writes_no_backup(self, memory_kv):
        ExpenseStore(memory_kv).add("Coffee", 3.5)
        store = ExpenseStore(memory_kv)
        store.add("Book", 12.99)
        assert memory_kv.get(store.backup_key) is None


class TestScenario:
    def test_coffee_book_tea(self, memory_kv):
        store = ExpenseStore(memory_kv)
        coffee = store.add("Coffee", 3.50)
        store.add("Book", 12.99)
        assert _summary(store) == [("Coffee", 3.50), ("Book", 12.99)]

        store.update(coffee.id, "Tea", 4.00)
        assert _summary(store) == [("Tea", 4.00), ("Book", 12.99)]

        store.remove({0})
        assert _summary(store) == [("Book", 12.99)]

        assert decode_expenses(memory_kv.get(EXPENSES_KEY)) == list(store.current_list())
        assert encode_expenses(store.current_list()) == memory_kv.get(EXPENSES_KEY)
