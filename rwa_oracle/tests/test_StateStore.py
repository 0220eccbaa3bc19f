"""Unit tests for StateStore."""

import json
from pathlib import Path

import pytest

from rwa_oracle.src.StateStore import JsonFileStore, MemoryStore


class TestMemoryStore:
    """Test the in-memory store."""

    def test_get_default(self) -> None:
        """Missing keys should return the default."""
        store = MemoryStore()
        assert store.get("missing") is None
        assert store.get("missing", []) == []

    def test_set_get_delete(self) -> None:
        store = MemoryStore()
        store.set("a", {"x": 1})
        assert store.get("a") == {"x": 1}
        assert store.has("a")

        store.delete("a")
        assert not store.has("a")
        assert store.keys() == []

    def test_values_are_copies(self) -> None:
        """Mutating a returned value should not change the store."""
        store = MemoryStore()
        store.set("a", [1, 2])
        value = store.get("a")
        value.append(3)
        assert store.get("a") == [1, 2]


class TestTransaction:
    """Test staged, all-or-nothing writes."""

    def test_commit_on_success(self) -> None:
        """Writes should be applied when the block exits normally."""
        store = MemoryStore({"keep": 1, "drop": 2})
        with store.transaction() as txn:
            txn.set("new", 3)
            txn.delete("drop")
            assert txn.get("new") == 3
            assert txn.get("drop") is None
            assert sorted(txn.keys()) == ["keep", "new"]
            # Not visible before the block exits
            assert not store.has("new")

        assert store.get("new") == 3
        assert not store.has("drop")
        assert store.get("keep") == 1

    def test_discard_on_error(self) -> None:
        """An exception should discard every staged write."""
        store = MemoryStore({"a": 1})
        with pytest.raises(RuntimeError, match="boom"):
            with store.transaction() as txn:
                txn.set("a", 2)
                txn.set("b", 3)
                raise RuntimeError("boom")

        assert store.get("a") == 1
        assert not store.has("b")

    def test_nested_joins_outer(self) -> None:
        """A nested transaction should commit with the outer one."""
        store = MemoryStore()
        with pytest.raises(ValueError):
            with store.transaction() as txn:
                with txn.transaction() as inner:
                    inner.set("a", 1)
                assert not store.has("a")
                raise ValueError("abort")

        assert not store.has("a")


class TestJsonFileStore:
    """Test the JSON file backed store."""

    def test_persists_after_transaction(self, tmp_path: Path) -> None:
        """Committed writes should be written to the file."""
        path = tmp_path / "state.json"
        store = JsonFileStore(path)
        with store.transaction() as txn:
            txn.set("config", {"decimals": 14})

        assert json.loads(path.read_text()) == {"config": {"decimals": 14}}
        assert not (tmp_path / "state.json.tmp").exists()

    def test_reload(self, tmp_path: Path) -> None:
        """A new store should load the previous state."""
        path = tmp_path / "state.json"
        with JsonFileStore(path).transaction() as txn:
            txn.set("snapshots/a", [[300_000, 10**14, 0]])

        assert JsonFileStore(path).get("snapshots/a") == [[300_000, 10**14, 0]]

    def test_failed_transaction_not_written(self, tmp_path: Path) -> None:
        """A failed transaction should leave no file behind."""
        path = tmp_path / "state.json"
        store = JsonFileStore(path)
        with pytest.raises(RuntimeError):
            with store.transaction() as txn:
                txn.set("a", 1)
                raise RuntimeError("abort")

        assert not path.exists()
