"""StateStore: Key-value persistence with all-or-nothing transactions.

Oracle components read and write JSON-compatible values (dicts, lists,
strings, ints) under string keys. Writes made inside
:meth:`StateStore.transaction` are staged and only reach the backing
store when the block exits normally; an exception discards them.

.. code-block:: python

    >>> store = MemoryStore()
    >>> with store.transaction() as txn:
    ...     txn.set("config", {"decimals": 14})
    >>> store.get("config")
    {'decimals': 14}
"""

from __future__ import annotations

import copy
import json
import logging
import os
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

_DELETED = object()


class StateStore(ABC):
    """Abstract key-value store.

    Values handed out by :meth:`get` are copies; mutating them has no
    effect until they are written back with :meth:`set`.
    """

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """Get the value stored under ``key``.

        :param key: Storage key.
        :param default: Value returned when the key is absent.
        :returns: Stored value or ``default``.
        """
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``."""
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key`` if present."""
        pass

    @abstractmethod
    def keys(self) -> list[str]:
        """Return all stored keys."""
        pass

    def has(self, key: str) -> bool:
        return key in self.keys()

    def flush(self) -> None:
        """Persist applied writes. No-op for volatile stores."""

    @contextmanager
    def transaction(self) -> Iterator[Transaction]:
        """Stage writes and apply them atomically on success.

        :returns: Context manager yielding a :class:`Transaction`.
        """
        txn = Transaction(self)
        yield txn
        txn.apply()


class MemoryStore(StateStore):
    """In-process store backed by a dict."""

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(data) if data else {}

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data.keys())

    def has(self, key: str) -> bool:
        return key in self._data


class JsonFileStore(MemoryStore):
    """Memory store persisted to a JSON file after every transaction.

    The file is replaced atomically (write to a temporary file, then
    rename), so a crash never leaves a half-written state file.

    :ivar path: Location of the state file.
    """

    def __init__(self, path: str | Path) -> None:
        """Load existing state from ``path`` if the file exists.

        :param path: State file location.
        """
        self.path = Path(path)
        data: dict[str, Any] = {}
        if self.path.exists():
            with open(self.path, "r") as file:
                data = json.load(file)
            logger.info(f"Loaded oracle state from {self.path} ({len(data)} keys)")
        super().__init__(data)

    def flush(self) -> None:
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        with open(tmp_path, "w") as file:
            json.dump(self._data, file, sort_keys=True)
        os.replace(tmp_path, self.path)
        logger.debug(f"Oracle state written to {self.path}")


class Transaction(StateStore):
    """Write-staging view over another store.

    Reads see staged writes first, then the underlying store.

    :ivar store: Underlying store that receives writes on :meth:`apply`.
    """

    def __init__(self, store: StateStore) -> None:
        self.store = store
        self._staged: dict[str, Any] = {}

    def get(self, key: str, default: Any = None) -> Any:
        if key in self._staged:
            value = self._staged[key]
            return default if value is _DELETED else copy.deepcopy(value)
        return self.store.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._staged[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        self._staged[key] = _DELETED

    def keys(self) -> list[str]:
        keys = [k for k in self.store.keys() if self._staged.get(k) is not _DELETED]
        keys.extend(
            k for k, v in self._staged.items() if v is not _DELETED and k not in keys
        )
        return keys

    def has(self, key: str) -> bool:
        if key in self._staged:
            return self._staged[key] is not _DELETED
        return self.store.has(key)

    @contextmanager
    def transaction(self) -> Iterator[Transaction]:
        # Nested blocks join the enclosing transaction.
        yield self

    def apply(self) -> None:
        """Write all staged changes to the underlying store and flush it."""
        if not self._staged:
            return
        for key, value in self._staged.items():
            if value is _DELETED:
                self.store.delete(key)
            else:
                self.store.set(key, value)
        self._staged.clear()
        self.store.flush()
