"""AssetRegistry: Ordered, append-only mapping of FX symbols to asset ids.

Registration order is preserved; the first entry is conventionally the
one paired with the base unit. Entries are never removed.

.. code-block:: python

    >>> registry = AssetRegistry(MemoryStore())
    >>> registry.add(["USD", "EUR"], ["usdy", "eurcv"])
    >>> [tuple(e) for e in registry.list()]
    [('USD', 'usdy'), ('EUR', 'eurcv')]
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import NamedTuple

from .errors import AssetLimitExceeded, DuplicateAsset, LengthMismatch, NotFound
from .StateStore import StateStore

logger = logging.getLogger(__name__)

ASSETS_KEY = "assets"

# Asset indexes are stored as a single byte.
MAX_ASSETS = 255


class AssetEntry(NamedTuple):
    """A registered asset.

    :ivar fx_symbol: Symbol used to look up the FX rate into the base unit.
    :ivar asset_id: Identifier passed to the price source.
    """

    fx_symbol: str
    asset_id: str


class AssetRegistry:
    """Append-only asset registry stored under a single key.

    :ivar store: Backing store.
    """

    def __init__(self, store: StateStore) -> None:
        self.store = store

    def list(self) -> list[AssetEntry]:
        """Return registered entries in registration order."""
        return [AssetEntry(*item) for item in self.store.get(ASSETS_KEY, [])]

    def get(self, asset_id: str) -> AssetEntry:
        """Look up an entry by asset id.

        :raises NotFound: If the asset is not registered.
        """
        for entry in self.list():
            if entry.asset_id == asset_id:
                return entry
        raise NotFound(f"Asset {asset_id} is not registered")

    def add(self, fx_symbols: Sequence[str], asset_ids: Sequence[str]) -> list[AssetEntry]:
        """Append new entries, all or nothing.

        :param fx_symbols: FX symbol per asset, stored upper-case.
        :param asset_ids: Asset identifiers, same length as ``fx_symbols``.
        :returns: The newly added entries.
        :raises LengthMismatch: If the sequences differ in length.
        :raises DuplicateAsset: If a symbol or id is registered or repeated.
        :raises AssetLimitExceeded: If the registry would overflow.
        """
        if len(fx_symbols) != len(asset_ids):
            raise LengthMismatch(
                f"Got {len(fx_symbols)} FX symbols for {len(asset_ids)} assets"
            )

        entries = self.list()
        seen_symbols = {e.fx_symbol for e in entries}
        seen_ids = {e.asset_id for e in entries}
        added: list[AssetEntry] = []

        for fx_symbol, asset_id in zip(fx_symbols, asset_ids, strict=True):
            fx_symbol = fx_symbol.strip().upper()
            if fx_symbol in seen_symbols:
                raise DuplicateAsset(f"FX symbol {fx_symbol} is already registered")
            if asset_id in seen_ids:
                raise DuplicateAsset(f"Asset {asset_id} is already registered")
            seen_symbols.add(fx_symbol)
            seen_ids.add(asset_id)
            added.append(AssetEntry(fx_symbol, asset_id))

        if len(entries) + len(added) > MAX_ASSETS:
            raise AssetLimitExceeded(
                f"Registry holds at most {MAX_ASSETS} assets, "
                f"{len(entries)} registered, {len(added)} requested"
            )

        self.store.set(ASSETS_KEY, [list(e) for e in entries + added])
        for entry in added:
            logger.info(f"Registered asset {entry.asset_id} (fx={entry.fx_symbol})")
        return added
