"""Unit tests for AssetRegistry."""

import pytest

from rwa_oracle.src.AssetRegistry import MAX_ASSETS, AssetEntry, AssetRegistry
from rwa_oracle.src.errors import (
    AssetLimitExceeded,
    DuplicateAsset,
    LengthMismatch,
    NotFound,
)
from rwa_oracle.src.StateStore import MemoryStore


class TestAssetRegistryAdd:
    """Test registering assets."""

    def test_empty(self) -> None:
        assert AssetRegistry(MemoryStore()).list() == []

    def test_add_preserves_order(self) -> None:
        """Entries should be listed in registration order."""
        registry = AssetRegistry(MemoryStore())
        registry.add(["USD", "EUR"], ["usdy", "eurcv"])
        registry.add(["GBP"], ["gbpt"])

        assert registry.list() == [
            AssetEntry("USD", "usdy"),
            AssetEntry("EUR", "eurcv"),
            AssetEntry("GBP", "gbpt"),
        ]

    def test_add_returns_new_entries(self) -> None:
        registry = AssetRegistry(MemoryStore())
        registry.add(["USD"], ["usdy"])
        assert registry.add(["EUR"], ["eurcv"]) == [AssetEntry("EUR", "eurcv")]

    def test_length_mismatch(self) -> None:
        registry = AssetRegistry(MemoryStore())
        with pytest.raises(LengthMismatch):
            registry.add(["USD", "EUR"], ["usdy"])

    def test_duplicate_symbol(self) -> None:
        registry = AssetRegistry(MemoryStore())
        registry.add(["USD"], ["usdy"])
        with pytest.raises(DuplicateAsset, match="FX symbol USD"):
            registry.add(["USD"], ["other"])

    def test_symbols_stored_upper_case(self) -> None:
        registry = AssetRegistry(MemoryStore())
        assert registry.add([" eur "], ["eurcv"]) == [AssetEntry("EUR", "eurcv")]

    def test_duplicate_symbol_case_insensitive(self) -> None:
        """Symbols differing only in case name the same currency."""
        registry = AssetRegistry(MemoryStore())
        registry.add(["USD"], ["usdy"])
        with pytest.raises(DuplicateAsset, match="FX symbol USD"):
            registry.add(["usd"], ["other"])
        with pytest.raises(DuplicateAsset):
            registry.add(["eur", "EUR"], ["a", "b"])

    def test_duplicate_asset_id(self) -> None:
        registry = AssetRegistry(MemoryStore())
        registry.add(["USD"], ["usdy"])
        with pytest.raises(DuplicateAsset, match="Asset usdy"):
            registry.add(["EUR"], ["usdy"])

    def test_duplicate_within_input(self) -> None:
        """Repeats inside one call should be rejected."""
        registry = AssetRegistry(MemoryStore())
        with pytest.raises(DuplicateAsset):
            registry.add(["EUR", "GBP"], ["same", "same"])

    def test_all_or_nothing(self) -> None:
        """A failing batch should not register any of its entries."""
        registry = AssetRegistry(MemoryStore())
        registry.add(["USD"], ["usdy"])
        with pytest.raises(DuplicateAsset):
            registry.add(["EUR", "USD"], ["eurcv", "usdy2"])

        assert registry.list() == [AssetEntry("USD", "usdy")]

    def test_capacity(self) -> None:
        """The registry should refuse to grow past its capacity."""
        registry = AssetRegistry(MemoryStore())
        registry.add([f"S{i}" for i in range(MAX_ASSETS)], [f"a{i}" for i in range(MAX_ASSETS)])

        with pytest.raises(AssetLimitExceeded):
            registry.add(["EXTRA"], ["extra"])
        assert len(registry.list()) == MAX_ASSETS


class TestAssetRegistryLookup:
    """Test lookups."""

    def test_get(self) -> None:
        registry = AssetRegistry(MemoryStore())
        registry.add(["USD", "EUR"], ["usdy", "eurcv"])
        assert registry.get("eurcv").fx_symbol == "EUR"

    def test_get_unknown(self) -> None:
        with pytest.raises(NotFound, match="not registered"):
            AssetRegistry(MemoryStore()).get("missing")
