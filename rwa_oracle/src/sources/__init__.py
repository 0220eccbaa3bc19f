"""
External FX rate and asset price sources.

Usage:
    from rwa_oracle.src.sources import get_fx_source, StaticPriceSource

    # Get list of available FX sources
    available = get_available_fx_sources()
    # ['directory', 'frankfurter', 'static']

    fx_source = get_fx_source("frankfurter")
    quote = fx_source.get_rate("EUR", "USD")
"""

# Import base classes and utilities
from .base import (
    FX_SOURCE_REGISTRY,
    FxQuote,
    FxSource,
    PriceSource,
    RawPrice,
    get_available_fx_sources,
    get_fx_source,
    register_fx_source,
)

# Import all source implementations to trigger registration
from .contract import AggregatorPriceSource, FeedDirectoryFxSource
from .frankfurter import FrankfurterFxSource
from .static import StaticFxSource, StaticPriceSource

__all__ = [
    # Base classes
    "FxQuote",
    "FxSource",
    "PriceSource",
    "RawPrice",
    # Registry functions
    "register_fx_source",
    "get_fx_source",
    "get_available_fx_sources",
    "FX_SOURCE_REGISTRY",
    # Implementations
    "AggregatorPriceSource",
    "FeedDirectoryFxSource",
    "FrankfurterFxSource",
    "StaticFxSource",
    "StaticPriceSource",
]
