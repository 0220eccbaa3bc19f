"""
ROFL RWA Oracle - Yield-Guarded Price Module

This module records FX-normalized prices of tokenized real-world assets:
- OracleConfig: Admin-controlled parameters
- AssetRegistry: Append-only FX symbol to asset id mapping
- FxNormalizer: Conversion of raw prices into the base unit
- SnapshotStore: Time-bucketed price history
- YieldGuard: Implied yield deviation check
- YieldOracle: Update and query operations
- OracleRunner: Periodic update loop
- sources: FX rate and asset price providers
"""

from .AssetRegistry import AssetEntry, AssetRegistry
from .errors import OracleError, YieldDeviationExceeded
from .FxNormalizer import FxNormalizer
from .OracleConfig import ConfigStore, OracleConfig
from .OracleRunner import DEFAULT_PRICE_FEED_ADDRESS, OracleRunner
from .SnapshotStore import Snapshot, SnapshotStore
from .YieldGuard import GuardResult, YieldGuard
from .YieldOracle import PriceData, UpdateOutcome, YieldOracle

__all__ = [
    "AssetEntry",
    "AssetRegistry",
    "ConfigStore",
    "DEFAULT_PRICE_FEED_ADDRESS",
    "FxNormalizer",
    "GuardResult",
    "OracleConfig",
    "OracleError",
    "OracleRunner",
    "PriceData",
    "Snapshot",
    "SnapshotStore",
    "UpdateOutcome",
    "YieldDeviationExceeded",
    "YieldGuard",
    "YieldOracle",
]
