"""YieldOracle: Price/yield oracle for tokenized real-world assets.

Ties the components together and exposes the public operations:

Architecture:
    - ConfigStore holds the admin-controlled parameters
    - AssetRegistry maps FX symbols to asset ids (append-only)
    - update_price() reads the raw price, normalizes it via FxNormalizer,
      checks it with YieldGuard and records it in SnapshotStore
    - Read operations (last_price, price_at, prices, twap, cross prices)
      only see committed snapshots

Every operation runs inside a store transaction: either all of its writes
are applied or, if it raises, none are.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from .AssetRegistry import AssetEntry, AssetRegistry
from .Authenticator import Authenticator, Caller, TrustedAuthenticator, caller_address, same_identity
from .clock import Clock, now_ms
from .errors import (
    InsufficientHistory,
    InvalidTimestamp,
    NotFound,
    NotInitialized,
    OracleError,
    Unauthorized,
    YieldDeviationExceeded,
)
from .fixed_point import div_trunc, from_fixed, mul_div, pow10
from .FxNormalizer import FxNormalizer
from .OracleConfig import ConfigStore, OracleConfig
from .SnapshotStore import Snapshot, SnapshotStore
from .sources.base import FxSource, PriceSource
from .StateStore import StateStore
from .YieldGuard import YieldGuard

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@dataclass(frozen=True)
class PriceData:
    """A price as returned by read operations.

    :ivar price: Price scaled by ``10**decimals``.
    :ivar timestamp: Bucket start in milliseconds.
    """

    price: int
    timestamp: int


@dataclass(frozen=True)
class UpdateOutcome:
    """Result of one asset's update within :meth:`YieldOracle.update_prices`.

    :ivar asset_id: Updated asset.
    :ivar snapshot: Recorded snapshot if accepted.
    :ivar error: Error that aborted the update otherwise.
    """

    asset_id: str
    snapshot: Snapshot | None = None
    error: OracleError | None = None

    @property
    def accepted(self) -> bool:
        return self.snapshot is not None


class YieldOracle:
    """Oracle state machine and read API.

    :ivar store: Persistent state.
    :ivar authenticator: Capability check for admin operations.
    :ivar clock: Millisecond clock defining "now".
    """

    def __init__(
        self,
        store: StateStore,
        fx_source: FxSource,
        price_source: PriceSource,
        authenticator: Authenticator | None = None,
        clock: Clock = now_ms,
    ) -> None:
        """Initialize the oracle.

        :param store: State store holding configuration, assets and snapshots.
        :param fx_source: FX rate provider.
        :param price_source: Underlying asset price provider.
        :param authenticator: Admin capability check (default: trust caller).
        :param clock: Millisecond clock (default: wall clock).
        """
        self.store = store
        self._fx_source = fx_source
        self._price_source = price_source
        self.authenticator = authenticator or TrustedAuthenticator()
        self.clock = clock

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def initialize(self, config: OracleConfig) -> OracleConfig:
        """Store the initial configuration.

        :raises AlreadyInitialized: If called twice.
        :raises InvalidConfig: If the configuration is invalid.
        """
        with self.store.transaction() as txn:
            return ConfigStore(txn).initialize(config)

    def update_config(self, caller: Caller, changes: dict[str, Any]) -> OracleConfig:
        """Apply a partial configuration update as admin.

        :param caller: Caller identity or credentials.
        :param changes: Field names mapped to new values.
        :returns: The updated configuration.
        :raises Unauthorized: If the caller is not the verified admin.
        :raises InvalidConfig: If the result is invalid.
        """
        with self.store.transaction() as txn:
            self._require_admin(txn, caller, "update_config")
            return ConfigStore(txn).update(changes)

    def config(self) -> OracleConfig:
        """Get the current configuration.

        :raises NotInitialized: Before ``initialize``.
        """
        return ConfigStore(self.store).get()

    def admin(self) -> str | None:
        """Get the admin address, or None before initialization."""
        try:
            return self.config().admin
        except NotInitialized:
            return None

    def base(self) -> str:
        return self.config().base_unit

    def decimals(self) -> int:
        return self.config().decimals

    def resolution(self) -> int:
        return self.config().resolution

    def period(self) -> int:
        return self.config().period

    def max_yield_deviation(self) -> Decimal:
        return self.config().max_yield_deviation

    def fx_source(self) -> str:
        return self.config().fx_source

    @staticmethod
    def version() -> int:
        """Major version of the oracle."""
        return int(VERSION.split(".")[0])

    def close(self) -> None:
        """Close the FX and price sources."""
        self._fx_source.close()
        self._price_source.close()

    def _require_admin(self, store: StateStore, caller: Caller, operation: str) -> OracleConfig:
        try:
            config = ConfigStore(store).get()
        except NotInitialized as e:
            raise Unauthorized("No admin configured") from e

        address = caller_address(caller)
        verified = self.authenticator.verify(caller, operation)
        if not verified or not same_identity(address, config.admin):
            logger.warning(f"Rejected admin operation from {address or '<anonymous>'}")
            raise Unauthorized(f"Caller {address} is not the admin")
        return config

    # ------------------------------------------------------------------
    # Asset registry
    # ------------------------------------------------------------------

    def add_assets(
        self,
        caller: Caller,
        fx_symbols: Sequence[str],
        asset_ids: Sequence[str],
    ) -> list[AssetEntry]:
        """Register assets as admin, all or nothing.

        :param caller: Caller identity or credentials.
        :param fx_symbols: FX symbol per asset.
        :param asset_ids: Asset identifiers.
        :returns: Newly registered entries.
        :raises Unauthorized: If the caller is not the verified admin.
        :raises LengthMismatch: If the sequences differ in length.
        :raises DuplicateAsset: If a symbol or id is already registered.
        """
        with self.store.transaction() as txn:
            self._require_admin(txn, caller, "add_assets")
            return AssetRegistry(txn).add(fx_symbols, asset_ids)

    def list_assets(self) -> list[AssetEntry]:
        """Get registered assets in registration order."""
        return AssetRegistry(self.store).list()

    def fx_symbol(self, asset_id: str) -> str:
        """Get the FX symbol an asset is quoted in.

        :raises NotFound: If the asset is not registered.
        """
        return AssetRegistry(self.store).get(asset_id).fx_symbol

    # ------------------------------------------------------------------
    # Price updates
    # ------------------------------------------------------------------

    def _snapshots(self, store: StateStore, config: OracleConfig) -> SnapshotStore:
        return SnapshotStore(store, config.resolution, config.period, clock=self.clock)

    def _check_timestamp(
        self, snapshots: SnapshotStore, asset_id: str, timestamp: int, now: int
    ) -> int:
        if timestamp <= 0:
            raise InvalidTimestamp(f"Timestamp {timestamp} must be positive")
        if timestamp > now:
            raise InvalidTimestamp(f"Timestamp {timestamp} is in the future (now {now})")

        bucket = snapshots.bucket(timestamp)
        if bucket < snapshots.window_start():
            raise InvalidTimestamp(f"Timestamp {timestamp} is outside the retained window")

        latest = snapshots.latest(asset_id)
        if latest is not None and bucket < latest.timestamp:
            raise InvalidTimestamp(
                f"Timestamp {timestamp} is older than the last snapshot "
                f"of {asset_id} at {latest.timestamp}"
            )
        return bucket

    def update_price(self, asset_id: str, timestamp: int | None = None) -> Snapshot:
        """Observe, validate and record a new price for an asset.

        The first observation of an asset (or the first after a gap longer
        than the period) is accepted with a yield of 0. Later observations
        are compared with the oldest snapshot in the period window.

        :param asset_id: Registered asset to update.
        :param timestamp: Observation time in milliseconds (default: now).
        :returns: The recorded snapshot.
        :raises NotFound: If the asset is not registered.
        :raises InvalidTimestamp: If the timestamp is invalid.
        :raises PriceUnavailable: If the price source has no price.
        :raises FxUnavailable: If the FX source has no rate.
        :raises StaleFxRate: If the FX rate is stale.
        :raises ArithmeticOverflow: On fixed-point overflow.
        :raises YieldDeviationExceeded: If the guard rejects the observation.
        """
        with self.store.transaction() as txn:
            config = ConfigStore(txn).get()
            entry = AssetRegistry(txn).get(asset_id)
            snapshots = self._snapshots(txn, config)

            now = self.clock()
            bucket = self._check_timestamp(
                snapshots, asset_id, now if timestamp is None else timestamp, now
            )

            raw = self._price_source.get_price(asset_id)
            normalizer = FxNormalizer(self._fx_source, config.base_unit, config.decimals)
            price = normalizer.normalize(entry.fx_symbol, raw.price, raw.decimals)

            reference = snapshots.oldest_since(
                asset_id, start=bucket - config.period, before=bucket
            )
            guard = YieldGuard(config.max_yield_deviation, config.decimals)
            result = guard.check(asset_id, price, reference)

            snapshot = snapshots.put(asset_id, bucket, price, result.yield_)

        logger.info(
            f"{asset_id}: {from_fixed(price, config.decimals)} {config.base_unit} "
            f"at {bucket} accepted ({result.state.value}, "
            f"yield={from_fixed(result.yield_, config.decimals)}%)"
        )
        return snapshot

    def update_prices(self) -> list[UpdateOutcome]:
        """Update every registered asset independently.

        Each asset's update is atomic on its own; a failure is logged and
        reported in the outcome without affecting the other assets.

        :returns: One outcome per registered asset, in registration order.
        """
        outcomes: list[UpdateOutcome] = []
        for entry in self.list_assets():
            try:
                snapshot = self.update_price(entry.asset_id)
            except YieldDeviationExceeded as e:
                logger.warning(
                    f"{entry.asset_id}: update rejected (deviation={e.deviation}%, "
                    f"threshold={e.threshold}%)"
                )
                outcomes.append(UpdateOutcome(entry.asset_id, error=e))
            except OracleError as e:
                logger.warning(f"{entry.asset_id}: update failed ({e.code}): {e}")
                outcomes.append(UpdateOutcome(entry.asset_id, error=e))
            else:
                outcomes.append(UpdateOutcome(entry.asset_id, snapshot=snapshot))
        return outcomes

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _read(self, asset_id: str) -> tuple[OracleConfig, SnapshotStore]:
        config = self.config()
        AssetRegistry(self.store).get(asset_id)
        return config, self._snapshots(self.store, config)

    def last_price(self, asset_id: str) -> PriceData:
        """Get the most recent price of an asset.

        :raises NotFound: If the asset is unknown or has no retained snapshot.
        """
        _, snapshots = self._read(asset_id)
        latest = snapshots.latest(asset_id)
        if latest is None:
            raise NotFound(f"No price recorded for {asset_id}")
        return PriceData(latest.price, latest.timestamp)

    def price_at(self, asset_id: str, timestamp: int) -> PriceData:
        """Get the price recorded in the bucket containing ``timestamp``.

        :raises NotFound: If the asset is unknown or the bucket is empty.
        """
        _, snapshots = self._read(asset_id)
        snapshot = snapshots.get(asset_id, timestamp)
        return PriceData(snapshot.price, snapshot.timestamp)

    def prices(self, asset_id: str, count: int) -> list[PriceData]:
        """Get up to ``count`` most recent prices, newest first.

        :raises NotFound: If the asset is unknown.
        """
        _, snapshots = self._read(asset_id)
        return [PriceData(s.price, s.timestamp) for s in snapshots.series(asset_id, count)]

    def twap(self, asset_id: str, count: int) -> int:
        """Average of the ``count`` most recent prices.

        :raises ValueError: If ``count`` is not positive.
        :raises InsufficientHistory: If fewer than ``count`` prices exist.
        """
        if count < 1:
            raise ValueError("count must be at least 1")
        series = self.prices(asset_id, count)
        if len(series) < count:
            raise InsufficientHistory(asset_id, available=len(series), required=count)
        return div_trunc(sum(p.price for p in series), count)

    def last_timestamp(self) -> int:
        """Newest snapshot timestamp across all assets, or 0."""
        if not ConfigStore(self.store).is_initialized():
            return 0
        snapshots = self._snapshots(self.store, self.config())
        latest = [snapshots.latest(e.asset_id) for e in self.list_assets()]
        return max((s.timestamp for s in latest if s is not None), default=0)

    def _cross(self, decimals: int, base: Snapshot, quote: Snapshot) -> PriceData:
        return PriceData(mul_div(base.price, pow10(decimals), quote.price), base.timestamp)

    def x_last_price(self, base_asset: str, quote_asset: str) -> PriceData:
        """Most recent price of ``base_asset`` expressed in ``quote_asset``.

        Both assets must have a snapshot in the base asset's latest bucket.

        :raises NotFound: If either side is missing.
        :raises ArithmeticOverflow: If the quote price is zero.
        """
        config, snapshots = self._read(base_asset)
        AssetRegistry(self.store).get(quote_asset)
        base = snapshots.latest(base_asset)
        if base is None:
            raise NotFound(f"No price recorded for {base_asset}")
        quote = snapshots.get(quote_asset, base.timestamp)
        return self._cross(config.decimals, base, quote)

    def x_price(self, base_asset: str, quote_asset: str, timestamp: int) -> PriceData:
        """Cross price in the bucket containing ``timestamp``.

        :raises NotFound: If either side is missing.
        """
        config, snapshots = self._read(base_asset)
        AssetRegistry(self.store).get(quote_asset)
        base = snapshots.get(base_asset, timestamp)
        quote = snapshots.get(quote_asset, timestamp)
        return self._cross(config.decimals, base, quote)

    def x_twap(self, base_asset: str, quote_asset: str, count: int) -> int:
        """Average of the ``count`` most recent cross prices.

        :raises ValueError: If ``count`` is not positive.
        :raises InsufficientHistory: If fewer than ``count`` buckets hold
            prices for both assets.
        """
        if count < 1:
            raise ValueError("count must be at least 1")
        config, snapshots = self._read(base_asset)
        AssetRegistry(self.store).get(quote_asset)

        crosses: list[int] = []
        for base in snapshots.series(base_asset, count):
            try:
                quote = snapshots.get(quote_asset, base.timestamp)
            except NotFound:
                break
            crosses.append(self._cross(config.decimals, base, quote).price)

        if len(crosses) < count:
            raise InsufficientHistory(
                f"{base_asset}/{quote_asset}", available=len(crosses), required=count
            )
        return div_trunc(sum(crosses), count)
