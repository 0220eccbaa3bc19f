"""SnapshotStore: Time-bucketed price history per asset.

Timestamps are aligned down to a multiple of ``resolution``; a second
write into the same bucket replaces the first. Buckets older than
``bucket(now) - period`` fall out of the retained window: reads ignore
them and the next write for the asset deletes them.

.. code-block:: python

    >>> snapshots = SnapshotStore(MemoryStore(), resolution=300_000, period=900_000,
    ...                           clock=lambda: 1_000_000)
    >>> snapshots.put("usdy", 950_000, 100, 0).timestamp
    900000
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .clock import Clock, now_ms
from .errors import NotFound
from .StateStore import StateStore

logger = logging.getLogger(__name__)

SNAPSHOTS_PREFIX = "snapshots/"


@dataclass(frozen=True)
class Snapshot:
    """An accepted observation.

    :ivar asset_id: Asset the observation belongs to.
    :ivar timestamp: Bucket start in milliseconds.
    :ivar price: Normalized price scaled by ``10**decimals``.
    :ivar yield_: Recorded yield in percent scaled by ``10**decimals``.
    """

    asset_id: str
    timestamp: int
    price: int
    yield_: int


class SnapshotStore:
    """Per-asset bucketed snapshot history.

    :ivar store: Backing store.
    :ivar resolution: Bucket width in milliseconds.
    :ivar period: Retention window in milliseconds.
    :ivar clock: Millisecond clock defining "now".
    """

    def __init__(
        self,
        store: StateStore,
        resolution: int,
        period: int,
        clock: Clock = now_ms,
    ) -> None:
        self.store = store
        self.resolution = resolution
        self.period = period
        self.clock = clock

    def bucket(self, timestamp: int) -> int:
        """Align ``timestamp`` down to the start of its bucket."""
        return timestamp - timestamp % self.resolution

    def window_start(self) -> int:
        """Oldest bucket still inside the retained window."""
        return self.bucket(self.clock()) - self.period

    def _key(self, asset_id: str) -> str:
        return f"{SNAPSHOTS_PREFIX}{asset_id}"

    def _load(self, asset_id: str) -> list[Snapshot]:
        rows = self.store.get(self._key(asset_id), [])
        return [Snapshot(asset_id, ts, price, yield_) for ts, price, yield_ in rows]

    def _retained(self, asset_id: str) -> list[Snapshot]:
        start = self.window_start()
        return [s for s in self._load(asset_id) if s.timestamp >= start]

    def put(self, asset_id: str, timestamp: int, price: int, yield_: int) -> Snapshot:
        """Record a snapshot, replacing any snapshot in the same bucket.

        :param asset_id: Asset identifier.
        :param timestamp: Observation time in milliseconds (aligned here).
        :param price: Normalized price.
        :param yield_: Recorded yield.
        :returns: The stored snapshot.
        """
        snapshot = Snapshot(asset_id, self.bucket(timestamp), price, yield_)
        history = [s for s in self._retained(asset_id) if s.timestamp != snapshot.timestamp]
        history.append(snapshot)
        history.sort(key=lambda s: s.timestamp)

        self.store.set(
            self._key(asset_id),
            [[s.timestamp, s.price, s.yield_] for s in history],
        )
        return snapshot

    def get(self, asset_id: str, timestamp: int) -> Snapshot:
        """Get the snapshot of the bucket containing ``timestamp``.

        :raises NotFound: If the bucket holds no retained snapshot.
        """
        bucket = self.bucket(timestamp)
        for snapshot in self._retained(asset_id):
            if snapshot.timestamp == bucket:
                return snapshot
        raise NotFound(f"No snapshot for {asset_id} at {bucket}")

    def series(self, asset_id: str, count: int) -> list[Snapshot]:
        """Get up to ``count`` most recent retained snapshots, newest first."""
        if count <= 0:
            return []
        return list(reversed(self._retained(asset_id)))[:count]

    def latest(self, asset_id: str) -> Snapshot | None:
        history = self._retained(asset_id)
        return history[-1] if history else None

    def oldest_since(self, asset_id: str, start: int, before: int) -> Snapshot | None:
        """Get the oldest retained snapshot with ``start <= timestamp < before``."""
        for snapshot in self._retained(asset_id):
            if start <= snapshot.timestamp < before:
                return snapshot
        return None
