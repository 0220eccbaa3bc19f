"""OracleConfig: Oracle parameters and their persisted record.

The configuration is written once by :meth:`ConfigStore.initialize` and
afterwards changed only through :meth:`ConfigStore.update`, which the
oracle calls after its admin check.

.. code-block:: python

    >>> config = OracleConfig(
    ...     admin="0xAdmin", base_unit="USD", decimals=14, fx_source="0xFx",
    ...     max_yield_deviation=Decimal("1"), period=86_400_000, resolution=300_000,
    ... )
    >>> config.retention_buckets
    288
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from .errors import AlreadyInitialized, InvalidConfig, NotInitialized
from .StateStore import StateStore

logger = logging.getLogger(__name__)

CONFIG_KEY = "config"

# Largest supported scaling exponent for prices and yields.
MAX_DECIMALS = 18

# Stored prices and bucket timestamps depend on these.
IMMUTABLE_FIELDS = frozenset({"base_unit", "decimals", "resolution"})


@dataclass(frozen=True)
class OracleConfig:
    """Oracle configuration.

    :ivar admin: Address allowed to run admin operations.
    :ivar base_unit: Symbol every normalized price is expressed in.
    :ivar decimals: Scaling exponent of stored prices and yields.
    :ivar fx_source: Address (or URL) of the external FX rate provider.
    :ivar max_yield_deviation: Largest accepted yield change, in percent.
    :ivar period: Rolling yield window in milliseconds.
    :ivar resolution: Snapshot bucket width in milliseconds.
    """

    admin: str
    base_unit: str
    decimals: int
    fx_source: str
    max_yield_deviation: Decimal
    period: int
    resolution: int

    @property
    def retention_buckets(self) -> int:
        """Number of buckets kept per asset."""
        return self.period // self.resolution

    def validate(self) -> None:
        """Check the configuration rules.

        :raises InvalidConfig: If any rule is broken.
        """
        if not self.admin:
            raise InvalidConfig("admin must be set")
        if not self.base_unit:
            raise InvalidConfig("base_unit must be set")
        if not isinstance(self.decimals, int) or not 0 <= self.decimals <= MAX_DECIMALS:
            raise InvalidConfig(f"decimals must be between 0 and {MAX_DECIMALS}")
        if not isinstance(self.resolution, int) or self.resolution <= 0:
            raise InvalidConfig("resolution must be positive")
        if not isinstance(self.period, int) or self.resolution > self.period:
            raise InvalidConfig("resolution must not exceed period")
        if self.period % self.resolution != 0:
            raise InvalidConfig("period must be a multiple of resolution")
        if not isinstance(self.max_yield_deviation, Decimal) or not (
            self.max_yield_deviation.is_finite() and self.max_yield_deviation >= 0
        ):
            raise InvalidConfig("max_yield_deviation must be a non-negative number")

    def to_dict(self) -> dict[str, Any]:
        data = dataclasses.asdict(self)
        data["max_yield_deviation"] = str(self.max_yield_deviation)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OracleConfig:
        """Build a configuration from a plain dict.

        :param data: Field values; ``max_yield_deviation`` may be any
            Decimal-compatible value.
        :returns: New OracleConfig (not yet validated).
        :raises InvalidConfig: If fields are missing or unknown.
        """
        names = {f.name for f in dataclasses.fields(cls)}
        unknown = set(data) - names
        if unknown:
            raise InvalidConfig(f"Unknown config fields: {sorted(unknown)}")
        missing = names - set(data)
        if missing:
            raise InvalidConfig(f"Missing config fields: {sorted(missing)}")
        values = dict(data)
        values["max_yield_deviation"] = _to_decimal(values["max_yield_deviation"])
        return cls(**values)


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, float):
        value = repr(value)
    try:
        return Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise InvalidConfig(f"Invalid max_yield_deviation {value!r}") from e


class ConfigStore:
    """Persists the oracle configuration in a :class:`StateStore`.

    :ivar store: Backing store.
    """

    def __init__(self, store: StateStore) -> None:
        self.store = store

    def is_initialized(self) -> bool:
        return self.store.has(CONFIG_KEY)

    def get(self) -> OracleConfig:
        """Load the configuration.

        :raises NotInitialized: If ``initialize`` has not run.
        """
        data = self.store.get(CONFIG_KEY)
        if data is None:
            raise NotInitialized("Oracle is not initialized")
        return OracleConfig.from_dict(data)

    def initialize(self, config: OracleConfig) -> OracleConfig:
        """Validate and persist the initial configuration.

        :param config: Initial configuration; its ``admin`` becomes the admin.
        :returns: The stored configuration.
        :raises AlreadyInitialized: If a configuration already exists.
        :raises InvalidConfig: If validation fails.
        """
        if self.is_initialized():
            raise AlreadyInitialized("Oracle is already initialized")
        config.validate()
        self.store.set(CONFIG_KEY, config.to_dict())
        logger.info(
            f"Oracle initialized: admin={config.admin}, base={config.base_unit}, "
            f"decimals={config.decimals}, period={config.period}ms, "
            f"resolution={config.resolution}ms, "
            f"max_yield_deviation={config.max_yield_deviation}%"
        )
        return config

    def update(self, changes: dict[str, Any]) -> OracleConfig:
        """Apply a partial update.

        Only the supplied fields change. The caller is responsible for
        the admin check.

        :param changes: Field names mapped to new values.
        :returns: The updated configuration.
        :raises InvalidConfig: On unknown or immutable fields, or if the
            merged configuration is invalid.
        """
        current = self.get()
        frozen = IMMUTABLE_FIELDS.intersection(
            k for k, v in changes.items() if v != getattr(current, k, v)
        )
        if frozen:
            raise InvalidConfig(f"Fields cannot be changed: {sorted(frozen)}")

        merged = current.to_dict()
        merged.update(changes)
        updated = OracleConfig.from_dict(merged)
        updated.validate()

        self.store.set(CONFIG_KEY, updated.to_dict())
        logger.info(f"Oracle config updated: {sorted(changes)}")
        return updated
