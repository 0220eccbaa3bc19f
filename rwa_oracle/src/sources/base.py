"""Source interfaces for FX rates and underlying asset prices.

Both kinds of source are single-shot synchronous queries: they either
return a value or raise, and never retry. Freshness policy belongs to the
source: a source created with ``max_age`` rejects values older than that.

FX sources register themselves by name so the CLI can pick one:

.. code-block:: python

    @register_fx_source
    class MyFxSource(FxSource):
        name = "mine"

        def fetch_rate(self, symbol: str, base: str) -> FxQuote:
            ...
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, ClassVar

from ..clock import Clock, now_ms
from ..errors import FxUnavailable, PriceUnavailable, StaleFxRate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FxQuote:
    """Conversion rate from an FX symbol into the base unit.

    :ivar rate: Rate scaled by ``10**decimals``.
    :ivar decimals: Scale of ``rate``.
    :ivar timestamp: Time the rate was observed, in milliseconds.
    """

    rate: int
    decimals: int
    timestamp: int


@dataclass(frozen=True)
class RawPrice:
    """Underlying asset price as reported by the price source.

    :ivar price: Price scaled by ``10**decimals``.
    :ivar decimals: Scale of ``price``.
    :ivar timestamp: Time the price was observed, in milliseconds.
    """

    price: int
    decimals: int
    timestamp: int


class FxSource(ABC):
    """Abstract base class for FX rate providers.

    Subclasses implement :meth:`fetch_rate`; callers use :meth:`get_rate`,
    which adds the freshness check.

    :cvar name: Unique identifier for this source kind.
    :ivar max_age: Largest accepted rate age in milliseconds, or None.
    :ivar clock: Millisecond clock used for the age check.
    """

    name: ClassVar[str] = ""

    def __init__(self, max_age: int | None = None, clock: Clock = now_ms) -> None:
        self.max_age = max_age
        self.clock = clock

    @abstractmethod
    def fetch_rate(self, symbol: str, base: str) -> FxQuote:
        """Fetch the current rate converting ``symbol`` into ``base``.

        :param symbol: FX symbol of the asset (e.g., "EUR").
        :param base: Base unit symbol (e.g., "USD").
        :returns: The quote.
        :raises FxUnavailable: If no rate can be supplied.
        """
        pass

    def get_rate(self, symbol: str, base: str) -> FxQuote:
        """Fetch a rate and enforce the freshness policy.

        :raises FxUnavailable: If no rate can be supplied.
        :raises StaleFxRate: If the rate is older than ``max_age``.
        """
        quote = self.fetch_rate(symbol, base)
        if self.max_age is not None:
            age = abs(self.clock() - quote.timestamp)
            if age > self.max_age:
                raise StaleFxRate(
                    f"[{self.name}] {symbol}/{base} rate is {age}ms old, "
                    f"max age {self.max_age}ms"
                )
        return quote

    def close(self) -> None:
        """Release resources held by the source."""
        pass


class PriceSource(ABC):
    """Abstract base class for underlying asset price providers.

    :ivar max_age: Largest accepted price age in milliseconds, or None.
    :ivar clock: Millisecond clock used for the age check.
    """

    def __init__(self, max_age: int | None = None, clock: Clock = now_ms) -> None:
        self.max_age = max_age
        self.clock = clock

    @abstractmethod
    def fetch_price(self, asset_id: str) -> RawPrice:
        """Fetch the current price of ``asset_id``.

        :raises PriceUnavailable: If no price can be supplied.
        """
        pass

    def get_price(self, asset_id: str) -> RawPrice:
        """Fetch a price and check it is positive and fresh.

        :raises PriceUnavailable: If the price is missing, non-positive or stale.
        """
        raw = self.fetch_price(asset_id)
        if raw.price <= 0:
            raise PriceUnavailable(f"Non-positive price {raw.price} for {asset_id}")
        if self.max_age is not None:
            age = abs(self.clock() - raw.timestamp)
            if age > self.max_age:
                raise PriceUnavailable(
                    f"Price for {asset_id} is {age}ms old, max age {self.max_age}ms"
                )
        return raw

    def close(self) -> None:
        """Release resources held by the source."""
        pass


# Registry of available FX sources (populated by subclass imports)
FX_SOURCE_REGISTRY: dict[str, type[FxSource]] = {}


def register_fx_source(cls: type[FxSource]) -> type[FxSource]:
    """Decorator to register an FX source class in the global registry.

    :param cls: FX source class to register.
    :returns: The registered class (unchanged).
    :raises ValueError: If the class has no name defined.
    """
    if not cls.name:
        raise ValueError(f"FX source {cls.__name__} must define a 'name' class variable")
    FX_SOURCE_REGISTRY[cls.name] = cls
    return cls


def get_fx_source(name: str, **kwargs: Any) -> FxSource:
    """Get an FX source instance by name.

    :param name: Source name (e.g., "directory", "frankfurter").
    :param kwargs: Constructor arguments for the source.
    :returns: FX source instance.
    :raises ValueError: If the name is unknown.
    """
    if name not in FX_SOURCE_REGISTRY:
        available = ", ".join(sorted(FX_SOURCE_REGISTRY.keys()))
        raise ValueError(f"Unknown FX source '{name}'. Available: {available}")
    return FX_SOURCE_REGISTRY[name](**kwargs)


def get_available_fx_sources() -> list[str]:
    """Get sorted list of registered FX source names."""
    return sorted(FX_SOURCE_REGISTRY.keys())


def rate_unavailable(source: str, symbol: str, base: str, reason: Any) -> FxUnavailable:
    """Build an :class:`FxUnavailable` and log it."""
    logger.warning(f"[{source}] No {symbol}/{base} rate: {reason}")
    return FxUnavailable(f"[{source}] No {symbol}/{base} rate: {reason}")
