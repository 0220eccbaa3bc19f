"""In-process sources holding fixed values.

Used for localnet runs and tests. Values are set explicitly and stamped
with the source clock unless a timestamp is given.
"""

from __future__ import annotations

from ..clock import Clock, now_ms
from ..errors import PriceUnavailable
from .base import FxQuote, FxSource, PriceSource, RawPrice, rate_unavailable, register_fx_source


@register_fx_source
class StaticFxSource(FxSource):
    """FX source serving rates from a dict.

    :ivar decimals: Scale of the configured rates.
    """

    name = "static"

    def __init__(
        self,
        rates: dict[str, int] | None = None,
        decimals: int = 14,
        max_age: int | None = None,
        clock: Clock = now_ms,
    ) -> None:
        """Initialize the source.

        :param rates: FX symbol mapped to its rate scaled by ``10**decimals``.
        :param decimals: Scale of ``rates``.
        :param max_age: Largest accepted rate age in milliseconds.
        :param clock: Millisecond clock.
        """
        super().__init__(max_age=max_age, clock=clock)
        self.decimals = decimals
        self._quotes: dict[str, FxQuote] = {}
        for symbol, rate in (rates or {}).items():
            self.set_rate(symbol, rate)

    def set_rate(self, symbol: str, rate: int, timestamp: int | None = None) -> None:
        self._quotes[symbol] = FxQuote(
            rate=rate,
            decimals=self.decimals,
            timestamp=self.clock() if timestamp is None else timestamp,
        )

    def remove_rate(self, symbol: str) -> None:
        self._quotes.pop(symbol, None)

    def fetch_rate(self, symbol: str, base: str) -> FxQuote:
        quote = self._quotes.get(symbol)
        if quote is None:
            raise rate_unavailable(self.name, symbol, base, "not configured")
        if quote.timestamp == 0:
            raise rate_unavailable(self.name, symbol, base, "no observation yet")
        return quote


class StaticPriceSource(PriceSource):
    """Price source serving prices from a dict."""

    def __init__(
        self,
        prices: dict[str, int] | None = None,
        decimals: int = 14,
        max_age: int | None = None,
        clock: Clock = now_ms,
    ) -> None:
        """Initialize the source.

        :param prices: Asset id mapped to its price scaled by ``10**decimals``.
        :param decimals: Default scale of prices.
        :param max_age: Largest accepted price age in milliseconds.
        :param clock: Millisecond clock.
        """
        super().__init__(max_age=max_age, clock=clock)
        self.decimals = decimals
        self._prices: dict[str, RawPrice] = {}
        for asset_id, price in (prices or {}).items():
            self.set_price(asset_id, price)

    def set_price(
        self,
        asset_id: str,
        price: int,
        decimals: int | None = None,
        timestamp: int | None = None,
    ) -> None:
        self._prices[asset_id] = RawPrice(
            price=price,
            decimals=self.decimals if decimals is None else decimals,
            timestamp=self.clock() if timestamp is None else timestamp,
        )

    def remove_price(self, asset_id: str) -> None:
        self._prices.pop(asset_id, None)

    def fetch_price(self, asset_id: str) -> RawPrice:
        raw = self._prices.get(asset_id)
        if raw is None:
            raise PriceUnavailable(f"No price configured for {asset_id}")
        return raw
