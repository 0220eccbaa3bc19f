"""Frankfurter FX source.

Endpoint: https://api.frankfurter.app/latest?from={SYM}&to={BASE}
Data: ECB reference rates, published once per working day
API Key: Not required

Rates carry only a date, so the timestamp is midnight UTC of that day and
the default ``max_age`` allows for weekends and holidays.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import InvalidOperation

import httpx

from ..clock import Clock, now_ms
from ..errors import ArithmeticOverflow
from ..fixed_point import to_fixed
from .base import FxQuote, FxSource, rate_unavailable, register_fx_source

logger = logging.getLogger(__name__)

DAY_MS = 86_400_000


@register_fx_source
class FrankfurterFxSource(FxSource):
    """FX source for the Frankfurter API.

    :ivar base_url: API root.
    :ivar decimals: Scale of returned rates.
    :ivar client: HTTP client used for requests.
    """

    name = "frankfurter"
    BASE_URL = "https://api.frankfurter.app"
    DEFAULT_TIMEOUT = 10.0

    def __init__(
        self,
        base_url: str | None = None,
        decimals: int = 14,
        timeout: float | None = None,
        client: httpx.Client | None = None,
        max_age: int | None = 4 * DAY_MS,
        clock: Clock = now_ms,
    ) -> None:
        """Initialize the source.

        :param base_url: API root override (default: public endpoint).
        :param decimals: Scale of returned rates (default: 14).
        :param timeout: Request timeout in seconds (default: 10).
        :param client: Optional preconfigured httpx client.
        :param max_age: Largest accepted rate age in milliseconds.
        :param clock: Millisecond clock.
        """
        super().__init__(max_age=max_age, clock=clock)
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.decimals = decimals
        self.client = client or httpx.Client(
            timeout=httpx.Timeout(timeout or self.DEFAULT_TIMEOUT, connect=5.0),
            follow_redirects=True,
        )

    def close(self) -> None:
        self.client.close()

    def fetch_rate(self, symbol: str, base: str) -> FxQuote:
        """Fetch the latest reference rate.

        :param symbol: FX symbol (e.g., "EUR").
        :param base: Base unit (e.g., "USD").
        :returns: Rate of one ``symbol`` in ``base``.
        :raises FxUnavailable: On HTTP, network or parse errors.
        """
        symbol = symbol.upper()
        base = base.upper()
        url = f"{self.base_url}/latest"

        try:
            response = self.client.get(url, params={"from": symbol, "to": base})
        except httpx.RequestError as e:
            raise rate_unavailable(self.name, symbol, base, f"request failed: {e}") from e

        if not response.is_success:
            logger.debug(
                "HTTP GET %s failed with status %s: %s",
                url,
                response.status_code,
                response.text[:200],
            )
            raise rate_unavailable(self.name, symbol, base, f"HTTP {response.status_code}")

        try:
            data = response.json()
            value = data["rates"][base]
            as_of = datetime.strptime(data["date"], "%Y-%m-%d").replace(tzinfo=timezone.utc)
            rate = to_fixed(str(value), self.decimals)
        except (KeyError, ValueError, TypeError, InvalidOperation, ArithmeticOverflow) as e:
            raise rate_unavailable(self.name, symbol, base, f"bad response: {e}") from e

        if rate <= 0:
            raise rate_unavailable(self.name, symbol, base, f"invalid rate {value}")

        return FxQuote(
            rate=rate,
            decimals=self.decimals,
            timestamp=int(as_of.timestamp() * 1000),
        )
