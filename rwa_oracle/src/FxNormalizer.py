"""FxNormalizer: Converts raw asset prices into the base unit.

    normalized = raw_price * rate, rescaled from (raw_decimals + rate_decimals)
    to the oracle decimals, truncating toward zero.

Assets quoted directly in the base unit skip the FX lookup.

.. code-block:: python

    >>> normalizer = FxNormalizer(StaticFxSource({"EUR": 110_000_000_000_000}), "USD", 14)
    >>> normalizer.normalize("EUR", 2_00, 2)
    220000000000000
"""

from __future__ import annotations

import logging

from .errors import FxUnavailable
from .fixed_point import rescale
from .sources.base import FxSource

logger = logging.getLogger(__name__)


class FxNormalizer:
    """Normalizes prices through an FX source.

    :ivar fx_source: FX rate provider.
    :ivar base_unit: Symbol prices are converted into.
    :ivar decimals: Scale of normalized prices.
    """

    def __init__(self, fx_source: FxSource, base_unit: str, decimals: int) -> None:
        self.fx_source = fx_source
        self.base_unit = base_unit
        self.decimals = decimals

    def rate(self, fx_symbol: str) -> tuple[int, int]:
        """Get the conversion rate for ``fx_symbol``.

        :returns: Tuple of (rate, rate_decimals).
        :raises FxUnavailable: If the source has no usable rate.
        :raises StaleFxRate: If the source reports the rate as stale.
        """
        if fx_symbol.upper() == self.base_unit.upper():
            return 1, 0

        quote = self.fx_source.get_rate(fx_symbol, self.base_unit)
        if quote.rate <= 0:
            raise FxUnavailable(f"Invalid {fx_symbol}/{self.base_unit} rate {quote.rate}")
        logger.debug(
            f"{fx_symbol}/{self.base_unit} rate {quote.rate} "
            f"(decimals={quote.decimals}, as of {quote.timestamp})"
        )
        return quote.rate, quote.decimals

    def normalize(self, fx_symbol: str, raw_price: int, raw_decimals: int) -> int:
        """Express a raw price in the base unit.

        :param fx_symbol: FX symbol the raw price is quoted in.
        :param raw_price: Price scaled by ``10**raw_decimals``.
        :param raw_decimals: Scale of ``raw_price``.
        :returns: Price in the base unit scaled by ``10**decimals``.
        :raises FxUnavailable: If no rate is available.
        :raises StaleFxRate: If the rate is stale.
        :raises ArithmeticOverflow: If the result leaves the 128-bit range.
        """
        rate, rate_decimals = self.rate(fx_symbol)
        return rescale(raw_price * rate, raw_decimals + rate_decimals, self.decimals)
