"""FeedPair: FX pair key for rates published in a price feed directory.

FX rates are read from aggregator contracts registered in a
PriceFeedDirectory by a ROFL price oracle app. The directory key is:
    keccak256(appIdHex + "/" + provider + "/" + symbol + "/" + base)

.. code-block:: python

    >>> pair = FeedPair("EUR", "USD")
    >>> str(pair)
    'aggregated/eur/usd'
"""

from __future__ import annotations

from web3 import Web3

DEFAULT_PROVIDER = "aggregated"


class FeedPair:
    """An FX symbol quoted in the base unit.

    :ivar symbol: FX symbol being converted (lowercase).
    :ivar base: Base unit symbol (lowercase).
    :ivar provider: Feed provider segment of the directory key.
    """

    def __init__(self, symbol: str, base: str, provider: str = DEFAULT_PROVIDER) -> None:
        self.symbol = symbol.lower()
        self.base = base.lower()
        self.provider = provider.lower()

    def __str__(self) -> str:
        """Return the feed path as registered in the directory."""
        return f"{self.provider}/{self.symbol}/{self.base}"

    def __repr__(self) -> str:
        return f"FeedPair({self.symbol!r}, {self.base!r}, provider={self.provider!r})"

    def __hash__(self) -> int:
        return hash(str(self))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FeedPair):
            return NotImplemented
        return str(self) == str(other)

    def compute_feed_hash(self, app_id_bytes: bytes) -> bytes:
        """Compute the keccak256 hash used as the key in PriceFeedDirectory.

        :param app_id_bytes: 21-byte ROFL app ID of the publishing app.
        :returns: 32-byte keccak256 hash matching the Solidity key format.
        """
        key_string = f"{app_id_bytes.hex()}/{self}"
        return Web3.keccak(text=key_string)
