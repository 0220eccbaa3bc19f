"""On-chain sources reading aggregator contracts via web3.

- FX rates come from a PriceFeedDirectory populated by a ROFL price oracle
  app: the directory maps ``keccak(appIdHex/provider/symbol/base)`` to an
  aggregator contract.
- Underlying asset prices come straight from aggregator contracts; the
  asset id is the aggregator address.

Aggregators expose ``decimals()`` and ``latestRoundData()``
(roundId, answer, startedAt, updatedAt, answeredInRound), with
``updatedAt`` in seconds.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from web3 import Web3
from web3.exceptions import Web3Exception

from ..clock import Clock, now_ms
from ..ContractUtility import ZERO_ADDRESS, ContractUtility
from ..errors import PriceUnavailable
from ..FeedPair import DEFAULT_PROVIDER, FeedPair
from .base import FxQuote, FxSource, PriceSource, RawPrice, rate_unavailable, register_fx_source

if TYPE_CHECKING:
    from web3.contract import Contract

logger = logging.getLogger(__name__)

# Errors raised by web3 calls: contract reverts, ABI decoding, transport.
CALL_ERRORS = (Web3Exception, OSError, ValueError)


def read_round(contract: Contract) -> RawPrice:
    """Read the latest round of an aggregator contract.

    :param contract: Aggregator contract instance.
    :returns: Answer, decimals and ``updatedAt`` in milliseconds.
    """
    decimals = contract.functions.decimals().call()
    round_data = contract.functions.latestRoundData().call()
    return RawPrice(price=round_data[1], decimals=decimals, timestamp=round_data[3] * 1000)


@register_fx_source
class FeedDirectoryFxSource(FxSource):
    """FX source resolving aggregator feeds through a PriceFeedDirectory.

    :ivar w3: Web3 instance.
    :ivar directory: PriceFeedDirectory contract.
    :ivar app_id_bytes: ROFL app ID of the app publishing the feeds.
    :ivar provider: Provider segment of the feed key.
    """

    name = "directory"

    def __init__(
        self,
        w3: Web3,
        directory_address: str,
        app_id_bytes: bytes,
        provider: str = DEFAULT_PROVIDER,
        max_age: int | None = None,
        clock: Clock = now_ms,
    ) -> None:
        """Initialize the source.

        :param w3: Web3 instance connected to the directory's network.
        :param directory_address: Address of the PriceFeedDirectory contract.
        :param app_id_bytes: 21-byte ROFL app ID used in feed keys.
        :param provider: Provider segment of feed keys (default: "aggregated").
        :param max_age: Largest accepted rate age in milliseconds.
        :param clock: Millisecond clock.
        """
        super().__init__(max_age=max_age, clock=clock)
        self.w3 = w3
        self.directory: Contract = w3.eth.contract(
            address=Web3.to_checksum_address(directory_address),
            abi=ContractUtility.get_abi("PriceFeedDirectory"),
        )
        self.app_id_bytes = app_id_bytes
        self.provider = provider
        self._aggregator_abi = ContractUtility.get_abi("SimpleAggregator")
        self._feeds: dict[FeedPair, Contract] = {}

    def _resolve_feed(self, pair: FeedPair) -> Contract | None:
        if pair in self._feeds:
            return self._feeds[pair]

        feed_hash = pair.compute_feed_hash(self.app_id_bytes)
        address = self.directory.functions.feeds(feed_hash).call()
        if address == ZERO_ADDRESS:
            return None

        contract = self.w3.eth.contract(address=address, abi=self._aggregator_abi)
        self._feeds[pair] = contract
        logger.info(f"Resolved FX feed {pair} to aggregator {address}")
        return contract

    def fetch_rate(self, symbol: str, base: str) -> FxQuote:
        pair = FeedPair(symbol, base, provider=self.provider)
        try:
            contract = self._resolve_feed(pair)
            if contract is None:
                raise rate_unavailable(self.name, symbol, base, f"no feed for {pair}")
            raw = read_round(contract)
        except CALL_ERRORS as e:
            raise rate_unavailable(self.name, symbol, base, e) from e

        if raw.price <= 0:
            raise rate_unavailable(self.name, symbol, base, f"invalid rate {raw.price}")
        return FxQuote(rate=raw.price, decimals=raw.decimals, timestamp=raw.timestamp)


class AggregatorPriceSource(PriceSource):
    """Price source reading an aggregator contract per asset.

    :ivar w3: Web3 instance.
    """

    def __init__(self, w3: Web3, max_age: int | None = None, clock: Clock = now_ms) -> None:
        super().__init__(max_age=max_age, clock=clock)
        self.w3 = w3
        self._abi = ContractUtility.get_abi("SimpleAggregator")
        self._contracts: dict[str, Contract] = {}

    def _contract(self, asset_id: str) -> Contract:
        if asset_id not in self._contracts:
            if not Web3.is_address(asset_id):
                raise PriceUnavailable(f"Asset id {asset_id} is not an aggregator address")
            self._contracts[asset_id] = self.w3.eth.contract(
                address=Web3.to_checksum_address(asset_id), abi=self._abi
            )
        return self._contracts[asset_id]

    def fetch_price(self, asset_id: str) -> RawPrice:
        contract = self._contract(asset_id)
        try:
            return read_round(contract)
        except CALL_ERRORS as e:
            logger.warning(f"Failed to read aggregator {asset_id}: {e}")
            raise PriceUnavailable(f"Failed to read aggregator {asset_id}: {e}") from e
