"""OracleRunner: Periodic price updates for every registered asset.

Architecture:
    - create() wires the oracle to the network: web3 for on-chain sources,
      the ROFL appd (or localnet stand-in) for the app ID and admin key
    - bootstrap() initializes the configuration and registers missing
      assets, signing admin operations with the ROFL-provided key
    - run() calls YieldOracle.update_prices() every update_period seconds;
      each asset is updated independently and failures are logged
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping

from eth_account import Account
from eth_account.signers.local import LocalAccount

from .Authenticator import Credentials, SignatureAuthenticator
from .ContractUtility import ContractUtility
from .OracleConfig import OracleConfig
from .RoflUtility import RoflUtility
from .RoflUtilityAppd import RoflUtilityAppd
from .RoflUtilityLocalnet import RoflUtilityLocalnet
from .sources import AggregatorPriceSource, FxSource, get_available_fx_sources, get_fx_source
from .StateStore import JsonFileStore, MemoryStore, StateStore
from .YieldOracle import UpdateOutcome, YieldOracle

logger = logging.getLogger(__name__)

# Predeployed price directory contract addresses based on the network.
DEFAULT_PRICE_FEED_ADDRESS: dict[str, str | None] = {
    "sapphire": None,
    "sapphire-testnet": "0xB3E8721A5E9bb84Cfa99b50131Ac47341B4a9EfF",
    "sapphire-localnet": "0x5FbDB2315678afecb367f032d93F642f64180aa3",
}

# Domain of admin requests signed by the runner's key.
ADMIN_DOMAIN = b"rwa-oracle:admin"

# Signed admin requests expire after this many milliseconds.
ADMIN_REQUEST_MAX_AGE = 60_000

ADMIN_KEY_ID = "rwa-oracle-admin"


class OracleRunner:
    """Drives a :class:`YieldOracle` on a fixed schedule.

    :ivar oracle: Oracle being updated.
    :ivar update_period: Seconds between update rounds.
    :ivar admin_account: Key signing admin operations, if any.
    """

    def __init__(
        self,
        oracle: YieldOracle,
        update_period: int = 300,
        admin_account: LocalAccount | None = None,
    ) -> None:
        """Initialize the runner.

        :param oracle: Oracle to update.
        :param update_period: Seconds between update rounds (minimum: 1).
        :param admin_account: Key used to sign admin operations.
        """
        self.oracle = oracle
        self.update_period = max(1, update_period)
        self.admin_account = admin_account

    @classmethod
    def create(
        cls,
        network_name: str,
        fx_provider: str,
        fx_source: str | None = None,
        fx_url: str | None = None,
        state_file: str | None = None,
        update_period: int = 300,
        max_age: int | None = None,
        rofl_utility: RoflUtility | None = None,
    ) -> OracleRunner:
        """Wire an oracle to on-chain prices and the chosen FX provider.

        :param network_name: Network to read contracts from (sapphire,
            sapphire-testnet, sapphire-localnet).
        :param fx_provider: Registered FX source name ("directory",
            "frankfurter").
        :param fx_source: PriceFeedDirectory address (directory provider).
        :param fx_url: Base URL override (frankfurter provider).
        :param state_file: JSON state file; in-memory state if omitted.
        :param update_period: Seconds between update rounds.
        :param max_age: Largest accepted age in milliseconds of on-chain FX
            rates and asset prices (default: no limit).
        :param rofl_utility: ROFL utility override.
        :returns: Configured runner.
        :raises ValueError: If the provider is unknown or lacks settings.
        """
        available = get_available_fx_sources()
        if fx_provider not in available:
            raise ValueError(f"Unknown FX provider: {fx_provider}. Available: {available}")

        if rofl_utility is None:
            if network_name == "sapphire-localnet":
                rofl_utility = RoflUtilityLocalnet()
            else:
                rofl_utility = RoflUtilityAppd()

        w3 = ContractUtility(network_name).w3

        fx: FxSource
        if fx_provider == "directory":
            directory = fx_source or DEFAULT_PRICE_FEED_ADDRESS.get(network_name)
            if not directory:
                raise ValueError(f"No price feed address for network {network_name}")
            fx = get_fx_source(
                "directory",
                w3=w3,
                directory_address=directory,
                app_id_bytes=rofl_utility.fetch_appid_bytes(),
                max_age=max_age,
            )
        elif fx_provider == "frankfurter":
            fx = get_fx_source("frankfurter", base_url=fx_url)
        else:
            raise ValueError(f"FX provider {fx_provider} cannot be configured from the runner")

        store: StateStore = JsonFileStore(state_file) if state_file else MemoryStore()
        admin_account = Account.from_key(rofl_utility.fetch_key(ADMIN_KEY_ID))
        logger.info(f"Admin key address: {admin_account.address}")

        oracle = YieldOracle(
            store,
            fx_source=fx,
            price_source=AggregatorPriceSource(w3, max_age=max_age),
            authenticator=SignatureAuthenticator(
                domain=ADMIN_DOMAIN, max_age=ADMIN_REQUEST_MAX_AGE
            ),
        )
        return cls(oracle, update_period=update_period, admin_account=admin_account)

    def credentials(self, operation: str) -> Credentials:
        """Sign a request for one admin operation with the runner's key.

        :param operation: Oracle operation being authorized.
        :raises RuntimeError: If the runner holds no admin key.
        """
        if self.admin_account is None:
            raise RuntimeError("Runner has no admin key")
        return Credentials.for_operation(
            self.admin_account, ADMIN_DOMAIN, operation, self.oracle.clock()
        )

    def bootstrap(self, config: OracleConfig, assets: Mapping[str, str]) -> None:
        """Initialize the oracle if needed and register missing assets.

        An existing configuration is left untouched.

        :param config: Configuration used on first start.
        :param assets: FX symbols mapped to asset ids.
        :raises Unauthorized: If new assets need registering and the
            runner's key is not the admin.
        """
        if self.oracle.admin() is None:
            self.oracle.initialize(config)
        else:
            logger.info("Oracle already initialized, keeping stored configuration")

        registered = {entry.asset_id for entry in self.oracle.list_assets()}
        missing = [(symbol, asset_id) for symbol, asset_id in assets.items() if asset_id not in registered]
        if missing:
            self.oracle.add_assets(
                self.credentials("add_assets"),
                [symbol for symbol, _ in missing],
                [asset_id for _, asset_id in missing],
            )

    def tick(self) -> list[UpdateOutcome]:
        """Run one update round over all registered assets."""
        outcomes = self.oracle.update_prices()
        accepted = sum(1 for outcome in outcomes if outcome.accepted)
        logger.info(f"Update round: {accepted}/{len(outcomes)} assets accepted")
        return outcomes

    async def run(self, rounds: int | None = None) -> None:
        """Run update rounds until cancelled.

        :param rounds: Stop after this many rounds (default: run forever).
        """
        logger.info(
            f"Starting update loop for {len(self.oracle.list_assets())} assets, "
            f"period={self.update_period}s"
        )
        done = 0
        try:
            while rounds is None or done < rounds:
                self.tick()
                done += 1
                if rounds is None or done < rounds:
                    await asyncio.sleep(self.update_period)
        finally:
            self.oracle.close()
