"""Unit tests for OracleRunner."""

import asyncio
import time
from decimal import Decimal
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from eth_account import Account

from rwa_oracle.src.Authenticator import SignatureAuthenticator, request_message
from rwa_oracle.src.errors import StaleFxRate, Unauthorized
from rwa_oracle.src.OracleConfig import OracleConfig
from rwa_oracle.src.OracleRunner import (
    ADMIN_DOMAIN,
    ADMIN_KEY_ID,
    ADMIN_REQUEST_MAX_AGE,
    DEFAULT_PRICE_FEED_ADDRESS,
    OracleRunner,
)
from rwa_oracle.src.RoflUtilityLocalnet import RoflUtilityLocalnet
from rwa_oracle.src.sources import (
    FeedDirectoryFxSource,
    FrankfurterFxSource,
    StaticFxSource,
    StaticPriceSource,
)
from rwa_oracle.src.StateStore import JsonFileStore, MemoryStore
from rwa_oracle.src.YieldOracle import YieldOracle

NOW = 1_700_000_100_000

FX_FEED = "0xe7f1725E7734CE288F8367e1Bb143E90bb3F0512"
ASSET = "0x9fe46736679d2d9a65f0992f2272de9f3c7fa6e0"


class FakeClock:
    def __init__(self, now: int) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


def make_config(admin: str) -> OracleConfig:
    return OracleConfig(
        admin=admin,
        base_unit="USD",
        decimals=14,
        fx_source="static",
        max_yield_deviation=Decimal("1"),
        period=86_400_000,
        resolution=300_000,
    )


def make_runner(admin_account=None) -> OracleRunner:
    clock = FakeClock(NOW)
    oracle = YieldOracle(
        MemoryStore(),
        StaticFxSource({"EUR": 110_000_000_000_000}, clock=clock),
        StaticPriceSource({"A": 100, "B": 200}, decimals=2, clock=clock),
        authenticator=SignatureAuthenticator(
            domain=ADMIN_DOMAIN, max_age=ADMIN_REQUEST_MAX_AGE, clock=clock
        ),
        clock=clock,
    )
    return OracleRunner(oracle, update_period=60, admin_account=admin_account)


class TestBootstrap:
    """Test first-start initialization."""

    def test_initializes_and_registers(self) -> None:
        account = Account.create()
        runner = make_runner(account)
        runner.bootstrap(make_config(account.address), {"USD": "A", "EUR": "B"})

        assert runner.oracle.admin() == account.address
        assert [tuple(e) for e in runner.oracle.list_assets()] == [("USD", "A"), ("EUR", "B")]

    def test_restart_keeps_state(self) -> None:
        """A second bootstrap should only register new assets."""
        account = Account.create()
        runner = make_runner(account)
        runner.bootstrap(make_config(account.address), {"USD": "A"})
        runner.oracle.clock.now += 1
        runner.bootstrap(make_config(account.address), {"USD": "A", "EUR": "B"})

        assert len(runner.oracle.list_assets()) == 2

    def test_foreign_admin(self) -> None:
        """Registration should fail when the runner key is not the admin."""
        runner = make_runner(Account.create())
        with pytest.raises(Unauthorized):
            runner.bootstrap(make_config(Account.create().address), {"USD": "A"})

    def test_no_key(self) -> None:
        runner = make_runner()
        with pytest.raises(RuntimeError, match="no admin key"):
            runner.bootstrap(make_config(Account.create().address), {"USD": "A"})

    def test_credentials_per_operation(self) -> None:
        """Credentials should name the operation and the signing time."""
        account = Account.create()
        creds = make_runner(account).credentials("add_assets")
        assert creds.address == account.address
        assert creds.message == request_message(ADMIN_DOMAIN, "add_assets", NOW)


class TestUpdateLoop:
    """Test update rounds."""

    def test_tick(self) -> None:
        account = Account.create()
        runner = make_runner(account)
        runner.bootstrap(make_config(account.address), {"USD": "A", "EUR": "B"})

        outcomes = runner.tick()
        assert all(outcome.accepted for outcome in outcomes)
        assert runner.oracle.last_price("B").price == 220_000_000_000_000

    def test_run_rounds(self) -> None:
        """run() should sleep between rounds, not after the last one."""
        account = Account.create()
        runner = make_runner(account)
        runner.bootstrap(make_config(account.address), {"USD": "A"})

        with patch("rwa_oracle.src.OracleRunner.asyncio") as mock_asyncio:
            sleep = mock_asyncio.sleep = AsyncMock()
            asyncio.run(runner.run(rounds=3))

        assert sleep.await_count == 2
        sleep.assert_awaited_with(60)

    def test_run_closes_sources(self) -> None:
        account = Account.create()
        runner = make_runner(account)
        runner.bootstrap(make_config(account.address), {"USD": "A"})

        with patch.object(runner.oracle, "close") as close:
            asyncio.run(runner.run(rounds=1))
        close.assert_called_once()

    def test_run_closes_sources_on_error(self) -> None:
        runner = make_runner()
        with patch.object(runner.oracle, "close") as close:
            with patch.object(runner, "tick", side_effect=RuntimeError("boom")):
                with pytest.raises(RuntimeError, match="boom"):
                    asyncio.run(runner.run())
        close.assert_called_once()

    def test_minimum_period(self) -> None:
        assert OracleRunner(make_runner().oracle, update_period=0).update_period == 1


class TestCreate:
    """Test wiring from CLI settings."""

    def test_frankfurter(self, tmp_path: Path) -> None:
        rofl = RoflUtilityLocalnet()
        runner = OracleRunner.create(
            "sapphire-localnet",
            "frankfurter",
            state_file=str(tmp_path / "state.json"),
            rofl_utility=rofl,
        )

        assert isinstance(runner.oracle._fx_source, FrankfurterFxSource)
        assert isinstance(runner.oracle.store, JsonFileStore)
        assert runner.admin_account.address == Account.from_key(rofl.fetch_key(ADMIN_KEY_ID)).address

    def test_directory_default_address(self) -> None:
        runner = OracleRunner.create("sapphire-localnet", "directory", rofl_utility=RoflUtilityLocalnet())
        assert isinstance(runner.oracle._fx_source, FeedDirectoryFxSource)

    def test_directory_without_address(self) -> None:
        with pytest.raises(ValueError, match="No price feed address"):
            OracleRunner.create("sapphire", "directory", rofl_utility=RoflUtilityLocalnet())

    def test_unknown_provider(self) -> None:
        with pytest.raises(ValueError, match="Unknown FX provider"):
            OracleRunner.create("sapphire-localnet", "ecb", rofl_utility=RoflUtilityLocalnet())

    def test_static_not_wired(self) -> None:
        with pytest.raises(ValueError, match="cannot be configured"):
            OracleRunner.create("sapphire-localnet", "static", rofl_utility=RoflUtilityLocalnet())

    def test_max_age_wired(self) -> None:
        """On-chain FX rates and asset prices should share the age limit."""
        runner = OracleRunner.create(
            "sapphire-localnet", "directory", max_age=600_000, rofl_utility=RoflUtilityLocalnet()
        )
        assert runner.oracle._fx_source.max_age == 600_000
        assert runner.oracle._price_source.max_age == 600_000

    def test_close_releases_http_client(self) -> None:
        runner = OracleRunner.create("sapphire-localnet", "frankfurter", rofl_utility=RoflUtilityLocalnet())
        runner.oracle.close()
        assert runner.oracle._fx_source.client.is_closed


def make_aggregator(answer: int, updated_at: int) -> MagicMock:
    contract = MagicMock()
    contract.functions.decimals.return_value.call.return_value = 8
    contract.functions.latestRoundData.return_value.call.return_value = (
        1, answer, updated_at, updated_at, 1,
    )
    return contract


def make_directory_runner(fx_updated_at: int) -> OracleRunner:
    """Runner on mocked contracts: a EUR asset at 1.00 and a EUR/USD feed at 1.0882."""
    directory = MagicMock()
    directory.functions.feeds.return_value.call.return_value = FX_FEED
    contracts = {
        DEFAULT_PRICE_FEED_ADDRESS["sapphire-localnet"].lower(): directory,
        FX_FEED.lower(): make_aggregator(108_820_000, fx_updated_at),
        ASSET.lower(): make_aggregator(100_000_000, int(time.time())),
    }
    w3 = MagicMock()
    w3.eth.contract.side_effect = lambda address, abi: contracts[address.lower()]

    with patch("rwa_oracle.src.OracleRunner.ContractUtility") as contract_utility:
        contract_utility.return_value.w3 = w3
        runner = OracleRunner.create(
            "sapphire-localnet", "directory", max_age=600_000, rofl_utility=RoflUtilityLocalnet()
        )
    runner.bootstrap(make_config(runner.admin_account.address), {"EUR": ASSET})
    return runner


class TestFreshness:
    """Test the age limit on directory FX rates."""

    def test_fresh_rate(self) -> None:
        runner = make_directory_runner(int(time.time()))
        snapshot = runner.oracle.update_price(ASSET)
        assert snapshot.price == 108_820_000_000_000

    def test_stale_rate(self) -> None:
        """A directory rate older than max_age should abort the update."""
        runner = make_directory_runner(int(time.time()) - 3_600)
        with pytest.raises(StaleFxRate):
            runner.oracle.update_price(ASSET)
        assert runner.oracle.prices(ASSET, 10) == []
