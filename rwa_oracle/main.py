#!/usr/bin/env python3
"""ROFL RWA Oracle.

Reads prices of tokenized real-world assets from on-chain aggregators,
converts them into a common base unit using FX rates and records them
only when the implied yield stays within the configured deviation.

Start via Docker Compose with env vars. See README.md for configuration.
"""

import argparse
import asyncio
import logging
import os
import sys
from decimal import Decimal, InvalidOperation

from .src.OracleConfig import OracleConfig
from .src.OracleRunner import DEFAULT_PRICE_FEED_ADDRESS, OracleRunner
from .src.RoflUtilityAppd import RoflUtilityAppd
from .src.RoflUtilityLocalnet import RoflUtilityLocalnet

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

# Providers that can be wired from the command line.
CLI_FX_PROVIDERS = ["directory", "frankfurter"]


def parse_assets(assets_str: str | None) -> dict[str, str]:
    """Parse comma-separated asset string into a dictionary.

    Format: SYMBOL1=asset_id1,SYMBOL2=asset_id2
    Example: USD=0xAbc...,EUR=0xDef...

    :param assets_str: Comma-separated asset string.
    :returns: Dict mapping FX symbols to asset ids.
    :raises ValueError: If an item is malformed or a symbol repeats.
    """
    if not assets_str:
        return {}

    assets: dict[str, str] = {}
    for item in assets_str.split(","):
        item = item.strip()
        if not item:
            continue
        if "=" not in item:
            raise ValueError(f"Invalid asset '{item}', expected SYMBOL=asset_id")
        symbol, asset_id = (part.strip() for part in item.split("=", 1))
        if not symbol or not asset_id:
            raise ValueError(f"Invalid asset '{item}', expected SYMBOL=asset_id")
        if symbol.upper() in assets:
            raise ValueError(f"Duplicate asset symbol: {symbol}")
        assets[symbol.upper()] = asset_id
    return assets


def main() -> None:
    """Main entry point for the ROFL RWA Oracle CLI."""
    parser = argparse.ArgumentParser(
        description="ROFL RWA Oracle: FX-normalized prices with yield deviation checks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Available FX providers:
  {', '.join(CLI_FX_PROVIDERS)}

Examples:
  # USD and EUR denominated assets, FX rates from the price feed directory
  python -m rwa_oracle.main --assets USD=0xAbc...,EUR=0xDef... \\
      --fx-provider directory --max-yield-deviation 1

  # FX rates from the Frankfurter API, persisted state
  python -m rwa_oracle.main --assets EUR=0xDef... --fx-provider frankfurter \\
      --state-file /data/oracle.json

Environment variables (CLI args take precedence):
  NETWORK, RPC_URL, ADMIN, BASE_UNIT, DECIMALS, PERIOD, RESOLUTION,
  MAX_YIELD_DEVIATION, MAX_AGE, FX_SOURCE, FX_PROVIDER, FX_URL, ASSETS,
  STATE_FILE, UPDATE_PERIOD, ROFL_APPD_URL
""",
    )

    parser.add_argument(
        "--network",
        type=str,
        help="Network to connect to (sapphire, sapphire-testnet, sapphire-localnet)",
        default=os.environ.get("NETWORK") or "sapphire-localnet",
    )

    parser.add_argument(
        "--assets",
        type=str,
        help="Comma-separated SYMBOL=asset_id entries (asset id: aggregator address)",
        default=os.environ.get("ASSETS"),
    )

    parser.add_argument(
        "--admin",
        type=str,
        help="Admin address (default: address of the ROFL admin key)",
        default=os.environ.get("ADMIN"),
    )

    parser.add_argument(
        "--base-unit",
        dest="base_unit",
        type=str,
        help="Symbol all prices are expressed in (default: USD)",
        default=os.environ.get("BASE_UNIT") or "USD",
    )

    parser.add_argument(
        "--decimals",
        type=int,
        help="Decimals of stored prices and yields (default: 14)",
        default=int(os.environ.get("DECIMALS") or "14"),
    )

    parser.add_argument(
        "--period",
        type=int,
        help="Rolling yield window in milliseconds (default: 86400000)",
        default=int(os.environ.get("PERIOD") or "86400000"),
    )

    parser.add_argument(
        "--resolution",
        type=int,
        help="Snapshot bucket width in milliseconds (default: 300000)",
        default=int(os.environ.get("RESOLUTION") or "300000"),
    )

    parser.add_argument(
        "--max-yield-deviation",
        dest="max_yield_deviation",
        type=str,
        help="Max yield change in percent before rejecting a price (default: 1)",
        default=os.environ.get("MAX_YIELD_DEVIATION") or "1",
    )

    parser.add_argument(
        "--max-age",
        dest="max_age",
        type=int,
        help="Largest accepted age of on-chain FX rates and prices in milliseconds "
        "(default: 2 x resolution)",
        default=int(os.environ["MAX_AGE"]) if os.environ.get("MAX_AGE") else None,
    )

    parser.add_argument(
        "--fx-provider",
        dest="fx_provider",
        type=str,
        help=f"FX rate provider. Available: {', '.join(CLI_FX_PROVIDERS)}",
        default=os.environ.get("FX_PROVIDER") or "directory",
    )

    parser.add_argument(
        "--fx-source",
        dest="fx_source",
        type=str,
        help="Address of the PriceFeedDirectory contract providing FX rates",
        default=os.environ.get("FX_SOURCE"),
    )

    parser.add_argument(
        "--fx-url",
        dest="fx_url",
        type=str,
        help="Base URL of the HTTP FX provider",
        default=os.environ.get("FX_URL"),
    )

    parser.add_argument(
        "--state-file",
        dest="state_file",
        type=str,
        help="JSON file persisting oracle state (default: in-memory)",
        default=os.environ.get("STATE_FILE"),
    )

    parser.add_argument(
        "--update-period",
        dest="update_period",
        type=int,
        help="Seconds between price updates (minimum: 1, default: 300)",
        default=int(os.environ.get("UPDATE_PERIOD") or "300"),
    )

    parser.add_argument(
        "--rofl-appd-url",
        dest="rofl_appd_url",
        type=str,
        help="ROFL appd URL or socket path (default: /run/rofl-appd.sock)",
        default=os.environ.get("ROFL_APPD_URL") or "",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    args = parser.parse_args()

    # Configure logging level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    # Validate arguments
    if args.update_period < 1:
        parser.error("--update-period must be at least 1 second")

    max_age = args.max_age if args.max_age is not None else 2 * args.resolution
    if max_age < 1:
        parser.error("--max-age must be at least 1 millisecond")

    if args.fx_provider not in CLI_FX_PROVIDERS:
        parser.error(
            f"Unknown FX provider: {args.fx_provider}. "
            f"Available: {', '.join(CLI_FX_PROVIDERS)}"
        )

    try:
        max_yield_deviation = Decimal(args.max_yield_deviation)
    except InvalidOperation:
        parser.error(f"Invalid --max-yield-deviation: {args.max_yield_deviation}")

    try:
        assets = parse_assets(args.assets)
    except ValueError as e:
        parser.error(str(e))

    if not assets:
        parser.error("At least one asset must be specified")

    fx_source = args.fx_source
    if args.fx_provider == "directory":
        fx_source = fx_source or DEFAULT_PRICE_FEED_ADDRESS.get(args.network)
        if not fx_source:
            parser.error(f"No price feed address configured for network {args.network}")
    elif args.fx_provider == "frankfurter":
        fx_source = args.fx_url or "https://api.frankfurter.app"

    # Log configuration
    logger.info("=" * 60)
    logger.info("ROFL RWA Oracle")
    logger.info("=" * 60)
    logger.info(f"Network:           {args.network}")
    logger.info(f"Assets:            {', '.join(f'{s}={a}' for s, a in assets.items())}")
    logger.info(f"Base Unit:         {args.base_unit}")
    logger.info(f"Decimals:          {args.decimals}")
    logger.info(f"Period:            {args.period}ms")
    logger.info(f"Resolution:        {args.resolution}ms")
    logger.info(f"Max Deviation:     {max_yield_deviation}%")
    logger.info(f"Max Age:           {max_age}ms")
    logger.info(f"FX Provider:       {args.fx_provider} ({fx_source})")
    logger.info(f"State File:        {args.state_file or 'in-memory'}")
    logger.info(f"Update Period:     {args.update_period}s")
    logger.info("=" * 60)

    try:
        if args.network == "sapphire-localnet":
            rofl_utility = RoflUtilityLocalnet()
        else:
            rofl_utility = RoflUtilityAppd(url=args.rofl_appd_url)

        runner = OracleRunner.create(
            network_name=args.network,
            fx_provider=args.fx_provider,
            fx_source=args.fx_source,
            fx_url=args.fx_url,
            state_file=args.state_file,
            update_period=args.update_period,
            max_age=max_age,
            rofl_utility=rofl_utility,
        )

        config = OracleConfig(
            admin=args.admin or runner.admin_account.address,
            base_unit=args.base_unit,
            decimals=args.decimals,
            fx_source=fx_source,
            max_yield_deviation=max_yield_deviation,
            period=args.period,
            resolution=args.resolution,
        )
        runner.bootstrap(config, assets)
        asyncio.run(runner.run())
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
