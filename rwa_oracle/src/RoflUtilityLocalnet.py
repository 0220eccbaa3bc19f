"""RoflUtilityLocalnet: ROFL utility for local development."""

from __future__ import annotations

from web3 import Web3

from .RoflUtility import RoflUtility

LOCALNET_APP_ID = "rofl11qqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqtdv26p"


class RoflUtilityLocalnet(RoflUtility):
    """ROFL utility for localnet, where no appd is running.

    Keys are derived deterministically from their ID and must never hold
    real funds.
    """

    def fetch_appid(self) -> str:
        """Return the fixed localnet app ID."""
        return LOCALNET_APP_ID

    def fetch_key(self, id: str) -> str:
        """Derive a test key from ``id``.

        :param id: Key identifier.
        :returns: Hex-encoded private key.
        """
        return Web3.keccak(text=f"{LOCALNET_APP_ID}/{id}").hex()
