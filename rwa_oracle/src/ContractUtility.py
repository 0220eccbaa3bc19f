"""ContractUtility: Web3 initialization and contract ABI loading."""

import json
import os
from pathlib import Path

from web3 import Web3

NETWORKS = {
    "sapphire": "https://sapphire.oasis.io",
    "sapphire-testnet": "https://testnet.sapphire.oasis.io",
    "sapphire-localnet": "http://localhost:8545",
}

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class ContractUtility:
    """Utility for Web3 connection and contract ABI loading.

    The oracle only performs read calls, so no signing middleware is set up.

    :ivar network: Network RPC URL.
    :ivar w3: Web3 instance.
    """

    def __init__(self, network_name: str) -> None:
        """Initialize the contract utility.

        :param network_name: Name of the network, or an RPC URL.
        """
        # RPC_URL env var overrides the default for the network
        self.network = os.environ.get("RPC_URL") or NETWORKS.get(network_name, network_name)
        self.w3 = Web3(Web3.HTTPProvider(self.network))

    @staticmethod
    def get_abi(contract_name: str) -> list:
        """Load the ABI of a contract from the bundled contracts folder.

        :param contract_name: Name of the contract (e.g., "SimpleAggregator").
        :returns: Contract ABI.
        """
        output_path = (
            Path(__file__).parent.parent / "contracts" / f"{contract_name}.json"
        ).resolve()

        with open(output_path, "r") as file:
            contract_data = json.load(file)

        return contract_data["abi"]
