"""RoflUtility: Abstract access to the ROFL runtime (app identity and keys)."""

from __future__ import annotations

from abc import ABC, abstractmethod

import bech32


def bech32_to_bytes(app_id: str) -> bytes:
    """Decode a ROFL app ID from bech32 to raw bytes.

    :param app_id: Bech32-encoded app ID (e.g., "rofl1qr...").
    :returns: 21-byte raw app ID.
    :raises ValueError: If app_id is invalid bech32.
    """
    hrp, data = bech32.bech32_decode(app_id)
    if data is None:
        raise ValueError(f"Invalid bech32 app_id: {app_id}")

    # 5-bit groups to bytes
    app_id_bytes = bech32.convertbits(data, 5, 8, False)
    if app_id_bytes is None:
        raise ValueError(f"Failed to convert app_id to bytes: {app_id}")

    return bytes(app_id_bytes)


class RoflUtility(ABC):
    """Identity and key provider for the oracle runner.

    The app ID namespaces the FX feeds read from the feed directory; the
    admin key signs configuration and registry operations.
    """

    @abstractmethod
    def fetch_appid(self) -> str:
        """Fetch the current ROFL app ID.

        :returns: Bech32-encoded app ID.
        """
        pass

    @abstractmethod
    def fetch_key(self, id: str) -> str:
        """Fetch or generate a secp256k1 key by ID.

        :param id: Key identifier.
        :returns: Hex-encoded private key.
        """
        pass

    def fetch_appid_bytes(self) -> bytes:
        """Fetch the current ROFL app ID as raw bytes."""
        return bech32_to_bytes(self.fetch_appid())
