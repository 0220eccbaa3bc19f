"""Unit tests for RoflUtility."""

import json

import httpx
import pytest
from eth_account import Account

from rwa_oracle.src.RoflUtility import bech32_to_bytes
from rwa_oracle.src.RoflUtilityAppd import RoflUtilityAppd
from rwa_oracle.src.RoflUtilityLocalnet import LOCALNET_APP_ID, RoflUtilityLocalnet


class TestBech32ToBytes:
    """Test app ID decoding."""

    def test_valid(self) -> None:
        result = bech32_to_bytes("rofl1qrtetspnld9efpeasxmryl6nw9mgllr0euls3dwn")
        assert isinstance(result, bytes)
        assert len(result) == 21
        assert result == bytes.fromhex("00d795c033fb4b94873d81b6327f5371768ffc6fcf")

    @pytest.mark.parametrize("app_id", ["invalid_bech32_string", "", "rofl1invalidchecksum"])
    def test_invalid(self, app_id: str) -> None:
        with pytest.raises(ValueError, match="Invalid bech32 app_id"):
            bech32_to_bytes(app_id)


class TestRoflUtilityLocalnet:
    """Test the localnet stand-in."""

    def test_app_id(self) -> None:
        utility = RoflUtilityLocalnet()
        assert utility.fetch_appid() == LOCALNET_APP_ID
        assert len(utility.fetch_appid_bytes()) == 21

    def test_keys_deterministic(self) -> None:
        """The same ID should always give the same usable key."""
        utility = RoflUtilityLocalnet()
        key = utility.fetch_key("admin")
        assert key == utility.fetch_key("admin")
        assert key != utility.fetch_key("other")
        assert Account.from_key(key).address.startswith("0x")


class TestRoflUtilityAppd:
    """Test appd requests over a mock transport."""

    def test_fetch_appid(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "GET"
            assert request.url.path == "/rofl/v1/app/id"
            return httpx.Response(200, text="rofl1qrtetspnld9efpeasxmryl6nw9mgllr0euls3dwn")

        utility = RoflUtilityAppd(transport=httpx.MockTransport(handler))
        assert utility.fetch_appid_bytes() == bytes.fromhex(
            "00d795c033fb4b94873d81b6327f5371768ffc6fcf"
        )

    def test_fetch_key(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "POST"
            assert request.url.path == "/rofl/v1/keys/generate"
            assert json.loads(request.content) == {"key_id": "admin", "kind": "secp256k1"}
            return httpx.Response(200, json={"key": "ab" * 32})

        utility = RoflUtilityAppd(transport=httpx.MockTransport(handler))
        assert utility.fetch_key("admin") == "ab" * 32

    def test_gives_up_after_retries(self) -> None:
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(503)

        utility = RoflUtilityAppd(max_retries=1, transport=httpx.MockTransport(handler))
        with pytest.raises(RuntimeError, match="failed after 1 attempts"):
            utility.fetch_appid()
        assert len(calls) == 1
