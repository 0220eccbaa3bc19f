"""Unit tests for FeedPair."""

from web3 import Web3

from rwa_oracle.src.FeedPair import FeedPair

APP_ID = bytes.fromhex("005a216eb7f450bcc1f534a7575fb33d611b463fa2")


class TestFeedPairBasics:
    """Test basic FeedPair functionality."""

    def test_init_normalizes_to_lowercase(self) -> None:
        """Symbols should be normalized to lowercase."""
        pair = FeedPair("EUR", "USD")
        assert pair.symbol == "eur"
        assert pair.base == "usd"
        assert pair.provider == "aggregated"

    def test_str_format(self) -> None:
        """String format should be 'provider/symbol/base'."""
        assert str(FeedPair("chf", "usd")) == "aggregated/chf/usd"
        assert str(FeedPair("chf", "usd", provider="ECB")) == "ecb/chf/usd"

    def test_repr(self) -> None:
        assert repr(FeedPair("gbp", "usd")) == "FeedPair('gbp', 'usd', provider='aggregated')"

    def test_equality_and_hash(self) -> None:
        """Pairs differing only in case should be equal and share a dict slot."""
        d = {FeedPair("eur", "usd"): 1}
        d[FeedPair("EUR", "USD")] = 2
        assert len(d) == 1
        assert FeedPair("eur", "usd") != FeedPair("eur", "usd", provider="ecb")

    def test_equality_with_non_pair(self) -> None:
        assert FeedPair("eur", "usd").__eq__("aggregated/eur/usd") == NotImplemented


class TestFeedPairFeedHash:
    """Test compute_feed_hash() for Solidity compatibility."""

    def test_hash_matches_solidity_format(self) -> None:
        """Hash should match Solidity keccak256(appIdHex/aggregated/symbol/base)."""
        expected = Web3.keccak(text=f"{APP_ID.hex()}/aggregated/eur/usd")
        result = FeedPair("eur", "usd").compute_feed_hash(APP_ID)
        assert result == expected
        assert len(result) == 32

    def test_different_pairs_different_hashes(self) -> None:
        assert FeedPair("eur", "usd").compute_feed_hash(APP_ID) != FeedPair(
            "gbp", "usd"
        ).compute_feed_hash(APP_ID)

    def test_different_app_ids_different_hashes(self) -> None:
        other = bytes.fromhex("115a216eb7f450bcc1f534a7575fb33d611b463fa2")
        pair = FeedPair("eur", "usd")
        assert pair.compute_feed_hash(APP_ID) != pair.compute_feed_hash(other)
