"""Oracle error hierarchy.

Every operation that fails raises one of these. Read paths raise
:class:`NotFound` as a normal outcome, which callers can tell apart from
:class:`FxUnavailable` / :class:`PriceUnavailable` (transient upstream
failures).

.. code-block:: python

    try:
        oracle.update_price("usdy")
    except YieldDeviationExceeded as e:
        logger.warning(f"rejected: deviation={e.deviation}% threshold={e.threshold}%")
"""

from __future__ import annotations

from decimal import Decimal


class OracleError(Exception):
    """Base exception for oracle errors.

    :cvar code: Stable identifier for the error kind.
    """

    code = "oracle_error"


class NotInitialized(OracleError):
    """Raised when the oracle is used before ``initialize``."""

    code = "not_initialized"


class AlreadyInitialized(OracleError):
    """Raised when ``initialize`` is called twice."""

    code = "already_initialized"


class Unauthorized(OracleError):
    """Raised when a non-admin caller invokes an admin operation."""

    code = "unauthorized"


class InvalidConfig(OracleError):
    """Raised when configuration values break the validation rules."""

    code = "invalid_config"


class LengthMismatch(OracleError):
    """Raised when the symbol and asset id sequences differ in length."""

    code = "length_mismatch"


class DuplicateAsset(OracleError):
    """Raised when a symbol or asset id is already registered."""

    code = "duplicate_asset"


class AssetLimitExceeded(OracleError):
    """Raised when the registry would grow past its capacity."""

    code = "asset_limit_exceeded"


class NotFound(OracleError):
    """Raised when a requested asset or snapshot does not exist."""

    code = "not_found"


class InvalidTimestamp(OracleError):
    """Raised when an update timestamp is zero, in the future or out of order."""

    code = "invalid_timestamp"


class FxUnavailable(OracleError):
    """Raised when the FX source cannot supply a usable rate."""

    code = "fx_unavailable"


class StaleFxRate(OracleError):
    """Raised when the FX source reports its rate as outside the freshness window."""

    code = "stale_fx_rate"


class PriceUnavailable(OracleError):
    """Raised when the asset price source cannot supply a price."""

    code = "price_unavailable"


class ArithmeticOverflow(OracleError):
    """Raised when fixed-point arithmetic leaves the representable range.

    Division by zero is reported the same way.
    """

    code = "arithmetic_overflow"


class YieldDeviationExceeded(OracleError):
    """Raised when the implied yield moved further than allowed.

    :ivar asset_id: Asset whose update was rejected.
    :ivar deviation: Absolute change of the yield, in percent.
    :ivar threshold: Configured maximum deviation, in percent.
    """

    code = "yield_deviation_exceeded"

    def __init__(self, asset_id: str, deviation: Decimal, threshold: Decimal):
        """Initialize the error.

        :param asset_id: Asset whose update was rejected.
        :param deviation: Computed deviation in percent.
        :param threshold: Configured threshold in percent.
        """
        self.asset_id = asset_id
        self.deviation = deviation
        self.threshold = threshold
        super().__init__(
            f"Yield deviation for {asset_id} is {deviation}%, "
            f"exceeds threshold {threshold}%"
        )


class InsufficientHistory(OracleError):
    """Raised when fewer snapshots exist than a query requires.

    :ivar available: Number of snapshots available.
    :ivar required: Number of snapshots requested.
    """

    code = "insufficient_history"

    def __init__(self, asset_id: str, available: int, required: int):
        self.available = available
        self.required = required
        super().__init__(
            f"{asset_id} has {available} snapshots, {required} required"
        )
