"""YieldGuard: Deviation check on the implied yield of a new observation.

Algorithm:
    1. Without a reference snapshot the observation seeds the asset and is
       accepted with a yield of 0
    2. implied_yield = (price - reference.price) * 100 / reference.price
    3. deviation = |implied_yield - reference.yield_|
    4. Accept if deviation <= max_yield_deviation, reject otherwise

Yields and deviations are percentages in fixed point, scaled by
``10**decimals`` like prices. A deviation exactly at the threshold is
accepted.

.. code-block:: python

    >>> guard = YieldGuard(max_yield_deviation=Decimal("1"), decimals=2)
    >>> ref = Snapshot("usdy", 0, price=100_00, yield_=0)
    >>> result = guard.evaluate("usdy", 100_50, ref)
    >>> result.accepted, result.yield_
    (True, 50)
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from decimal import Decimal

from .errors import ArithmeticOverflow, YieldDeviationExceeded
from .fixed_point import from_fixed, mul, mul_div, pow10, sub, to_fixed
from .SnapshotStore import Snapshot


class AssetState(enum.Enum):
    """Lifecycle of an asset's price history."""

    UNINITIALIZED = "uninitialized"
    SEEDED = "seeded"
    STEADY = "steady"


@dataclass(frozen=True)
class GuardResult:
    """Outcome of a guard evaluation.

    :ivar accepted: Whether the observation may be recorded.
    :ivar yield_: Implied yield to record (0 when seeding).
    :ivar deviation: Absolute yield change versus the reference.
    :ivar reference: Snapshot compared against, or None when seeding.
    """

    accepted: bool
    yield_: int
    deviation: int
    reference: Snapshot | None

    @property
    def state(self) -> AssetState:
        """State the asset moves into if the observation is recorded."""
        return AssetState.SEEDED if self.reference is None else AssetState.STEADY


class YieldGuard:
    """Validates implied yields against a maximum deviation.

    :ivar max_yield_deviation: Threshold in percent.
    :ivar decimals: Fixed-point scale of prices and yields.
    :ivar threshold: Threshold in fixed point.
    """

    def __init__(self, max_yield_deviation: Decimal, decimals: int) -> None:
        """Initialize the guard.

        :param max_yield_deviation: Largest accepted yield change, in percent.
        :param decimals: Fixed-point scale of prices and yields.
        :raises ValueError: If the threshold is negative.
        """
        if max_yield_deviation < 0:
            raise ValueError("max_yield_deviation must not be negative")
        self.max_yield_deviation = max_yield_deviation
        self.decimals = decimals
        self.threshold = to_fixed(max_yield_deviation, decimals)

    def implied_yield(self, price: int, reference_price: int) -> int:
        """Percentage change from ``reference_price`` to ``price``, in fixed point.

        :raises ArithmeticOverflow: If the reference price is zero or an
            intermediate overflows.
        """
        if reference_price == 0:
            raise ArithmeticOverflow("Reference price is zero")
        change = sub(price, reference_price)
        return mul_div(change, mul(100, pow10(self.decimals)), reference_price)

    def evaluate(self, asset_id: str, price: int, reference: Snapshot | None) -> GuardResult:
        """Evaluate a normalized price against the reference snapshot.

        :param asset_id: Asset being updated (for diagnostics).
        :param price: Normalized price of the new observation.
        :param reference: Reference snapshot, or None if there is none.
        :returns: GuardResult; nothing is raised for a rejection.
        :raises ArithmeticOverflow: On fixed-point overflow or a zero reference.
        """
        if reference is None:
            return GuardResult(accepted=True, yield_=0, deviation=0, reference=None)

        implied = self.implied_yield(price, reference.price)
        deviation = abs(sub(implied, reference.yield_))
        return GuardResult(
            accepted=deviation <= self.threshold,
            yield_=implied,
            deviation=deviation,
            reference=reference,
        )

    def check(self, asset_id: str, price: int, reference: Snapshot | None) -> GuardResult:
        """Like :meth:`evaluate`, but raise on rejection.

        :raises YieldDeviationExceeded: If the deviation exceeds the threshold.
        """
        result = self.evaluate(asset_id, price, reference)
        if not result.accepted:
            raise YieldDeviationExceeded(
                asset_id,
                deviation=from_fixed(result.deviation, self.decimals),
                threshold=self.max_yield_deviation,
            )
        return result
