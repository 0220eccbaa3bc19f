"""Millisecond wall clock shared by the oracle and its sources."""

import time
from typing import Callable

Clock = Callable[[], int]


def now_ms() -> int:
    """Return the current Unix time in milliseconds."""
    return int(time.time() * 1000)
