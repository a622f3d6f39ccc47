"""
Clock sources.

Sessions measure elapsed time on a monotonic clock and stamp their start with
wall-clock epoch milliseconds for the server-side timing check. Both readings
come from one injected object so tests can drive time by hand.
"""

import time


class Clock:
    """System clock."""

    def monotonic_ms(self) -> float:
        return time.monotonic() * 1000

    def epoch_ms(self) -> int:
        return int(time.time() * 1000)


class FakeClock(Clock):
    """
    Manually advanced clock for tests and simulations.

    Both readings move together when advanced.
    """

    def __init__(self, epoch_ms: int = 1_700_000_000_000, monotonic_ms: float = 0.0):
        self._epoch_ms = epoch_ms
        self._monotonic_ms = monotonic_ms

    def advance(self, ms: float):
        self._epoch_ms += int(ms)
        self._monotonic_ms += ms

    def monotonic_ms(self) -> float:
        return self._monotonic_ms

    def epoch_ms(self) -> int:
        return self._epoch_ms


SYSTEM_CLOCK = Clock()
