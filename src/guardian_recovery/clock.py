"""Logical clock supplied by the execution environment."""
from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class LogicalClock:
    """
    Monotonically non-decreasing tick counter.

    The environment advances it once per committed batch of transactions.
    Deadlines and timestamps throughout the recovery core are expressed in
    ticks of this clock, never in wall time.
    """

    def __init__(self, start: int = 0):
        if start < 0:
            raise ValueError("Clock cannot start below zero")
        self._tick = start

    def now(self) -> int:
        return self._tick

    def advance(self, ticks: int = 1) -> int:
        """Move the clock forward and return the new tick."""
        if ticks < 1:
            raise ValueError("Clock can only advance by a positive number of ticks")
        self._tick += ticks
        logger.debug("Logical clock advanced to %d", self._tick)
        return self._tick

    def set(self, value: int) -> int:
        """Jump to an absolute tick; the clock never moves backwards."""
        if value < self._tick:
            raise ValueError(
                f"Clock cannot move backwards (current={self._tick}, requested={value})"
            )
        self._tick = value
        return self._tick

    def __repr__(self) -> str:
        return f"LogicalClock(tick={self._tick})"
