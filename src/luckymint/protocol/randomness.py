"""
luckymint/protocol/randomness.py

Random source and clock ports used by the engine.

Both are injected so the engine can run against a secure generator and the
wall clock in production, and against a fixed draw sequence and a manual
clock in tests or replays.
"""

import time
import secrets
import logging
from abc import ABC, abstractmethod
from collections import deque
from typing import Iterable, List

logger = logging.getLogger("luckymint.protocol.randomness")


class RandomSourceExhausted(IndexError):
    """A fixed-sequence source ran out of draws."""
    pass


# ============================================================================
# RANDOM SOURCES
# ============================================================================

class RandomSource(ABC):
    """Uniform integer draws over an inclusive range."""

    @abstractmethod
    async def _draw(self, minimum: int, maximum: int) -> int:
        pass

    async def draw_uniform(self, minimum: int, maximum: int) -> int:
        """
        Draw one integer uniformly from [minimum, maximum].

        Raises:
            ValueError: If the range is empty or the source returned a value
                outside it
        """
        if minimum > maximum:
            raise ValueError(f"Empty draw range {minimum}..{maximum}")
        value = await self._draw(minimum, maximum)
        if not minimum <= value <= maximum:
            raise ValueError(
                f"{type(self).__name__} returned {value} outside {minimum}..{maximum}"
            )
        return value


class SecureRandomSource(RandomSource):
    """Draws from the operating system CSPRNG."""

    async def _draw(self, minimum: int, maximum: int) -> int:
        return minimum + secrets.randbelow(maximum - minimum + 1)


class SequenceRandomSource(RandomSource):
    """
    Replays a fixed list of draws in order.

    Usage:
        source = SequenceRandomSource([50, 99, 100])
        await source.draw_uniform(1, 100)   # 50
    """

    def __init__(self, values: Iterable[int] = ()):
        self._values = deque(values)
        self._drawn: List[int] = []

    def extend(self, values: Iterable[int]) -> None:
        """Queue more draws."""
        self._values.extend(values)

    @property
    def remaining(self) -> int:
        return len(self._values)

    @property
    def drawn(self) -> List[int]:
        """Values handed out so far."""
        return list(self._drawn)

    async def _draw(self, minimum: int, maximum: int) -> int:
        if not self._values:
            raise RandomSourceExhausted("No draws left in sequence")
        value = self._values.popleft()
        self._drawn.append(value)
        return value


# ============================================================================
# CLOCKS
# ============================================================================

class Clock(ABC):
    """Timestamp source in whole seconds."""

    @abstractmethod
    def now(self) -> int:
        pass


class SystemClock(Clock):
    """Wall clock, clamped so it never goes backwards for this process."""

    def __init__(self):
        self._last = 0

    def now(self) -> int:
        current = int(time.time())
        if current < self._last:
            logger.warning(f"System clock moved backwards ({current} < {self._last})")
            current = self._last
        self._last = current
        return current


class ManualClock(Clock):
    """Clock that only moves when told to."""

    def __init__(self, start: int = 0):
        if start < 0:
            raise ValueError("Clock cannot start before 0")
        self._now = start

    def now(self) -> int:
        return self._now

    def set(self, timestamp: int) -> None:
        if timestamp < self._now:
            raise ValueError(f"Clock cannot move backwards ({timestamp} < {self._now})")
        self._now = timestamp

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("Cannot advance by a negative amount")
        self._now += seconds
        return self._now
