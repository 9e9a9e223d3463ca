import time
from abc import ABC, abstractmethod


class Clock(ABC):
    """Time source for polling delays and watchdog deadlines."""

    @abstractmethod
    def now(self) -> float:
        """Monotonic time in seconds."""

    @abstractmethod
    def sleep(self, seconds: float) -> None:
        """Block the current run for the given number of seconds."""


class SystemClock(Clock):
    def now(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float) -> None:
        time.sleep(seconds)
