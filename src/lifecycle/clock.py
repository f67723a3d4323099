"""Injectable time source for the lifecycle services.

Timestamps are naive UTC to match the ``DateTime`` columns in
``src.database.models``.
"""

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class FrozenClock:
    """Clock that returns a fixed instant until moved. Used in tests and scripts."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, delta) -> datetime:
        self.current = self.current + delta
        return self.current
