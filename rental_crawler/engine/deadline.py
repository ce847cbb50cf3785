"""Monotonic deadlines bounding rendering operations."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable

from ..errors import DeadlineExceeded


@dataclass(frozen=True)
class Deadline:
    """Absolute expiry point on a monotonic clock."""

    expires_at: float
    clock: Callable[[], float] = field(default=time.monotonic, compare=False, repr=False)

    @classmethod
    def after(cls, seconds: float, clock: Callable[[], float] = time.monotonic) -> "Deadline":
        return cls(expires_at=clock() + seconds, clock=clock)

    def remaining(self) -> float:
        return max(0.0, self.expires_at - self.clock())

    @property
    def expired(self) -> bool:
        return self.clock() >= self.expires_at

    def check(self) -> None:
        if self.expired:
            raise DeadlineExceeded("deadline exceeded")

    def timeout_ms(self) -> float:
        """Remaining time in milliseconds, raising once nothing is left."""

        self.check()
        # Playwright treats 0 as "no timeout"; keep at least one millisecond.
        return max(1.0, self.remaining() * 1000)

    def child(self, seconds: float) -> "Deadline":
        """Return a nested deadline that never outlives this one."""

        return Deadline(
            expires_at=min(self.expires_at, self.clock() + seconds),
            clock=self.clock,
        )


__all__ = ["Deadline", "DeadlineExceeded"]
