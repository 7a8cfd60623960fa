"""Retry budgets for working against an eventually-consistent table store."""

from __future__ import annotations

from dataclasses import dataclass

from .errors import ConfigurationError


@dataclass(slots=True, frozen=True)
class ConsistencyPolicy:
    """Bounded, jittered polling budget.

    Delays are drawn uniformly from ``delay_range`` (seconds) between attempts. The
    store's propagation delay is bounded, so the delay does not grow with the
    attempt number.
    """

    existence_attempts: int = 20
    write_attempts: int = 20
    delay_range: tuple[float, float] = (1.0, 5.0)
    delete_settle_seconds: float = 1.5
    create_settle_seconds: float = 1.0
    refresh_existence_attempts: int = 30
    refresh_write_attempts: int = 20

    def __post_init__(self) -> None:
        low, high = self.delay_range
        if low < 0 or high < low:
            raise ConfigurationError(f"Invalid delay range: {self.delay_range}")
        if self.existence_attempts < 1 or self.write_attempts < 1:
            raise ConfigurationError("Retry budgets must allow at least one attempt")
        if self.delete_settle_seconds < 0 or self.create_settle_seconds < 0:
            raise ConfigurationError("Settle delays must be non-negative")
