"""Retry policy: bounded attempts with capped exponential backoff and jitter."""

from __future__ import annotations

import random
import time
from dataclasses import dataclass, field
from typing import Callable

from defaultvpc.exceptions import InvalidConfigurationError

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_BASE_DELAY = 1.0
DEFAULT_MAX_DELAY = 30.0


@dataclass
class RetryPolicy:
    """Retry-with-backoff contract applied to every API call.

    The delay before retry ``n`` (1-based) is ``min(max_delay, base_delay * 2 ** (n - 1))``.
    With jitter enabled, the actual delay is drawn uniformly from the upper half
    of that value, so retries from concurrent workers spread out without ever
    exceeding the cap.

    ``sleep`` and ``rng`` are injectable so tests can run against a fake clock.

    Attributes:
        max_attempts: Total attempts per call, including the first (default: 5)
        base_delay: Delay before the first retry, in seconds (default: 1.0)
        max_delay: Upper bound for any single delay, in seconds (default: 30.0)
        jitter: Randomize delays (default: True)
        sleep: Function used to wait
        rng: Random source used for jitter
    """

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    base_delay: float = DEFAULT_BASE_DELAY
    max_delay: float = DEFAULT_MAX_DELAY
    jitter: bool = True
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False, compare=False)
    rng: random.Random = field(default_factory=random.Random, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise InvalidConfigurationError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.base_delay < 0 or self.max_delay < 0:
            raise InvalidConfigurationError("Retry delays cannot be negative")
        if self.max_delay < self.base_delay:
            raise InvalidConfigurationError(
                f"max_delay ({self.max_delay}) must not be less than base_delay ({self.base_delay})"
            )

    def delay_for(self, retry: int) -> float:
        """Compute the delay before a retry.

        Args:
            retry: Retry number, 1 for the first retry

        Returns:
            Delay in seconds, never more than max_delay
        """
        delay = min(self.max_delay, self.base_delay * (2 ** (retry - 1)))
        if self.jitter:
            delay = self.rng.uniform(delay / 2, delay)
        return delay

    def should_retry(self, attempt: int) -> bool:
        """Whether another attempt is allowed after ``attempt`` (1-based) failed."""
        return attempt < self.max_attempts

    def wait(self, attempt: int) -> float:
        """Sleep before the attempt following ``attempt`` and return the delay used."""
        delay = self.delay_for(attempt)
        self.sleep(delay)
        return delay

    @property
    def max_total_delay(self) -> float:
        """Upper bound on time spent sleeping for a single call."""
        return sum(min(self.max_delay, self.base_delay * (2 ** (n - 1))) for n in range(1, self.max_attempts))
