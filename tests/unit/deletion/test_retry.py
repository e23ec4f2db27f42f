"""Tests for RetryPolicy."""

from __future__ import annotations

import random

import pytest

from defaultvpc.deletion.retry import RetryPolicy
from defaultvpc.exceptions import InvalidConfigurationError


class TestRetryPolicy:
    """Test suite for RetryPolicy."""

    def test_defaults(self) -> None:
        policy = RetryPolicy()

        assert policy.max_attempts == 5
        assert policy.base_delay == 1.0
        assert policy.max_delay == 30.0
        assert policy.jitter is True

    def test_delays_grow_exponentially_without_jitter(self) -> None:
        """Test the doubling sequence."""
        policy = RetryPolicy(base_delay=1.0, max_delay=30.0, jitter=False)

        assert [policy.delay_for(n) for n in range(1, 6)] == [1.0, 2.0, 4.0, 8.0, 16.0]

    def test_delays_are_capped(self) -> None:
        """Test no delay exceeds max_delay."""
        policy = RetryPolicy(max_attempts=20, base_delay=1.0, max_delay=30.0, jitter=False)

        assert policy.delay_for(6) == 30.0
        assert all(policy.delay_for(n) <= 30.0 for n in range(1, 20))

    def test_jitter_stays_within_upper_half(self) -> None:
        """Test jittered delays lie in [d/2, d] and never exceed the cap."""
        policy = RetryPolicy(max_attempts=10, base_delay=1.0, max_delay=30.0, rng=random.Random(42))

        for retry in range(1, 10):
            nominal = min(30.0, 2.0 ** (retry - 1))
            for _ in range(50):
                delay = policy.delay_for(retry)
                assert nominal / 2 <= delay <= nominal
                assert delay <= policy.max_delay

    def test_should_retry(self) -> None:
        """Test attempts are bounded."""
        policy = RetryPolicy(max_attempts=3)

        assert policy.should_retry(1) is True
        assert policy.should_retry(2) is True
        assert policy.should_retry(3) is False

    def test_wait_uses_injected_sleep(self) -> None:
        """Test waiting goes through the injectable sleep function."""
        sleeps = []
        policy = RetryPolicy(base_delay=0.5, max_delay=4.0, jitter=False, sleep=sleeps.append)

        assert policy.wait(1) == 0.5
        assert policy.wait(3) == 2.0
        assert sleeps == [0.5, 2.0]

    def test_max_total_delay(self) -> None:
        policy = RetryPolicy(max_attempts=5, base_delay=1.0, max_delay=4.0)

        # Retries 1..4 -> 1 + 2 + 4 + 4
        assert policy.max_total_delay == 11.0

    def test_single_attempt_never_sleeps(self) -> None:
        policy = RetryPolicy(max_attempts=1)

        assert policy.should_retry(1) is False
        assert policy.max_total_delay == 0

    @pytest.mark.parametrize(
        "kwargs,match",
        [
            ({"max_attempts": 0}, "max_attempts must be at least 1"),
            ({"base_delay": -1.0}, "cannot be negative"),
            ({"base_delay": 10.0, "max_delay": 5.0}, "must not be less than base_delay"),
        ],
    )
    def test_invalid_parameters(self, kwargs: dict, match: str) -> None:
        with pytest.raises(InvalidConfigurationError, match=match):
            RetryPolicy(**kwargs)
