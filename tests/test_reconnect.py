"""Tests for reconnect policies."""

import pytest

from cfd_taker.data.reconnect import (
    AlwaysReconnect,
    ExponentialBackoff,
    NoReconnect,
    ReconnectPolicy,
)


class TestPolicies:
    """Test retry decisions and delays."""

    @pytest.mark.parametrize("policy", [AlwaysReconnect(), ExponentialBackoff(), NoReconnect()])
    def test_implements_protocol(self, policy):
        assert isinstance(policy, ReconnectPolicy)

    def test_always_reconnect(self):
        policy = AlwaysReconnect(delay_seconds=2.5)

        assert all(policy.should_retry(n) for n in (1, 10, 1000))
        assert policy.delay(7) == 2.5

    def test_no_reconnect(self):
        assert NoReconnect().should_retry(1) is False

    def test_backoff_delays(self):
        policy = ExponentialBackoff(min_delay=1.0, max_delay=10.0)

        assert [policy.delay(n) for n in range(1, 7)] == [1.0, 2.0, 4.0, 8.0, 10.0, 10.0]

    def test_backoff_attempt_limit(self):
        policy = ExponentialBackoff(max_attempts=3)

        assert policy.should_retry(3) is True
        assert policy.should_retry(4) is False
        assert ExponentialBackoff().should_retry(10_000) is True
