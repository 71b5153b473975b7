"""
Tests for the backoff policy and cancellation tokens.
"""

import random
import time

import pytest

from mistralex import CancellationToken, ErrorKind, RetryPolicy
from mistralex.exceptions import MistralCancelledError
from mistralex.retry import RETRYABLE_STATUS_CODES


def test_retryable_status_codes():
    assert RETRYABLE_STATUS_CODES == {429, 500, 502, 503, 504}
    policy = RetryPolicy()
    assert policy.should_retry_status(503)
    assert not policy.should_retry_status(501)
    assert not policy.should_retry_status(404)


def test_delay_without_jitter_doubles():
    policy = RetryPolicy(jitter_ms=0)
    assert [policy.delay_ms(r) for r in (3, 2, 1)] == [1000, 2000, 4000]


@pytest.mark.parametrize("seed", range(20))
def test_delay_jitter_stays_in_window(seed):
    policy = RetryPolicy(rng=random.Random(seed))
    assert 750 <= policy.delay_ms(3) <= 1250
    assert 1750 <= policy.delay_ms(2) <= 2250
    assert 3750 <= policy.delay_ms(1) <= 4250


def test_delay_is_floored_at_zero():
    policy = RetryPolicy(base_delay_ms=0, rng=random.Random(1))
    assert all(policy.delay_ms(3) >= 0 for _ in range(50))


def test_delay_with_more_retries_than_the_exponent_offset():
    policy = RetryPolicy(max_retries=5, jitter_ms=0)
    assert policy.delay_ms(5) == 250
    assert policy.delay_ms(4) == 500


def test_token_cancel():
    token = CancellationToken()
    assert not token.cancelled
    token.raise_if_cancelled()

    token.cancel()

    assert token.cancelled
    with pytest.raises(MistralCancelledError) as exc_info:
        token.raise_if_cancelled()
    assert exc_info.value.kind is ErrorKind.CANCELLED


def test_token_deadline():
    token = CancellationToken(deadline=0)
    assert token.expired
    assert token.cancelled
    assert token.remaining() == 0.0
    with pytest.raises(MistralCancelledError, match="deadline exceeded"):
        token.raise_if_cancelled()


def test_token_wait_returns_early_when_cancelled():
    token = CancellationToken()
    token.cancel()

    start = time.monotonic()
    assert token.wait(5.0) is True
    assert time.monotonic() - start < 1.0


def test_token_wait_times_out_without_cancel():
    token = CancellationToken()
    assert token.wait(0.01) is False
    assert token.remaining() is None
