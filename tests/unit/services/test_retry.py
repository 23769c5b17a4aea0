import time

import httpx
import pytest

from verteil.services.errors import (
    DeadlineExceeded,
    RetryExhausted,
    UpstreamApiError,
    ValidationError,
)
from verteil.services.retry import AttemptResult, Outcome, RetryPolicy


def scripted(*results):
    """Operation returning (or raising) each item in turn."""
    calls = {"count": 0}

    async def operation():
        item = results[min(calls["count"], len(results) - 1)]
        calls["count"] += 1
        if isinstance(item, BaseException):
            raise item
        return item

    operation.calls = calls
    return operation


def retryable(status=503):
    return AttemptResult.failure(Outcome.RETRYABLE, UpstreamApiError("unavailable", status_code=status))


OK = AttemptResult.success(200, {"ok": True})


@pytest.fixture
def policy(no_sleep):
    return RetryPolicy(max_attempts=3, base_delay=0.1, multiplier=2, sleep=no_sleep)


async def test_succeeds_after_max_minus_one_failures(policy, no_sleep):
    operation = scripted(retryable(), retryable(500), OK)

    result = await policy.execute(operation, context="airShopping")

    assert result.ok
    assert operation.calls["count"] == 3
    assert len(no_sleep.delays) == 2


async def test_exhausted_after_exactly_max_attempts(policy):
    operation = scripted(retryable(502))

    with pytest.raises(RetryExhausted) as exc_info:
        await policy.execute(operation, context="airShopping")

    assert operation.calls["count"] == 3
    assert exc_info.value.attempts == 3
    assert exc_info.value.status_code == 502
    assert isinstance(exc_info.value.last_error, UpstreamApiError)


@pytest.mark.parametrize("outcome", [Outcome.FATAL, Outcome.UNAUTHORIZED])
async def test_non_retryable_results_return_after_one_attempt(policy, outcome):
    result = AttemptResult.failure(outcome, UpstreamApiError("nope", status_code=400))
    operation = scripted(result)

    assert await policy.execute(operation) is result
    assert operation.calls["count"] == 1


async def test_non_retryable_exception_propagates(policy):
    operation = scripted(ValidationError("bad"))

    with pytest.raises(ValidationError):
        await policy.execute(operation)
    assert operation.calls["count"] == 1


async def test_transport_exception_is_retried(policy):
    operation = scripted(httpx.ConnectError("refused"), OK)

    assert (await policy.execute(operation)).ok
    assert operation.calls["count"] == 2


async def test_backoff_grows_with_bounded_jitter(no_sleep):
    policy = RetryPolicy(max_attempts=4, base_delay=0.1, multiplier=2, sleep=no_sleep)

    with pytest.raises(RetryExhausted):
        await policy.execute(scripted(retryable()))

    for delay, backoff in zip(no_sleep.delays, [0.1, 0.2, 0.4], strict=True):
        assert backoff <= delay <= backoff * 1.1


def test_jitter_is_capped_at_one_second():
    policy = RetryPolicy(base_delay=30, multiplier=1)
    assert all(30 <= policy.get_delay(1) <= 31 for _ in range(20))


async def test_deadline_stops_before_next_attempt(policy):
    operation = scripted(retryable())

    with pytest.raises(DeadlineExceeded) as exc_info:
        await policy.execute(operation, context="flightPrice", deadline=time.monotonic() + 0.05)

    assert operation.calls["count"] == 1
    assert exc_info.value.attempts == 1


def test_max_attempts_must_be_positive():
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0)


async def test_deadline_checked_again_after_backoff():
    async def oversleep(seconds: float) -> None:
        time.sleep(0.1)

    policy = RetryPolicy(max_attempts=3, base_delay=0.001, sleep=oversleep)
    operation = scripted(retryable(), OK)

    with pytest.raises(DeadlineExceeded) as exc_info:
        await policy.execute(operation, context="flightPrice", deadline=time.monotonic() + 0.05)

    assert operation.calls["count"] == 1
    assert exc_info.value.status_code == 503
