import pytest

from trendlens.utils.retry import RetryPolicy, retry_async, retry_sync


class Flaky(Exception):
    pass


def test_delay_for_is_exponential_and_capped() -> None:
    policy = RetryPolicy(max_attempts=5, base_delay=1.0, max_delay=3.0, is_retryable=lambda _: True)

    assert [policy.delay_for(attempt, Flaky()) for attempt in (1, 2, 3, 4)] == [1.0, 2.0, 3.0, 3.0]


def test_delay_hint_wins_over_backoff() -> None:
    policy = RetryPolicy(
        max_attempts=3,
        base_delay=1.0,
        max_delay=60.0,
        is_retryable=lambda _: True,
        delay_hint=lambda _: 7.0,
    )

    assert policy.delay_for(1, Flaky()) == 7.0


@pytest.mark.asyncio
async def test_retry_async_succeeds_after_transient_failures() -> None:
    calls = {"count": 0}
    sleeps: list[float] = []

    async def operation() -> str:
        calls["count"] += 1
        if calls["count"] < 3:
            raise Flaky("boom")
        return "ok"

    async def fake_sleep(seconds: float) -> None:
        sleeps.append(seconds)

    policy = RetryPolicy(max_attempts=3, base_delay=0.5, is_retryable=lambda exc: isinstance(exc, Flaky))
    result = await retry_async(operation, policy, sleeper=fake_sleep)

    assert result == "ok"
    assert calls["count"] == 3
    assert sleeps == [0.5, 1.0]


@pytest.mark.asyncio
async def test_retry_async_does_not_retry_non_retryable_errors() -> None:
    calls = {"count": 0}

    async def operation() -> None:
        calls["count"] += 1
        raise ValueError("bad input")

    async def fake_sleep(_: float) -> None:
        raise AssertionError("should not sleep")

    policy = RetryPolicy(max_attempts=3, base_delay=0.5, is_retryable=lambda exc: isinstance(exc, Flaky))
    with pytest.raises(ValueError):
        await retry_async(operation, policy, sleeper=fake_sleep)

    assert calls["count"] == 1


def test_retry_sync_raises_last_error_when_exhausted() -> None:
    sleeps: list[float] = []
    errors = iter([Flaky("first"), Flaky("second"), Flaky("third")])

    def operation() -> None:
        raise next(errors)

    policy = RetryPolicy.fixed(max_attempts=3, delay=2.0, is_retryable=lambda exc: isinstance(exc, Flaky))
    with pytest.raises(Flaky, match="third"):
        retry_sync(operation, policy, sleeper=sleeps.append)

    assert sleeps == [2.0, 2.0]
