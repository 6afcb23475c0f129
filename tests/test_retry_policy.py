"""Tests for retry with exponential backoff."""

import asyncio

import httpx
import pytest

from app.services.search_gate import AttemptOutcome, RawResult, RetryPolicy, TransportError
from tests.conftest import ScriptedSearch

RATE_LIMITED = RawResult.failure("Rate limit (429)", retryable=True)


@pytest.fixture
def policy(clock):
    return RetryPolicy(max_attempts=3, base_delay=1.0, attempt_timeout=None, clock=clock)


def _call(search: ScriptedSearch):
    return lambda: search("charizard", False, "token")


class TestRetryPolicy:
    """Tests for RetryPolicy."""

    def test_backoff_doubles(self, policy):
        delays = [policy.delay_for(n) for n in range(1, 6)]

        assert delays == [1.0, 2.0, 4.0, 8.0, 16.0]
        assert all(a < b for a, b in zip(delays, delays[1:]))

    @pytest.mark.asyncio
    async def test_success_first_attempt(self, policy, search, clock):
        outcome = await policy.execute(_call(search))

        assert outcome.ok is True
        assert outcome.attempt_count == 1
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_retryable_then_success(self, policy, search, clock):
        search.push(RATE_LIMITED, RATE_LIMITED, RawResult.success({"total": 3}))

        outcome = await policy.execute(_call(search))

        assert outcome.ok is True
        assert outcome.payload == {"total": 3}
        assert clock.sleeps == [1.0, 2.0]
        assert [a.outcome for a in outcome.attempts] == [
            AttemptOutcome.RETRYABLE_FAILURE,
            AttemptOutcome.RETRYABLE_FAILURE,
            AttemptOutcome.SUCCESS,
        ]

    @pytest.mark.asyncio
    async def test_terminal_failure_aborts_immediately(self, policy, search, clock):
        search.push(RawResult.failure("Client error (400): bad q", retryable=False))

        outcome = await policy.execute(_call(search))

        assert outcome.ok is False
        assert outcome.retryable_exhausted is False
        assert outcome.detail == "Client error (400): bad q"
        assert len(search.calls) == 1
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_exhausted_keeps_last_detail(self, policy, search, clock):
        search.push(
            RATE_LIMITED,
            RawResult.failure("Server error (503)", retryable=True),
            RawResult.failure("Server error (500)", retryable=True),
        )

        outcome = await policy.execute(_call(search))

        assert outcome.ok is False
        assert outcome.retryable_exhausted is True
        assert outcome.detail == "Server error (500)"
        assert len(search.calls) == 3
        # sem espera depois da última tentativa
        assert clock.sleeps == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_transport_exceptions_are_retryable(self, policy, search):
        search.push(TransportError("connection reset"), httpx.ConnectError("refused"))

        outcome = await policy.execute(_call(search))

        assert outcome.ok is True
        assert outcome.attempt_count == 3

    @pytest.mark.asyncio
    async def test_attempt_timeout_is_retryable(self, clock):
        policy = RetryPolicy(max_attempts=2, base_delay=0.0, attempt_timeout=0.01, clock=clock)
        calls = []

        async def slow_then_fast():
            calls.append(1)
            if len(calls) == 1:
                await asyncio.sleep(1)
            return RawResult.success("ok")

        outcome = await policy.execute(slow_then_fast)

        assert outcome.ok is True
        assert outcome.attempts[0].outcome == AttemptOutcome.RETRYABLE_FAILURE
        assert "timeout" in outcome.attempts[0].detail

    @pytest.mark.asyncio
    async def test_retry_after_does_not_change_backoff(self, policy, search, clock):
        search.push(
            RawResult.failure("Rate limit (429)", retryable=True, retry_after=7.0),
            RATE_LIMITED,
        )

        outcome = await policy.execute(_call(search))

        assert outcome.ok is True
        assert clock.sleeps == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_retry_after_reported_to_backoff_hook(self, policy, search):
        search.push(RawResult.failure("Rate limit (429)", retryable=True, retry_after=7.0), RATE_LIMITED)
        seen = []

        await policy.execute(_call(search), on_backoff=lambda delay, ra: seen.append((delay, ra)))

        assert seen == [(1.0, 7.0), (2.0, None)]

    @pytest.mark.asyncio
    async def test_retry_after_is_capped(self, clock, search):
        policy = RetryPolicy(max_attempts=2, base_delay=1.0, attempt_timeout=None, retry_after_max=10.0, clock=clock)
        search.push(
            RawResult.failure("Rate limit (429)", retryable=True, retry_after=120.0),
            RawResult.failure("Rate limit (429)", retryable=True, retry_after=90.0),
        )
        seen = []

        outcome = await policy.execute(_call(search), on_backoff=lambda delay, ra: seen.append(ra))

        assert clock.sleeps == [1.0]
        assert seen == [10.0]
        assert outcome.retryable_exhausted is True
        assert outcome.retry_after == 10.0

    @pytest.mark.asyncio
    async def test_on_attempt_called_before_each_try(self, policy, search):
        search.push(RATE_LIMITED)
        seen = []

        await policy.execute(_call(search), on_attempt=seen.append)

        assert seen == [1, 2]

    @pytest.mark.asyncio
    async def test_unexpected_exception_propagates(self, policy, search):
        search.push(RuntimeError("boom"))

        with pytest.raises(RuntimeError):
            await policy.execute(_call(search))
