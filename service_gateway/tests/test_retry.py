"""
Unit tests for the retry helper.
"""

import pytest
from unittest.mock import AsyncMock

from shared.retry import NO_RETRY, RetryConfig, calculate_delay, retry_async


class Flaky(Exception):
    pass


class Fatal(Exception):
    pass


class TestRetry:
    """Test cases for retry_async."""

    @pytest.fixture
    def sleep(self):
        return AsyncMock()

    @pytest.mark.asyncio
    async def test_retries_until_success(self, sleep):
        """Transient failures are retried with backoff."""
        func = AsyncMock(side_effect=[Flaky(), Flaky(), "ok"])
        config = RetryConfig(max_attempts=3, base_delay=0.5, jitter=False)

        result = await retry_async(func, config, exceptions=(Flaky,), sleep=sleep)

        assert result == "ok"
        assert func.await_count == 3
        assert [c.args[0] for c in sleep.await_args_list] == [0.5, 1.0]

    @pytest.mark.asyncio
    async def test_exhausted_attempts_reraise_last_error(self, sleep):
        """The original exception surfaces once attempts run out."""
        func = AsyncMock(side_effect=Flaky("still down"))

        with pytest.raises(Flaky, match="still down"):
            await retry_async(func, RetryConfig(max_attempts=2, jitter=False), exceptions=(Flaky,), sleep=sleep)

        assert func.await_count == 2

    @pytest.mark.asyncio
    async def test_should_retry_can_veto(self, sleep):
        """Non-retryable errors fail immediately."""
        func = AsyncMock(side_effect=Flaky())

        with pytest.raises(Flaky):
            await retry_async(func, RetryConfig(max_attempts=5), exceptions=(Flaky,),
                              should_retry=lambda e: False, sleep=sleep)

        assert func.await_count == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unlisted_exceptions_propagate(self, sleep):
        """Only the listed exception types are retried."""
        func = AsyncMock(side_effect=Fatal())

        with pytest.raises(Fatal):
            await retry_async(func, RetryConfig(max_attempts=5), exceptions=(Flaky,), sleep=sleep)

        assert func.await_count == 1

    @pytest.mark.asyncio
    async def test_no_retry_config(self, sleep):
        """NO_RETRY makes exactly one attempt."""
        func = AsyncMock(side_effect=Flaky())

        with pytest.raises(Flaky):
            await retry_async(func, NO_RETRY, exceptions=(Flaky,), sleep=sleep)

        assert func.await_count == 1

    def test_delay_is_capped(self):
        """Exponential delay never exceeds max_delay."""
        config = RetryConfig(base_delay=1.0, max_delay=3.0, jitter=False)

        assert [calculate_delay(n, config) for n in (1, 2, 3, 4)] == [1.0, 2.0, 3.0, 3.0]

    def test_jitter_stays_within_ten_percent(self):
        """Jitter perturbs the delay by at most 10%."""
        config = RetryConfig(base_delay=1.0, jitter=True)

        for _ in range(50):
            assert 0.9 <= calculate_delay(1, config) <= 1.1
