"""
Unit tests for retry_with_backoff.
"""

import pytest

from pullis.utils.resilience import TransientError, retry_with_backoff


class Flaky:
    """Callable failing a given number of times before succeeding."""

    def __init__(self, failures: int, error: Exception):
        self.failures = failures
        self.error = error
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return "ok"


@pytest.mark.asyncio
async def test_async_retries_until_success():
    flaky = Flaky(failures=2, error=TransientError("try again"))

    @retry_with_backoff(max_retries=3, base_delay=0)
    async def call():
        return flaky()

    assert await call() == "ok"
    assert flaky.calls == 3


@pytest.mark.asyncio
async def test_async_gives_up_after_max_retries():
    flaky = Flaky(failures=5, error=TransientError("still down"))

    @retry_with_backoff(max_retries=3, base_delay=0)
    async def call():
        return flaky()

    with pytest.raises(TransientError):
        await call()
    assert flaky.calls == 3


@pytest.mark.asyncio
async def test_unlisted_errors_are_not_retried():
    flaky = Flaky(failures=1, error=ValueError("bad input"))

    @retry_with_backoff(max_retries=3, base_delay=0)
    async def call():
        return flaky()

    with pytest.raises(ValueError):
        await call()
    assert flaky.calls == 1

