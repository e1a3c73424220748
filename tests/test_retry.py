"""Tests for retry with exponential backoff."""

import pytest

from meeting_mind.exceptions import RemoteErrorKind, RetriesExhaustedError, TransientRemoteError
from meeting_mind.retry import backoff_delay, with_retry


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def failing_then(results: list):
    """Coroutine factory returning or raising ``results`` in order."""
    calls = []

    async def attempt():
        calls.append(len(calls) + 1)
        result = results[len(calls) - 1]
        if isinstance(result, Exception):
            raise result
        return result

    return attempt, calls


@pytest.mark.unit
class TestWithRetry:
    """Test cases for with_retry()."""

    def test_backoff_schedule(self) -> None:
        assert [backoff_delay(n) for n in (1, 2, 3)] == [1.0, 2.0, 4.0]
        assert backoff_delay(2, base_delay=0.5) == 1.0

    @pytest.mark.asyncio
    async def test_first_attempt_succeeds(self) -> None:
        sleep = RecordingSleep()
        attempt, calls = failing_then(["ok"])

        assert await with_retry(attempt, sleep=sleep) == "ok"
        assert calls == [1]
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_third_attempt_result_returned(self) -> None:
        """Test that two failures wait 1s then 2s before the third attempt."""
        sleep = RecordingSleep()
        error = TransientRemoteError("down", RemoteErrorKind.NETWORK)
        attempt, calls = failing_then([error, error, "answer"])

        assert await with_retry(attempt, sleep=sleep) == "answer"
        assert calls == [1, 2, 3]
        assert sleep.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_exhausted_carries_last_error(self) -> None:
        sleep = RecordingSleep()
        first = TransientRemoteError("down", RemoteErrorKind.NETWORK)
        last = TransientRemoteError("limited", RemoteErrorKind.RATE_LIMITED, 429)
        attempt, calls = failing_then([first, first, last])

        with pytest.raises(RetriesExhaustedError) as exc_info:
            await with_retry(attempt, sleep=sleep)

        assert calls == [1, 2, 3]
        assert sleep.delays == [1.0, 2.0]
        assert exc_info.value.last_error is last
        assert exc_info.value.kind is RemoteErrorKind.RATE_LIMITED
        assert exc_info.value.status_code == 429

    @pytest.mark.asyncio
    async def test_other_exceptions_propagate(self) -> None:
        """Test that errors outside retry_on are not retried."""
        sleep = RecordingSleep()
        attempt, calls = failing_then([KeyError("bug")])

        with pytest.raises(KeyError):
            await with_retry(attempt, sleep=sleep)
        assert calls == [1]

    @pytest.mark.asyncio
    async def test_invalid_attempts(self) -> None:
        attempt, _ = failing_then(["ok"])
        with pytest.raises(ValueError):
            await with_retry(attempt, max_attempts=0)
