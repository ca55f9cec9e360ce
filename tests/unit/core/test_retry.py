from unittest.mock import AsyncMock, MagicMock

import pytest

from neuralmetrics.core.retry import backoff_delay, retry_async


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    sleep = AsyncMock()
    monkeypatch.setattr("neuralmetrics.core.retry.asyncio.sleep", sleep)
    return sleep


@pytest.mark.parametrize(
    "attempt,expected", [(0, 3000), (1, 6000), (2, 12000), (4, 48000)]
)
def test_backoff_delay(attempt, expected):
    assert backoff_delay(3000, attempt) == expected


def test_backoff_delay_cap():
    assert backoff_delay(0.5, 10, cap=4.0) == 4.0


@pytest.mark.asyncio
async def test_retries_until_success(no_sleep):
    func = AsyncMock(side_effect=[ConnectionError(), ConnectionError(), "ok"])
    on_retry = MagicMock(return_value=None)

    result = await retry_async(
        func, attempts=5, base_delay=1.0, jitter=0, on_retry=on_retry
    )

    assert result == "ok"
    assert func.await_count == 3
    assert [c.args[0] for c in on_retry.call_args_list] == [1, 2]
    assert [c.args[0] for c in no_sleep.await_args_list] == [1.0, 2.0]


@pytest.mark.asyncio
async def test_last_error_is_raised():
    func = AsyncMock(side_effect=ConnectionError("down"))

    with pytest.raises(ConnectionError, match="down"):
        await retry_async(func, attempts=3)

    assert func.await_count == 3


@pytest.mark.asyncio
async def test_other_errors_are_not_retried():
    func = AsyncMock(side_effect=KeyError("x"))

    with pytest.raises(KeyError):
        await retry_async(func, attempts=3, retry_on=(ConnectionError,))

    assert func.await_count == 1


@pytest.mark.asyncio
async def test_async_retry_callback_is_awaited():
    on_retry = AsyncMock()
    func = AsyncMock(side_effect=[ValueError(), 1])

    await retry_async(func, attempts=2, on_retry=on_retry)

    on_retry.assert_awaited_once()


@pytest.mark.asyncio
async def test_attempts_must_be_positive():
    with pytest.raises(ValueError):
        await retry_async(AsyncMock(), attempts=0)
