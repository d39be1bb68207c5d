"""
tests/test_utils/test_retry.py — retry_call attempts, backoff and re-raise.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from frequence_pipeline.errors import EdgeFunctionError
from frequence_pipeline.utils.retry import _wait_strategy, retry_call


@pytest.mark.asyncio
async def test_first_success_no_retry():
    fn = AsyncMock(return_value={"ok": True})
    assert await retry_call(fn, max_attempts=3, base_delay=0) == {"ok": True}
    assert fn.await_count == 1


@pytest.mark.asyncio
async def test_retries_until_success():
    fn = AsyncMock(side_effect=[RuntimeError("a"), RuntimeError("b"), "done"])
    assert await retry_call(fn, max_attempts=3, base_delay=0) == "done"
    assert fn.await_count == 3


@pytest.mark.asyncio
async def test_last_exception_reraised_unchanged():
    error = EdgeFunctionError("lexicon-proxy", "down", status_code=502)
    fn = AsyncMock(side_effect=[RuntimeError("first"), error])
    with pytest.raises(EdgeFunctionError) as excinfo:
        await retry_call(fn, max_attempts=2, base_delay=0, backoff="exponential")
    assert excinfo.value is error


@pytest.mark.asyncio
async def test_non_matching_exception_not_retried():
    fn = AsyncMock(side_effect=KeyError("x"))
    with pytest.raises(KeyError):
        await retry_call(fn, max_attempts=3, base_delay=0, retry_on=EdgeFunctionError)
    assert fn.await_count == 1


class _State:
    def __init__(self, attempt_number: int) -> None:
        self.attempt_number = attempt_number


@pytest.mark.parametrize(
    "backoff,expected",
    [("linear", [0.4, 0.8, 1.2]), ("exponential", [0.4, 0.8, 1.6])],
)
def test_backoff_shapes(backoff, expected):
    wait = _wait_strategy(backoff, 0.4, 30.0)
    delays = [wait(_State(n)) for n in (1, 2, 3)]
    assert delays == pytest.approx(expected)
