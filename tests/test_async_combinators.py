"""
Tests for aggregate operators (combinators.py).

Tests:
- Future.all / when_all: wait for all awaitables
- Future.race / when_any: settle like the first to complete
- Future.all_settled / when_all_settled: collect every outcome
- Future.resolve / Future.reject: ready-made native futures
- Uses randomized inputs
"""

import asyncio
import random
import string

import pytest

from triad.core import Future, SettledResult, ErrorValue
from triad.core.combinators import when_all, when_any, when_all_settled


# =============================================================================
# Test Fixtures and Helpers
# =============================================================================

class MockFuture:
    """Awaitable that returns a value after an optional delay."""

    def __init__(self, value, delay: float = 0):
        self.value = value
        self.delay = delay
        self._awaited = False

    def __await__(self):
        return self._async_impl().__await__()

    async def _async_impl(self):
        if self.delay > 0:
            await asyncio.sleep(self.delay)
        self._awaited = True
        return self.value


class FailingFuture:
    """Awaitable that raises an exception."""

    def __init__(self, exception: Exception, delay: float = 0):
        self.exception = exception
        self.delay = delay

    def __await__(self):
        return self._async_impl().__await__()

    async def _async_impl(self):
        if self.delay > 0:
            await asyncio.sleep(self.delay)
        raise self.exception


def random_string(length: int = 10) -> str:
    """Generate a random string."""
    return ''.join(random.choices(string.ascii_letters, k=length))


def random_int(min_val: int = -1000, max_val: int = 1000) -> int:
    """Generate a random integer."""
    return random.randint(min_val, max_val)


# =============================================================================
# when_all Tests
# =============================================================================

class TestWhenAll:
    """Tests for Future.all."""

    @pytest.mark.asyncio
    async def test_when_all_basic(self):
        """Test waiting for all awaitables to complete."""
        values = [random_int() for _ in range(5)]
        futures = [MockFuture(v) for v in values]

        results = await Future.all(futures)

        assert results == values
        assert all(f._awaited for f in futures)

    @pytest.mark.asyncio
    async def test_when_all_empty_list(self):
        assert await when_all([]) == []

    @pytest.mark.asyncio
    async def test_when_all_preserves_order(self):
        """Results are in input order, not completion order."""
        futures = [
            MockFuture("slow", delay=0.03),
            MockFuture("fast", delay=0.01),
            MockFuture("medium", delay=0.02),
        ]

        assert await Future.all(futures) == ["slow", "fast", "medium"]

    @pytest.mark.asyncio
    async def test_when_all_triad_futures_yield_tuples(self):
        value = random_string()

        results = await Future.all([Future.succeed(value), Future.fail(value)])

        assert results == [(None, value), (value,)]

    @pytest.mark.asyncio
    async def test_when_all_rejects_on_error(self):
        with pytest.raises(ErrorValue):
            await Future.all([MockFuture(1), Future.throw('broken')])

    @pytest.mark.asyncio
    async def test_when_all_rejects_on_exception(self):
        with pytest.raises(KeyError):
            await Future.all([MockFuture(1), FailingFuture(KeyError("k"))])


# =============================================================================
# when_any Tests
# =============================================================================

class TestWhenAny:
    """Tests for Future.race."""

    @pytest.mark.asyncio
    async def test_when_any_returns_first(self):
        futures = [
            MockFuture("slow", delay=0.05),
            MockFuture("fast", delay=0.01),
        ]

        assert await Future.race(futures) == "fast"

    @pytest.mark.asyncio
    async def test_when_any_input_order_breaks_ties(self):
        futures = [MockFuture(i) for i in range(5)]
        assert await when_any(futures) == 0

    @pytest.mark.asyncio
    async def test_when_any_first_exception_wins(self):
        futures = [
            MockFuture("slow", delay=0.05),
            FailingFuture(ValueError("first"), delay=0.01),
        ]

        with pytest.raises(ValueError, match="first"):
            await Future.race(futures)

    @pytest.mark.asyncio
    async def test_when_any_triad_future(self):
        futures = [MockFuture("slow", delay=0.05), Future.fail("declined")]
        assert await Future.race(futures) == ("declined",)

    @pytest.mark.asyncio
    async def test_when_any_empty_list(self):
        with pytest.raises(ValueError):
            await when_any([])


# =============================================================================
# when_all_settled Tests
# =============================================================================

class TestWhenAllSettled:
    """Tests for Future.all_settled."""

    @pytest.mark.asyncio
    async def test_collects_every_outcome(self):
        value = random_int()
        err = RuntimeError(random_string())

        results = await Future.all_settled([
            MockFuture(value),
            FailingFuture(err),
            Future.throw('defect'),
            Future.fail('declined'),
        ])

        assert [r.status for r in results] == ["fulfilled", "rejected", "rejected", "fulfilled"]
        assert results[0].value == value
        assert results[1].reason is err
        assert isinstance(results[2].reason, ErrorValue)
        assert results[3].value == ('declined',)
        assert all(isinstance(r, SettledResult) for r in results)

    @pytest.mark.asyncio
    async def test_fulfilled_exception_value_stays_fulfilled(self):
        err = ValueError("returned, not raised")

        results = await when_all_settled([MockFuture(err)])

        assert results[0].fulfilled
        assert results[0].value is err

    @pytest.mark.asyncio
    async def test_cancelled_input_recorded_as_rejected(self):
        cancelled = asyncio.get_running_loop().create_future()
        cancelled.cancel()

        results = await Future.all_settled([cancelled, asyncio.sleep(0, 'ok')])

        assert results[0].status == "rejected"
        assert isinstance(results[0].reason, asyncio.CancelledError)
        assert results[1].fulfilled
        assert results[1].value == 'ok'

    @pytest.mark.asyncio
    async def test_cancelling_aggregate_propagates(self):
        slow = asyncio.ensure_future(asyncio.sleep(10))
        aggregate = when_all_settled([slow])
        await asyncio.sleep(0)

        aggregate.cancel()

        with pytest.raises(asyncio.CancelledError):
            await aggregate
        with pytest.raises(asyncio.CancelledError):
            await slow

    @pytest.mark.asyncio
    async def test_empty_list(self):
        assert await when_all_settled([]) == []

    def test_settled_result_is_frozen(self):
        entry = SettledResult(status="fulfilled", value=1)
        with pytest.raises(Exception):
            entry.value = 2


# =============================================================================
# resolve / reject Tests
# =============================================================================

class TestResolveReject:
    """Tests for Future.resolve and Future.reject."""

    @pytest.mark.asyncio
    async def test_resolve_value(self):
        value = random_string()
        native = Future.resolve(value)

        assert asyncio.isfuture(native)
        assert native.done()
        assert await native == value

    @pytest.mark.asyncio
    async def test_resolve_native_future_passthrough(self):
        native = asyncio.get_running_loop().create_future()
        native.set_result(1)

        assert Future.resolve(native) is native

    @pytest.mark.asyncio
    async def test_resolve_awaitable(self):
        assert await Future.resolve(MockFuture(7, delay=0.01)) == 7

    @pytest.mark.asyncio
    async def test_reject_exception(self):
        err = OSError("disk")
        with pytest.raises(OSError):
            await Future.reject(err)

    @pytest.mark.asyncio
    async def test_reject_plain_value(self):
        with pytest.raises(ErrorValue) as exc_info:
            await Future.reject('nope')
        assert exc_info.value.value == 'nope'

    @pytest.mark.asyncio
    async def test_reject_adopted_by_from_promise(self):
        pr = Future.from_promise(Future.reject('nope'), reject_to_fail=True)
        result = await pr
        assert isinstance(result[0], ErrorValue)
