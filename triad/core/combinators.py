"""
Aggregate Operators

Thin delegations to asyncio for combining several awaitables. Nothing here
is reimplemented: results come from ``asyncio.gather`` and ``asyncio.wait``.
A triad Future passed in is consumed through then() and yields its tuple
form: ``(None, value)`` on success, ``(value,)`` on fail.
"""

import asyncio
import inspect
from typing import Any, Awaitable, Iterable, List, TypeVar

from .exceptions import as_exception
from .types import SettledResult

T = TypeVar('T')


def _native(aws: Iterable[Awaitable[Any]]) -> List[Awaitable[Any]]:
    """Consume triad Futures through then() right away so their errors count as handled."""
    from .future import Future
    return [aw.then() if isinstance(aw, Future) else aw for aw in aws]


def when_all(aws: Iterable[Awaitable[T]]) -> "asyncio.Future[List[T]]":
    """
    Wait for all awaitables to complete.

    Args:
        aws: Awaitables to wait for

    Returns:
        Native future of the results, in input order. Rejects with the first
        exception raised.

    Example:
        results = await Future.all([fetch_user(), fetch_orders()])
    """
    return asyncio.gather(*_native(aws))


def when_any(aws: Iterable[Awaitable[T]]) -> "asyncio.Future[T]":
    """
    Settle like the first awaitable to complete.

    Args:
        aws: Awaitables to race

    Returns:
        Native future with the first result (or exception). When several
        complete in the same turn the earliest in input order wins. The
        others keep running; their exceptions are retrieved so asyncio does
        not report them.

    Raises:
        ValueError (from the returned future) if ``aws`` is empty
    """
    return asyncio.ensure_future(_race(_native(aws)))


async def _race(aws: List[Awaitable[T]]) -> T:
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)

    for task in pending:
        task.add_done_callback(_retrieve)

    first = next(task for task in tasks if task in done)
    for task in done:
        if task is not first:
            _retrieve(task)
    return first.result()


def _retrieve(task: asyncio.Future) -> None:
    if not task.cancelled():
        task.exception()


def when_all_settled(aws: Iterable[Awaitable[Any]]) -> "asyncio.Future[List[SettledResult]]":
    """
    Wait for all awaitables, collecting every outcome.

    Returns:
        Native future of SettledResult entries, in input order. Never rejects
        because of an input exception.

    Example:
        for entry in await Future.all_settled(requests):
            if not entry.fulfilled:
                logger.warning(f"request failed: {entry.reason}")
    """
    return asyncio.gather(*(_settled(aw) for aw in _native(aws)))


async def _settled(aw: Awaitable[Any]) -> SettledResult:
    native = asyncio.ensure_future(aw)
    try:
        await asyncio.wait((native,))
    except asyncio.CancelledError:
        native.cancel()
        raise

    # A cancelled input is recorded; cancelling the aggregate itself propagates above
    try:
        value = native.result()
    except (asyncio.CancelledError, Exception) as e:
        return SettledResult(status="rejected", reason=e)
    return SettledResult(status="fulfilled", value=value)


def resolved(value: Any = None) -> asyncio.Future:
    """
    Native future fulfilled with ``value``.

    Native futures are returned as-is and other awaitables are wrapped in a task.
    """
    if asyncio.isfuture(value):
        return value
    if inspect.isawaitable(value):
        return asyncio.ensure_future(value)
    future = asyncio.get_running_loop().create_future()
    future.set_result(value)
    return future


def rejected(err: Any) -> asyncio.Future:
    """Native future rejected with ``err`` (non-exceptions are wrapped in ErrorValue)."""
    future = asyncio.get_running_loop().create_future()
    future.set_exception(as_exception(err))
    return future
