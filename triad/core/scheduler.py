"""
Callback Scheduling

Deferred execution for future handlers. Every handler dispatch goes through a
Scheduler so that registering or settling a future never runs user code
synchronously.
"""

import asyncio
import logging
import weakref
from collections import deque
from typing import Any, Callable, Deque, Dict, List, Optional, Protocol

from .exceptions import SchedulerError

logger = logging.getLogger(__name__)

Callback = Callable[[], Any]


class Scheduler(Protocol):
    """Collaborator that runs callbacks in FIFO order on a later turn."""

    def schedule(self, callback: Callback) -> None:
        """Queue ``callback`` to run after the current call stack unwinds."""
        ...

    def report_unhandled(self, context: Dict[str, Any]) -> None:
        """Report an error nobody handled (same context keys as asyncio's exception handler)."""
        ...


class MicrotaskQueue:
    """
    Microtask queue on top of an asyncio event loop.

    Callbacks are kept in a deque and flushed from a single ``loop.call_soon``
    turn. Callbacks queued during a flush run in the same flush, so a chain
    of futures settles completely before any other loop callback, timer or
    I/O event gets a chance to run.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop):
        self._loop_ref = weakref.ref(loop)
        self._callbacks: Deque[Callback] = deque()
        self._flush_pending = False

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        loop = self._loop_ref()
        if loop is None:
            raise SchedulerError("Event loop of this queue no longer exists")
        return loop

    def schedule(self, callback: Callback) -> None:
        self._callbacks.append(callback)
        if not self._flush_pending:
            self.loop.call_soon(self._flush)
            self._flush_pending = True

    def report_unhandled(self, context: Dict[str, Any]) -> None:
        self.loop.call_exception_handler(context)

    def _flush(self) -> None:
        try:
            while self._callbacks:
                callback = self._callbacks.popleft()
                try:
                    callback()
                except Exception as e:
                    self.loop.call_exception_handler({
                        'message': 'Exception in future callback',
                        'exception': e,
                    })
        finally:
            self._flush_pending = False
            # A BaseException cut the flush short; keep the rest for a new turn
            if self._callbacks:
                self.loop.call_soon(self._flush)
                self._flush_pending = True

    def __len__(self) -> int:
        return len(self._callbacks)


class ManualScheduler:
    """
    Scheduler driven by explicit ``run_pending()`` calls.

    Needs no event loop. Useful for synchronous code and for deterministic
    tests that step through scheduling turns one at a time.
    """

    def __init__(self):
        self._callbacks: Deque[Callback] = deque()
        self.unhandled: List[Dict[str, Any]] = []

    def schedule(self, callback: Callback) -> None:
        self._callbacks.append(callback)

    def report_unhandled(self, context: Dict[str, Any]) -> None:
        self.unhandled.append(context)
        exception = context.get('exception')
        logger.error(
            f"{context.get('message', 'Unhandled future error')}: {context.get('value')!r}",
            exc_info=(type(exception), exception, exception.__traceback__) if exception is not None else None,
        )

    def run_pending(self) -> int:
        """
        Run queued callbacks, including any they queue, until none are left.

        Returns:
            Number of callbacks that ran
        """
        ran = 0
        while self._callbacks:
            callback = self._callbacks.popleft()
            ran += 1
            try:
                callback()
            except Exception as e:
                self.report_unhandled({
                    'message': 'Exception in future callback',
                    'exception': e,
                    'value': e,
                })
        return ran

    def __len__(self) -> int:
        return len(self._callbacks)


_queues: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, MicrotaskQueue]" = weakref.WeakKeyDictionary()


def current_scheduler(loop: Optional[asyncio.AbstractEventLoop] = None) -> MicrotaskQueue:
    """
    Get the microtask queue of ``loop`` (default: the running loop).

    Raises:
        SchedulerError if no loop is given and none is running
    """
    if loop is None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            raise SchedulerError(
                "No running event loop",
                detail="Create futures inside a coroutine or pass scheduler=ManualScheduler()",
            ) from None

    queue = _queues.get(loop)
    if queue is None:
        queue = MicrotaskQueue(loop)
        _queues[loop] = queue
        logger.debug(f"Created microtask queue for loop {loop!r}")
    return queue
