"""
Three-Channel Future

A deferred value that settles into one of three channels:

- Success: the happy-path value
- Fail: an expected, declared failure (still part of the normal flow)
- Error: an unexpected defect, like an uncaught exception

Bridges to asyncio: ``then()`` returns an ``asyncio.Future`` and a Future can
be awaited directly.
"""

import asyncio
import inspect
import logging
import reprlib
import sys
import traceback
from typing import Any, Awaitable, Callable, Generic, List, Optional, TypeVar

from .combinators import when_all, when_any, when_all_settled, resolved, rejected
from .config import get_config
from .exceptions import InvalidStateError, SchedulerError, TriadError, as_exception
from .scheduler import Scheduler, current_scheduler
from .types import HandlerRecord, Outcome, State

logger = logging.getLogger(__name__)

S = TypeVar('S')
F = TypeVar('F')

Resolver = Callable[[Any], None]
Executor = Callable[[Resolver, Resolver, Resolver], Any]


def is_awaitable(value: Any) -> bool:
    """True for native awaitables (asyncio futures, tasks, coroutines), not for Future."""
    return not isinstance(value, Future) and inspect.isawaitable(value)


def _relay(handler: Optional[Callable], resolve: Resolver, error: Resolver,
           passthrough: Optional[Resolver] = None) -> Callable[[Any], None]:
    """
    Build the record slot that runs ``handler`` and settles a derived future.

    Without a handler the value goes to ``passthrough`` (default: ``resolve``).
    A handler's return value goes to ``resolve``; an exception goes to ``error``.
    """
    def relay(value: Any) -> None:
        if handler is None:
            (passthrough or resolve)(value)
            return
        try:
            result = handler(value)
        except Exception as e:
            error(e)
            return
        resolve(result)
    return relay


class _channelmethod:
    """
    Class access gives the factory, instance access gives the combinator.

    Lets ``Future.fail(value)`` build a failed future while ``future.fail(fn)``
    attaches a fail handler.
    """

    def __init__(self, factory: Callable):
        self._factory = factory
        self._combinator: Optional[Callable] = None
        self.__doc__ = factory.__doc__

    def combinator(self, func: Callable) -> '_channelmethod':
        self._combinator = func
        return self

    def __get__(self, instance, owner):
        if instance is None:
            return self._factory.__get__(owner, owner)
        return self._combinator.__get__(instance, owner)


class Future(Generic[S, F]):
    """
    Deferred value with Success, Fail and Error channels.

    The executor runs synchronously and receives three resolvers. The first
    resolver call wins; later calls are ignored. Handlers always run on a
    later scheduling turn, never inside the call that registers them.

    Examples:
        # Chaining
        (Future.succeed(user_id)
            .success(load_user)
            .fail(lambda reason: log_rejection(reason))
            .catch(lambda err: fallback_user()))

        # Awaiting: Success -> (None, value), Fail -> (value,), Error raises
        result = await future
    """

    def __init__(self, executor: Executor, *, scheduler: Optional[Scheduler] = None):
        """
        Create a future.

        Args:
            executor: Called immediately with ``(success, fail, error)``
            scheduler: Runs deferred handlers (default: microtask queue of the running loop)
        """
        self._state = State.PENDING
        self._value: Any = None
        self._handlers: List[HandlerRecord] = []
        self._handlers_drained = False
        self._resolving = False
        self._scheduler = scheduler
        self._source_traceback: Optional[traceback.StackSummary] = None
        if get_config().debug:
            self._source_traceback = traceback.extract_stack(sys._getframe(1))

        try:
            executor(self._success, self._fail, self._error)
        except SchedulerError:
            raise
        except Exception as e:
            self._error(e)

    # ------------------------------------------------------------------
    # State and settlement
    # ------------------------------------------------------------------

    @property
    def scheduler(self) -> Scheduler:
        if self._scheduler is None:
            self._scheduler = current_scheduler()
        return self._scheduler

    @property
    def state(self) -> State:
        return self._state

    @property
    def value(self) -> Any:
        """
        The settled payload of whichever channel the future settled into.

        Raises:
            InvalidStateError if the future is still pending
        """
        if not self._state.settled:
            raise InvalidStateError("Future is still pending")
        return self._value

    def done(self) -> bool:
        return self._state.settled

    def outcome(self) -> Outcome:
        """Snapshot of the settled channel and value."""
        return Outcome(self._state, self.value)

    def _success(self, value: Any = None) -> None:
        self._resolve(value, State.SUCCESS)

    def _fail(self, value: Any = None) -> None:
        self._resolve(value, State.FAIL)

    def _error(self, err: Any = None) -> None:
        self._resolve(err, State.ERROR)

    def _resolve(self, value: Any, state: State) -> None:
        # Only the first resolver call counts, even while it adopts a nested value
        if self._resolving:
            return
        self._resolving = True
        self._adopt(value, state)

    def _adopt(self, value: Any, state: State) -> None:
        """Settle with ``value``, or wait for it first when it is itself a future."""
        if value is self:
            self._settle(TriadError("Chaining cycle detected for future"), State.ERROR)
            return
        if isinstance(value, Future):
            logger.debug(f"{self!r} adopting {value!r}")
            value._register(HandlerRecord(
                on_success=lambda v: self._adopt(v, State.SUCCESS),
                on_fail=lambda v: self._adopt(v, State.FAIL),
                on_err=lambda e: self._adopt(e, State.ERROR),
            ))
            return

        if is_awaitable(value):
            logger.debug(f"{self!r} adopting awaitable {value!r}")
            try:
                native = asyncio.ensure_future(value)
            except RuntimeError as e:
                if inspect.iscoroutine(value):
                    value.close()
                self._settle(e, State.ERROR)
                return
            native.add_done_callback(self._adopt_native)
            return

        self._settle(value, state)

    def _adopt_native(self, native: asyncio.Future) -> None:
        try:
            result = native.result()
        except (asyncio.CancelledError, Exception) as e:
            self._settle(e, State.ERROR)
        else:
            self._adopt(result, State.SUCCESS)

    def _settle(self, value: Any, state: State) -> None:
        if self._state.settled:
            return
        self._value = value
        self._state = state
        self._schedule_drain()

    # ------------------------------------------------------------------
    # Handler registration and dispatch
    # ------------------------------------------------------------------

    def _register(self, record: HandlerRecord) -> None:
        self._handlers.append(record)
        if self._state.settled:
            self._schedule_drain()

    def _schedule_drain(self) -> None:
        self.scheduler.schedule(self._drain)

    def _drain(self) -> None:
        if self._state is State.ERROR and not self._handlers and not self._handlers_drained:
            self._report_unhandled(self._value)
            return

        # Records added while dispatching wait for the drain their registration scheduled
        handlers, self._handlers = self._handlers, []
        for record in handlers:
            self._dispatch(record)
        self._handlers_drained = True

    def _dispatch(self, record: HandlerRecord) -> None:
        if self._state is State.SUCCESS:
            callback = record.on_success
        elif self._state is State.FAIL:
            callback = record.on_fail
        else:
            callback = record.on_err or self._report_unhandled

        if callback is None:
            return
        try:
            callback(self._value)
        except Exception as e:
            self.scheduler.report_unhandled({
                'message': 'Exception in future handler',
                'exception': e,
                'value': e,
                'future': self,
            })

    def _report_unhandled(self, err: Any) -> None:
        context = {
            'message': get_config().unhandled_message,
            'exception': as_exception(err),
            'value': err,
            'future': self,
        }
        if self._source_traceback:
            context['source_traceback'] = self._source_traceback
        self.scheduler.report_unhandled(context)

    # ------------------------------------------------------------------
    # Chaining
    # ------------------------------------------------------------------

    def next(
        self,
        on_success: Optional[Callable[[S], Any]] = None,
        on_fail: Optional[Callable[[F], Any]] = None,
        on_err: Optional[Callable[[Any], Any]] = None,
    ) -> 'Future':
        """
        Attach handlers for all three channels.

        Args:
            on_success: Maps the success value; result settles the new future as Success
            on_fail: Maps the fail value; result settles the new future as Fail
            on_err: Recovers from an error; result settles the new future as Success

        Returns:
            New future for the handler results. Missing handlers pass the
            value through on the same channel. A handler that raises settles
            the new future as Error. A handler that returns a Future or an
            awaitable settles the new future with that value's outcome.
        """
        def executor(success: Resolver, fail: Resolver, error: Resolver) -> None:
            self._register(HandlerRecord(
                on_success=_relay(on_success, success, error),
                on_fail=_relay(on_fail, fail, error),
                on_err=_relay(on_err, success, error, passthrough=error),
            ))

        return Future(executor, scheduler=self._scheduler)

    def success(self, on_success: Callable[[S], Any],
                on_err: Optional[Callable[[Any], Any]] = None) -> 'Future':
        """Handle the success channel (and optionally recover from errors)."""
        return self.next(on_success, None, on_err)

    @_channelmethod
    def fail(cls, value: Any = None, *, scheduler: Optional[Scheduler] = None) -> 'Future':
        """
        Create a future already settled on the fail channel.

        On an instance, ``future.fail(on_fail, on_err=None)`` attaches a fail
        handler instead.
        """
        if isinstance(value, Future):
            return value
        return cls(lambda success, fail, error: fail(value), scheduler=scheduler)

    @fail.combinator
    def fail(self, on_fail: Callable[[F], Any],
             on_err: Optional[Callable[[Any], Any]] = None) -> 'Future':
        """Handle the fail channel (and optionally recover from errors)."""
        return self.next(None, on_fail, on_err)

    def catch(self, on_err: Callable[[Any], Any]) -> 'Future':
        """Recover from the error channel. A normal return settles the new future as Success."""
        return self.next(None, None, on_err)

    # ------------------------------------------------------------------
    # asyncio interop
    # ------------------------------------------------------------------

    def then(
        self,
        on_fulfilled: Optional[Callable[[tuple], Any]] = None,
        on_rejected: Optional[Callable[[Any], Any]] = None,
    ) -> asyncio.Future:
        """
        Consume the outcome as a native two-channel asyncio future.

        Success is delivered as ``(None, value)`` and Fail as ``(value,)``,
        both on the fulfilled side. Only Error rejects.

        Args:
            on_fulfilled: Receives the tuple; its result fulfils the returned future
            on_rejected: Receives the error; its result fulfils the returned future

        Returns:
            asyncio.Future bound to the running loop

        Raises:
            SchedulerError if no event loop is running
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            raise SchedulerError("then() needs a running event loop") from None
        native = loop.create_future()

        def on_err(err: Any) -> None:
            if on_rejected is None:
                if not native.done():
                    native.set_exception(as_exception(err))
                return
            _fulfil(native, on_rejected, err)

        self._register(HandlerRecord(
            on_success=lambda value: _fulfil(native, on_fulfilled, (None, value)),
            on_fail=lambda value: _fulfil(native, on_fulfilled, (value,)),
            on_err=on_err,
        ))
        return native

    def __await__(self):
        return self.then().__await__()

    def finally_(self, callback: Callable[[], Any]) -> 'Future[S, F]':
        """
        Run ``callback()`` once the future settles, whatever the channel.

        Returns:
            New future that settles with the original channel and value after
            the callback (and any awaitable it returns) completes. Errors from
            the callback are logged and do not change the outcome.
        """
        def executor(success: Resolver, fail: Resolver, error: Resolver) -> None:
            def after(resolve: Resolver) -> Callable[[Any], None]:
                def handler(value: Any) -> None:
                    try:
                        result = callback()
                    except Exception as e:
                        logger.warning(f"finally_ callback raised {e!r}; keeping original outcome")
                        resolve(value)
                        return

                    if not inspect.isawaitable(result):
                        resolve(value)
                        return

                    def done(_: Any) -> None:
                        resolve(value)

                    def failed(err: Any) -> None:
                        logger.warning(f"finally_ callback result errored {err!r}; keeping original outcome")
                        resolve(value)

                    waiter = result if isinstance(result, Future) else Future.from_promise(
                        result, scheduler=self._scheduler)
                    waiter._register(HandlerRecord(on_success=done, on_fail=done, on_err=failed))
                return handler

            self._register(HandlerRecord(
                on_success=after(success),
                on_fail=after(fail),
                on_err=after(error),
            ))

        return Future(executor, scheduler=self._scheduler)

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @classmethod
    def succeed(cls, value: Any = None, *, scheduler: Optional[Scheduler] = None) -> 'Future':
        """Create a future already settled on the success channel (Futures pass through)."""
        if isinstance(value, Future):
            return value
        return cls(lambda success, fail, error: success(value), scheduler=scheduler)

    @classmethod
    def throw(cls, err: Any, *, scheduler: Optional[Scheduler] = None) -> 'Future':
        """Create a future already settled on the error channel."""
        return cls(lambda success, fail, error: error(err), scheduler=scheduler)

    @classmethod
    def from_promise(cls, awaitable: Awaitable, reject_to_fail: bool = False,
                     *, scheduler: Optional[Scheduler] = None) -> 'Future':
        """
        Adapt a native awaitable.

        Args:
            awaitable: asyncio future, task or coroutine
            reject_to_fail: Route exceptions to the fail channel instead of error

        Returns:
            Future settled as Success with the result, or Error (Fail) with the exception
        """
        if isinstance(awaitable, Future):
            return awaitable

        def executor(success: Resolver, fail: Resolver, error: Resolver) -> None:
            native = asyncio.ensure_future(awaitable)

            def done(native: asyncio.Future) -> None:
                try:
                    result = native.result()
                except (asyncio.CancelledError, Exception) as e:
                    (fail if reject_to_fail else error)(e)
                else:
                    success(result)

            native.add_done_callback(done)

        return cls(executor, scheduler=scheduler)

    # Aggregates are asyncio's own; exposed here for symmetry
    all = staticmethod(when_all)
    race = staticmethod(when_any)
    all_settled = staticmethod(when_all_settled)
    resolve = staticmethod(resolved)
    reject = staticmethod(rejected)

    def __repr__(self) -> str:
        if not self._state.settled:
            return f"<{self.__class__.__name__} pending>"
        return f"<{self.__class__.__name__} state={self._state.value} value={reprlib.repr(self._value)}>"


def _fulfil(native: asyncio.Future, callback: Optional[Callable[[Any], Any]], arg: Any) -> None:
    """Fulfil ``native`` with ``callback(arg)`` (or ``arg``), following awaitable results."""
    if native.done():
        return
    if callback is None:
        native.set_result(arg)
        return
    try:
        result = callback(arg)
    except Exception as e:
        native.set_exception(as_exception(e))
        return

    if not inspect.isawaitable(result):
        native.set_result(result)
        return
    try:
        inner = asyncio.ensure_future(result)
    except Exception as e:
        native.set_exception(as_exception(e))
        return
    inner.add_done_callback(lambda source: _copy_state(source, native))


def _copy_state(source: asyncio.Future, target: asyncio.Future) -> None:
    if target.done():
        return
    if source.cancelled():
        target.cancel()
        return
    exception = source.exception()
    if exception is not None:
        target.set_exception(exception)
    else:
        target.set_result(source.result())
