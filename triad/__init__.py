"""
Triad - Three-Channel Futures for asyncio

A future that settles into one of three channels instead of two:

- Success: the value you asked for
- Fail: an expected, declared failure that is part of the normal flow
- Error: an unexpected defect, like an uncaught exception

Features:
- Chaining with .next() / .success() / .fail() / .catch()
- Error recovery: a catch handler that returns normally switches the chain back to Success
- Flattening of nested futures and asyncio awaitables
- Awaitable, and interoperable with asyncio.gather / asyncio.wait
- Unhandled errors reported through the event loop's exception handler
"""

from .core import (
    Future,
    State,
    Outcome,
    SettledResult,
    Scheduler,
    MicrotaskQueue,
    ManualScheduler,
    current_scheduler,
    FutureConfig,
    get_config,
    set_config,
    TriadError,
    InvalidStateError,
    SchedulerError,
    ErrorValue,
)

__version__ = "0.1.0"

__all__ = [
    'Future',
    'State',
    'Outcome',
    'SettledResult',
    'Scheduler',
    'MicrotaskQueue',
    'ManualScheduler',
    'current_scheduler',
    'FutureConfig',
    'get_config',
    'set_config',
    'TriadError',
    'InvalidStateError',
    'SchedulerError',
    'ErrorValue',
]
