"""
Triad Core

Three-channel futures (Success / Fail / Error) on top of asyncio.
"""

from .future import Future, is_awaitable
from .combinators import when_all, when_any, when_all_settled
from .scheduler import Scheduler, MicrotaskQueue, ManualScheduler, current_scheduler
from .types import State, Outcome, HandlerRecord, SettledResult
from .config import FutureConfig, get_config, set_config
from .exceptions import TriadError, InvalidStateError, SchedulerError, ErrorValue

__all__ = [
    'Future',
    'is_awaitable',
    'when_all',
    'when_any',
    'when_all_settled',
    'Scheduler',
    'MicrotaskQueue',
    'ManualScheduler',
    'current_scheduler',
    'State',
    'Outcome',
    'HandlerRecord',
    'SettledResult',
    'FutureConfig',
    'get_config',
    'set_config',
    'TriadError',
    'InvalidStateError',
    'SchedulerError',
    'ErrorValue',
]
