"""Triad exception hierarchy."""

from typing import Any


class TriadError(Exception):
    """Base exception for all future operations."""

    def __init__(self, message: str, detail: str | None = None):
        self.message = message
        self.detail = detail
        super().__init__(message)


class InvalidStateError(TriadError):
    """Operation not allowed in the future's current state (e.g. reading a pending value)."""
    pass


class SchedulerError(TriadError):
    """No scheduler available to run deferred callbacks."""
    pass


class ErrorValue(TriadError):
    """Error-channel payload that is not an exception.

    asyncio futures only accept exception instances, so a payload such as
    ``'boom'`` is wrapped before crossing into the native layer.
    """

    def __init__(self, value: Any):
        self.value = value
        super().__init__(f"Future settled with error value {value!r}")


def as_exception(value: Any) -> BaseException:
    """
    Return ``value`` as an exception that an asyncio future accepts.

    Non-exceptions are wrapped in ErrorValue. StopIteration cannot be set on
    an asyncio future, so it is wrapped in a RuntimeError chained to it.
    """
    if isinstance(value, StopIteration):
        exc = RuntimeError(f"Future handler raised {type(value).__name__}")
        exc.__cause__ = value
        return exc
    if isinstance(value, BaseException):
        return value
    return ErrorValue(value)
