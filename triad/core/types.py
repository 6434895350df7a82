"""Core types for three-channel futures."""

from enum import Enum
from dataclasses import dataclass
from typing import Any, Callable, Generic, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict


class State(Enum):
    """Settle state of a future. Only PENDING ever changes."""

    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAIL = "FAIL"
    ERROR = "ERROR"

    @property
    def settled(self) -> bool:
        return self is not State.PENDING


@dataclass
class HandlerRecord:
    """Callbacks waiting for a future to settle.

    Each slot runs only when the future settles into the matching channel.
    """

    on_success: Optional[Callable[[Any], Any]] = None
    on_fail: Optional[Callable[[Any], Any]] = None
    on_err: Optional[Callable[[Any], Any]] = None


S = TypeVar("S")


@dataclass(frozen=True)
class Outcome(Generic[S]):
    """Snapshot of a settled future: the channel and its value."""

    state: State
    value: S

    @property
    def is_success(self) -> bool:
        return self.state is State.SUCCESS

    @property
    def is_fail(self) -> bool:
        return self.state is State.FAIL

    @property
    def is_error(self) -> bool:
        return self.state is State.ERROR

    def __repr__(self) -> str:
        return f"Outcome({self.state.value}, {self.value!r})"


class SettledResult(BaseModel):
    """Result entry of ``all_settled``: one per input awaitable, in input order."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    status: Literal["fulfilled", "rejected"]
    value: Any = None
    reason: Optional[BaseException] = None

    @property
    def fulfilled(self) -> bool:
        return self.status == "fulfilled"
