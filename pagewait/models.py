"""
Pydantic models for wait configuration.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from enum import Enum
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

PollingMode = Union[Literal["raf", "mutation"], int]


class WaitTaskState(str, Enum):
    """
    Lifecycle of a WaitTask.

    A finished task keeps the outcome that ended it: RESOLVED, TIMED_OUT or
    FATAL. TERMINATED means it was stopped without one (terminate() from
    outside, or detach). All four are final; check `WaitTask.terminated`.
    """

    INITIALIZING = "initializing"
    POLLING = "polling"
    RESOLVED = "resolved"
    TIMED_OUT = "timed_out"
    FATAL = "fatal"
    RECOVERABLE = "recoverable"
    TERMINATED = "terminated"


class WaitTaskOptions(BaseModel):
    """
    Configuration accepted by WaitTask.

    Attributes:
        polling: "raf" (every display refresh), "mutation" (on structural
                 change under `root`) or a positive interval in milliseconds
        timeout: Milliseconds before the wait fails; 0 disables the timeout
        root: Optional remote handle scoping mutation observation
        bindings: Named callables exposed into the context before evaluation
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    polling: PollingMode = "raf"
    timeout: int = Field(0, ge=0)
    root: Any | None = None
    bindings: tuple[Callable[..., Any], ...] = ()

    @field_validator("polling", mode="before")
    @classmethod
    def _check_polling(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError(f"Unknown polling option: {value!r}")
        if isinstance(value, str):
            if value not in ("raf", "mutation"):
                raise ValueError(f"Unknown polling: {value}")
            return value
        if isinstance(value, (int, float)):
            if value <= 0:
                raise ValueError(f"Cannot poll with non-positive interval: {value}")
            return value
        raise ValueError(f"Unknown polling option: {value!r}")

    @field_validator("bindings", mode="before")
    @classmethod
    def _dedupe_bindings(cls, value: Any) -> Any:
        if value is None:
            return ()
        if callable(value) or not isinstance(value, Iterable):
            raise ValueError("bindings must be an iterable of named callables")
        unique: list[Callable[..., Any]] = []
        for fn in value:
            if not callable(fn) or not getattr(fn, "__name__", None) or fn.__name__ == "<lambda>":
                raise ValueError(f"binding {fn!r} must be a named callable")
            if fn not in unique:
                unique.append(fn)
        return tuple(unique)

    @property
    def binding_names(self) -> list[str]:
        return [fn.__name__ for fn in self.bindings]
