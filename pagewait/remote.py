"""
Contracts for the remote side of a wait.

A wait never runs its predicate locally: the predicate crosses into an
execution context (a page, or an in-process stand-in) as a RemoteCallable,
and the poller that evaluates it is built and driven there through an
ExecutionWorld. The world owns context creation, handle lifecycle and
function exposure; this package only consumes those operations.
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .wait_task import TaskManager

_FUNCTION_SOURCE = re.compile(
    r"^\s*(async\s+)?(function\b|\([^()]*\)\s*=>|[A-Za-z_$][\w$]*\s*=>)",
)


def is_function_source(text: str) -> bool:
    """True if `text` is function source rather than a bare expression."""
    return bool(_FUNCTION_SOURCE.match(text))


@dataclass(frozen=True)
class RemoteCallable:
    """
    A predicate ready to be reconstructed inside an execution context.

    `source` is function source text for script worlds, or a Python callable
    for in-process worlds. `args` are bound at construction and passed on
    every invocation.
    """

    source: str | Callable[..., Any]
    args: tuple[Any, ...] = ()

    @classmethod
    def from_function(cls, fn: str | Callable[..., Any], args: tuple[Any, ...] = ()) -> RemoteCallable:
        if isinstance(fn, str):
            if is_function_source(fn):
                return cls(source=fn, args=args)
            return cls(source=f"() => {{return ({fn});}}", args=args)
        if callable(fn):
            return cls(source=fn, args=args)
        raise TypeError(f"predicate must be source text or a callable, got {type(fn).__name__}")


@dataclass(frozen=True)
class PollerScripts:
    """
    Page functions that build and drive the injected poller artifact.

    Factories receive (util, [root | interval,] predicate_source, *args) and
    return the poller; start/stop/result receive the poller.
    """

    raf: Any
    mutation: Any
    interval: Any
    start: Any
    stop: Any
    result: Any


@runtime_checkable
class RemoteHandle(Protocol):
    """Reference to a value living inside an execution context."""

    async def evaluate(self, page_function: Any, *args: Any) -> Any:
        ...

    async def evaluate_handle(self, page_function: Any, *args: Any) -> RemoteHandle:
        ...

    async def json_value(self) -> Any:
        ...

    async def dispose(self) -> None:
        ...


class ExecutionWorld(Protocol):
    """
    Execution-context provider consumed by WaitTask.

    One world per frame; its current context may be replaced (navigation) or
    lost for good (detach). The world calls task_manager.rerun_all() after a
    replacement and task_manager.terminate_all() when no replacement will come.
    """

    task_manager: TaskManager
    bound_functions: dict[str, Callable[..., Any]]
    scripts: PollerScripts

    async def execution_context(self) -> Any:
        ...

    async def evaluate(self, page_function: Any, *args: Any) -> Any:
        ...

    async def evaluate_handle(self, page_function: Any, *args: Any) -> RemoteHandle:
        ...

    async def poller_util(self) -> RemoteHandle:
        ...

    async def add_binding_to_context(self, context: Any, name: str) -> None:
        ...


class BindingRegistry:
    """
    Names exposed into one execution context.

    Concurrent requests for the same name share a single exposure; a failed
    exposure is forgotten so the next request tries again.
    """

    def __init__(self) -> None:
        self._exposed: dict[str, asyncio.Future[None]] = {}

    def __contains__(self, name: object) -> bool:
        pending = self._exposed.get(name)  # type: ignore[arg-type]
        return pending is not None and pending.done() and not pending.cancelled() and pending.exception() is None

    async def expose(self, name: str, exposer: Callable[[], Awaitable[None]]) -> None:
        pending = self._exposed.get(name)
        if pending is None:
            pending = asyncio.ensure_future(exposer())
            self._exposed[name] = pending
        try:
            await asyncio.shield(pending)
        except Exception:
            if self._exposed.get(name) is pending:
                del self._exposed[name]
            raise
