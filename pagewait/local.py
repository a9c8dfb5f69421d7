"""
In-process execution world.

LocalWorld plays the part a browser frame plays for PlaywrightWorld: it owns
one execution context at a time, and that context can be replaced
(navigate) or lost for good (detach). Page functions are Python callables and
the pollers are the ones in pagewait.pollers, hosted on an EventLoopHost per
context. It is the reference provider for tests and for waiting on
Python-side state that changes over time.

Usage:
    world = LocalWorld()
    await world.create_context()
    done = {"value": False}
    task = WaitTask(world, WaitTaskOptions(polling=50, timeout=1_000), lambda: done["value"])
    ...
    await world.navigate()   # in-flight waits are rerun in the new context
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from .deferred import Deferred
from .errors import ContextErrorKind, ExecutionContextError, FrameDetachedError
from .host import EventLoopHost, Node
from .pollers import IntervalPoller, MutationPoller, RAFPoller
from .remote import BindingRegistry, PollerScripts
from .wait_task import TaskManager

logger = logging.getLogger(__name__)


def create_function(fn: Any) -> Callable[..., Awaitable[Any]]:
    """Turn a local predicate (sync or async callable) into an async callable."""
    if isinstance(fn, str):
        raise TypeError("in-process worlds evaluate Python callables, not source text")
    if not callable(fn):
        raise TypeError(f"predicate must be callable, got {type(fn).__name__}")

    async def call(*args: Any) -> Any:
        result = fn(*args)
        if inspect.isawaitable(result):
            result = await result
        return result

    return call


@dataclass(frozen=True)
class LocalPollerUtil:
    """What the injected artifact provides inside a local context."""

    host: EventLoopHost
    document: Node

    def create_function(self, fn: Any) -> Callable[..., Awaitable[Any]]:
        return create_function(fn)


def _raf_poller(util: LocalPollerUtil, fn: Any, *args: Any) -> RAFPoller[Any]:
    fun = util.create_function(fn)
    return RAFPoller(lambda: fun(*args), util.host)


def _mutation_poller(util: LocalPollerUtil, root: Node | None, fn: Any, *args: Any) -> MutationPoller[Any]:
    fun = util.create_function(fn)
    return MutationPoller(lambda: fun(*args), root or util.document, util.host)


def _interval_poller(util: LocalPollerUtil, ms: float, fn: Any, *args: Any) -> IntervalPoller[Any]:
    fun = util.create_function(fn)
    return IntervalPoller(lambda: fun(*args), ms, util.host)


LOCAL_POLLER_SCRIPTS = PollerScripts(
    raf=_raf_poller,
    mutation=_mutation_poller,
    interval=_interval_poller,
    start=lambda poller: poller.start(),
    stop=lambda poller: poller.stop(),
    result=lambda poller: poller.result(),
)


class LocalHandle:
    """Handle on a value living in a LocalExecutionContext."""

    def __init__(self, context: LocalExecutionContext, value: Any) -> None:
        self._context = context
        self._value = value
        self._disposed = False

    @property
    def context(self) -> LocalExecutionContext:
        return self._context

    def _live_value(self) -> Any:
        if self._disposed:
            raise RuntimeError("handle is disposed")
        if self._context.destroyed:
            raise ExecutionContextError(ContextErrorKind.STALE)
        return self._value

    async def evaluate(self, page_function: Any, *args: Any) -> Any:
        value = self._live_value()
        return await self._context.evaluate(page_function, value, *args, stale_kind=ContextErrorKind.STALE)

    async def evaluate_handle(self, page_function: Any, *args: Any) -> LocalHandle:
        value = await self.evaluate(page_function, *args)
        return LocalHandle(self._context, value)

    async def json_value(self) -> Any:
        return self._live_value()

    async def dispose(self) -> None:
        self._disposed = True

    def __repr__(self) -> str:
        return f"<LocalHandle {self._value!r}>"


class LocalExecutionContext:
    """
    One incarnation of the world's document.

    Destroying it closes its host and makes every in-flight evaluation fail
    with ExecutionContextError(DESTROYED).
    """

    def __init__(self, context_id: int, document: Node, host: EventLoopHost) -> None:
        self.id = context_id
        self.document = document
        self.host = host
        self.bindings = BindingRegistry()
        self.globals: dict[str, Callable[..., Any]] = {}
        self.util = LocalPollerUtil(host=host, document=document)
        self._destroyed: asyncio.Future[None] = host.loop.create_future()

    @property
    def destroyed(self) -> bool:
        return self._destroyed.done()

    def destroy(self) -> None:
        if self._destroyed.done():
            return
        self._destroyed.set_result(None)
        self.host.close()

    async def evaluate(
        self,
        page_function: Any,
        *args: Any,
        stale_kind: ContextErrorKind = ContextErrorKind.DESTROYED,
    ) -> Any:
        if self.destroyed:
            raise ExecutionContextError(stale_kind)
        result = page_function(*[self._unwrap(arg) for arg in args])
        if not inspect.isawaitable(result):
            return result
        call = asyncio.ensure_future(result)
        await asyncio.wait({call, self._destroyed}, return_when=asyncio.FIRST_COMPLETED)
        if call.done():
            return call.result()
        call.cancel()
        raise ExecutionContextError(ContextErrorKind.DESTROYED)

    async def evaluate_handle(self, page_function: Any, *args: Any) -> LocalHandle:
        return LocalHandle(self, await self.evaluate(page_function, *args))

    def install(self, name: str, fn: Callable[..., Any]) -> None:
        self.globals[name] = fn

    def _unwrap(self, arg: Any) -> Any:
        if isinstance(arg, LocalHandle):
            if arg.context is not self:
                raise ExecutionContextError(
                    ContextErrorKind.STALE, "handle belongs to another execution context"
                )
            return arg._live_value()
        return arg

    def __repr__(self) -> str:
        return f"<LocalExecutionContext id={self.id} destroyed={self.destroyed}>"


class LocalWorld:
    """
    In-process ExecutionWorld.

    Attributes:
        task_manager: Registry of waits bound to this world
        bound_functions: Named functions exposed into every context on demand
        scripts: Page functions driving the local pollers
    """

    def __init__(
        self,
        document_factory: Callable[[], Node] | None = None,
        frame_interval_ms: float | None = None,
    ) -> None:
        self.task_manager = TaskManager()
        self.bound_functions: dict[str, Callable[..., Any]] = {}
        self.scripts = LOCAL_POLLER_SCRIPTS
        self._document_factory = document_factory or (lambda: Node("document"))
        self._frame_interval_ms = frame_interval_ms
        self._context: LocalExecutionContext | None = None
        self._context_waiter: Deferred[LocalExecutionContext] | None = None
        self._context_count = 0
        self._detached = False
        self._background: set[asyncio.Task[Any]] = set()

    @property
    def context(self) -> LocalExecutionContext | None:
        return self._context

    @property
    def document(self) -> Node | None:
        return self._context.document if self._context is not None else None

    @property
    def detached(self) -> bool:
        return self._detached

    async def execution_context(self) -> LocalExecutionContext:
        if self._detached:
            raise ExecutionContextError(ContextErrorKind.DETACHED)
        if self._context is not None:
            return self._context
        if self._context_waiter is None:
            self._context_waiter = Deferred()
        return await self._context_waiter

    async def create_context(self) -> LocalExecutionContext:
        """Install a fresh context and rerun in-flight waits against it."""
        if self._detached:
            raise ExecutionContextError(ContextErrorKind.DETACHED)
        if self._context is not None:
            self.destroy_context()

        self._context_count += 1
        host_kwargs: dict[str, Any] = {}
        if self._frame_interval_ms is not None:
            host_kwargs["frame_interval_ms"] = self._frame_interval_ms
        context = LocalExecutionContext(
            self._context_count, self._document_factory(), EventLoopHost(**host_kwargs)
        )
        self._context = context
        logger.debug("local world: context %s created", context.id)

        waiter, self._context_waiter = self._context_waiter, None
        if waiter is not None:
            waiter.resolve(context)

        if len(self.task_manager):
            self._spawn(self.task_manager.rerun_all())
        return context

    def destroy_context(self) -> None:
        """Tear down the current context; a replacement is expected."""
        context, self._context = self._context, None
        if context is not None:
            logger.debug("local world: context %s destroyed", context.id)
            context.destroy()

    async def navigate(self) -> LocalExecutionContext:
        self.destroy_context()
        return await self.create_context()

    async def detach(self) -> None:
        """Lose the frame for good and fail every pending wait."""
        if self._detached:
            return
        self._detached = True
        self.destroy_context()
        waiter, self._context_waiter = self._context_waiter, None
        if waiter is not None:
            waiter.reject(ExecutionContextError(ContextErrorKind.DETACHED))
        logger.debug("local world: detached")
        await self.task_manager.terminate_all(FrameDetachedError())

    async def evaluate(self, page_function: Any, *args: Any) -> Any:
        context = await self.execution_context()
        return await context.evaluate(page_function, *args)

    async def evaluate_handle(self, page_function: Any, *args: Any) -> LocalHandle:
        context = await self.execution_context()
        return await context.evaluate_handle(page_function, *args)

    async def poller_util(self) -> LocalHandle:
        context = await self.execution_context()
        return LocalHandle(context, context.util)

    async def add_binding_to_context(self, context: LocalExecutionContext, name: str) -> None:
        fn = self.bound_functions[name]

        async def expose() -> None:
            if context.destroyed:
                raise ExecutionContextError(ContextErrorKind.STALE)
            context.install(name, fn)

        await context.bindings.expose(name, expose)

    def _spawn(self, coro: Any) -> None:
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
