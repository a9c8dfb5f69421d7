"""
Wait until a predicate holds inside an execution context.

WaitTask builds a poller in the world's current execution context, starts it
and awaits its first truthy value. Navigation may destroy the context while a
wait is in flight; such failures are recoverable and the task stays
registered with the world's TaskManager until the world reruns it against the
replacement context. The caller sees exactly one settlement per task.

Example:
    task = WaitTask(world, WaitTaskOptions(polling="mutation", timeout=5_000),
                    "document.querySelector('#done')")
    handle = await task.result
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Generator
from typing import Any, Generic, TypeVar

from .deferred import Deferred
from .errors import ContextErrorKind, ExecutionContextError, FrameDetachedError, WaitTimeoutError
from .models import WaitTaskOptions, WaitTaskState
from .remote import ExecutionWorld, RemoteCallable, RemoteHandle

logger = logging.getLogger(__name__)

T = TypeVar("T")

_OUTCOME_STATES = (WaitTaskState.RESOLVED, WaitTaskState.TIMED_OUT, WaitTaskState.FATAL)


class WaitTask(Generic[T]):
    """
    One end-to-end wait. Instances are awaitable.

    The task registers with `world.task_manager` on construction and
    unregisters exactly once, on termination.
    """

    def __init__(
        self,
        world: ExecutionWorld,
        options: WaitTaskOptions,
        fn: str | Callable[..., Any],
        *args: Any,
    ) -> None:
        self._world = world
        self._options = options
        self._polling = options.polling
        self._root = options.root
        self._bindings = options.bindings
        self._predicate = RemoteCallable.from_function(fn, args)

        self._result: Deferred[RemoteHandle] = Deferred()
        self._poller: RemoteHandle | None = None
        self._timeout_handle: asyncio.TimerHandle | None = None
        self._run_count = 0
        self._terminated = False
        self._state = WaitTaskState.INITIALIZING
        self._background: set[asyncio.Task[Any]] = set()

        self._world.task_manager.add(self)

        if options.timeout:
            loop = asyncio.get_running_loop()
            self._timeout_handle = loop.call_later(options.timeout / 1000, self._on_timeout)

        for binding in self._bindings:
            self._world.bound_functions[binding.__name__] = binding

        self._spawn(self.rerun())

    @property
    def result(self) -> Deferred[RemoteHandle]:
        return self._result

    @property
    def state(self) -> WaitTaskState:
        return self._state

    @property
    def terminated(self) -> bool:
        """True once the task is finished, whatever `state` reports."""
        return self._terminated

    @property
    def options(self) -> WaitTaskOptions:
        return self._options

    def __await__(self) -> Generator[Any, None, RemoteHandle]:
        return self._result.__await__()

    async def rerun(self) -> None:
        """Build, start and await a fresh poller in the current context."""
        if self._terminated:
            return
        run = self._run_count = self._run_count + 1
        self._state = WaitTaskState.POLLING

        previous, self._poller = self._poller, None
        if previous is not None:
            await self._dispose_poller(previous)

        poller: RemoteHandle | None = None
        try:
            if self._bindings:
                names = self._options.binding_names
                context = await self._world.execution_context()
                logger.debug("wait task %r: exposing %s", self, ", ".join(names))
                await asyncio.gather(
                    *(self._world.add_binding_to_context(context, name) for name in names)
                )

            poller = await self._create_poller()
            if self._superseded(run):
                await self._dispose_poller(poller)
                return
            self._poller = poller

            scripts = self._world.scripts
            await poller.evaluate(scripts.start)
            value = await poller.evaluate_handle(scripts.result)
            if self._superseded(run):
                await _dispose_quietly(value)
                return

            self._result.resolve(value)
            self._state = WaitTaskState.RESOLVED
            await self.terminate()
        except Exception as exc:
            if self._superseded(run):
                return
            error = self._fatal_error(exc)
            if error is None:
                self._state = WaitTaskState.RECOVERABLE
                logger.debug(
                    "wait task %r: recoverable %s failure, awaiting rerun",
                    self,
                    getattr(exc, "kind", ContextErrorKind.DESTROYED).value,
                )
                return
            self._state = WaitTaskState.FATAL
            await self.terminate(error)

    async def terminate(self, error: BaseException | None = None) -> None:
        """Stop waiting. Idempotent; cleanup failures are never surfaced."""
        self._mark_terminated(error)
        poller, self._poller = self._poller, None
        if poller is not None:
            await self._dispose_poller(poller)

    def _mark_terminated(self, error: BaseException | None) -> None:
        self._world.task_manager.delete(self)

        if self._timeout_handle is not None:
            self._timeout_handle.cancel()
            self._timeout_handle = None

        if error is not None and not self._result.settled():
            logger.debug("wait task %r terminated: %s", self, error)
            self._result.reject(error)

        self._terminated = True
        if self._state not in _OUTCOME_STATES:
            self._state = WaitTaskState.TERMINATED

    def _on_timeout(self) -> None:
        self._timeout_handle = None
        # Reject before yielding so a late success cannot win the race.
        self._state = WaitTaskState.TIMED_OUT
        self._mark_terminated(WaitTimeoutError(self._options.timeout))
        poller, self._poller = self._poller, None
        if poller is not None:
            self._spawn(self._dispose_poller(poller))

    async def _create_poller(self) -> RemoteHandle:
        world = self._world
        scripts = world.scripts
        util = await world.poller_util()
        source, args = self._predicate.source, self._predicate.args

        if self._polling == "raf":
            return await world.evaluate_handle(scripts.raf, util, source, *args)
        if self._polling == "mutation":
            return await world.evaluate_handle(scripts.mutation, util, self._root, source, *args)
        return await world.evaluate_handle(scripts.interval, util, self._polling, source, *args)

    async def _dispose_poller(self, poller: RemoteHandle) -> None:
        try:
            await poller.evaluate(self._world.scripts.stop)
        except Exception:
            # Low-level cleanup; the context is usually already gone.
            logger.debug("wait task %r: poller stop failed", self, exc_info=True)
        await _dispose_quietly(poller)

    def _superseded(self, run: int) -> bool:
        return self._terminated or run != self._run_count

    def _fatal_error(self, error: Exception) -> BaseException | None:
        """Classify a failure; None means recoverable (rerun expected)."""
        if isinstance(error, ExecutionContextError):
            if error.kind is ContextErrorKind.DETACHED:
                # The world should have terminated us on detach; this covers a
                # task created while the frame was already detached.
                detached = FrameDetachedError()
                detached.__cause__ = error
                return detached
            if error.recoverable:
                return None
        return error

    def _spawn(self, coro: Any) -> None:
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    def __repr__(self) -> str:
        return f"<WaitTask polling={self._polling!r} state={self._state.value}>"


async def _dispose_quietly(handle: RemoteHandle) -> None:
    try:
        await handle.dispose()
    except Exception:
        logger.debug("handle dispose failed", exc_info=True)


class TaskManager:
    """
    Registry of in-flight WaitTasks for one execution world.

    Holds tasks by identity only; it never settles their results itself.
    """

    def __init__(self) -> None:
        self._tasks: set[WaitTask[Any]] = set()

    def add(self, task: WaitTask[Any]) -> None:
        self._tasks.add(task)

    def delete(self, task: WaitTask[Any]) -> None:
        self._tasks.discard(task)

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, task: object) -> bool:
        return task in self._tasks

    def tasks(self) -> list[WaitTask[Any]]:
        return list(self._tasks)

    async def terminate_all(self, error: BaseException | None = None) -> None:
        """Terminate every registered task with `error`, then clear."""
        tasks = list(self._tasks)
        self._tasks.clear()
        await asyncio.gather(*(task.terminate(error) for task in tasks))

    async def rerun_all(self) -> None:
        """Rerun every registered task against the current context."""
        await asyncio.gather(*(task.rerun() for task in list(self._tasks)))
