"""
Watch primitives for pollers hosted on an asyncio event loop.

EventLoopHost stands in for the document environment of a browser: it offers
structural-change observation, display-refresh callbacks and repeating timers
to the pollers in pagewait.pollers. Structural changes come from an observable
Node tree.

Change records are delivered like a MutationObserver delivers them: records
produced synchronously are queued, and one callback per loop tick receives
the whole batch.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol

from .constants import FRAME_INTERVAL_MS

logger = logging.getLogger(__name__)

MutationListener = Callable[["MutationRecord"], None]


@dataclass(frozen=True)
class MutationRecord:
    type: Literal["childList", "attributes"]
    target: Node
    attribute_name: str | None = None
    added: tuple[Node, ...] = ()
    removed: tuple[Node, ...] = ()


class MutationSource(Protocol):
    def add_mutation_listener(self, listener: MutationListener) -> None:
        ...

    def remove_mutation_listener(self, listener: MutationListener) -> None:
        ...


@dataclass(eq=False)
class Node:
    """Minimal observable tree. Records bubble to every ancestor's listeners."""

    name: str = "node"
    attributes: dict[str, Any] = field(default_factory=dict)
    children: list[Node] = field(default_factory=list)
    parent: Node | None = field(default=None, repr=False)
    _listeners: list[MutationListener] = field(default_factory=list, repr=False)

    def append_child(self, child: Node) -> Node:
        if child.parent is not None:
            child.parent.remove_child(child)
        child.parent = self
        self.children.append(child)
        self._notify(MutationRecord("childList", self, added=(child,)))
        return child

    def remove_child(self, child: Node) -> Node:
        self.children.remove(child)
        child.parent = None
        self._notify(MutationRecord("childList", self, removed=(child,)))
        return child

    def set_attribute(self, name: str, value: Any) -> None:
        self.attributes[name] = value
        self._notify(MutationRecord("attributes", self, attribute_name=name))

    def find(self, name: str) -> Node | None:
        for child in self.children:
            if child.name == name:
                return child
            found = child.find(name)
            if found is not None:
                return found
        return None

    def add_mutation_listener(self, listener: MutationListener) -> None:
        self._listeners.append(listener)

    def remove_mutation_listener(self, listener: MutationListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, record: MutationRecord) -> None:
        node: Node | None = self
        while node is not None:
            for listener in list(node._listeners):
                listener(record)
            node = node.parent


class _MutationObserver:
    def __init__(
        self,
        host: EventLoopHost,
        root: MutationSource,
        callback: Callable[[list[MutationRecord]], Awaitable[None]],
    ) -> None:
        self._host = host
        self._root = root
        self._callback = callback
        self._pending: list[MutationRecord] = []
        self._flush_handle: asyncio.Handle | None = None
        self._connected = True
        root.add_mutation_listener(self._on_record)

    def _on_record(self, record: MutationRecord) -> None:
        if not self._connected:
            return
        self._pending.append(record)
        if self._flush_handle is None:
            self._flush_handle = self._host.loop.call_soon(self._flush)

    def _flush(self) -> None:
        self._flush_handle = None
        if not self._connected or not self._pending:
            return
        records, self._pending = self._pending, []
        self._host.spawn(self._callback(records))

    def disconnect(self) -> None:
        if not self._connected:
            return
        self._connected = False
        self._root.remove_mutation_listener(self._on_record)
        self._pending.clear()
        if self._flush_handle is not None:
            self._flush_handle.cancel()
            self._flush_handle = None
        self._host._observers.discard(self)


class _Interval:
    def __init__(self, host: EventLoopHost, callback: Callable[[], Awaitable[None]], ms: float) -> None:
        self._host = host
        self._callback = callback
        self._delay = max(0.0, ms / 1000)
        self._timer: asyncio.TimerHandle | None = host.loop.call_later(self._delay, self._tick)

    def _tick(self) -> None:
        self._timer = self._host.loop.call_later(self._delay, self._tick)
        self._host.spawn(self._callback())

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None


class EventLoopHost:
    """
    PollerHost backed by the running asyncio loop.

    Every callback invocation runs as its own task. close() cancels timers,
    observers and in-flight callbacks at once, which is what tearing down an
    execution context does to everything scheduled inside it.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop | None = None,
        frame_interval_ms: float = FRAME_INTERVAL_MS,
    ) -> None:
        self.loop = loop or asyncio.get_running_loop()
        self.frame_interval_ms = frame_interval_ms
        self._tasks: set[asyncio.Task[Any]] = set()
        self._frames: set[asyncio.TimerHandle] = set()
        self._intervals: set[_Interval] = set()
        self._observers: set[_MutationObserver] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def spawn(self, coro: Awaitable[Any]) -> asyncio.Task[Any] | None:
        if self._closed:
            if asyncio.iscoroutine(coro):
                coro.close()
            return None
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.debug("host callback failed", exc_info=task.exception())

    def observe(self, root: MutationSource, callback: Callable[..., Awaitable[None]]) -> _MutationObserver:
        self._ensure_open()
        observer = _MutationObserver(self, root, callback)
        self._observers.add(observer)
        return observer

    def request_animation_frame(self, callback: Callable[[], Awaitable[None]]) -> asyncio.TimerHandle:
        self._ensure_open()

        def fire() -> None:
            self._frames.discard(handle)
            self.spawn(callback())

        handle = self.loop.call_later(self.frame_interval_ms / 1000, fire)
        self._frames.add(handle)
        return handle

    def cancel_animation_frame(self, handle: asyncio.TimerHandle) -> None:
        handle.cancel()
        self._frames.discard(handle)

    def set_interval(self, callback: Callable[[], Awaitable[None]], ms: float) -> _Interval:
        self._ensure_open()
        interval = _Interval(self, callback, ms)
        self._intervals.add(interval)
        return interval

    def clear_interval(self, handle: _Interval) -> None:
        handle.cancel()
        self._intervals.discard(handle)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for observer in list(self._observers):
            observer.disconnect()
        for frame in self._frames:
            frame.cancel()
        for interval in self._intervals:
            interval.cancel()
        for task in list(self._tasks):
            task.cancel()
        self._frames.clear()
        self._intervals.clear()
        self._observers.clear()

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("host is closed")
