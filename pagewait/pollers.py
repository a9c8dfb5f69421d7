"""
Pollers evaluated inside an execution context.

Each poller evaluates its predicate once on start(); only if that result is
falsy does it arm its watch mechanism:

- MutationPoller: re-evaluates once per batch of structural changes under root
- RAFPoller: re-evaluates on every display refresh
- IntervalPoller: re-evaluates on a repeating timer

The first truthy value resolves result() and disarms the watch. stop() rejects
an unsettled result with PollingStoppedError and disarms; it is idempotent.

The watch primitives come from a PollerHost (see pagewait.host). Browser
contexts run the same logic from injected/poller.js.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, Generic, Protocol, TypeVar

from .deferred import Deferred
from .errors import PollingNotStartedError, PollingStoppedError

T = TypeVar("T")

Predicate = Callable[[], Awaitable[Any]]
WatchCallback = Callable[..., Awaitable[None]]


class Observer(Protocol):
    def disconnect(self) -> None:
        ...


class PollerHost(Protocol):
    def observe(self, root: Any, callback: WatchCallback) -> Observer:
        ...

    def request_animation_frame(self, callback: WatchCallback) -> Any:
        ...

    def cancel_animation_frame(self, handle: Any) -> None:
        ...

    def set_interval(self, callback: WatchCallback, ms: float) -> Any:
        ...

    def clear_interval(self, handle: Any) -> None:
        ...


class Poller(Protocol[T]):
    async def start(self) -> None:
        ...

    async def stop(self) -> None:
        ...

    def result(self) -> Deferred[T]:
        ...


class _HostedPoller(Generic[T]):
    def __init__(self, fn: Predicate, host: PollerHost) -> None:
        self._fn = fn
        self._host = host
        self._deferred: Deferred[T] | None = None

    def _started(self) -> Deferred[T]:
        if self._deferred is None:
            raise PollingNotStartedError()
        return self._deferred

    async def start(self) -> None:
        if self._deferred is not None:
            raise RuntimeError("Polling already started.")
        deferred = self._deferred = Deferred()
        try:
            result = await self._fn()
        except Exception as exc:
            deferred.reject(exc)
            raise
        if result:
            deferred.resolve(result)
            return
        if deferred.settled():
            # stopped while the first evaluation was in flight
            return
        self._arm(deferred)

    def _arm(self, deferred: Deferred[T]) -> None:
        raise NotImplementedError

    def _disarm(self) -> None:
        pass

    async def _check(self, deferred: Deferred[T]) -> bool:
        """Evaluate once from a watch callback; True once settled."""
        if deferred.settled():
            return True
        try:
            result = await self._fn()
        except Exception as exc:
            deferred.reject(exc)
            await self.stop()
            return True
        if not result:
            return deferred.settled()
        deferred.resolve(result)
        await self.stop()
        return True

    async def stop(self) -> None:
        deferred = self._started()
        if not deferred.settled():
            deferred.reject(PollingStoppedError())
        self._disarm()

    def result(self) -> Deferred[T]:
        return self._started()


class MutationPoller(_HostedPoller[T]):
    def __init__(self, fn: Predicate, root: Any, host: PollerHost) -> None:
        super().__init__(fn, host)
        self._root = root
        self._observer: Observer | None = None

    def _arm(self, deferred: Deferred[T]) -> None:
        async def on_mutations(*_records: Any) -> None:
            await self._check(deferred)

        self._observer = self._host.observe(self._root, on_mutations)

    def _disarm(self) -> None:
        if self._observer is not None:
            self._observer.disconnect()
            self._observer = None


class RAFPoller(_HostedPoller[T]):
    def __init__(self, fn: Predicate, host: PollerHost) -> None:
        super().__init__(fn, host)
        self._frame: Any = None

    def _arm(self, deferred: Deferred[T]) -> None:
        async def on_frame() -> None:
            self._frame = None
            if not await self._check(deferred):
                self._frame = self._host.request_animation_frame(on_frame)

        self._frame = self._host.request_animation_frame(on_frame)

    def _disarm(self) -> None:
        if self._frame is not None:
            self._host.cancel_animation_frame(self._frame)
            self._frame = None


class IntervalPoller(_HostedPoller[T]):
    def __init__(self, fn: Predicate, ms: float, host: PollerHost) -> None:
        super().__init__(fn, host)
        self._ms = ms
        self._interval: Any = None

    def _arm(self, deferred: Deferred[T]) -> None:
        async def on_tick() -> None:
            await self._check(deferred)

        self._interval = self._host.set_interval(on_tick, self._ms)

    def _disarm(self) -> None:
        if self._interval is not None:
            self._host.clear_interval(self._interval)
            self._interval = None
