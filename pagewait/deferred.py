from __future__ import annotations

import asyncio
from collections.abc import Generator
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class Deferred(Generic[T]):
    """
    Single-assignment future.

    resolve()/reject() commit at most once; later calls are no-ops. Awaiting
    the deferred any number of times yields the same settlement, and
    cancelling one awaiter never cancels the shared result.

    Usage:
        result = Deferred()
        result.resolve(42)
        result.reject(RuntimeError("late"))  # ignored
        assert await result == 42
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._future: asyncio.Future[T] = (loop or asyncio.get_running_loop()).create_future()

    def resolve(self, value: T) -> None:
        if self._future.done():
            return
        self._future.set_result(value)

    def reject(self, error: BaseException) -> None:
        if self._future.done():
            return
        self._future.set_exception(error)
        # Mark retrieved; awaiters still receive the error.
        self._future.exception()

    def settled(self) -> bool:
        return self._future.done()

    def rejected(self) -> bool:
        if not self._future.done():
            return False
        return self._future.cancelled() or self._future.exception() is not None

    @property
    def future(self) -> asyncio.Future[T]:
        return self._future

    def __await__(self) -> Generator[Any, None, T]:
        return asyncio.shield(self._future).__await__()

    def __repr__(self) -> str:
        if not self._future.done():
            state = "pending"
        elif self._future.cancelled():
            state = "cancelled"
        elif self._future.exception() is not None:
            state = f"rejected({self._future.exception()!r})"
        else:
            state = f"fulfilled({self._future.result()!r})"
        return f"<Deferred {state}>"
