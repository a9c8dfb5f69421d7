"""
Playwright execution world.

Wraps a Playwright async Page as an ExecutionWorld for WaitTask:

    from playwright.async_api import async_playwright
    from pagewait.backends import PlaywrightWorld
    from pagewait import wait_for_function

    async with async_playwright() as p:
        browser = await p.chromium.launch()
        page = await browser.new_page()
        world = PlaywrightWorld(page).attach()
        await page.goto("https://example.com")
        handle = await wait_for_function(world, "document.title.length > 0", polling="mutation")

Playwright reports navigation races as free-text errors; they are translated
into ExecutionContextError here so WaitTask never inspects message text.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, TypeVar

from playwright.async_api import Error as PlaywrightError

from ..errors import ContextErrorKind, ExecutionContextError, FrameDetachedError, context_error_kind
from ..remote import BindingRegistry
from ..scripts import JS_POLLER_SCRIPTS, poller_source
from ..wait_task import TaskManager

if TYPE_CHECKING:
    from playwright.async_api import Frame, JSHandle, Page

logger = logging.getLogger(__name__)

T = TypeVar("T")


@contextmanager
def _translate_errors() -> Iterator[None]:
    try:
        yield
    except PlaywrightError as exc:
        kind = context_error_kind(str(exc))
        if kind is None:
            raise
        raise ExecutionContextError(kind, str(exc)) from exc


def _page_function(page_function: Any) -> str:
    if not isinstance(page_function, str):
        raise TypeError(
            f"Playwright evaluates JavaScript source, got {type(page_function).__name__}"
        )
    return page_function


def _unwrap(arg: Any) -> Any:
    return arg.handle if isinstance(arg, PlaywrightHandle) else arg


class PlaywrightHandle:
    """RemoteHandle over a Playwright JSHandle."""

    def __init__(self, handle: JSHandle) -> None:
        self.handle = handle

    async def evaluate(self, page_function: Any, *args: Any) -> Any:
        with _translate_errors():
            return await self.handle.evaluate(_page_function(page_function), [_unwrap(a) for a in args])

    async def evaluate_handle(self, page_function: Any, *args: Any) -> PlaywrightHandle:
        with _translate_errors():
            handle = await self.handle.evaluate_handle(
                _page_function(page_function), [_unwrap(a) for a in args]
            )
        return PlaywrightHandle(handle)

    async def json_value(self) -> Any:
        with _translate_errors():
            return await self.handle.json_value()

    async def dispose(self) -> None:
        with _translate_errors():
            await self.handle.dispose()

    def __repr__(self) -> str:
        return f"<PlaywrightHandle {self.handle!r}>"


class PlaywrightWorld:
    """
    ExecutionWorld over a Playwright Page's main frame.

    Each main-frame navigation starts a new context generation: the injected
    poller artifact is re-injected lazily and in-flight waits are rerun once
    attach() has subscribed to page events.
    """

    def __init__(self, page: Page) -> None:
        self.page = page
        self.task_manager = TaskManager()
        self.bound_functions: dict[str, Callable[..., Any]] = {}
        self.scripts = JS_POLLER_SCRIPTS
        # Playwright keeps exposed functions across navigations, so the
        # registry lives as long as the page.
        self.bindings = BindingRegistry()
        self.generation = 0
        self._util: PlaywrightHandle | None = None
        self._util_generation = -1
        self._util_lock = asyncio.Lock()
        self._detached = False
        self._background: set[asyncio.Task[Any]] = set()

    def attach(self) -> PlaywrightWorld:
        """Follow navigations and page close. Returns self for chaining."""
        self.page.on("framenavigated", self._on_frame_navigated)
        self.page.on("close", self._on_close)
        return self

    @property
    def detached(self) -> bool:
        return self._detached

    async def execution_context(self) -> Frame:
        if self._detached or self.page.is_closed():
            raise ExecutionContextError(ContextErrorKind.DETACHED)
        return self.page.main_frame

    async def evaluate(self, page_function: Any, *args: Any) -> Any:
        await self.execution_context()
        with _translate_errors():
            return await self.page.evaluate(_page_function(page_function), [_unwrap(a) for a in args])

    async def evaluate_handle(self, page_function: Any, *args: Any) -> PlaywrightHandle:
        await self.execution_context()
        with _translate_errors():
            handle = await self.page.evaluate_handle(
                _page_function(page_function), [_unwrap(a) for a in args]
            )
        return PlaywrightHandle(handle)

    async def poller_util(self) -> PlaywrightHandle:
        async with self._util_lock:
            if self._util is None or self._util_generation != self.generation:
                generation = self.generation
                await self.execution_context()
                with _translate_errors():
                    handle = await self.page.evaluate_handle(poller_source())
                self._util = PlaywrightHandle(handle)
                self._util_generation = generation
            return self._util

    async def add_binding_to_context(self, context: Any, name: str) -> None:
        fn = self.bound_functions[name]

        async def expose() -> None:
            with _translate_errors():
                await self.page.expose_function(name, fn)

        await self.bindings.expose(name, expose)

    def context_replaced(self) -> None:
        """A new main-frame document exists; rerun interrupted waits."""
        self.generation += 1
        util, self._util = self._util, None
        if util is not None:
            self._spawn(self._dispose_util(util))
        logger.debug("playwright world: context generation %s", self.generation)
        if len(self.task_manager):
            self._spawn(self.task_manager.rerun_all())

    async def detach(self) -> None:
        if self._detached:
            return
        self._detached = True
        self._util = None
        logger.debug("playwright world: detached")
        await self.task_manager.terminate_all(FrameDetachedError())

    async def _dispose_util(self, util: PlaywrightHandle) -> None:
        try:
            await util.dispose()
        except Exception:
            # Gone with the old document after a cross-document navigation.
            logger.debug("playwright world: stale poller util not disposed", exc_info=True)

    def _on_frame_navigated(self, frame: Frame) -> None:
        if frame is self.page.main_frame:
            self.context_replaced()

    def _on_close(self, *_: Any) -> None:
        self._spawn(self.detach())

    def _spawn(self, coro: Awaitable[T]) -> None:
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
