from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any

from .config import WaitDefaults
from .models import PollingMode, WaitTaskOptions
from .remote import ExecutionWorld, RemoteHandle
from .wait_task import WaitTask


async def wait_for_function(
    world: ExecutionWorld,
    page_function: str | Callable[..., Any],
    *args: Any,
    polling: PollingMode | None = None,
    timeout: int | None = None,
    root: Any | None = None,
    bindings: Iterable[Callable[..., Any]] | None = None,
) -> RemoteHandle:
    """
    Wait until `page_function(*args)` returns a truthy value inside `world`.

    Args:
        world: Execution world to evaluate in (LocalWorld, PlaywrightWorld, ...)
        page_function: Function source, expression source, or a Python
                       callable for in-process worlds
        *args: Arguments passed to the predicate on every evaluation
        polling: "raf", "mutation" or interval milliseconds (default from env)
        timeout: Milliseconds before failing, 0 for none (default from env)
        root: Handle restricting mutation observation
        bindings: Named functions to expose into the context first

    Returns:
        Handle on the first truthy value

    Raises:
        WaitTimeoutError: timeout elapsed first
        FrameDetachedError: the world was detached
        Exception: whatever the predicate raised
    """
    if polling is None or timeout is None:
        defaults = WaitDefaults.from_env()
    else:
        defaults = WaitDefaults()
    options = WaitTaskOptions(
        polling=defaults.polling if polling is None else polling,
        timeout=defaults.timeout_ms if timeout is None else timeout,
        root=root,
        bindings=tuple(bindings or ()),
    )
    task: WaitTask[Any] = WaitTask(world, options, page_function, *args)
    return await task.result
