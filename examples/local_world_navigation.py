"""
Example: waits against the in-process LocalWorld.

Shows the three polling modes and what happens to an in-flight wait when
its context is replaced (rerun) or lost for good (fails as detached).

Usage:
  python examples/local_world_navigation.py
"""

import asyncio

from pagewait import (
    FrameDetachedError,
    LocalWorld,
    Node,
    WaitTask,
    WaitTaskOptions,
    wait_for_function,
)


async def main() -> None:
    world = LocalWorld()
    await world.create_context()

    # Mutation polling: re-evaluates once per batch of document changes.
    async def render() -> None:
        await asyncio.sleep(0.05)
        world.document.append_child(Node("done"))

    rendering = asyncio.ensure_future(render())
    handle = await wait_for_function(world, lambda: world.document.find("done"), polling="mutation")
    print("mutation:", await handle.json_value())
    await rendering

    # Interval polling survives a navigation: the wait is rerun in the new context.
    jobs = {"left": 3}

    def finished() -> bool:
        jobs["left"] -= 1
        return jobs["left"] <= 0

    task = WaitTask(world, WaitTaskOptions(polling=20, timeout=2_000), finished)
    await asyncio.sleep(0.01)
    await world.navigate()
    print("interval after navigation:", await (await task).json_value(), task.state.value)

    # Detaching fails whatever is still pending.
    pending = WaitTask(world, WaitTaskOptions(polling="raf"), lambda: False)
    await asyncio.sleep(0.01)
    await world.detach()
    try:
        await pending
    except FrameDetachedError as exc:
        print("raf after detach:", exc)


if __name__ == "__main__":
    asyncio.run(main())
