from __future__ import annotations

import asyncio

import pytest

from pagewait.errors import FrameDetachedError
from pagewait.local import LocalWorld
from pagewait.models import WaitTaskOptions
from pagewait.wait_task import TaskManager, WaitTask


class MockTask:
    def __init__(self, manager: TaskManager) -> None:
        self.manager = manager
        self.terminated_with: list[BaseException | None] = []
        self.reruns = 0
        manager.add(self)  # type: ignore[arg-type]

    async def terminate(self, error: BaseException | None = None) -> None:
        self.manager.delete(self)  # type: ignore[arg-type]
        self.terminated_with.append(error)

    async def rerun(self) -> None:
        self.reruns += 1


@pytest.mark.asyncio
async def test_terminate_all_passes_error_and_clears() -> None:
    manager = TaskManager()
    tasks = [MockTask(manager) for _ in range(3)]
    err = RuntimeError("gone")

    await manager.terminate_all(err)

    assert len(manager) == 0
    assert all(task.terminated_with == [err] for task in tasks)


@pytest.mark.asyncio
async def test_rerun_all_reruns_every_registered_task() -> None:
    manager = TaskManager()
    tasks = [MockTask(manager) for _ in range(2)]

    await manager.rerun_all()

    assert [task.reruns for task in tasks] == [1, 1]
    assert len(manager) == 2


def test_delete_is_idempotent() -> None:
    manager = TaskManager()
    task = MockTask(manager)

    manager.delete(task)  # type: ignore[arg-type]
    manager.delete(task)  # type: ignore[arg-type]

    assert task not in manager
    assert manager.tasks() == []


@pytest.mark.asyncio
async def test_terminate_all_on_real_tasks_rejects_each_result() -> None:
    world = LocalWorld()
    await world.create_context()
    tasks = [WaitTask(world, WaitTaskOptions(polling=10), lambda: False) for _ in range(3)]
    await asyncio.sleep(0.02)

    await world.task_manager.terminate_all(FrameDetachedError())

    assert len(world.task_manager) == 0
    for task in tasks:
        with pytest.raises(FrameDetachedError):
            await task.result
    world.destroy_context()
