from __future__ import annotations

import asyncio

import pytest

from pagewait.host import EventLoopHost, MutationRecord, Node


def test_node_records_bubble_to_ancestors() -> None:
    root = Node("document")
    body = root.append_child(Node("body"))
    seen_root: list[MutationRecord] = []
    seen_body: list[MutationRecord] = []
    root.add_mutation_listener(seen_root.append)
    body.add_mutation_listener(seen_body.append)

    item = body.append_child(Node("li"))
    item.set_attribute("checked", True)
    body.remove_child(item)

    assert [r.type for r in seen_root] == ["childList", "attributes", "childList"]
    assert seen_root == seen_body
    assert seen_root[0].added == (item,)
    assert seen_root[1].attribute_name == "checked"
    assert seen_root[2].removed == (item,)
    assert root.find("li") is None


def test_append_child_reparents() -> None:
    a = Node("a")
    b = Node("b")
    child = a.append_child(Node("child"))
    b.append_child(child)
    assert child.parent is b
    assert a.children == []


@pytest.mark.asyncio
async def test_observer_delivers_one_batch_per_tick() -> None:
    host = EventLoopHost()
    root = Node("document")
    batches: list[list[MutationRecord]] = []

    async def on_mutations(records):
        batches.append(records)

    host.observe(root, on_mutations)
    for i in range(3):
        root.set_attribute("n", i)
    await asyncio.sleep(0.01)

    root.append_child(Node("late"))
    await asyncio.sleep(0.01)

    assert [len(batch) for batch in batches] == [3, 1]
    host.close()


@pytest.mark.asyncio
async def test_disconnect_drops_queued_records() -> None:
    host = EventLoopHost()
    root = Node()
    batches: list = []

    async def on_mutations(records):
        batches.append(records)

    observer = host.observe(root, on_mutations)
    root.set_attribute("x", 1)
    observer.disconnect()
    await asyncio.sleep(0.01)

    assert batches == []
    host.close()


@pytest.mark.asyncio
async def test_interval_repeats_until_cleared() -> None:
    host = EventLoopHost()
    ticks = {"n": 0}

    async def tick():
        ticks["n"] += 1

    handle = host.set_interval(tick, 5)
    await asyncio.sleep(0.06)
    host.clear_interval(handle)
    seen = ticks["n"]
    await asyncio.sleep(0.03)

    assert seen >= 2
    assert ticks["n"] == seen
    host.close()


@pytest.mark.asyncio
async def test_close_cancels_everything_and_refuses_new_watches() -> None:
    host = EventLoopHost(frame_interval_ms=5)
    fired: list[str] = []

    async def frame():
        fired.append("frame")

    async def tick():
        fired.append("tick")

    host.request_animation_frame(frame)
    host.set_interval(tick, 5)
    host.close()
    await asyncio.sleep(0.03)

    assert fired == []
    assert host.closed is True
    with pytest.raises(RuntimeError):
        host.request_animation_frame(frame)
