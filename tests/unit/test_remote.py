from __future__ import annotations

import asyncio

import pytest

from pagewait.remote import BindingRegistry, RemoteCallable, is_function_source


@pytest.mark.parametrize(
    "text",
    [
        "() => document.body",
        "(a, b) => a === b",
        "el => el.isConnected",
        "async () => await fetchReady()",
        "function ready() { return true; }",
        "  function () { return 1; }",
    ],
)
def test_function_source_is_kept(text: str) -> None:
    assert is_function_source(text) is True
    assert RemoteCallable.from_function(text).source == text


@pytest.mark.parametrize("text", ["document.readyState === 'complete'", "window.__ready", "(1 + 2)"])
def test_expression_is_wrapped(text: str) -> None:
    assert is_function_source(text) is False
    assert RemoteCallable.from_function(text).source == f"() => {{return ({text});}}"


def test_callable_passes_through_with_args() -> None:
    def ready(a, b):
        return a and b

    remote = RemoteCallable.from_function(ready, (1, 2))
    assert remote.source is ready
    assert remote.args == (1, 2)


def test_rejects_other_types() -> None:
    with pytest.raises(TypeError):
        RemoteCallable.from_function(42)  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_concurrent_exposures_share_one_call() -> None:
    registry = BindingRegistry()
    calls = {"n": 0}

    async def exposer() -> None:
        calls["n"] += 1
        await asyncio.sleep(0.01)

    await asyncio.gather(*(registry.expose("notify", exposer) for _ in range(3)))
    await registry.expose("notify", exposer)

    assert calls["n"] == 1
    assert "notify" in registry


@pytest.mark.asyncio
async def test_failed_exposure_is_retried() -> None:
    registry = BindingRegistry()
    attempts = {"n": 0}

    async def flaky() -> None:
        attempts["n"] += 1
        if attempts["n"] == 1:
            raise RuntimeError("context went away")

    with pytest.raises(RuntimeError):
        await registry.expose("notify", flaky)
    assert "notify" not in registry

    await registry.expose("notify", flaky)
    assert attempts["n"] == 2
    assert "notify" in registry
