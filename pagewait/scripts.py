"""
Page functions driving the injected poller artifact (injected/poller.js).

Playwright evaluates a function with a single argument, so every factory
takes its arguments as one array: [util, (root | ms,) source, ...args].
"""

from __future__ import annotations

from functools import lru_cache
from importlib import resources

from .remote import PollerScripts

RAF_POLLER = """([{RAFPoller, createFunction}, source, ...args]) => {
  const fn = createFunction(source);
  return new RAFPoller(() => fn(...args));
}"""

MUTATION_POLLER = """([{MutationPoller, createFunction}, root, source, ...args]) => {
  const fn = createFunction(source);
  return new MutationPoller(() => fn(...args), root || document);
}"""

INTERVAL_POLLER = """([{IntervalPoller, createFunction}, ms, source, ...args]) => {
  const fn = createFunction(source);
  return new IntervalPoller(() => fn(...args), ms);
}"""

START_POLLER = "poller => poller.start()"
STOP_POLLER = "poller => poller.stop()"
POLLER_RESULT = "poller => poller.result()"

JS_POLLER_SCRIPTS = PollerScripts(
    raf=RAF_POLLER,
    mutation=MUTATION_POLLER,
    interval=INTERVAL_POLLER,
    start=START_POLLER,
    stop=STOP_POLLER,
    result=POLLER_RESULT,
)


@lru_cache(maxsize=1)
def poller_source() -> str:
    """Source of the injected artifact; evaluates to its utility object."""
    return resources.files("pagewait.injected").joinpath("poller.js").read_text(encoding="utf-8")
