"""
Execution-world backends.

Backends import their browser library on first use, so pagewait itself imports
without one installed:

    from pagewait.backends import PlaywrightWorld
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .playwright import PlaywrightHandle, PlaywrightWorld

__all__ = ["PlaywrightHandle", "PlaywrightWorld"]


def __getattr__(name: str) -> Any:
    if name in __all__:
        from . import playwright

        return getattr(playwright, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
