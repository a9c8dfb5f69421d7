"""
Error taxonomy for waits.

Fatal errors reach the caller exactly once through the task result.
Recoverable context errors (the context was replaced by a navigation) never
reach the caller; the task waits for a rerun against the new context instead.

Execution-context providers signal context failures with a tagged
ExecutionContextError. Only provider adapters look at transport message text,
through context_error_kind().
"""

from __future__ import annotations

from enum import Enum


class PageWaitError(RuntimeError):
    reason_code = "wait_failed"

    def __init__(self, message: str, *, reason_code: str | None = None) -> None:
        super().__init__(message)
        if reason_code is not None:
            self.reason_code = reason_code


class WaitTimeoutError(PageWaitError, TimeoutError):
    reason_code = "timeout"

    def __init__(self, timeout_ms: int) -> None:
        super().__init__(f"Waiting failed: {timeout_ms}ms exceeded")
        self.timeout_ms = timeout_ms


class FrameDetachedError(PageWaitError):
    reason_code = "frame_detached"

    def __init__(self, message: str = "Waiting failed: Frame detached") -> None:
        super().__init__(message)


class PollingStoppedError(PageWaitError):
    reason_code = "polling_stopped"

    def __init__(self, message: str = "Polling stopped") -> None:
        super().__init__(message)


class PollingNotStartedError(PageWaitError):
    reason_code = "polling_not_started"

    def __init__(self, message: str = "Polling never started.") -> None:
        super().__init__(message)


class ContextErrorKind(str, Enum):
    """Why an execution context could not serve a call."""

    # The frame owning the context is gone and no replacement will come.
    DETACHED = "detached"
    # The context was torn down (navigation); a fresh one is expected.
    DESTROYED = "destroyed"
    # A handle or id refers to a context that has already been replaced.
    STALE = "stale"


class ExecutionContextError(PageWaitError):
    reason_code = "execution_context"

    def __init__(self, kind: ContextErrorKind, message: str | None = None) -> None:
        super().__init__(message or _DEFAULT_MESSAGES[kind])
        self.kind = kind

    @property
    def recoverable(self) -> bool:
        return self.kind in (ContextErrorKind.DESTROYED, ContextErrorKind.STALE)


_DEFAULT_MESSAGES = {
    ContextErrorKind.DETACHED: "Execution context is not available in detached frame",
    ContextErrorKind.DESTROYED: "Execution context was destroyed",
    ContextErrorKind.STALE: "Cannot find context with specified id",
}

_MESSAGE_KINDS: tuple[tuple[str, ContextErrorKind], ...] = (
    ("execution context is not available in detached frame", ContextErrorKind.DETACHED),
    ("frame was detached", ContextErrorKind.DETACHED),
    ("has been closed", ContextErrorKind.DETACHED),
    ("execution context was destroyed", ContextErrorKind.DESTROYED),
    ("most likely because of a navigation", ContextErrorKind.DESTROYED),
    ("cannot find context with specified id", ContextErrorKind.STALE),
)


def context_error_kind(message: str) -> ContextErrorKind | None:
    """
    Map a transport error message onto a context error kind.

    Browser backends report navigation races as free text, e.g.:
    - "Execution context was destroyed, most likely because of a navigation"
    - "Cannot find context with specified id"
    - "Target page, context or browser has been closed"

    Returns None when the message is not about the execution context.
    """
    msg = message.lower()
    for needle, kind in _MESSAGE_KINDS:
        if needle in msg:
            return kind
    return None
