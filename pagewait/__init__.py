"""
pagewait - wait until a predicate holds inside a remotely controlled page.

    from pagewait import LocalWorld, WaitTask, WaitTaskOptions, wait_for_function
"""

from .config import WaitDefaults
from .deferred import Deferred
from .errors import (
    ContextErrorKind,
    ExecutionContextError,
    FrameDetachedError,
    PageWaitError,
    PollingNotStartedError,
    PollingStoppedError,
    WaitTimeoutError,
    context_error_kind,
)
from .host import EventLoopHost, MutationRecord, Node
from .local import LocalExecutionContext, LocalHandle, LocalWorld
from .models import WaitTaskOptions, WaitTaskState
from .pollers import IntervalPoller, MutationPoller, Poller, PollerHost, RAFPoller
from .remote import BindingRegistry, ExecutionWorld, PollerScripts, RemoteCallable, RemoteHandle
from .wait import wait_for_function
from .wait_task import TaskManager, WaitTask

__version__ = "0.1.0"

__all__ = [
    # Results and errors
    "Deferred",
    "PageWaitError",
    "WaitTimeoutError",
    "FrameDetachedError",
    "PollingStoppedError",
    "PollingNotStartedError",
    "ExecutionContextError",
    "ContextErrorKind",
    "context_error_kind",
    # Configuration
    "WaitTaskOptions",
    "WaitTaskState",
    "WaitDefaults",
    # Pollers
    "Poller",
    "PollerHost",
    "MutationPoller",
    "RAFPoller",
    "IntervalPoller",
    "EventLoopHost",
    "Node",
    "MutationRecord",
    # Waits
    "WaitTask",
    "TaskManager",
    "wait_for_function",
    # Execution worlds
    "ExecutionWorld",
    "RemoteHandle",
    "RemoteCallable",
    "PollerScripts",
    "BindingRegistry",
    "LocalWorld",
    "LocalExecutionContext",
    "LocalHandle",
]
