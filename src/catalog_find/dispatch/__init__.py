"""Command rendering, retrying execution, and the parallel task queue."""

from catalog_find.dispatch.dispatcher import Dispatcher
from catalog_find.dispatch.executor import CommandExecutor, ShellExecutor
from catalog_find.dispatch.queue import Task, TaskQueue
from catalog_find.dispatch.runner import ExitOutcome, FailureBudget, RetryableRunner, RetryPolicy
from catalog_find.dispatch.template import Arity, CommandTemplate

__all__ = [
    "Arity",
    "CommandExecutor",
    "CommandTemplate",
    "Dispatcher",
    "ExitOutcome",
    "FailureBudget",
    "RetryPolicy",
    "RetryableRunner",
    "ShellExecutor",
    "Task",
    "TaskQueue",
]
