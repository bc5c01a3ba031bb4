"""Error taxonomy for traversal and command dispatch.

Every error that aborts a run derives from ``CatalogFindError`` and carries the
process exit code the CLI should use. Tolerated command failures (force mode)
and exhausted retries are logged by the runner and never raised.
"""

from __future__ import annotations

EXIT_FAILURE = 1
EXIT_CONFIG = 3
EXIT_COMMAND = 4
EXIT_INTERRUPTED = 5
EXIT_BUDGET = 6
EXIT_DISPATCH = 7
EXIT_CATALOG = 8


class CatalogFindError(RuntimeError):
    """Base class for fatal errors."""

    exit_code = EXIT_FAILURE


class ConfigError(CatalogFindError):
    """Inconsistent or invalid settings."""

    exit_code = EXIT_CONFIG


class TemplateError(CatalogFindError):
    """Command template is malformed or cannot be rendered for a leaf."""

    exit_code = EXIT_CONFIG


class PathTooLong(CatalogFindError):
    """Composed pathname exceeds the configured maximum length."""


class StateError(CatalogFindError):
    """Operation attempted on a cursor handle in the wrong state."""


class CatalogError(CatalogFindError):
    """Catalog query or cursor operation failed."""

    exit_code = EXIT_CATALOG


class CommandFailed(CatalogFindError):
    """Command returned nonzero status and failures are not tolerated."""

    exit_code = EXIT_COMMAND

    def __init__(self, command: str, status: int) -> None:
        super().__init__(f"Command returned nonzero status {status}: {command!r}")
        self.command = command
        self.status = status


class CommandInterrupted(CatalogFindError):
    """Command was terminated by an interrupt-class signal."""

    exit_code = EXIT_INTERRUPTED

    def __init__(self, command: str, signal_name: str) -> None:
        super().__init__(f"Command interrupted by {signal_name}: {command!r}")
        self.command = command
        self.signal_name = signal_name


class FailureBudgetExhausted(CatalogFindError):
    """More retry failures than the configured maximum."""

    exit_code = EXIT_BUDGET

    def __init__(self, limit: int) -> None:
        super().__init__(f"There were more than {limit} command retries - abort")
        self.limit = limit


class DispatchError(CatalogFindError):
    """A batch worker could not be launched."""

    exit_code = EXIT_DISPATCH


class JoinError(CatalogFindError):
    """Waiting for a batch worker failed."""

    exit_code = EXIT_DISPATCH


class QueueInvariantError(CatalogFindError):
    """Task queue found a non-empty task where an empty one was expected."""

    exit_code = EXIT_DISPATCH


class Interrupted(CatalogFindError):
    """Run was cancelled by a termination signal."""

    exit_code = EXIT_INTERRUPTED

    def __init__(self, signal_name: str) -> None:
        super().__init__(f"Interrupted by {signal_name}")
        self.signal_name = signal_name
