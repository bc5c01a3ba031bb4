"""Execute one rendered command with optional bounded retry."""

from __future__ import annotations

import logging
import signal
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import NamedTuple

import rich_click as click

from catalog_find.dispatch.executor import CommandExecutor
from catalog_find.errors import CommandFailed, CommandInterrupted, FailureBudgetExhausted

logger = logging.getLogger(__name__)

INTERRUPT_SIGNALS = frozenset(
    {
        signal.SIGHUP,
        signal.SIGINT,
        signal.SIGQUIT,
        signal.SIGTERM,
    },
)


class ExitOutcome(NamedTuple):
    status: int
    retried_count: int


@dataclass(slots=True)
class RetryPolicy:
    """Retry settings for one runner."""

    enabled: bool = False
    max_retries: int = 3
    delay_seconds: float = 59.0


class FailureBudget:
    """Run-wide ceiling on retried command failures, shared by all workers."""

    def __init__(self, limit: int) -> None:
        if limit <= 0:
            raise ValueError("limit must be > 0")
        self.limit = limit
        self._remaining = limit
        self._lock = threading.Lock()

    @property
    def remaining(self) -> int:
        with self._lock:
            return self._remaining

    @property
    def consumed(self) -> int:
        with self._lock:
            return self.limit - self._remaining

    def consume(self) -> None:
        """Take one unit; raises once the budget is already exhausted."""

        with self._lock:
            if self._remaining <= 0:
                raise FailureBudgetExhausted(self.limit)
            self._remaining -= 1


class RetryableRunner:
    """Runs a command once, or retries it after a fixed delay while it fails.

    Without retry a nonzero status raises ``CommandFailed`` unless ``force`` is
    set. With retry every failed attempt that is followed by another attempt
    consumes one ``FailureBudget`` unit, and a command still failing after the
    last retry is logged and its status returned. A child killed by an
    interrupt-class signal always raises ``CommandInterrupted``.
    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        executor: CommandExecutor,
        budget: FailureBudget,
        policy: RetryPolicy | None = None,
        force: bool = False,
        test: bool = False,
        sleep: Callable[[float], None] = time.sleep,
        emit: Callable[[str], None] = click.echo,
    ) -> None:
        self.executor = executor
        self.budget = budget
        self.policy = policy or RetryPolicy()
        self.force = force
        self.test = test
        self._sleep = sleep
        self._emit = emit

    def run(self, command: str, retry_enabled: bool | None = None) -> ExitOutcome:
        if self.test:
            self._emit(command)
            return ExitOutcome(status=0, retried_count=0)

        retrying = self.policy.enabled if retry_enabled is None else retry_enabled
        status = self._attempt(command)
        if status == 0:
            return ExitOutcome(status=0, retried_count=0)
        if not retrying:
            return self._tolerate_or_raise(command, status)

        retried = 0
        while status != 0 and retried < self.policy.max_retries:
            self.budget.consume()
            logger.warning("Error %d retrying %r", status, command)
            self._sleep(self.policy.delay_seconds)
            status = self._attempt(command)
            retried += 1

        if status != 0:
            logger.warning("Command %r still failing after %d retries", command, retried)
        return ExitOutcome(status=status, retried_count=retried)

    def _attempt(self, command: str) -> int:
        status = self.executor.run_shell(command)
        if status < 0:
            try:
                signum = signal.Signals(-status)
            except ValueError:
                return status
            if signum in INTERRUPT_SIGNALS:
                logger.error("Interrupted %s", command)
                raise CommandInterrupted(command, signum.name)
        return status

    def _tolerate_or_raise(self, command: str, status: int) -> ExitOutcome:
        if not self.force:
            logger.error("Command failed, status %d: %r", status, command)
            raise CommandFailed(command, status)
        logger.warning("Error %d for %r", status, command)
        return ExitOutcome(status=status, retried_count=0)
