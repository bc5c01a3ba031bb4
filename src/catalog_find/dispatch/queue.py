"""Fixed-capacity task queue executed as one parallel batch at a time."""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field

from catalog_find.dispatch.runner import RetryableRunner
from catalog_find.errors import (
    CatalogFindError,
    DispatchError,
    JoinError,
    QueueInvariantError,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Task:
    """One worker slot holding up to ``capacity`` rendered commands."""

    no: int
    capacity: int
    commands: list[str] = field(default_factory=list)

    @property
    def filled(self) -> int:
        return len(self.commands)

    @property
    def is_full(self) -> bool:
        return len(self.commands) >= self.capacity

    def clear(self) -> None:
        self.commands.clear()


class TaskQueue:
    """Round-robin batch of N tasks with M command slots each.

    Commands fill Task[0] until full, then Task[1], and so on. Filling the last
    slot of the last task runs the batch: one thread per task executes that
    task's commands in order, the coordinator joins all of them, and the queue
    is reset to empty. A fresh thread pool is used per batch, so two batches
    never overlap. Worker failures are only observed at join time.
    """

    def __init__(self, *, runner: RetryableRunner, tasks: int, capacity: int) -> None:
        if tasks <= 0:
            raise ValueError("tasks must be > 0")
        if capacity <= 0:
            raise ValueError("capacity must be > 0")
        self.runner = runner
        self.tasks = [Task(no=index, capacity=capacity) for index in range(tasks)]
        self.running = False
        self.batches = 0
        self.last_statuses: list[int] = []
        self._next_task = 0

    @property
    def pending(self) -> int:
        return sum(task.filled for task in self.tasks)

    @property
    def is_idle(self) -> bool:
        return not self.running and self.pending == 0 and self._next_task == 0

    def enqueue(self, command: str) -> None:
        if self.running:
            raise QueueInvariantError("Cannot enqueue while the queue is running")

        task = self.tasks[self._next_task]
        if task.is_full:
            self._next_task += 1
            task = self.tasks[self._next_task]
            if task.filled != 0:
                raise QueueInvariantError(
                    f"Moving on to task {task.no} but it has {task.filled} filled slots",
                )
        logger.debug("Filling task %d slot %d", task.no, task.filled)
        task.commands.append(command)

        if self._next_task == len(self.tasks) - 1 and task.is_full:
            logger.debug("Start running the queue with %d tasks", len(self.tasks))
            self._execute_batch()

    def flush(self) -> None:
        """Run a partially filled batch; no-op when empty or already running."""

        if self.tasks[0].filled > 0 and not self.running:
            logger.debug("Flushing the queue")
            self._execute_batch()

    def _execute_batch(self) -> None:
        self.running = True
        try:
            self.last_statuses = self._run_workers()
        finally:
            logger.debug("Clean up queue")
            self.running = False
            self._next_task = 0
            for task in self.tasks:
                task.clear()
            self.batches += 1

    def _run_workers(self) -> list[int]:
        snapshots = [tuple(task.commands) for task in self.tasks]
        futures: list[Future[int]] = []
        with ThreadPoolExecutor(
            max_workers=len(snapshots),
            thread_name_prefix="catalog-find-task",
        ) as pool:
            for index, commands in enumerate(snapshots):
                try:
                    futures.append(pool.submit(self._run_task, index, commands))
                except RuntimeError as error:
                    raise DispatchError(
                        f"Cannot launch task {index} of {len(snapshots)}: {error}",
                    ) from error
            wait(futures)

        statuses: list[int] = []
        first_failure: CatalogFindError | None = None
        for index, future in enumerate(futures):
            error = future.exception()
            if error is None:
                statuses.append(future.result())
                continue
            if not isinstance(error, CatalogFindError):
                raise JoinError(f"Waiting for task {index} failed: {error}") from error
            logger.error("Task %d failed: %s", index, error)
            statuses.append(-1)
            if first_failure is None:
                first_failure = error
        if first_failure is not None:
            raise first_failure
        return statuses

    def _run_task(self, index: int, commands: tuple[str, ...]) -> int:
        logger.debug("Running the queue as task %d, %d cmds", index, len(commands))
        status = 0
        for command in commands:
            status = self.runner.run(command).status
        return status
