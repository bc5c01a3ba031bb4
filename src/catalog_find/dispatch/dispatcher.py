"""Per-leaf dispatch: render the command, run or queue it, run the id statement."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

import rich_click as click

from catalog_find.dispatch.queue import TaskQueue
from catalog_find.dispatch.runner import RetryableRunner
from catalog_find.dispatch.template import CommandTemplate
from catalog_find.traversal.paths import PathFilter

if TYPE_CHECKING:
    from catalog_find.catalog.session import CatalogSession
    from catalog_find.traversal.walker import TraversalContext

logger = logging.getLogger(__name__)


class Dispatcher:
    """Turns one visited leaf into zero, one, or two follow-up actions.

    The path command is rendered from the template and either run right away
    (serial) or handed to the task queue (parallel). The path filter only
    gates the command. The id statement runs for every visited object, always
    on the coordinator through the catalog session; workers never touch the
    session.
    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        runner: RetryableRunner,
        template: CommandTemplate | None = None,
        queue: TaskQueue | None = None,
        session: CatalogSession | None = None,
        statement: str | None = None,
        path_filter: PathFilter | None = None,
        test: bool = False,
        emit: Callable[[str], None] = click.echo,
    ) -> None:
        if statement is not None and session is None:
            raise ValueError("statement dispatch requires a catalog session")
        self.runner = runner
        self.template = template
        self.queue = queue
        self.session = session
        self.statement = statement
        self.path_filter = path_filter or PathFilter()
        self.test = test
        self._emit = emit

    @property
    def has_actions(self) -> bool:
        return self.template is not None or self.statement is not None

    def dispatch(
        self,
        context: TraversalContext,
        path: str,
        object_id: int,
        *,
        with_statement: bool = True,
    ) -> None:
        context.cancel.raise_if_cancelled()
        leaf = self.path_filter.leaf_for(path)
        if leaf is not None:
            self.dispatch_command(context, leaf)
        if with_statement:
            self.dispatch_statement(context, object_id, path)

    def dispatch_command(self, context: TraversalContext, leaf: str) -> None:
        if self.template is None:
            return
        command = self.template.render(leaf)
        context.last_command = command
        context.counters.commands += 1
        if self.queue is not None:
            self.queue.enqueue(command)
            return
        self.runner.run(command)

    def dispatch_statement(self, context: TraversalContext, object_id: int, path: str) -> None:
        if self.statement is None or self.session is None:
            return
        logger.debug("SQL %r for %s (id=%d)", self.statement, path, object_id)
        if self.test:
            self._emit(f"{self.statement} [id={object_id}]")
            return
        self.session.execute_for_id(self.statement, object_id)
        context.counters.statements += 1

    def flush(self) -> None:
        if self.queue is not None:
            self.queue.flush()
