"""Controller for the ``find`` CLI command: session lifecycle and cleanup."""

from __future__ import annotations

import logging
import signal
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

import rich_click as click
from sqlalchemy.engine import Connection, Engine, RootTransaction
from sqlalchemy.exc import SQLAlchemyError

from catalog_find.catalog import CursorStream, SortOrder, SqlCatalogSession, build_catalog_engine
from catalog_find.catalog.common import utc_now
from catalog_find.config import Settings, validate_root
from catalog_find.dispatch import (
    CommandExecutor,
    CommandTemplate,
    Dispatcher,
    FailureBudget,
    RetryableRunner,
    RetryPolicy,
    ShellExecutor,
    TaskQueue,
)
from catalog_find.errors import CatalogError, CatalogFindError
from catalog_find.reporting import ConsoleReporter, render_summary_lines
from catalog_find.traversal import TraversalContext, TreeWalker
from catalog_find.traversal.paths import PathFilter
from catalog_find.traversal.walker import CancellationToken, WalkOptions

logger = logging.getLogger(__name__)

_TERMINATION_SIGNALS = ("SIGHUP", "SIGINT", "SIGQUIT", "SIGTERM")


@dataclass(slots=True)
class FindCommand:
    """CLI input for one traversal."""

    root: str
    settings: Settings


@dataclass(slots=True)
class FindResult:
    """Lines to print after a traversal, and the fatal error if it aborted."""

    lines: list[str] = field(default_factory=list)
    error_lines: list[str] = field(default_factory=list)
    error: CatalogFindError | None = None

    @property
    def success(self) -> bool:
        return self.error is None


class FindCliController:
    """Connects to the catalog, walks the tree, and always cleans up.

    The connection and its transaction are owned here: the walk runs inside
    one transaction that is committed on success and rolled back on any
    fatal error, after closing whatever cursors are still open. Counters
    gathered so far are reported on both paths.
    """

    def __init__(
        self,
        *,
        executor_factory: Callable[[], CommandExecutor] = ShellExecutor,
        echo: Callable[..., None] = click.echo,
    ) -> None:
        self._executor_factory = executor_factory
        self._echo = echo

    def run(self, command: FindCommand) -> FindResult:
        settings = command.settings
        settings.validate()
        root = validate_root(command.root)

        context = TraversalContext(budget=FailureBudget(settings.retry.max_failures))
        context.started_at = utc_now()
        result = FindResult()
        engine = build_catalog_engine(settings.catalog.url)
        try:
            with _signal_handlers(context.cancel), _connect(engine) as connection:
                self._walk(
                    connection=connection,
                    settings=settings,
                    context=context,
                    root=root,
                )
        except CatalogFindError as error:
            logger.error("%s", error)
            result.error = error
            result.error_lines = [
                f"Last path was: '{context.last_path}'",
                f"Last command was: '{context.last_command}'",
            ]
        finally:
            engine.dispose()
            context.finished_at = utc_now()

        if settings.output.summary:
            result.lines = render_summary_lines(
                counters=context.counters,
                started_at=context.started_at,
                finished_at=context.finished_at,
            )
        return result

    def _walk(
        self,
        *,
        connection: Connection,
        settings: Settings,
        context: TraversalContext,
        root: str,
    ) -> None:
        session = SqlCatalogSession(
            connection,
            resource=settings.catalog.resource,
            replica=settings.catalog.replica,
        )
        stream = CursorStream(session)
        try:
            transaction = connection.begin()
        except SQLAlchemyError as error:
            raise CatalogError(f"Cannot begin catalog transaction: {error}") from error
        try:
            walker = self._build_walker(
                settings=settings,
                context=context,
                session=session,
                stream=stream,
            )
            walker.walk(context, root)
        except BaseException:
            stream.close_all()
            _rollback(transaction)
            raise
        try:
            transaction.commit()
        except SQLAlchemyError as error:
            raise CatalogError(f"Error ending catalog transaction: {error}") from error

    def _build_walker(
        self,
        *,
        settings: Settings,
        context: TraversalContext,
        session: SqlCatalogSession,
        stream: CursorStream,
    ) -> TreeWalker:
        path_filter = PathFilter.from_settings(settings.traversal)
        reporter = ConsoleReporter(
            quiet=settings.output.quiet,
            progress_every=settings.output.progress,
            echo=self._echo,
        )
        runner = RetryableRunner(
            executor=self._executor_factory(),
            budget=context.budget,
            policy=RetryPolicy(
                enabled=settings.retry.enabled,
                max_retries=settings.retry.max_retries,
                delay_seconds=settings.retry.delay_seconds,
            ),
            force=settings.dispatch.force,
            test=settings.dispatch.test,
            emit=self._echo,
        )
        template = (
            CommandTemplate(
                settings.dispatch.command,
                max_length=settings.dispatch.max_command_length,
            )
            if settings.dispatch.command is not None
            else None
        )
        queue = (
            TaskQueue(
                runner=runner,
                tasks=settings.dispatch.tasks,
                capacity=settings.task_capacity,
            )
            if settings.dispatch.tasks > 0
            else None
        )
        dispatcher = Dispatcher(
            runner=runner,
            template=template,
            queue=queue,
            session=session,
            statement=settings.dispatch.statement,
            path_filter=path_filter,
            test=settings.dispatch.test,
            emit=self._echo,
        )
        return TreeWalker(
            stream=stream,
            dispatcher=dispatcher,
            reporter=reporter,
            options=WalkOptions(
                page_size=settings.catalog.page_size,
                sort_order=SortOrder(settings.catalog.sort_order),
                dirs_only=settings.traversal.dirs_only,
                max_path_length=settings.traversal.max_path_length,
                list_paths=settings.output.verbose or not dispatcher.has_actions,
                print_ids=settings.output.print_ids,
            ),
            path_filter=path_filter,
        )


@contextmanager
def _connect(engine: Engine) -> Iterator[Connection]:
    try:
        connection = engine.connect()
    except SQLAlchemyError as error:
        raise CatalogError(f"Cannot connect to catalog database: {error}") from error
    try:
        yield connection
    finally:
        connection.close()


def _rollback(transaction: RootTransaction) -> None:
    try:
        transaction.rollback()
    except SQLAlchemyError as error:
        logger.warning("Rolling back catalog transaction failed: %s", error)


@contextmanager
def _signal_handlers(token: CancellationToken) -> Iterator[None]:
    signals = [getattr(signal, name) for name in _TERMINATION_SIGNALS if hasattr(signal, name)]
    originals = {signum: signal.getsignal(signum) for signum in signals}

    def _handler(signum: int, _: object | None) -> None:
        try:
            name = signal.Signals(signum).name
        except ValueError:
            name = str(signum)
        logger.warning("Interrupted by %s, cleaning up and exiting", name)
        token.cancel(name)

    installed = True
    try:
        for signum in signals:
            signal.signal(signum, _handler)
    except ValueError:
        # Signal handlers can only be installed in main thread.
        installed = False
    try:
        yield
    finally:
        if installed:
            for signum, original in originals.items():
                signal.signal(signum, original)
