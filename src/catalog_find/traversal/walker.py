"""Two-level catalog traversal: collections, then data objects in each."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Protocol

from catalog_find.catalog.cursor import BatchResult, CursorHandle, CursorStream
from catalog_find.catalog.session import SortOrder
from catalog_find.dispatch.runner import FailureBudget
from catalog_find.errors import Interrupted
from catalog_find.traversal.paths import PathFilter, compose_path

if TYPE_CHECKING:
    from catalog_find.dispatch.dispatcher import Dispatcher

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class WalkCounters:
    """Counters reported at the end of a run, or when it is aborted."""

    rows: int = 0
    directories: int = 0
    files: int = 0
    total_bytes: int = 0
    malformed: int = 0
    fetches: int = 0
    commands: int = 0
    statements: int = 0


class CancellationToken:
    """Set from a signal handler, checked before each fetch and dispatch."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self.signal_name: str | None = None

    def cancel(self, signal_name: str) -> None:
        self.signal_name = signal_name
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise Interrupted(self.signal_name or "cancellation")


@dataclass(slots=True)
class TraversalContext:
    """Run-wide state passed explicitly to the walker and dispatcher."""

    budget: FailureBudget
    counters: WalkCounters = field(default_factory=WalkCounters)
    cancel: CancellationToken = field(default_factory=CancellationToken)
    last_path: str = "none"
    last_command: str = "none"
    started_at: datetime | None = None
    finished_at: datetime | None = None


class ReportSink(Protocol):
    def info(self, line: str) -> None: ...

    def message(self, line: str) -> None: ...

    def fetched(self, fetches: int) -> None: ...


@dataclass(slots=True)
class WalkOptions:
    """Traversal switches resolved from settings."""

    page_size: int = 1024
    sort_order: SortOrder = SortOrder.NONE
    dirs_only: bool = False
    max_path_length: int = 65_536
    list_paths: bool = False
    print_ids: bool = False


class TreeWalker:
    """Drives the outer directory cursor and one inner file cursor at a time.

    Every collection row either becomes a leaf itself (directories-only mode)
    or opens a file cursor scoped to that collection; every file row becomes
    the leaf ``collection/name``. The encoding check applies to file rows
    only. Cursors are closed in the order they were opened; after the outer
    cursor is exhausted the dispatcher is flushed so a partially filled task
    queue still runs.
    """

    def __init__(
        self,
        *,
        stream: CursorStream,
        dispatcher: Dispatcher,
        reporter: ReportSink,
        options: WalkOptions | None = None,
        path_filter: PathFilter | None = None,
    ) -> None:
        self.stream = stream
        self.dispatcher = dispatcher
        self.reporter = reporter
        self.options = options or WalkOptions()
        self.path_filter = path_filter or PathFilter()

    def walk(self, context: TraversalContext, root: str) -> WalkCounters:
        context.cancel.raise_if_cancelled()
        outer = self.stream.open_directories(
            root,
            self.options.sort_order,
            self.options.page_size,
        )
        batch = self._fetch(context, outer, directories=True)
        while batch.row_count > 0:
            for coll_id, coll_name in batch.rows:
                context.last_path = coll_name
                if self.options.dirs_only:
                    self._visit(context, int(coll_id), coll_name, check_encoding=False)
                else:
                    self._walk_files(context, int(coll_id), coll_name)
            batch = self._fetch(context, outer, directories=True)
        self.stream.close(outer)

        context.cancel.raise_if_cancelled()
        self.dispatcher.flush()
        return context.counters

    def _walk_files(self, context: TraversalContext, coll_id: int, directory: str) -> None:
        inner = self.stream.open_files(coll_id, self.options.sort_order, self.options.page_size)
        batch = self._fetch(context, inner, directories=False)
        while batch.row_count > 0:
            for data_id, data_size, data_name in batch.rows:
                context.counters.total_bytes += int(data_size or 0)
                path = compose_path(
                    directory,
                    data_name,
                    max_length=self.options.max_path_length,
                )
                context.last_path = path
                self._visit(context, int(data_id), path)
            batch = self._fetch(context, inner, directories=False)
        self.stream.close(inner)

    def _visit(
        self,
        context: TraversalContext,
        object_id: int,
        path: str,
        *,
        check_encoding: bool = True,
    ) -> None:
        if self.options.list_paths:
            line = self.path_filter.display(path)
            if line is not None:
                self.reporter.info(line)
        if self.options.print_ids:
            self.reporter.info(f"{object_id:>24} {path}")

        if not check_encoding or self.path_filter.encoding is None:
            self.dispatcher.dispatch(context, path, object_id)
            return
        if self.path_filter.is_malformed(path):
            self.reporter.message(path)
            self.dispatcher.dispatch(context, path, object_id, with_statement=False)
            context.counters.malformed += 1

    def _fetch(
        self,
        context: TraversalContext,
        handle: CursorHandle,
        *,
        directories: bool,
    ) -> BatchResult:
        context.cancel.raise_if_cancelled()
        batch = self.stream.fetch_next(handle)
        counters = context.counters
        counters.fetches += 1
        counters.rows += batch.row_count
        if directories:
            counters.directories += batch.row_count
        else:
            counters.files += batch.row_count
        self.reporter.fetched(counters.fetches)
        return batch
