"""Paged cursor handles and the stream that fetches them batch by batch."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from catalog_find.errors import CatalogError, StateError

if TYPE_CHECKING:
    from sqlalchemy.engine import Result
    from sqlalchemy.sql import Select

    from catalog_find.catalog.session import CatalogSession, SortOrder

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CursorHandle:
    """One open paged query and its last fetched batch."""

    session: Any
    label: str
    query: Select[Any] | None
    page_size: int
    result: Result[Any] | None = None
    rows: list[tuple[Any, ...]] = field(default_factory=list)
    row_count: int = 0
    field_count: int = 0
    closed: bool = False


@dataclass(slots=True)
class BatchResult:
    """Rows returned by one fetch; ``row_count == 0`` means exhausted."""

    rows: list[tuple[Any, ...]]
    row_count: int


class CursorStream:
    """Open, fetch, and close paged cursors on one catalog session.

    The stream remembers which handles are still open so that an aborted
    traversal can release them in its cleanup scope.
    """

    def __init__(self, session: CatalogSession) -> None:
        self.session = session
        self.fetches = 0
        self._open: list[CursorHandle] = []

    @property
    def open_handles(self) -> tuple[CursorHandle, ...]:
        return tuple(self._open)

    def open_directories(
        self,
        root: str,
        sort_order: SortOrder,
        page_size: int,
    ) -> CursorHandle:
        handle = self.session.open_directory_cursor(root, sort_order, page_size)
        self._open.append(handle)
        return handle

    def open_files(self, parent_id: int, sort_order: SortOrder, page_size: int) -> CursorHandle:
        handle = self.session.open_file_cursor(parent_id, sort_order, page_size)
        self._open.append(handle)
        return handle

    def fetch_next(self, handle: CursorHandle) -> BatchResult:
        if handle.closed:
            raise StateError(f"Fetch on closed {handle.label} cursor")
        rows = self.session.fetch(handle)
        if len(rows) > handle.page_size:
            raise CatalogError(
                f"Fetch on {handle.label} cursor returned {len(rows)} rows, "
                f"page size is {handle.page_size}",
            )
        handle.rows = rows
        handle.row_count = len(rows)
        if rows:
            handle.field_count = len(rows[0])
        self.fetches += 1
        if handle.row_count:
            logger.debug("FETCH %d FROM %s: %d", handle.page_size, handle.label, handle.row_count)
        return BatchResult(rows=rows, row_count=handle.row_count)

    def close(self, handle: CursorHandle) -> None:
        if handle.closed:
            raise StateError(f"Close on closed {handle.label} cursor")
        try:
            self.session.close(handle)
        finally:
            handle.closed = True
            handle.rows = []
            handle.row_count = 0
            handle.field_count = 0
            handle.result = None
            self._open = [item for item in self._open if item is not handle]

    def close_all(self) -> None:
        """Close every handle still open, innermost first, logging failures."""

        for handle in reversed(self.open_handles):
            try:
                self.close(handle)
            except CatalogError as error:
                logger.warning("Closing %s cursor failed during cleanup: %s", handle.label, error)
