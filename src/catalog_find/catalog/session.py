"""Catalog session: directory and file queries over SQLAlchemy streaming results."""

from __future__ import annotations

import logging
from enum import IntEnum
from typing import Any, Protocol

from sqlalchemy import Select, func, or_, select, text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from catalog_find.catalog.cursor import CursorHandle
from catalog_find.catalog.sqlmodel_models import CatalogCollection, CatalogDataObject
from catalog_find.errors import CatalogError

logger = logging.getLogger(__name__)

ID_PARAMETER = "id"


class SortOrder(IntEnum):
    """Sort option for both directory and file queries."""

    NONE = 0
    ASCENDING = 1
    DESCENDING = 2
    ASCENDING_UNIQUE = 3
    DESCENDING_UNIQUE = 4

    @property
    def unique(self) -> bool:
        return self in (SortOrder.ASCENDING_UNIQUE, SortOrder.DESCENDING_UNIQUE)

    @property
    def descending(self) -> bool:
        return self in (SortOrder.DESCENDING, SortOrder.DESCENDING_UNIQUE)


class CatalogSession(Protocol):
    """Catalog operations the traversal core depends on."""

    def open_directory_cursor(
        self,
        root: str,
        sort_order: SortOrder,
        page_size: int,
    ) -> CursorHandle: ...

    def open_file_cursor(
        self,
        parent_id: int,
        sort_order: SortOrder,
        page_size: int,
    ) -> CursorHandle: ...

    def fetch(self, handle: CursorHandle) -> list[tuple[Any, ...]]: ...

    def close(self, handle: CursorHandle) -> None: ...

    def execute_for_id(self, statement: str, object_id: int) -> None: ...


class SqlCatalogSession:
    """Catalog session bound to one SQLAlchemy connection.

    Cursors are streamed with ``stream_results`` and read with
    ``fetchmany(page_size)``; on PostgreSQL this is a server-side cursor, so
    only one page is held in memory at a time. The caller owns the connection
    and its transaction.
    """

    def __init__(
        self,
        connection: Connection,
        *,
        resource: str | None = None,
        replica: str | None = None,
    ) -> None:
        self.connection = connection
        self.resource = resource
        self.replica = replica

    def directory_query(self, root: str, sort_order: SortOrder) -> Select[Any]:
        name = CatalogCollection.coll_name
        query = select(CatalogCollection.coll_id, name)
        if root == "/":
            query = query.where(name.startswith("/", autoescape=True))
        else:
            query = query.where(or_(name == root, name.startswith(f"{root}/", autoescape=True)))
        if sort_order is SortOrder.NONE:
            return query
        return query.order_by(name.desc() if sort_order.descending else name.asc())

    def file_query(self, parent_id: int, sort_order: SortOrder) -> Select[Any]:
        data_name = CatalogDataObject.data_name
        if sort_order.unique:
            query = select(
                func.min(CatalogDataObject.data_id).label("data_id"),
                func.max(CatalogDataObject.data_size).label("data_size"),
                data_name,
            )
        else:
            query = select(
                CatalogDataObject.data_id,
                CatalogDataObject.data_size,
                data_name,
            )
        query = query.where(CatalogDataObject.coll_id == parent_id)
        if self.resource is not None:
            query = query.where(CatalogDataObject.resc_name == self.resource)
        if self.replica is not None:
            query = query.where(CatalogDataObject.data_repl_num == int(self.replica))
        if sort_order.unique:
            query = query.group_by(data_name)
        if sort_order is SortOrder.NONE:
            return query
        return query.order_by(data_name.desc() if sort_order.descending else data_name.asc())

    def open_directory_cursor(
        self,
        root: str,
        sort_order: SortOrder,
        page_size: int,
    ) -> CursorHandle:
        return self._open(
            label="directories",
            query=self.directory_query(root, sort_order),
            page_size=page_size,
        )

    def open_file_cursor(
        self,
        parent_id: int,
        sort_order: SortOrder,
        page_size: int,
    ) -> CursorHandle:
        return self._open(
            label=f"files of collection {parent_id}",
            query=self.file_query(parent_id, sort_order),
            page_size=page_size,
        )

    def fetch(self, handle: CursorHandle) -> list[tuple[Any, ...]]:
        if handle.result is None:
            raise CatalogError(f"No result set behind {handle.label} cursor")
        try:
            rows = handle.result.fetchmany(handle.page_size)
        except SQLAlchemyError as error:
            raise CatalogError(f"Error fetching from {handle.label} cursor: {error}") from error
        return [tuple(row) for row in rows]

    def close(self, handle: CursorHandle) -> None:
        if handle.result is None:
            return
        try:
            handle.result.close()
        except SQLAlchemyError as error:
            raise CatalogError(f"Error closing {handle.label} cursor: {error}") from error

    def execute_for_id(self, statement: str, object_id: int) -> None:
        """Run a statement with ``:id`` bound to the object id."""

        try:
            self.connection.execute(text(statement), {ID_PARAMETER: object_id})
        except SQLAlchemyError as error:
            raise CatalogError(
                f"Error executing statement {statement!r} for id {object_id}: {error}",
            ) from error

    def _open(self, *, label: str, query: Select[Any], page_size: int) -> CursorHandle:
        logger.debug("Declare %s cursor: %s", label, query)
        try:
            result = self.connection.execute(
                query,
                execution_options={"stream_results": True, "max_row_buffer": page_size},
            )
        except SQLAlchemyError as error:
            raise CatalogError(f"Error opening {label} cursor: {error}") from error
        return CursorHandle(
            session=self,
            label=label,
            query=query,
            page_size=page_size,
            result=result,
            field_count=len(result.keys()),
        )
