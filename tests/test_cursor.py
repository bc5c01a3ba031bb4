from __future__ import annotations

import math

import allure
import pytest
from sqlmodel import Session

from catalog_find.catalog import CursorStream, SortOrder, SqlCatalogSession
from catalog_find.catalog.sqlmodel_models import CatalogDataObject
from catalog_find.errors import StateError

pytestmark = [
    allure.epic("Catalog Traversal"),
    allure.feature("Paged Cursors"),
]


def test_file_cursor_pages_through_all_rows(catalog_engine, seed_catalog) -> None:
    files = [(f"file{index:05d}", index) for index in range(2500)]
    ids = seed_catalog({"/zone/big": files})

    with catalog_engine.connect() as connection:
        stream = CursorStream(SqlCatalogSession(connection))
        handle = stream.open_files(ids["/zone/big"], SortOrder.ASCENDING, 1024)

        counts = []
        while True:
            batch = stream.fetch_next(handle)
            counts.append(batch.row_count)
            if batch.row_count == 0:
                break
        stream.close(handle)

    assert counts == [1024, 1024, 452, 0]
    assert stream.fetches == math.ceil(2500 / 1024) + 1
    assert handle.field_count == 0
    assert stream.open_handles == ()


def test_file_cursor_sorting_and_fields(catalog_engine, seed_catalog) -> None:
    ids = seed_catalog({"/zone/a": [("b.txt", 2), ("c.txt", 3), ("a.txt", 1)]})

    with catalog_engine.connect() as connection:
        stream = CursorStream(SqlCatalogSession(connection))
        handle = stream.open_files(ids["/zone/a"], SortOrder.DESCENDING, 10)
        batch = stream.fetch_next(handle)

        assert [row[2] for row in batch.rows] == ["c.txt", "b.txt", "a.txt"]
        assert handle.field_count == 3
        stream.close(handle)


def test_directory_cursor_matches_root_and_descendants_only(
    catalog_engine,
    seed_catalog,
) -> None:
    seed_catalog({"/zone/a": [], "/zone/a/sub": [], "/zone/ab": [], "/zone/b": []})

    with catalog_engine.connect() as connection:
        stream = CursorStream(SqlCatalogSession(connection))
        handle = stream.open_directories("/zone/a", SortOrder.ASCENDING, 10)
        batch = stream.fetch_next(handle)
        stream.close(handle)

    assert [row[1] for row in batch.rows] == ["/zone/a", "/zone/a/sub"]


def test_fetch_on_closed_handle_is_state_error(catalog_engine, seed_catalog) -> None:
    seed_catalog({"/zone/a": [("f", 1)]})

    with catalog_engine.connect() as connection:
        stream = CursorStream(SqlCatalogSession(connection))
        handle = stream.open_directories("/zone", SortOrder.NONE, 10)
        stream.close(handle)

        with pytest.raises(StateError, match="Fetch on closed"):
            stream.fetch_next(handle)
        with pytest.raises(StateError, match="Close on closed"):
            stream.close(handle)


def test_close_all_releases_open_handles(catalog_engine, seed_catalog) -> None:
    ids = seed_catalog({"/zone/a": [("f", 1)]})

    with catalog_engine.connect() as connection:
        stream = CursorStream(SqlCatalogSession(connection))
        outer = stream.open_directories("/zone", SortOrder.NONE, 10)
        inner = stream.open_files(ids["/zone/a"], SortOrder.NONE, 10)

        stream.close_all()

    assert outer.closed
    assert inner.closed
    assert stream.open_handles == ()


def test_unique_sort_collapses_replicas_and_filters_resource(catalog_engine, seed_catalog) -> None:
    ids = seed_catalog({"/zone/a": [("f", 5), ("g", 1)]})
    with Session(catalog_engine) as session:
        session.add(
            CatalogDataObject(
                data_id=10_001,
                coll_id=ids["/zone/a"],
                data_name="f",
                data_repl_num=1,
                data_size=7,
                resc_name="otherResc",
            ),
        )
        session.commit()

    with catalog_engine.connect() as connection:
        stream = CursorStream(SqlCatalogSession(connection))
        plain = stream.fetch_next(stream.open_files(ids["/zone/a"], SortOrder.ASCENDING, 10))
        unique = stream.fetch_next(
            stream.open_files(ids["/zone/a"], SortOrder.ASCENDING_UNIQUE, 10),
        )
        stream.close_all()

        filtered_stream = CursorStream(SqlCatalogSession(connection, resource="otherResc"))
        filtered = filtered_stream.fetch_next(
            filtered_stream.open_files(ids["/zone/a"], SortOrder.NONE, 10),
        )
        filtered_stream.close_all()

    assert [row[2] for row in plain.rows] == ["f", "f", "g"]
    assert unique.rows == [(10_001, 7, "f"), (10_002, 1, "g")]
    assert [(row[0], row[2]) for row in filtered.rows] == [(10_001, "f")]
