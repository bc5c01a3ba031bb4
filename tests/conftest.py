"""Shared test fixtures."""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel

from catalog_find.catalog import build_catalog_engine
from catalog_find.catalog.sqlmodel_models import CatalogCollection, CatalogDataObject


class RecordingExecutor:
    """Command executor double: records commands and replays scripted statuses."""

    def __init__(self, statuses: dict[str, list[int]] | None = None) -> None:
        self.statuses = {command: list(values) for command, values in (statuses or {}).items()}
        self.commands: list[str] = []
        self.threads: list[str] = []
        self._lock = threading.Lock()

    def run_shell(self, command: str) -> int:
        with self._lock:
            self.commands.append(command)
            self.threads.append(threading.current_thread().name)
            scripted = self.statuses.get(command)
            if scripted:
                return scripted.pop(0)
        return 0


@pytest.fixture()
def executor() -> RecordingExecutor:
    return RecordingExecutor()


@pytest.fixture()
def catalog_url(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'icat.db'}"


@pytest.fixture()
def catalog_engine(catalog_url: str) -> Iterator[Engine]:
    engine = build_catalog_engine(catalog_url)
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def seed_catalog(
    catalog_engine: Engine,
) -> Callable[[dict[str, list[tuple[str, int]]]], dict[str, int]]:
    """Insert collections with ``(name, size)`` data objects; returns collection ids."""

    def _seed(tree: dict[str, list[tuple[str, int]]]) -> dict[str, int]:
        ids: dict[str, int] = {}
        data_id = 10_000
        with Session(catalog_engine) as session:
            for coll_id, (coll_name, files) in enumerate(tree.items(), start=1):
                parent = coll_name.rsplit("/", 1)[0] or "/"
                session.add(
                    CatalogCollection(
                        coll_id=coll_id,
                        parent_coll_name=parent,
                        coll_name=coll_name,
                    ),
                )
                ids[coll_name] = coll_id
                for data_name, data_size in files:
                    data_id += 1
                    session.add(
                        CatalogDataObject(
                            data_id=data_id,
                            coll_id=coll_id,
                            data_name=data_name,
                            data_size=data_size,
                        ),
                    )
            session.commit()
        return ids

    return _seed


@pytest.fixture()
def make_executor() -> Callable[..., RecordingExecutor]:
    return RecordingExecutor
