"""SQLModel tables for the subset of the iRODS catalog (ICAT) the walker reads."""

from __future__ import annotations

from sqlalchemy import BigInteger, Column, PrimaryKeyConstraint
from sqlmodel import Field, SQLModel


class CatalogCollection(SQLModel, table=True):
    __tablename__ = "r_coll_main"  # type: ignore[bad-override]

    coll_id: int = Field(sa_column=Column(BigInteger, primary_key=True, autoincrement=False))
    parent_coll_name: str = Field(default="/")
    coll_name: str = Field(index=True, unique=True)


class CatalogDataObject(SQLModel, table=True):
    __tablename__ = "r_data_main"  # type: ignore[bad-override]
    __table_args__ = (PrimaryKeyConstraint("data_id", "data_repl_num"),)

    data_id: int = Field(sa_column=Column(BigInteger, nullable=False))
    coll_id: int = Field(sa_column=Column(BigInteger, nullable=False, index=True))
    data_name: str = Field(index=True)
    data_repl_num: int = 0
    data_size: int = Field(default=0, sa_column=Column(BigInteger, nullable=False, default=0))
    resc_name: str = Field(default="demoResc")
