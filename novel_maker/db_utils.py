"""Database helper utilities for ensuring schema consistency."""
from __future__ import annotations

from typing import Set

from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError

from .extensions import db


def _get_column_names(table_name: str) -> Set[str]:
    inspector = inspect(db.engine)
    return {column["name"] for column in inspector.get_columns(table_name)}


def ensure_database_schema() -> None:
    """Ensure that the snapshot table exists and carries every column.

    Runs on every application start. Databases created before the
    ``version`` column existed get it added with a default of 0, which makes
    the store migrate their payload on the next load.
    """

    try:
        inspector = inspect(db.engine)
        if "store_snapshots" not in inspector.get_table_names():
            db.create_all()
            return

        columns = _get_column_names("store_snapshots")
        if "version" not in columns:
            with db.engine.begin() as connection:
                connection.execute(
                    text("ALTER TABLE store_snapshots ADD COLUMN version INTEGER NOT NULL DEFAULT 0")
                )
    except SQLAlchemyError:
        # Do not continue in a partially configured state.
        raise
