"""Persistence backends for :class:`~novel_maker.store.ProjectStore` snapshots."""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from .errors import ParseError
from .extensions import db
from .models import StoreSnapshot


@dataclass
class PersistedSnapshot:
    version: int
    state: Dict[str, Any]


class SnapshotRepository:
    """Interface for loading and saving one named snapshot."""

    def load(self, name: str) -> Optional[PersistedSnapshot]:
        raise NotImplementedError

    def save(self, name: str, version: int, state: Dict[str, Any]) -> None:
        raise NotImplementedError


class InMemorySnapshotRepository(SnapshotRepository):
    def __init__(self, snapshots: Optional[Dict[str, PersistedSnapshot]] = None) -> None:
        self.snapshots: Dict[str, PersistedSnapshot] = dict(snapshots or {})
        self.save_count = 0

    def load(self, name: str) -> Optional[PersistedSnapshot]:
        snapshot = self.snapshots.get(name)
        if snapshot is None:
            return None
        return PersistedSnapshot(version=snapshot.version, state=copy.deepcopy(snapshot.state))

    def save(self, name: str, version: int, state: Dict[str, Any]) -> None:
        self.snapshots[name] = PersistedSnapshot(version=version, state=copy.deepcopy(state))
        self.save_count += 1


class SqlSnapshotRepository(SnapshotRepository):
    """Stores snapshots in the ``store_snapshots`` table; requires an app context."""

    def load(self, name: str) -> Optional[PersistedSnapshot]:
        row = db.session.get(StoreSnapshot, name)
        if row is None:
            return None
        try:
            state = json.loads(row.payload)
        except json.JSONDecodeError as exc:
            raise ParseError(f"Stored snapshot '{name}' is not valid JSON: {exc.msg}") from exc
        return PersistedSnapshot(version=row.version, state=state)

    def save(self, name: str, version: int, state: Dict[str, Any]) -> None:
        payload = json.dumps(state, ensure_ascii=False)
        try:
            row = db.session.get(StoreSnapshot, name)
            if row is None:
                row = StoreSnapshot(name=name)
                db.session.add(row)
            row.version = version
            row.payload = payload
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            raise


__all__ = [
    "InMemorySnapshotRepository",
    "PersistedSnapshot",
    "SnapshotRepository",
    "SqlSnapshotRepository",
]
