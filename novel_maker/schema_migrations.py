"""Versioned upgrades for persisted store snapshots.

Each step is a pure function that upgrades one raw project dictionary to the
version it is keyed by. Steps must be idempotent so that replaying them over
already-upgraded data (for example when importing an export made by a newer
build) leaves the data unchanged.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Callable, Dict, Mapping

from .errors import ParseError

LOGGER = logging.getLogger(__name__)

CURRENT_SCHEMA_VERSION = 2

_REFERENCE_COLLECTIONS = ("worldSettings", "terms", "events", "items")


def _introduce_reference_collections(project: Dict[str, Any]) -> Dict[str, Any]:
    """Version 2: world-building collections and the multi-memo list."""

    upgraded = dict(project)
    for key in _REFERENCE_COLLECTIONS:
        if not isinstance(upgraded.get(key), list):
            upgraded[key] = []

    legacy_memo = upgraded.pop("memo", None)
    if not isinstance(upgraded.get("memos"), list):
        memos = []
        if isinstance(legacy_memo, str) and legacy_memo.strip():
            stamp = upgraded.get("updatedAt") or upgraded.get("createdAt")
            memos.append(
                {
                    "id": str(uuid.uuid4()),
                    "title": "",
                    "content": legacy_memo,
                    "createdAt": stamp,
                    "updatedAt": stamp,
                }
            )
        upgraded["memos"] = memos

    return upgraded


PROJECT_MIGRATIONS: Dict[int, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
    2: _introduce_reference_collections,
}


def migrate_project(project: Mapping[str, Any], from_version: int = 0) -> Dict[str, Any]:
    upgraded = dict(project)
    for version in sorted(PROJECT_MIGRATIONS):
        if version > from_version:
            upgraded = PROJECT_MIGRATIONS[version](upgraded)
    return upgraded


def migrate_snapshot(state: Mapping[str, Any], from_version: int) -> Dict[str, Any]:
    """Upgrade a raw snapshot ``state`` stored at ``from_version`` to the current schema."""

    if from_version > CURRENT_SCHEMA_VERSION:
        raise ParseError(
            f"Snapshot schema version {from_version} is newer than supported version "
            f"{CURRENT_SCHEMA_VERSION}."
        )

    migrated = dict(state)
    raw_projects = migrated.get("projects")
    if not isinstance(raw_projects, list):
        raw_projects = []

    migrated["projects"] = [
        migrate_project(project, from_version) if isinstance(project, Mapping) else project
        for project in raw_projects
    ]

    if from_version < CURRENT_SCHEMA_VERSION:
        LOGGER.info(
            "Migrated %d project(s) from schema version %d to %d.",
            len(migrated["projects"]),
            from_version,
            CURRENT_SCHEMA_VERSION,
        )
    return migrated


__all__ = ["CURRENT_SCHEMA_VERSION", "PROJECT_MIGRATIONS", "migrate_project", "migrate_snapshot"]
