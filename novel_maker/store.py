"""The project store: single source of truth for every writing project.

The store keeps the whole project list in memory and writes a snapshot
through its :class:`~novel_maker.repository.SnapshotRepository` after every
successful mutation.

Mutators that target a project or entity id which does not exist return
without error and without touching any timestamp. This keeps the API
non-throwing for stale ids coming from the HTTP layer. Invalid field values
still raise ``ValueError``, and :meth:`ProjectStore.import_project` raises
:class:`~novel_maker.errors.ParseError`.
"""

from __future__ import annotations

import copy
import logging
import threading
import uuid
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, Callable, List, Optional, Sequence, Type

from flask import current_app

from .entities import (
    ENTITY_COLLECTIONS,
    CharacterPatch,
    EpisodePatch,
    EventPatch,
    ItemPatch,
    MemoPatch,
    Patch,
    Project,
    ProjectPatch,
    TermPatch,
    WorldSettingPatch,
    utcnow,
)
from .repository import SnapshotRepository
from .schema_migrations import CURRENT_SCHEMA_VERSION, migrate_snapshot
from .serialization import dump_project, load_project, state_from_dict, state_to_dict

LOGGER = logging.getLogger(__name__)

DEFAULT_SNAPSHOT_NAME = "novel-maker-storage"
STORE_EXTENSION_KEY = "project_store"


def _new_id() -> str:
    return str(uuid.uuid4())


class ProjectStore:
    def __init__(
        self,
        repository: SnapshotRepository,
        *,
        name: str = DEFAULT_SNAPSHOT_NAME,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = _new_id,
        autosave: bool = True,
    ) -> None:
        self.name = name
        self._repository = repository
        self._clock = clock
        self._id_factory = id_factory
        self._autosave = autosave
        self._lock = threading.RLock()
        self._projects: List[Project] = []
        self._current_project_id: Optional[str] = None
        self._grok_api_key = ""
        self._last_timestamp: Optional[datetime] = None

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------
    def load(self) -> "ProjectStore":
        """Hydrate from the repository, falling back to an empty store.

        Snapshots written by an older schema are migrated and written back
        immediately so the migration runs only once.
        """

        with self._lock:
            snapshot = self._repository.load(self.name)
            if snapshot is None:
                LOGGER.info("No stored snapshot named '%s'; starting with an empty store.", self.name)
                self._projects, self._current_project_id, self._grok_api_key = [], None, ""
                self._last_timestamp = None
                return self

            state = migrate_snapshot(snapshot.state, snapshot.version)
            projects, current_id, api_key = state_from_dict(state)
            self._projects = projects
            self._current_project_id = current_id
            self._grok_api_key = api_key
            self._last_timestamp = max((p.updated_at for p in projects), default=None)

            if snapshot.version < CURRENT_SCHEMA_VERSION:
                self._persist()
            LOGGER.info("Loaded %d project(s) from snapshot '%s'.", len(projects), self.name)
        return self

    def close(self) -> None:
        """Flush, then stop writing through; later mutations stay in memory only."""

        with self._lock:
            self._persist()
            self._autosave = False
        LOGGER.debug("Project store '%s' flushed and detached.", self.name)

    # ------------------------------------------------------------------
    # internals
    # ------------------------------------------------------------------
    def _persist(self) -> None:
        state = state_to_dict(self._projects, self._current_project_id, self._grok_api_key)
        self._repository.save(self.name, CURRENT_SCHEMA_VERSION, state)

    def _commit(self) -> None:
        if self._autosave:
            self._persist()

    def _timestamp(self) -> datetime:
        now = self._clock()
        if self._last_timestamp is not None and now <= self._last_timestamp:
            now = self._last_timestamp + timedelta(microseconds=1)
        self._last_timestamp = now
        return now

    def _find_project(self, project_id: Optional[str]) -> Optional[Project]:
        return next((p for p in self._projects if p.id == project_id), None)

    def _add(self, project_id: str, collection: str, fields: dict) -> Optional[str]:
        with self._lock:
            project = self._find_project(project_id)
            if project is None:
                LOGGER.debug("Ignoring add to %s: project %s not found.", collection, project_id)
                return None
            entity_cls = ENTITY_COLLECTIONS[collection]
            now = self._timestamp()
            entity = entity_cls(
                id=self._id_factory(),
                created_at=now,
                updated_at=now,
                **copy.deepcopy(fields),
            )
            project.collection(collection).append(entity)
            project.updated_at = now
            self._commit()
            return entity.id

    def _update(
        self,
        project_id: str,
        collection: str,
        entity_id: str,
        patch: Patch,
        patch_type: Type[Patch],
    ) -> None:
        if not isinstance(patch, patch_type):
            raise TypeError(f"Expected {patch_type.__name__}, got {type(patch).__name__}.")
        with self._lock:
            project = self._find_project(project_id)
            if project is None:
                LOGGER.debug("Ignoring update in %s: project %s not found.", collection, project_id)
                return
            entities = project.collection(collection)
            index = next((i for i, e in enumerate(entities) if e.id == entity_id), None)
            if index is None:
                LOGGER.debug("Ignoring update in %s: entity %s not found.", collection, entity_id)
                return
            changes = copy.deepcopy(patch.changes())
            updated = replace(entities[index], **changes)
            now = self._timestamp()
            updated.updated_at = now
            entities[index] = updated
            project.updated_at = now
            self._commit()

    def _delete(self, project_id: str, collection: str, entity_id: str) -> None:
        with self._lock:
            project = self._find_project(project_id)
            if project is None:
                LOGGER.debug("Ignoring delete in %s: project %s not found.", collection, project_id)
                return
            entities = project.collection(collection)
            index = next((i for i, e in enumerate(entities) if e.id == entity_id), None)
            if index is None:
                LOGGER.debug("Ignoring delete in %s: entity %s not found.", collection, entity_id)
                return
            del entities[index]
            project.updated_at = self._timestamp()
            self._commit()

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------
    @property
    def current_project_id(self) -> Optional[str]:
        return self._current_project_id

    def get_project(self, project_id: Optional[str]) -> Optional[Project]:
        """Return a detached copy of the project so callers cannot mutate store state."""

        with self._lock:
            project = self._find_project(project_id)
            return copy.deepcopy(project) if project is not None else None

    def list_projects(self) -> List[Project]:
        with self._lock:
            ordered = sorted(self._projects, key=lambda p: p.updated_at, reverse=True)
            return copy.deepcopy(ordered)

    def get_current_project(self) -> Optional[Project]:
        return self.get_project(self._current_project_id)

    # ------------------------------------------------------------------
    # projects
    # ------------------------------------------------------------------
    def create_project(
        self,
        title: str,
        synopsis: str = "",
        genres: Optional[Sequence[str]] = None,
        writing_style: Optional[str] = None,
        cover_image: Optional[str] = None,
    ) -> str:
        with self._lock:
            now = self._timestamp()
            project = Project(
                id=self._id_factory(),
                title=title,
                synopsis=synopsis,
                genres=list(genres or []),
                writing_style=writing_style,
                cover_image=cover_image,
                created_at=now,
                updated_at=now,
            )
            self._projects.append(project)
            self._current_project_id = project.id
            self._commit()
            return project.id

    def update_project(self, project_id: str, patch: ProjectPatch) -> None:
        if not isinstance(patch, ProjectPatch):
            raise TypeError(f"Expected ProjectPatch, got {type(patch).__name__}.")
        with self._lock:
            index = next((i for i, p in enumerate(self._projects) if p.id == project_id), None)
            if index is None:
                LOGGER.debug("Ignoring update: project %s not found.", project_id)
                return
            changes = copy.deepcopy(patch.changes())
            if "genres" in changes and changes["genres"] is not None:
                changes["genres"] = list(changes["genres"])
            updated = replace(self._projects[index], **changes)
            updated.updated_at = self._timestamp()
            self._projects[index] = updated
            self._commit()

    def delete_project(self, project_id: str) -> None:
        with self._lock:
            remaining = [p for p in self._projects if p.id != project_id]
            if len(remaining) == len(self._projects):
                LOGGER.debug("Ignoring delete: project %s not found.", project_id)
                return
            self._projects = remaining
            if self._current_project_id == project_id:
                self._current_project_id = None
            self._commit()

    def set_current_project(self, project_id: Optional[str]) -> None:
        with self._lock:
            if project_id is not None and self._find_project(project_id) is None:
                LOGGER.debug("Ignoring selection: project %s not found.", project_id)
                return
            self._current_project_id = project_id
            self._commit()

    # ------------------------------------------------------------------
    # episodes
    # ------------------------------------------------------------------
    def add_episode(self, project_id: str, **fields: Any) -> Optional[str]:
        return self._add(project_id, "episodes", fields)

    def update_episode(self, project_id: str, episode_id: str, patch: EpisodePatch) -> None:
        self._update(project_id, "episodes", episode_id, patch, EpisodePatch)

    def delete_episode(self, project_id: str, episode_id: str) -> None:
        self._delete(project_id, "episodes", episode_id)

    def reorder_episodes(self, project_id: str, episode_ids: Sequence[str]) -> None:
        """Put the listed episodes first, in order; unlisted ones keep their relative order."""

        with self._lock:
            project = self._find_project(project_id)
            if project is None:
                LOGGER.debug("Ignoring reorder: project %s not found.", project_id)
                return
            by_id = {episode.id: episode for episode in project.episodes}
            ordered = []
            for episode_id in episode_ids:
                episode = by_id.pop(episode_id, None)
                if episode is not None:
                    ordered.append(episode)
            ordered.extend(e for e in project.episodes if e.id in by_id)
            project.episodes = ordered
            project.updated_at = self._timestamp()
            self._commit()

    # ------------------------------------------------------------------
    # characters
    # ------------------------------------------------------------------
    def add_character(self, project_id: str, **fields: Any) -> Optional[str]:
        return self._add(project_id, "characters", fields)

    def update_character(self, project_id: str, character_id: str, patch: CharacterPatch) -> None:
        self._update(project_id, "characters", character_id, patch, CharacterPatch)

    def delete_character(self, project_id: str, character_id: str) -> None:
        self._delete(project_id, "characters", character_id)

    # ------------------------------------------------------------------
    # memos
    # ------------------------------------------------------------------
    def add_memo(self, project_id: str, **fields: Any) -> Optional[str]:
        return self._add(project_id, "memos", fields)

    def update_memo(self, project_id: str, memo_id: str, patch: MemoPatch) -> None:
        self._update(project_id, "memos", memo_id, patch, MemoPatch)

    def delete_memo(self, project_id: str, memo_id: str) -> None:
        self._delete(project_id, "memos", memo_id)

    # ------------------------------------------------------------------
    # world settings
    # ------------------------------------------------------------------
    def add_world_setting(self, project_id: str, **fields: Any) -> Optional[str]:
        return self._add(project_id, "world_settings", fields)

    def update_world_setting(self, project_id: str, world_setting_id: str, patch: WorldSettingPatch) -> None:
        self._update(project_id, "world_settings", world_setting_id, patch, WorldSettingPatch)

    def delete_world_setting(self, project_id: str, world_setting_id: str) -> None:
        self._delete(project_id, "world_settings", world_setting_id)

    # ------------------------------------------------------------------
    # terms
    # ------------------------------------------------------------------
    def add_term(self, project_id: str, **fields: Any) -> Optional[str]:
        return self._add(project_id, "terms", fields)

    def update_term(self, project_id: str, term_id: str, patch: TermPatch) -> None:
        self._update(project_id, "terms", term_id, patch, TermPatch)

    def delete_term(self, project_id: str, term_id: str) -> None:
        self._delete(project_id, "terms", term_id)

    # ------------------------------------------------------------------
    # events
    # ------------------------------------------------------------------
    def add_event(self, project_id: str, **fields: Any) -> Optional[str]:
        return self._add(project_id, "events", fields)

    def update_event(self, project_id: str, event_id: str, patch: EventPatch) -> None:
        self._update(project_id, "events", event_id, patch, EventPatch)

    def delete_event(self, project_id: str, event_id: str) -> None:
        self._delete(project_id, "events", event_id)

    # ------------------------------------------------------------------
    # items
    # ------------------------------------------------------------------
    def add_item(self, project_id: str, **fields: Any) -> Optional[str]:
        return self._add(project_id, "items", fields)

    def update_item(self, project_id: str, item_id: str, patch: ItemPatch) -> None:
        self._update(project_id, "items", item_id, patch, ItemPatch)

    def delete_item(self, project_id: str, item_id: str) -> None:
        self._delete(project_id, "items", item_id)

    # ------------------------------------------------------------------
    # import / export
    # ------------------------------------------------------------------
    def export_project(self, project_id: str) -> Optional[str]:
        with self._lock:
            project = self._find_project(project_id)
            return dump_project(project) if project is not None else None

    def import_project(self, serialized: str) -> str:
        """Insert an exported project under a fresh id.

        ``createdAt`` is preserved and ``updatedAt`` is set to now. Nothing
        changes when the payload cannot be parsed.
        """

        project = load_project(serialized)
        with self._lock:
            source_id = project.id
            project.id = self._id_factory()
            while project.id == source_id or self._find_project(project.id) is not None:
                project.id = self._id_factory()
            project.updated_at = self._timestamp()
            self._projects.append(project)
            self._commit()
        LOGGER.info("Imported project '%s' as %s.", project.title, project.id)
        return project.id

    def clear_all_data(self) -> None:
        with self._lock:
            self._projects = []
            self._current_project_id = None
            self._grok_api_key = ""
            self._commit()

    # ------------------------------------------------------------------
    # credential
    # ------------------------------------------------------------------
    def set_grok_api_key(self, api_key: str) -> None:
        with self._lock:
            self._grok_api_key = api_key or ""
            self._commit()

    def get_grok_api_key(self) -> str:
        return self._grok_api_key


def get_store() -> ProjectStore:
    """Return the store registered on the current Flask application."""

    return current_app.extensions[STORE_EXTENSION_KEY]


__all__ = ["DEFAULT_SNAPSHOT_NAME", "ProjectStore", "get_store"]
