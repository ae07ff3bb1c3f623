"""JSON codec for projects and store snapshots.

The wire format uses camelCase keys and ISO-8601 timestamps so that exports
stay readable by earlier builds of the application.
"""

from __future__ import annotations

import json
from dataclasses import MISSING, fields, is_dataclass
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Dict, List, Mapping, Optional, Tuple, get_args, get_origin, get_type_hints

from .entities import ENTITY_COLLECTIONS, Project, camel_case
from .errors import ParseError
from .schema_migrations import migrate_project

_ABSENT = object()


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: Any, *, context: str = "timestamp") -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError as exc:
            raise ParseError(f"{context} is not an ISO-8601 timestamp: {value!r}") from exc
    else:
        raise ParseError(f"{context} is missing or invalid.")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def entity_to_dict(entity: Any) -> Dict[str, Any]:
    data: Dict[str, Any] = {}
    for f in fields(entity):
        value = getattr(entity, f.name)
        if value is None:
            continue
        if isinstance(value, datetime):
            value = format_timestamp(value)
        elif isinstance(value, list):
            value = [entity_to_dict(v) if is_dataclass(v) else v for v in value]
        data[camel_case(f.name)] = value
    return data


@lru_cache(maxsize=None)
def _hints(cls: type) -> Dict[str, Any]:
    return get_type_hints(cls)


def _read_field(data: Mapping[str, Any], name: str) -> Any:
    key = camel_case(name)
    if key in data:
        return data[key]
    return data.get(name, _ABSENT)


def _parse_list(raw: Any, item_type: Any, context: str) -> list:
    if raw is _ABSENT or raw is None:
        return []
    if item_type in ENTITY_COLLECTIONS.values():
        # Malformed owned collections are normalized instead of rejected.
        if not isinstance(raw, list):
            return []
        return [
            entity_from_dict(item_type, item, context=f"{context}[{index}]")
            for index, item in enumerate(raw)
        ]
    if not isinstance(raw, list) or not all(isinstance(v, str) for v in raw):
        raise ParseError(f"{context} must be a list of strings.")
    return list(raw)


def entity_from_dict(cls: type, data: Any, *, context: Optional[str] = None) -> Any:
    """Build ``cls`` from a raw mapping, raising :class:`ParseError` on malformed input."""

    context = context or cls.__name__
    if not isinstance(data, Mapping):
        raise ParseError(f"{context} must be a JSON object.")

    hints = _hints(cls)
    kwargs: Dict[str, Any] = {}
    for f in fields(cls):
        if f.name in ("created_at", "updated_at"):
            continue
        raw = _read_field(data, f.name)
        hint = hints[f.name]
        field_context = f"{context}.{camel_case(f.name)}"
        required = f.default is MISSING and f.default_factory is MISSING

        if get_origin(hint) is list:
            kwargs[f.name] = _parse_list(raw, get_args(hint)[0], field_context)
            continue

        if raw is _ABSENT or raw is None:
            if required:
                raise ParseError(f"{field_context} is required.")
            continue

        expected = int if hint is int else str
        if expected is int and (isinstance(raw, bool) or not isinstance(raw, int)):
            raise ParseError(f"{field_context} must be an integer.")
        if expected is str and not isinstance(raw, str):
            raise ParseError(f"{field_context} must be a string.")
        kwargs[f.name] = raw

    created_raw = _read_field(data, "created_at")
    updated_raw = _read_field(data, "updated_at")
    if created_raw in (_ABSENT, None):
        created_raw = updated_raw
    if updated_raw in (_ABSENT, None):
        updated_raw = created_raw
    if created_raw in (_ABSENT, None):
        raise ParseError(f"{context}.createdAt is required.")
    kwargs["created_at"] = parse_timestamp(created_raw, context=f"{context}.createdAt")
    kwargs["updated_at"] = parse_timestamp(updated_raw, context=f"{context}.updatedAt")

    try:
        return cls(**kwargs)
    except (TypeError, ValueError) as exc:
        raise ParseError(f"{context}: {exc}") from exc


def project_to_dict(project: Project) -> Dict[str, Any]:
    return entity_to_dict(project)


def project_from_dict(data: Any) -> Project:
    return entity_from_dict(Project, data, context="project")


def dump_project(project: Project) -> str:
    return json.dumps(project_to_dict(project), ensure_ascii=False, indent=2)


def load_project(text: str) -> Project:
    """Parse one exported project, upgrading legacy payloads on the way in."""

    if not isinstance(text, (str, bytes, bytearray)):
        raise ParseError("Project data must be JSON text.")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ParseError(f"Project data is not valid JSON: {exc.msg}") from exc
    if not isinstance(data, dict):
        raise ParseError("Project data must be a JSON object.")
    return project_from_dict(migrate_project(data))


def state_to_dict(projects: List[Project], current_project_id: Optional[str], api_key: str) -> Dict[str, Any]:
    return {
        "projects": [project_to_dict(project) for project in projects],
        "currentProjectId": current_project_id,
        "grokApiKey": api_key,
    }


def state_from_dict(data: Any) -> Tuple[List[Project], Optional[str], str]:
    if not isinstance(data, Mapping):
        raise ParseError("Snapshot must be a JSON object.")
    raw_projects = data.get("projects")
    if not isinstance(raw_projects, list):
        raw_projects = []
    projects = [
        entity_from_dict(Project, raw, context=f"projects[{index}]")
        for index, raw in enumerate(raw_projects)
    ]

    current = data.get("currentProjectId")
    if not isinstance(current, str) or not any(p.id == current for p in projects):
        current = None
    api_key = data.get("grokApiKey")
    if not isinstance(api_key, str):
        api_key = ""
    return projects, current, api_key


__all__ = [
    "dump_project",
    "entity_from_dict",
    "entity_to_dict",
    "format_timestamp",
    "load_project",
    "parse_timestamp",
    "project_from_dict",
    "project_to_dict",
    "state_from_dict",
    "state_to_dict",
]
