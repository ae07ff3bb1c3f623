"""Domain entities for writing projects and the field-level patches that update them.

Entities are plain dataclasses. Cross references between them (episode
appearances, item owners, event relations) are stored as ids only and are
resolved at read time with :meth:`Project.resolve_characters` and friends;
a dangling id simply resolves to nothing.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Type, TypeVar

from .catalog import (
    BLOOD_TYPES,
    EVENT_IMPORTANCE,
    ITEM_RARITIES,
    ITEM_TYPES,
    MBTI_CODES,
    WORLD_SETTING_CATEGORIES,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"Expected text, got {type(value).__name__}.")
    return value if value.strip() else None


def _require_choice(value: str, choices: Iterable[str], label: str) -> None:
    if value not in choices:
        allowed = ", ".join(choices)
        raise ValueError(f"Unknown {label} '{value}'. Expected one of: {allowed}.")


def _check_field_types(entity: Any) -> None:
    """Hold every text and timestamp field to its annotation.

    A missing optional body text (a ``str`` field defaulting to ``""``) is
    stored as ``""``; anything else of the wrong type raises ``ValueError``.
    """

    for f in fields(entity):
        value = getattr(entity, f.name)
        if f.type == "str":
            if value is None and f.default == "":
                setattr(entity, f.name, "")
            elif not isinstance(value, str):
                raise ValueError(f"{camel_case(f.name)} must be a string.")
        elif f.type == "Optional[str]":
            if value is not None and not isinstance(value, str):
                raise ValueError(f"{camel_case(f.name)} must be a string.")
        elif f.type == "datetime" and not isinstance(value, datetime):
            raise ValueError(f"{camel_case(f.name)} must be a timestamp.")


def _require_id_list(values: Any, label: str) -> None:
    if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
        raise ValueError(f"{label} must be a list of ids.")


@dataclass
class Episode:
    id: str
    number: int
    title: str
    summary: str = ""
    appearing_characters: List[str] = field(default_factory=list)
    novel_content: Optional[str] = None
    storyboard_content: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        _check_field_types(self)
        if isinstance(self.number, bool) or not isinstance(self.number, int):
            raise ValueError("Episode number must be an integer.")
        if self.appearing_characters is None:
            self.appearing_characters = []
        _require_id_list(self.appearing_characters, "appearing_characters")

    @property
    def has_novel(self) -> bool:
        return bool(self.novel_content and self.novel_content.strip())

    @property
    def has_storyboard(self) -> bool:
        return bool(self.storyboard_content and self.storyboard_content.strip())


@dataclass
class Character:
    id: str
    name: str
    age: Optional[str] = None
    occupation: Optional[str] = None
    personality: Optional[str] = None
    appearance: Optional[str] = None
    family: Optional[str] = None
    mbti: Optional[str] = None
    blood_type: Optional[str] = None
    notes: Optional[str] = None
    image: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        _check_field_types(self)
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError("A character needs a name.")
        self.mbti = _blank_to_none(self.mbti)
        if self.mbti is not None:
            self.mbti = self.mbti.upper()
            _require_choice(self.mbti, MBTI_CODES, "MBTI code")
        self.blood_type = _blank_to_none(self.blood_type)
        if self.blood_type is not None:
            self.blood_type = self.blood_type.upper()
            _require_choice(self.blood_type, BLOOD_TYPES, "blood type")


@dataclass
class Memo:
    id: str
    title: str = ""
    content: str = ""
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        _check_field_types(self)


@dataclass
class WorldSetting:
    id: str
    category: str
    title: str
    content: str = ""
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        _check_field_types(self)
        _require_choice(self.category, WORLD_SETTING_CATEGORIES, "world setting category")


@dataclass
class Term:
    id: str
    term: str
    definition: str = ""
    category: Optional[str] = None
    related_terms: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        _check_field_types(self)
        self.category = _blank_to_none(self.category)
        if self.related_terms is None:
            self.related_terms = []
        _require_id_list(self.related_terms, "related_terms")


@dataclass
class Event:
    id: str
    title: str
    description: str = ""
    date: Optional[str] = None
    importance: str = "medium"
    related_characters: List[str] = field(default_factory=list)
    related_episodes: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        _check_field_types(self)
        self.date = _blank_to_none(self.date)
        _require_choice(self.importance, EVENT_IMPORTANCE, "event importance")
        if self.related_characters is None:
            self.related_characters = []
        if self.related_episodes is None:
            self.related_episodes = []
        _require_id_list(self.related_characters, "related_characters")
        _require_id_list(self.related_episodes, "related_episodes")


@dataclass
class Item:
    id: str
    name: str
    type: str
    description: str = ""
    effects: Optional[str] = None
    rarity: Optional[str] = None
    owner: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        _check_field_types(self)
        _require_choice(self.type, ITEM_TYPES, "item type")
        self.rarity = _blank_to_none(self.rarity)
        if self.rarity is not None:
            _require_choice(self.rarity, ITEM_RARITIES, "item rarity")
        self.owner = _blank_to_none(self.owner)


ENTITY_COLLECTIONS: Dict[str, type] = {
    "episodes": Episode,
    "characters": Character,
    "memos": Memo,
    "world_settings": WorldSetting,
    "terms": Term,
    "events": Event,
    "items": Item,
}


@dataclass
class Project:
    id: str
    title: str
    synopsis: str = ""
    genres: List[str] = field(default_factory=list)
    writing_style: Optional[str] = None
    cover_image: Optional[str] = None
    episodes: List[Episode] = field(default_factory=list)
    characters: List[Character] = field(default_factory=list)
    memos: List[Memo] = field(default_factory=list)
    world_settings: List[WorldSetting] = field(default_factory=list)
    terms: List[Term] = field(default_factory=list)
    events: List[Event] = field(default_factory=list)
    items: List[Item] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        _check_field_types(self)
        if self.genres is None:
            self.genres = []
        if not isinstance(self.genres, list) or not all(isinstance(g, str) for g in self.genres):
            raise ValueError("genres must be a list of tags.")
        self.writing_style = _blank_to_none(self.writing_style)
        self.cover_image = _blank_to_none(self.cover_image)

    def collection(self, name: str) -> list:
        if name not in ENTITY_COLLECTIONS:
            raise KeyError(name)
        return getattr(self, name)

    def find_episode(self, episode_id: Optional[str]) -> Optional[Episode]:
        return next((e for e in self.episodes if e.id == episode_id), None)

    def find_character(self, character_id: Optional[str]) -> Optional[Character]:
        if not character_id:
            return None
        return next((c for c in self.characters if c.id == character_id), None)

    def resolve_characters(self, character_ids: Optional[Iterable[str]]) -> List[Character]:
        """Return the characters behind ``character_ids`` in roster order, omitting dangling ids."""

        wanted = set(character_ids or ())
        return [c for c in self.characters if c.id in wanted]


# ---------------------------------------------------------------------------
# Patches
# ---------------------------------------------------------------------------


class _Unset:
    """Marker for a patch field that was not supplied."""

    _instance: Optional["_Unset"] = None

    def __new__(cls) -> "_Unset":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False

    def __copy__(self) -> "_Unset":
        return self

    def __deepcopy__(self, memo: dict) -> "_Unset":
        return self


UNSET: Any = _Unset()

PatchT = TypeVar("PatchT", bound="Patch")


@dataclass(frozen=True)
class Patch:
    """A field-level partial update: only supplied fields are merged."""

    def changes(self) -> Dict[str, Any]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not UNSET
        }

    def __bool__(self) -> bool:
        return bool(self.changes())

    @classmethod
    def from_mapping(cls: Type[PatchT], data: Mapping[str, Any]) -> PatchT:
        """Build a patch from snake_case or camelCase keys; unknown keys are rejected."""

        names = {f.name: f.name for f in fields(cls)}
        names.update({camel_case(f.name): f.name for f in fields(cls)})
        values: Dict[str, Any] = {}
        for key, value in data.items():
            if key not in names:
                raise ValueError(f"'{key}' cannot be updated.")
            values[names[key]] = value
        return cls(**values)


@dataclass(frozen=True)
class ProjectPatch(Patch):
    title: Any = UNSET
    synopsis: Any = UNSET
    genres: Any = UNSET
    writing_style: Any = UNSET
    cover_image: Any = UNSET


@dataclass(frozen=True)
class EpisodePatch(Patch):
    number: Any = UNSET
    title: Any = UNSET
    summary: Any = UNSET
    appearing_characters: Any = UNSET
    novel_content: Any = UNSET
    storyboard_content: Any = UNSET


@dataclass(frozen=True)
class CharacterPatch(Patch):
    name: Any = UNSET
    age: Any = UNSET
    occupation: Any = UNSET
    personality: Any = UNSET
    appearance: Any = UNSET
    family: Any = UNSET
    mbti: Any = UNSET
    blood_type: Any = UNSET
    notes: Any = UNSET
    image: Any = UNSET


@dataclass(frozen=True)
class MemoPatch(Patch):
    title: Any = UNSET
    content: Any = UNSET


@dataclass(frozen=True)
class WorldSettingPatch(Patch):
    category: Any = UNSET
    title: Any = UNSET
    content: Any = UNSET


@dataclass(frozen=True)
class TermPatch(Patch):
    term: Any = UNSET
    definition: Any = UNSET
    category: Any = UNSET
    related_terms: Any = UNSET


@dataclass(frozen=True)
class EventPatch(Patch):
    title: Any = UNSET
    description: Any = UNSET
    date: Any = UNSET
    importance: Any = UNSET
    related_characters: Any = UNSET
    related_episodes: Any = UNSET


@dataclass(frozen=True)
class ItemPatch(Patch):
    name: Any = UNSET
    type: Any = UNSET
    description: Any = UNSET
    effects: Any = UNSET
    rarity: Any = UNSET
    owner: Any = UNSET


PATCH_TYPES: Dict[str, Type[Patch]] = {
    "episodes": EpisodePatch,
    "characters": CharacterPatch,
    "memos": MemoPatch,
    "world_settings": WorldSettingPatch,
    "terms": TermPatch,
    "events": EventPatch,
    "items": ItemPatch,
}
