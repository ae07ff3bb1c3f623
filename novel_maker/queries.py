"""Read-side ordering and filtering over a project's collections."""

from __future__ import annotations

from typing import Iterable, List, Optional

from .entities import Episode, Event, Item, Project, Term

_IMPORTANCE_RANK = {"high": 3, "medium": 2, "low": 1}


def episodes_in_order(episodes: Iterable[Episode]) -> List[Episode]:
    """Order by episode number; duplicate numbers keep insertion order."""

    return sorted(episodes, key=lambda episode: episode.number)


def previous_episodes(project: Project, episode: Episode) -> List[Episode]:
    return episodes_in_order(e for e in project.episodes if e.number < episode.number)


def next_episode_number(project: Project) -> int:
    return len(project.episodes) + 1


def sort_events(events: Iterable[Event], by: str = "date") -> List[Event]:
    events = list(events)
    if by == "date":
        dated = sorted((e for e in events if e.date), key=lambda e: e.date)
        return dated + [e for e in events if not e.date]
    if by == "importance":
        return sorted(events, key=lambda e: _IMPORTANCE_RANK.get(e.importance, 0), reverse=True)
    if by == "created":
        return sorted(events, key=lambda e: e.created_at, reverse=True)
    raise ValueError(f"Unknown event ordering '{by}'.")


def filter_events(events: Iterable[Event], importance: Optional[str] = None) -> List[Event]:
    return [e for e in events if not importance or e.importance == importance]


def filter_terms(
    terms: Iterable[Term],
    search: str = "",
    category: Optional[str] = None,
) -> List[Term]:
    needle = (search or "").casefold()
    return [
        t
        for t in terms
        if (needle in t.term.casefold() or needle in t.definition.casefold())
        and (not category or t.category == category)
    ]


def term_categories(terms: Iterable[Term]) -> List[str]:
    seen: List[str] = []
    for term in terms:
        if term.category and term.category not in seen:
            seen.append(term.category)
    return seen


def filter_items(
    items: Iterable[Item],
    search: str = "",
    type: Optional[str] = None,
    rarity: Optional[str] = None,
    owner: Optional[str] = None,
) -> List[Item]:
    needle = (search or "").casefold()
    return [
        i
        for i in items
        if (needle in i.name.casefold() or needle in i.description.casefold())
        and (not type or i.type == type)
        and (not rarity or i.rarity == rarity)
        and (not owner or i.owner == owner)
    ]


def items_owned_by(project: Project, character_ids: Iterable[str]) -> List[Item]:
    """Items whose owner is one of the given characters that still exists."""

    owners = {c.id for c in project.resolve_characters(character_ids)}
    return [item for item in project.items if item.owner in owners]
