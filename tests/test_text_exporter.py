import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from novel_maker.entities import Episode, Event, Item, Project, Term
from novel_maker.queries import (
    episodes_in_order,
    filter_items,
    filter_terms,
    next_episode_number,
    sort_events,
    term_categories,
)
from text_exporter import TextExportError, compose_episode_text, compose_novel_text, export_novel_to_txt

BASE = datetime(2024, 3, 1, tzinfo=timezone.utc)


def _project(**overrides):
    values = {"id": "p1", "title": "바다의 노래", "synopsis": "항구 마을 이야기"}
    values.update(overrides)
    return Project(**values)


def test_compose_novel_text_orders_episodes_and_skips_empty_ones():
    project = _project(
        episodes=[
            Episode(id="e2", number=2, title="폭풍", novel_content="파도가 높았다"),
            Episode(id="e3", number=3, title="미완"),
            Episode(id="e1", number=1, title="출항", novel_content="배가 떠났다"),
        ]
    )

    text = compose_novel_text(project)

    rule = "=" * 50
    assert text == (
        f"바다의 노래\n\n항구 마을 이야기\n\n{rule}\n\n"
        f"1화. 출항\n\n배가 떠났다\n\n{rule}\n\n"
        f"2화. 폭풍\n\n파도가 높았다"
    )


def test_compose_novel_text_without_prose_raises():
    project = _project(episodes=[Episode(id="e1", number=1, title="빈 회차")])

    with pytest.raises(TextExportError):
        compose_novel_text(project)


def test_compose_episode_text_for_storyboard():
    episode = Episode(id="e1", number=4, title="결전", storyboard_content="컷 1: 클로즈업")

    assert compose_episode_text(episode, storyboard=True) == "4화. 결전\n\n컷 1: 클로즈업"
    with pytest.raises(TextExportError):
        compose_episode_text(episode)


def test_export_novel_to_txt_writes_utf8(tmp_path):
    project = _project(episodes=[Episode(id="e1", number=1, title="출항", novel_content="배가 떠났다")])

    path = export_novel_to_txt(project, tmp_path / "novel.txt")

    assert path.read_text(encoding="utf-8").endswith("1화. 출항\n\n배가 떠났다")


def test_episodes_in_order_keeps_insertion_order_for_duplicates():
    episodes = [
        Episode(id="b", number=2, title="b"),
        Episode(id="a1", number=1, title="a1"),
        Episode(id="a2", number=1, title="a2"),
    ]

    assert [e.id for e in episodes_in_order(episodes)] == ["a1", "a2", "b"]
    assert next_episode_number(_project(episodes=episodes)) == 4


def test_sort_events_by_creation_and_unknown_ordering():
    events = [
        Event(id="old", title="old", created_at=BASE, updated_at=BASE),
        Event(id="new", title="new", created_at=BASE + timedelta(days=1), updated_at=BASE),
    ]

    assert [e.id for e in sort_events(events, "created")] == ["new", "old"]
    with pytest.raises(ValueError):
        sort_events(events, "alphabetical")


def test_term_search_and_categories():
    terms = [
        Term(id="1", term="Mana", definition="마법의 근원", category="마법"),
        Term(id="2", term="검기", definition="검에 두른 MANA", category="무공"),
        Term(id="3", term="왕도", definition="수도", category="마법"),
    ]

    assert [t.id for t in filter_terms(terms, "mana")] == ["1", "2"]
    assert [t.id for t in filter_terms(terms, "", category="마법")] == ["1", "3"]
    assert term_categories(terms) == ["마법", "무공"]


def test_filter_items_combines_criteria():
    items = [
        Item(id="1", name="불꽃검", type="weapon", rarity="rare", owner="c1"),
        Item(id="2", name="얼음검", type="weapon", rarity="common", owner="c2"),
        Item(id="3", name="불꽃 반지", type="accessory", rarity="rare", owner="c1"),
    ]

    assert [i.id for i in filter_items(items, "불꽃")] == ["1", "3"]
    assert [i.id for i in filter_items(items, type="weapon", rarity="rare")] == ["1"]
    assert [i.id for i in filter_items(items, owner="c2")] == ["2"]
