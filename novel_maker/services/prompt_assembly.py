"""Assemble generation prompts from a project and one of its episodes.

Both builders are pure: they read the project they are given and return
text. Callers pass in copies obtained from
:meth:`~novel_maker.store.ProjectStore.get_project`.
"""

from __future__ import annotations

from typing import List, Optional

from system_prompts import get_prompt_setting

from ..catalog import ITEM_TYPES, WORLD_SETTING_CATEGORIES, find_writing_style, mbti_traits
from ..entities import Character, Episode, Project
from ..errors import PreconditionError
from ..queries import items_owned_by, previous_episodes

UNKNOWN_OWNER = "미지"
EPISODE_SEPARATOR = "\n\n==========\n\n"


def _section(heading: str, body: str) -> str:
    return f"【{heading}】\n{body}"


def _or_placeholder(lines: List[str], placeholder: str, separator: str = "\n") -> str:
    return separator.join(lines) if lines else placeholder


def _owner_name(project: Project, owner_id: Optional[str]) -> str:
    owner = project.find_character(owner_id)
    return owner.name if owner else UNKNOWN_OWNER


def describe_character(character: Character) -> str:
    """Detailed one-line profile; MBTI is rendered as traits, never as the raw code."""

    details = [f"이름: {character.name}"]
    if character.age:
        details.append(f"나이: {character.age}")
    if character.occupation:
        details.append(f"직업: {character.occupation}")
    personality = ", ".join(p for p in (character.personality, mbti_traits(character.mbti)) if p)
    if personality:
        details.append(f"성격: {personality}")
    if character.appearance:
        details.append(f"외모: {character.appearance}")
    if character.family:
        details.append(f"가족관계: {character.family}")
    if character.blood_type:
        details.append(f"혈액형: {character.blood_type}")
    if character.notes:
        details.append(f"특이사항: {character.notes}")
    return ", ".join(details)


def _world_setting_lines(project: Project) -> List[str]:
    return [
        f"【{WORLD_SETTING_CATEGORIES.get(ws.category, ws.category)}】 {ws.title}: {ws.content}"
        for ws in project.world_settings
    ]


def _term_lines(project: Project) -> List[str]:
    return [
        f"{t.term}: {t.definition}" + (f" ({t.category})" if t.category else "")
        for t in project.terms
    ]


def _event_lines(project: Project) -> List[str]:
    return [
        f"{e.title}: {e.description}" + (f" ({e.date})" if e.date else "")
        for e in project.events
        if e.importance in ("high", "medium")
    ]


def _memo_lines(project: Project) -> List[str]:
    return [
        f"{m.title}\n{m.content}" if m.title else m.content
        for m in project.memos
        if m.title or m.content
    ]


def _previous_episode_digest(project: Project, episode: Episode, excerpt_length: int) -> List[str]:
    digest = []
    for previous in previous_episodes(project, episode):
        block = f"{previous.number}화: {previous.title}\n줄거리: {previous.summary}\n"
        if previous.novel_content:
            block += f"내용: {previous.novel_content[:excerpt_length]}..."
        digest.append(block)
    return digest


def build_novel_prompt(project: Project, episode: Episode, writing_style: Optional[str] = None) -> str:
    """Build the prose-generation prompt for ``episode``.

    ``writing_style`` overrides the project's own style when given. Unknown
    style values are ignored.
    """

    min_characters = get_prompt_setting("novel_generation", "min_characters", 5000)
    excerpt_length = get_prompt_setting("novel_generation", "previous_excerpt_characters", 500)
    guidelines = get_prompt_setting("novel_generation", "style_guidelines", [])
    style = find_writing_style(writing_style or project.writing_style)

    appearing = project.resolve_characters(episode.appearing_characters)
    item_lines = [
        f"{_owner_name(project, item.owner)}의 {item.name} ({ITEM_TYPES.get(item.type, item.type)}): "
        f"{item.description}" + (f" - 효과: {item.effects}" if item.effects else "")
        for item in items_owned_by(project, episode.appearing_characters)
    ]

    basics = [
        f"- 제목: {project.title}",
        f"- 장르: {', '.join(project.genres)}",
        f"- 시놉시스: {project.synopsis}",
    ]
    if style:
        basics.append(f"- 문체 스타일: {style['label']} ({style['description']})")

    style_requirement = (
        f"3. {style['label']} 스타일로 작성 - {style['description']}" if style else "3. 자연스러운 문체로 작성"
    )
    requirements = [
        f"1. 반드시 {min_characters}자 이상으로 작성 (매우 중요!)",
        "2. 한국어 웹소설 스타일 (대화체와 서술체의 조화)",
        style_requirement,
        "4. 등장인물들의 성격과 특징을 정확히 반영",
        "5. 시놉시스의 세계관과 설정을 충실히 반영",
        "6. 이전 회차와의 연결성 고려",
        "7. 생생한 묘사와 감정 표현",
        "8. 독자의 몰입감을 높이는 전개",
        "9. 대화는 따옴표(\"\")로 표시",
        "10. 장면 전환 시 적절한 여백 활용",
        "11. 회차의 줄거리를 자세히 풀어서 작성",
        "12. S급 웹소설 작가들의 문체 특징을 최대한 반영",
        "13. 캐릭터의 성격은 자연스럽게 행동과 대화를 통해 표현 (MBTI나 혈액형 등은 직접적으로 언급하지 않음)",
    ]
    notes = [
        f"- 이 회차에서 일어나야 할 주요 사건: {episode.summary}",
        "- 등장인물들의 관계와 갈등을 자세히 묘사",
        "- 감정의 변화와 심리 묘사에 중점",
        "- 대화를 통한 캐릭터 개성 표현",
        "- 작가 메모의 설정과 아이디어를 적극 활용",
        "- S급 웹소설의 특징인 강한 몰입감과 중독성 있는 문체 사용",
        "- 각 장면마다 독자가 현장에 있는 것처럼 생생하게 묘사",
        "- 캐릭터의 대사와 행동을 통해 자연스러운 성격 표현",
    ]
    if style:
        notes.append(f"- {style['label']}의 특징을 살려 문장을 구성")

    sections = [
        f"당신은 최고의 S급 웹소설 작가입니다. 다음 웹소설의 회차를 {min_characters}자 이상의 분량으로 자세히 작성해주세요.",
        _section("작품 기본 정보", "\n".join(basics)),
        _section("세계관 설정", _or_placeholder(_world_setting_lines(project), "세계관 설정이 없습니다.", "\n\n")),
        _section("용어사전", _or_placeholder(_term_lines(project), "용어사전이 없습니다.")),
        _section("주요 사건 및 배경", _or_placeholder(_event_lines(project), "주요 사건이 없습니다.")),
        _section("등장인물의 아이템/마법", _or_placeholder(item_lines, "등장인물 관련 아이템/마법이 없습니다.")),
        _section("작가 메모 및 참고사항", _or_placeholder(_memo_lines(project), "작가 메모가 없습니다.", "\n\n")),
        _section(
            "S급 웹소설 작가의 문체 특징",
            "\n".join(f"{index}. {line}" for index, line in enumerate(guidelines, start=1)),
        ),
        _section(
            "이번 회차 등장인물",
            _or_placeholder(
                [describe_character(c) for c in appearing],
                "이번 회차에 등장하는 인물이 지정되지 않았습니다.",
                "\n\n",
            ),
        ),
        _section(
            "이전 회차 정보",
            _or_placeholder(
                _previous_episode_digest(project, episode, excerpt_length),
                "이전 회차가 없습니다.",
                EPISODE_SEPARATOR,
            ),
        ),
        _section(
            "현재 회차 정보",
            f"- 회차: {episode.number}화\n- 제목: {episode.title}\n- 줄거리: {episode.summary}",
        ),
        _section("작성 요구사항", "\n".join(requirements)),
        _section("참고사항", "\n".join(notes)),
        f"반드시 {min_characters}자 이상의 완성도 높은 소설로 작성해주세요.",
    ]
    return "\n\n".join(sections)


def build_storyboard_prompt(project: Project, episode: Episode, cut_count: int) -> str:
    """Build the storyboard ("콘티") prompt adapting ``episode.novel_content`` into ``cut_count`` cuts."""

    if not episode.has_novel:
        raise PreconditionError("소설화된 내용이 없습니다. 먼저 소설화를 진행해주세요.")

    cut_format = get_prompt_setting("storyboard_generation", "cut_format", "")
    world_categories = get_prompt_setting("storyboard_generation", "world_categories", [])
    item_types = get_prompt_setting("storyboard_generation", "item_types", [])

    character_lines = []
    for character in project.resolve_characters(episode.appearing_characters):
        details = [f"이름: {character.name}"]
        if character.personality:
            details.append(f"성격: {character.personality}")
        if character.appearance:
            details.append(f"외모: {character.appearance}")
        if character.occupation:
            details.append(f"직업: {character.occupation}")
        character_lines.append(", ".join(details))

    world_lines = [
        f"{ws.title}: {ws.content}" for ws in project.world_settings if ws.category in world_categories
    ]
    item_lines = [
        f"{_owner_name(project, item.owner)}: {item.name} ({ITEM_TYPES.get(item.type, item.type)}) - {item.description}"
        for item in items_owned_by(project, episode.appearing_characters)
        if item.type in item_types
    ]

    sections = [
        f"당신은 최고의 상업 웹툰 콘티 작가입니다. 반드시 {cut_count}컷을 모두 완성해주세요.",
        _section(
            "절대 준수 사항",
            f"1. 반드시 컷 1부터 컷 {cut_count}까지 빠짐없이 모든 컷을 완성\n"
            "2. 중간에 절대 끊지 말고 마지막 컷까지 완료\n"
            "3. 각 컷마다 아래 형식을 정확히 준수",
        ),
        _section("콘티 형식", cut_format),
        _section(
            "작품 정보",
            f"- 제목: {project.title}\n"
            f"- 회차: {episode.number}화 - {episode.title}\n"
            f"- 장르: {', '.join(project.genres)}",
        ),
        _section("등장인물 상세 정보", _or_placeholder(character_lines, "등장인물 정보 없음")),
        _section("세계관 배경 설정", _or_placeholder(world_lines, "세계관 배경 정보 없음")),
        _section("등장인물의 아이템/무기/마법", _or_placeholder(item_lines, "등장인물 관련 아이템/마법 없음")),
        _section(f"소설 내용 (이 내용을 {cut_count}컷으로 완전히 변환)", episode.novel_content or ""),
        _section(
            "콘티 작성 시작",
            f"지금부터 위 소설 내용을 바탕으로 정확히 {cut_count}컷의 상업 콘티를 작성합니다.\n"
            f"반드시 컷 1부터 시작해서 컷 {cut_count}까지 완성하세요:",
        ),
    ]
    return "\n\n".join(sections)


__all__ = ["build_novel_prompt", "build_storyboard_prompt", "describe_character"]
