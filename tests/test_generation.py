import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from novel_maker.entities import EpisodePatch
from novel_maker.errors import GatewayError, NotFoundError, PreconditionError
from novel_maker.repository import InMemorySnapshotRepository
from novel_maker.services import (
    LLMGateway,
    build_novel_prompt,
    build_storyboard_prompt,
    generate_novel_content,
    generate_storyboard_content,
)
from novel_maker.services.gateway import GatewayResponse
from novel_maker.store import ProjectStore


class RecordingGateway:
    def __init__(self, content="생성된 본문", model="grok-3"):
        self.content = content
        self.model = model
        self.prompts = []

    def generate(self, prompt, model_candidates=None):
        self.prompts.append(prompt)
        return GatewayResponse(content=self.content, model=self.model)


class FailingGateway:
    def generate(self, prompt, model_candidates=None):
        raise GatewayError("All model attempts failed", [("grok-3", "boom")])


class ScriptedClient:
    """Returns or raises per model, recording the order of calls."""

    def __init__(self, outcomes):
        self.outcomes = outcomes
        self.calls = []

    def generate_response(self, prompt, *, model):
        self.calls.append(model)
        outcome = self.outcomes.get(model, "")
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def store():
    return ProjectStore(InMemorySnapshotRepository()).load()


@pytest.fixture
def seeded(store):
    project_id = store.create_project(
        "별의 검",
        synopsis="몰락한 검사의 복수극",
        genres=["판타지", "액션"],
        writing_style="dramatic",
    )
    hero = store.add_character(
        project_id,
        name="한결",
        personality="과묵한",
        mbti="INTJ",
        blood_type="AB",
        occupation="검사",
    )
    store.add_world_setting(project_id, category="culture", title="성흔", content="별에서 내려온 힘")
    store.add_world_setting(project_id, category="region", title="북부", content="얼어붙은 땅")
    store.add_term(project_id, term="성흔", definition="별의 낙인", category="마법")
    store.add_event(project_id, title="대전쟁", description="왕국의 몰락", date="100년", importance="high")
    store.add_event(project_id, title="장날", description="시장이 열린다", importance="low")
    store.add_item(project_id, name="별검", type="weapon", description="빛나는 검", effects="베기 강화", owner=hero)
    store.add_item(project_id, name="주인없는 반지", type="accessory", owner="ghost")
    store.add_memo(project_id, title="복선", content="2화에서 반지 등장")
    first = store.add_episode(
        project_id,
        number=1,
        title="낙인",
        summary="한결이 성흔을 얻는다",
        appearing_characters=[hero],
    )
    store.update_episode(project_id, first, EpisodePatch(novel_content="가" * 600))
    second = store.add_episode(
        project_id,
        number=2,
        title="북부로",
        summary="한결이 북부로 떠난다",
        appearing_characters=[hero, "deleted-character"],
    )
    return project_id, hero, first, second


def test_novel_prompt_renders_mbti_as_traits(store, seeded):
    project_id, _, _, second = seeded
    project = store.get_project(project_id)

    prompt = build_novel_prompt(project, project.find_episode(second))

    assert "분석적이고 전략적이며 독립적인" in prompt
    assert "INTJ" not in prompt
    assert "이름: 한결" in prompt
    assert "혈액형: AB" in prompt


def test_novel_prompt_contains_context_sections_in_order(store, seeded):
    project_id, _, _, second = seeded
    project = store.get_project(project_id)

    prompt = build_novel_prompt(project, project.find_episode(second))

    headings = [
        "【작품 기본 정보】",
        "【세계관 설정】",
        "【용어사전】",
        "【주요 사건 및 배경】",
        "【등장인물의 아이템/마법】",
        "【작가 메모 및 참고사항】",
        "【S급 웹소설 작가의 문체 특징】",
        "【이번 회차 등장인물】",
        "【이전 회차 정보】",
        "【현재 회차 정보】",
        "【작성 요구사항】",
        "【참고사항】",
    ]
    positions = [prompt.index(heading) for heading in headings]
    assert positions == sorted(positions)
    assert "【문화】 성흔: 별에서 내려온 힘" in prompt
    assert "대전쟁: 왕국의 몰락 (100년)" in prompt
    assert "장날" not in prompt
    assert "한결의 별검 (무기): 빛나는 검 - 효과: 베기 강화" in prompt
    assert "주인없는 반지" not in prompt
    assert "드라마틱" in prompt


def test_novel_prompt_digests_previous_episodes(store, seeded):
    project_id, _, _, second = seeded
    project = store.get_project(project_id)

    prompt = build_novel_prompt(project, project.find_episode(second))

    assert "1화: 낙인" in prompt
    assert "내용: " + "가" * 500 + "..." in prompt
    assert "가" * 501 not in prompt


def test_novel_prompt_placeholders_for_empty_project(store):
    project_id = store.create_project("빈 작품")
    episode_id = store.add_episode(project_id, number=1, title="첫화", summary="시작")
    project = store.get_project(project_id)

    prompt = build_novel_prompt(project, project.find_episode(episode_id))

    assert "세계관 설정이 없습니다." in prompt
    assert "용어사전이 없습니다." in prompt
    assert "이전 회차가 없습니다." in prompt
    assert "이번 회차에 등장하는 인물이 지정되지 않았습니다." in prompt


def test_storyboard_prompt_requires_novel_content(store, seeded):
    project_id, _, _, second = seeded
    project = store.get_project(project_id)

    with pytest.raises(PreconditionError):
        build_storyboard_prompt(project, project.find_episode(second), 60)


def test_storyboard_prompt_uses_cut_count_and_filters_context(store, seeded):
    project_id, _, first, _ = seeded
    project = store.get_project(project_id)

    prompt = build_storyboard_prompt(project, project.find_episode(first), 45)

    assert "반드시 45컷을 모두 완성해주세요." in prompt
    assert "컷 45까지" in prompt
    assert "북부: 얼어붙은 땅" in prompt
    assert "성흔: 별에서 내려온 힘" not in prompt
    assert "한결: 별검 (무기) - 빛나는 검" in prompt
    assert "INTJ" not in prompt


def test_generate_novel_content_writes_back(store, seeded):
    project_id, _, _, second = seeded
    gateway = RecordingGateway(content="새로운 이야기")

    result = generate_novel_content(store, project_id, second, gateway=gateway)

    assert result.text == "새로운 이야기"
    assert result.model == "grok-3"
    assert gateway.prompts == [result.prompt]
    assert store.get_project(project_id).find_episode(second).novel_content == "새로운 이야기"


def test_generate_storyboard_without_novel_fails_before_gateway(store, seeded):
    project_id, _, _, second = seeded
    gateway = RecordingGateway()

    with pytest.raises(PreconditionError):
        generate_storyboard_content(store, project_id, second, 60, gateway=gateway)

    assert gateway.prompts == []


def test_generation_preconditions(store, seeded):
    project_id, _, first, _ = seeded
    gateway = RecordingGateway()
    blank = store.add_episode(project_id, number=3, title="빈 회차")

    with pytest.raises(NotFoundError):
        generate_novel_content(store, "missing", first, gateway=gateway)
    with pytest.raises(NotFoundError):
        generate_novel_content(store, project_id, "missing", gateway=gateway)
    with pytest.raises(PreconditionError):
        generate_novel_content(store, project_id, blank, gateway=gateway)
    with pytest.raises(PreconditionError):
        generate_storyboard_content(store, project_id, first, 0, gateway=gateway)
    assert gateway.prompts == []


def test_cleared_summary_is_a_precondition_failure(store, seeded):
    project_id, _, _, second = seeded
    gateway = RecordingGateway()
    store.update_episode(project_id, second, EpisodePatch(summary=None))

    with pytest.raises(PreconditionError):
        generate_novel_content(store, project_id, second, gateway=gateway)
    assert gateway.prompts == []


def test_gateway_failure_stores_nothing(store, seeded):
    project_id, _, first, _ = seeded
    before = store.get_project(project_id).find_episode(first)

    with pytest.raises(GatewayError):
        generate_storyboard_content(store, project_id, first, 60, gateway=FailingGateway())

    after = store.get_project(project_id).find_episode(first)
    assert after.storyboard_content is None
    assert after.updated_at == before.updated_at


def test_gateway_falls_through_to_first_model_with_text():
    client = ScriptedClient({"grok-3": RuntimeError("404 model not found"), "grok-3-beta": "   ", "grok-beta": "본문"})
    gateway = LLMGateway(client)

    response = gateway.generate("프롬프트")

    assert response.content == "본문"
    assert response.model == "grok-beta"
    assert client.calls == ["grok-3", "grok-3-beta", "grok-beta"]


def test_gateway_aggregates_failures():
    client = ScriptedClient({"a": RuntimeError("timeout"), "b": ""})
    gateway = LLMGateway(client, ["a", "b"])

    with pytest.raises(GatewayError) as excinfo:
        gateway.generate("프롬프트")

    assert excinfo.value.models_attempted == ["a", "b"]
    assert excinfo.value.attempts[0] == ("a", "timeout")
