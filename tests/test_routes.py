import json
import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from novel_maker import create_app
from novel_maker.config import TestConfig
from novel_maker.errors import GatewayError
from novel_maker.extensions import db
from novel_maker.models import StoreSnapshot
from novel_maker.services import generation
from novel_maker.services.gateway import GatewayResponse
from novel_maker.store import get_store


class DummyGateway:
    def __init__(self, content="생성 결과"):
        self.content = content
        self.prompts = []

    def generate(self, prompt, model_candidates=None):
        self.prompts.append(prompt)
        return GatewayResponse(content=self.content, model="grok-3")


class BrokenGateway:
    def generate(self, prompt, model_candidates=None):
        raise GatewayError("All model attempts failed", [("grok-3", "401"), ("grok", "401")])


@pytest.fixture
def app_instance():
    app = create_app(TestConfig)
    app.config["WTF_CSRF_ENABLED"] = False
    ctx = app.app_context()
    ctx.push()
    db.create_all()
    yield app
    db.session.remove()
    db.drop_all()
    ctx.pop()


@pytest.fixture
def client(app_instance):
    return app_instance.test_client()


@pytest.fixture
def project_id(client):
    response = client.post("/projects", json={"title": "달빛 연대기", "synopsis": "달의 비밀", "genres": ["판타지"]})
    assert response.status_code == 201
    return response.get_json()["id"]


def test_index_lists_projects_and_catalogs(client, project_id):
    payload = client.get("/").get_json()

    assert payload["currentProjectId"] == project_id
    assert payload["projects"][0]["title"] == "달빛 연대기"
    assert "INTJ" in payload["mbtiTypes"]


def test_create_project_requires_title(client):
    response = client.post("/projects", json={"title": "  "})

    assert response.status_code == 400
    assert "error" in response.get_json()


def test_project_crud_round_trip(client, project_id):
    response = client.patch(f"/projects/{project_id}", json={"synopsis": "새 시놉시스", "writingStyle": "poetic"})
    assert response.status_code == 200
    assert response.get_json()["synopsis"] == "새 시놉시스"
    assert response.get_json()["writingStyle"] == "poetic"

    assert client.patch(f"/projects/{project_id}", json={"owner": "x"}).status_code == 400
    assert client.get("/projects/unknown").status_code == 404

    assert client.delete(f"/projects/{project_id}").status_code == 200
    assert client.get(f"/projects/{project_id}").status_code == 404


def test_collection_endpoints(client, project_id):
    response = client.post(f"/projects/{project_id}/characters", json={"name": "아린", "mbti": "enfp"})
    assert response.status_code == 201
    character = response.get_json()
    assert character["mbti"] == "ENFP"

    response = client.post(f"/projects/{project_id}/episodes", json={"title": "1화", "appearingCharacters": [character["id"]]})
    assert response.status_code == 201
    assert response.get_json()["number"] == 1

    response = client.patch(
        f"/projects/{project_id}/characters/{character['id']}",
        json={"occupation": "마법사"},
    )
    assert response.get_json()["occupation"] == "마법사"
    assert response.get_json()["name"] == "아린"

    assert client.post(f"/projects/{project_id}/worldSettings", json={"category": "space", "title": "x"}).status_code == 400
    assert client.post(f"/projects/{project_id}/characters", json={"occupation": "이름없음"}).status_code == 400
    assert client.post(f"/projects/{project_id}/unknown", json={}).status_code == 404
    assert client.patch(f"/projects/{project_id}/characters/missing", json={"name": "x"}).status_code == 404

    assert client.delete(f"/projects/{project_id}/characters/{character['id']}").status_code == 200
    assert client.get(f"/projects/{project_id}/characters").get_json()["characters"] == []


def test_event_listing_sorts_and_filters(client, project_id):
    client.post(f"/projects/{project_id}/events", json={"title": "후반", "date": "2024-05", "importance": "low"})
    client.post(f"/projects/{project_id}/events", json={"title": "미정", "importance": "high"})
    client.post(f"/projects/{project_id}/events", json={"title": "초반", "date": "2023-01"})

    by_date = client.get(f"/projects/{project_id}/events").get_json()["events"]
    assert [e["title"] for e in by_date] == ["초반", "후반", "미정"]

    by_importance = client.get(f"/projects/{project_id}/events?sort=importance").get_json()["events"]
    assert [e["title"] for e in by_importance] == ["미정", "초반", "후반"]

    high_only = client.get(f"/projects/{project_id}/events?importance=high").get_json()["events"]
    assert [e["title"] for e in high_only] == ["미정"]


def test_export_and_import(client, project_id):
    exported = client.get(f"/projects/{project_id}/export")
    assert exported.status_code == 200
    document = json.loads(exported.get_data(as_text=True))
    assert document["id"] == project_id

    response = client.post("/projects/import", data=exported.get_data(), content_type="application/json")
    assert response.status_code == 201
    assert response.get_json()["id"] != project_id

    assert client.post("/projects/import", data="{broken", content_type="application/json").status_code == 400
    assert len(client.get("/projects").get_json()["projects"]) == 2


def test_novel_txt_download(client, project_id):
    assert client.get(f"/projects/{project_id}/novel.txt").status_code == 400

    episode = client.post(f"/projects/{project_id}/episodes", json={"title": "시작", "novelContent": "옛날 옛적에"}).get_json()
    response = client.get(f"/projects/{project_id}/novel.txt")

    assert response.status_code == 200
    text = response.get_data(as_text=True)
    assert text.startswith("달빛 연대기\n\n달의 비밀\n\n" + "=" * 50)
    assert f"{episode['number']}화. 시작\n\n옛날 옛적에" in text


def test_generate_novel_route_uses_gateway(client, project_id, monkeypatch):
    gateway = DummyGateway("완성된 소설")
    monkeypatch.setattr(generation, "get_gateway", lambda: gateway)
    episode = client.post(f"/projects/{project_id}/episodes", json={"title": "1화", "summary": "만남"}).get_json()

    response = client.post(f"/projects/{project_id}/episodes/{episode['id']}/novel", json={})

    assert response.status_code == 200
    payload = response.get_json()
    assert payload["content"] == "완성된 소설"
    assert payload["episode"]["novelContent"] == "완성된 소설"
    assert len(gateway.prompts) == 1


def test_storyboard_route_clamps_cut_count(client, project_id, monkeypatch):
    gateway = DummyGateway("콘티")
    monkeypatch.setattr(generation, "get_gateway", lambda: gateway)
    episode = client.post(
        f"/projects/{project_id}/episodes",
        json={"title": "1화", "summary": "만남", "novelContent": "본문"},
    ).get_json()

    client.post(f"/projects/{project_id}/episodes/{episode['id']}/storyboard", json={"cutCount": 500})
    client.post(f"/projects/{project_id}/episodes/{episode['id']}/storyboard", json={"cutCount": 3})
    client.post(f"/projects/{project_id}/episodes/{episode['id']}/storyboard", json={})

    assert "반드시 100컷" in gateway.prompts[0]
    assert "반드시 40컷" in gateway.prompts[1]
    assert "반드시 60컷" in gateway.prompts[2]


def test_generation_errors_map_to_status_codes(client, project_id, monkeypatch):
    gateway = DummyGateway()
    monkeypatch.setattr(generation, "get_gateway", lambda: gateway)
    episode = client.post(f"/projects/{project_id}/episodes", json={"title": "1화", "summary": "만남"}).get_json()

    no_novel = client.post(f"/projects/{project_id}/episodes/{episode['id']}/storyboard", json={})
    missing = client.post(f"/projects/{project_id}/episodes/missing/novel", json={})
    assert no_novel.status_code == 400
    assert missing.status_code == 404
    assert gateway.prompts == []

    monkeypatch.setattr(generation, "get_gateway", lambda: BrokenGateway())
    failed = client.post(f"/projects/{project_id}/episodes/{episode['id']}/novel", json={})
    assert failed.status_code == 502
    assert failed.get_json()["modelsAttempted"] == ["grok-3", "grok"]


def test_grok_proxy(client, monkeypatch):
    assert client.post("/api/grok", json={}).get_json() == {"error": "Prompt is required"}
    assert client.post("/api/grok", json={}).status_code == 400

    monkeypatch.setattr(generation, "get_gateway", lambda: DummyGateway("응답"))
    assert client.post("/api/grok", json={"prompt": "안녕"}).get_json() == {"content": "응답", "model": "grok-3"}

    monkeypatch.setattr(generation, "get_gateway", lambda: BrokenGateway())
    response = client.post("/api/grok", json={"prompt": "안녕"})
    assert response.status_code == 500
    assert response.get_json() == {"error": "All model attempts failed", "modelsAttempted": ["grok-3", "grok"]}


def test_grok_proxy_without_key_fails_before_network(client, monkeypatch):
    monkeypatch.delitem(client.application.config, "GROK_API_KEY", raising=False)

    response = client.post("/api/grok", json={"prompt": "안녕"})

    assert response.status_code == 500
    assert response.get_json()["modelsAttempted"] == []


def test_api_key_settings_are_redacted(client):
    response = client.put("/settings/api-key", json={"apiKey": "xai-1234567890abcdef"})

    payload = response.get_json()
    assert payload["configured"] is True
    assert "1234567890" not in payload["apiKey"]
    assert get_store().get_grok_api_key() == "xai-1234567890abcdef"


def test_reset_clears_store_and_persists_snapshot(client, project_id):
    row = db.session.get(StoreSnapshot, TestConfig.STORE_SNAPSHOT_NAME)
    assert row is not None and project_id in row.payload

    assert client.post("/reset").status_code == 200
    assert client.get("/projects").get_json()["projects"] == []


def test_non_text_field_is_rejected_and_store_reloads(client, project_id):
    response = client.post(f"/projects/{project_id}/characters", json={"name": "카인", "age": 30})
    assert response.status_code == 400

    character = client.post(f"/projects/{project_id}/characters", json={"name": "카인", "age": "30"}).get_json()
    response = client.patch(f"/projects/{project_id}/characters/{character['id']}", json={"age": 31})
    assert response.status_code == 400

    reloaded = get_store().load()
    assert [c.age for c in reloaded.get_project(project_id).characters] == ["30"]


def test_null_text_fields_keep_listings_and_generation_working(client, project_id, monkeypatch):
    gateway = DummyGateway()
    monkeypatch.setattr(generation, "get_gateway", lambda: gateway)
    term = client.post(f"/projects/{project_id}/terms", json={"term": "마나", "category": "마법"}).get_json()
    episode = client.post(f"/projects/{project_id}/episodes", json={"title": "1화", "summary": "만남"}).get_json()

    assert client.patch(f"/projects/{project_id}/terms/{term['id']}", json={"definition": None}).status_code == 200
    response = client.get(f"/projects/{project_id}/terms?search=x")
    assert response.status_code == 200
    assert response.get_json()["terms"] == []

    assert client.patch(f"/projects/{project_id}/episodes/{episode['id']}", json={"summary": None}).status_code == 200
    assert client.post(f"/projects/{project_id}/episodes/{episode['id']}/novel", json={}).status_code == 400
    assert gateway.prompts == []


def test_term_listing_includes_categories(client, project_id):
    client.post(f"/projects/{project_id}/terms", json={"term": "마나", "category": "마법"})
    client.post(f"/projects/{project_id}/terms", json={"term": "길드", "category": "조직"})
    client.post(f"/projects/{project_id}/terms", json={"term": "마석", "category": "마법"})

    payload = client.get(f"/projects/{project_id}/terms?category=조직").get_json()

    assert [t["term"] for t in payload["terms"]] == ["길드"]
    assert payload["categories"] == ["마법", "조직"]


def test_episode_text_downloads(client, project_id):
    episode = client.post(
        f"/projects/{project_id}/episodes",
        json={"title": "시작", "novelContent": "옛날 옛적에"},
    ).get_json()
    base = f"/projects/{project_id}/episodes/{episode['id']}"

    novel = client.get(f"{base}/novel.txt")
    assert novel.status_code == 200
    assert novel.get_data(as_text=True) == "1화. 시작\n\n옛날 옛적에"
    assert "episode-1-novel.txt" in novel.headers["Content-Disposition"]

    assert client.get(f"{base}/storyboard.txt").status_code == 400
    client.patch(base, json={"storyboardContent": "컷 1: 달"})
    storyboard = client.get(f"{base}/storyboard.txt")
    assert storyboard.status_code == 200
    assert storyboard.get_data(as_text=True).endswith("컷 1: 달")

    assert client.get(f"/projects/{project_id}/episodes/missing/novel.txt").status_code == 404
