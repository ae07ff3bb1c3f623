"""Generate episode prose and storyboards and write them back to the store."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from flask import current_app

from ..entities import Episode, EpisodePatch, Project
from ..errors import GatewayError, NotFoundError, PreconditionError
from ..store import ProjectStore, get_store
from .gateway import DEFAULT_MODEL_CANDIDATES, LLMGateway
from .prompt_assembly import build_novel_prompt, build_storyboard_prompt


@dataclass
class GenerationResult:
    text: str
    prompt: str
    model: str


def generate_novel_content(
    store: ProjectStore,
    project_id: str,
    episode_id: str,
    *,
    writing_style: Optional[str] = None,
    gateway: Optional[LLMGateway] = None,
) -> GenerationResult:
    """Write the episode's prose from its summary and store it as ``novel_content``."""

    project, episode = _load_target(store, project_id, episode_id)
    if not episode.summary.strip():
        raise PreconditionError("회차 줄거리를 먼저 입력해주세요.")

    prompt = build_novel_prompt(project, episode, writing_style)
    response = (gateway or get_gateway()).generate(prompt)

    store.update_episode(project_id, episode_id, EpisodePatch(novel_content=response.content))
    return GenerationResult(text=response.content, prompt=prompt, model=response.model)


def generate_storyboard_content(
    store: ProjectStore,
    project_id: str,
    episode_id: str,
    cut_count: int,
    *,
    gateway: Optional[LLMGateway] = None,
) -> GenerationResult:
    """Adapt the episode's prose into ``cut_count`` cuts and store it as ``storyboard_content``."""

    project, episode = _load_target(store, project_id, episode_id)
    if not isinstance(cut_count, int) or isinstance(cut_count, bool) or cut_count < 1:
        raise PreconditionError("컷 수는 1 이상이어야 합니다.")

    prompt = build_storyboard_prompt(project, episode, cut_count)
    response = (gateway or get_gateway()).generate(prompt)

    store.update_episode(project_id, episode_id, EpisodePatch(storyboard_content=response.content))
    return GenerationResult(text=response.content, prompt=prompt, model=response.model)


def _load_target(store: ProjectStore, project_id: str, episode_id: str) -> Tuple[Project, Episode]:
    project = store.get_project(project_id)
    if project is None:
        raise NotFoundError(f"Project '{project_id}' not found.")
    episode = project.find_episode(episode_id)
    if episode is None:
        raise NotFoundError(f"Episode '{episode_id}' not found.")
    return project, episode


def _resolve_api_key() -> str:
    return get_store().get_grok_api_key() or current_app.config.get("GROK_API_KEY") or ""


def _model_candidates() -> Tuple[str, ...]:
    raw = current_app.config.get("GROK_MODEL_CANDIDATES")
    if isinstance(raw, str):
        candidates = tuple(part.strip() for part in raw.split(",") if part.strip())
    else:
        candidates = tuple(raw or ())
    return candidates or DEFAULT_MODEL_CANDIDATES


def get_gateway() -> LLMGateway:  # pragma: no cover - integration point
    """Return the gateway for the current app, rebuilt when the API key changes."""

    app = current_app
    api_key = _resolve_api_key()
    if not api_key:
        raise GatewayError("Grok API 키가 설정되지 않았습니다.")

    cached = app.config.get("_GATEWAY_INSTANCE")
    if cached is not None and cached[0] == api_key:
        return cached[1]

    from grok_client import GrokChatClient

    client = GrokChatClient(
        api_key,
        base_url=app.config.get("GROK_API_BASE"),
        timeout=app.config.get("GROK_REQUEST_TIMEOUT"),
        default_max_tokens=app.config.get("GROK_MAX_TOKENS"),
        default_temperature=app.config.get("GROK_TEMPERATURE"),
    )
    app.logger.info("Initialising Grok gateway at %s with key %s", *client.signature())
    gateway = LLMGateway(client, _model_candidates())
    app.config["_GATEWAY_INSTANCE"] = (api_key, gateway)
    return gateway


__all__ = ["GenerationResult", "generate_novel_content", "generate_storyboard_content", "get_gateway"]
