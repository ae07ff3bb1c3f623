from __future__ import annotations

from flask import Response, current_app, jsonify, request

from text_exporter import TextExportError, compose_episode_text, compose_novel_text

from ..entities import ENTITY_COLLECTIONS, PATCH_TYPES, ProjectPatch, camel_case
from ..errors import GatewayError, NotFoundError, ParseError, PreconditionError
from ..queries import (
    filter_events,
    filter_items,
    filter_terms,
    next_episode_number,
    sort_events,
    term_categories,
)
from ..serialization import entity_to_dict, project_to_dict
from ..services import generate_novel_content, generate_storyboard_content
from ..store import get_store
from . import bp

MIN_CUT_COUNT = 40
MAX_CUT_COUNT = 100
DEFAULT_CUT_COUNT = 60

# URL segment (wire name) -> store collection name
COLLECTIONS = {camel_case(name): name for name in ENTITY_COLLECTIONS}


def _error(message: str, status: int):
    return jsonify({"error": message}), status


def _project_or_404(project_id: str):
    project = get_store().get_project(project_id)
    if project is None:
        raise NotFoundError(f"Project '{project_id}' not found.")
    return project


def _singular(collection: str) -> str:
    return collection[:-1]


@bp.errorhandler(NotFoundError)
def _handle_not_found(exc: NotFoundError):
    return _error(str(exc), 404)


@bp.errorhandler(ParseError)
@bp.errorhandler(PreconditionError)
@bp.errorhandler(ValueError)
@bp.errorhandler(TypeError)
def _handle_bad_request(exc: Exception):
    return _error(str(exc), 400)


@bp.errorhandler(GatewayError)
def _handle_gateway_error(exc: GatewayError):
    current_app.logger.warning("Generation failed after trying %s", ", ".join(exc.models_attempted) or "no models")
    return jsonify({"error": str(exc), "modelsAttempted": exc.models_attempted}), 502


# ----------------------------------------------------------------------
# projects
# ----------------------------------------------------------------------
@bp.route("", methods=["GET"])
def list_projects():
    return jsonify({"projects": [project_to_dict(p) for p in get_store().list_projects()]})


@bp.route("", methods=["POST"])
def create_project():
    payload = request.get_json(silent=True) or {}
    title = payload.get("title")
    if not isinstance(title, str) or not title.strip():
        return _error("작품 제목을 입력해주세요.", 400)

    store = get_store()
    project_id = store.create_project(
        title.strip(),
        synopsis=payload.get("synopsis") or "",
        genres=payload.get("genres") or [],
        writing_style=payload.get("writingStyle"),
        cover_image=payload.get("coverImage"),
    )
    return jsonify({"id": project_id, "project": project_to_dict(store.get_project(project_id))}), 201


@bp.route("/<project_id>", methods=["GET"])
def detail(project_id: str):
    return jsonify(project_to_dict(_project_or_404(project_id)))


@bp.route("/<project_id>", methods=["PATCH"])
def update_project(project_id: str):
    _project_or_404(project_id)
    patch = ProjectPatch.from_mapping(request.get_json(silent=True) or {})
    store = get_store()
    store.update_project(project_id, patch)
    return jsonify(project_to_dict(store.get_project(project_id)))


@bp.route("/<project_id>", methods=["DELETE"])
def delete_project(project_id: str):
    _project_or_404(project_id)
    get_store().delete_project(project_id)
    return jsonify({"status": "deleted", "id": project_id})


@bp.route("/<project_id>/select", methods=["POST"])
def select(project_id: str):
    _project_or_404(project_id)
    store = get_store()
    store.set_current_project(project_id)
    return jsonify({"currentProjectId": store.current_project_id})


# ----------------------------------------------------------------------
# import / export
# ----------------------------------------------------------------------
@bp.route("/<project_id>/export", methods=["GET"])
def export(project_id: str):
    project = _project_or_404(project_id)
    serialized = get_store().export_project(project_id)
    return Response(
        serialized,
        mimetype="application/json",
        headers={"Content-Disposition": f"attachment; filename=\"{project.id}.json\""},
    )


@bp.route("/import", methods=["POST"])
def import_project():
    serialized = request.get_data(as_text=True)
    if not serialized.strip():
        return _error("가져올 프로젝트 데이터가 없습니다.", 400)
    store = get_store()
    project_id = store.import_project(serialized)
    return jsonify({"id": project_id, "project": project_to_dict(store.get_project(project_id))}), 201


@bp.route("/<project_id>/novel.txt", methods=["GET"])
def novel_text(project_id: str):
    project = _project_or_404(project_id)
    try:
        text_blob = compose_novel_text(project)
    except TextExportError as exc:
        return _error(str(exc), 400)
    return _text_download(text_blob, "novel.txt")


def _text_download(text_blob: str, filename: str) -> Response:
    return Response(
        text_blob,
        mimetype="text/plain; charset=utf-8",
        headers={"Content-Disposition": f"attachment; filename=\"{filename}\""},
    )


@bp.route("/<project_id>/episodes/<episode_id>/novel.txt", methods=["GET"])
def episode_novel_text(project_id: str, episode_id: str):
    return _episode_download(project_id, episode_id, storyboard=False)


@bp.route("/<project_id>/episodes/<episode_id>/storyboard.txt", methods=["GET"])
def episode_storyboard_text(project_id: str, episode_id: str):
    return _episode_download(project_id, episode_id, storyboard=True)


def _episode_download(project_id: str, episode_id: str, *, storyboard: bool):
    episode = _project_or_404(project_id).find_episode(episode_id)
    if episode is None:
        raise NotFoundError(f"Episode '{episode_id}' not found.")
    try:
        text_blob = compose_episode_text(episode, storyboard=storyboard)
    except TextExportError as exc:
        return _error(str(exc), 400)
    kind = "storyboard" if storyboard else "novel"
    return _text_download(text_blob, f"episode-{episode.number}-{kind}.txt")


# ----------------------------------------------------------------------
# child collections
# ----------------------------------------------------------------------
def _collection_or_404(collection: str) -> str:
    name = COLLECTIONS.get(collection)
    if name is None:
        raise NotFoundError(f"Unknown collection '{collection}'.")
    return name


@bp.route("/<project_id>/<collection>", methods=["GET"])
def list_entities(project_id: str, collection: str):
    name = _collection_or_404(collection)
    project = _project_or_404(project_id)
    entities = project.collection(name)
    args = request.args

    if name == "events":
        entities = sort_events(filter_events(entities, args.get("importance")), args.get("sort", "date"))
    elif name == "terms":
        entities = filter_terms(entities, args.get("search", ""), args.get("category"))
    elif name == "items":
        entities = filter_items(
            entities,
            args.get("search", ""),
            type=args.get("type"),
            rarity=args.get("rarity"),
            owner=args.get("owner"),
        )

    payload = {collection: [entity_to_dict(e) for e in entities]}
    if name == "terms":
        payload["categories"] = term_categories(project.terms)
    return jsonify(payload)


@bp.route("/<project_id>/<collection>", methods=["POST"])
def add_entity(project_id: str, collection: str):
    name = _collection_or_404(collection)
    project = _project_or_404(project_id)
    fields = PATCH_TYPES[name].from_mapping(request.get_json(silent=True) or {}).changes()
    if name == "episodes":
        fields.setdefault("number", next_episode_number(project))

    store = get_store()
    entity_id = getattr(store, f"add_{_singular(name)}")(project_id, **fields)
    if entity_id is None:
        raise NotFoundError(f"Project '{project_id}' not found.")
    entity = next(e for e in store.get_project(project_id).collection(name) if e.id == entity_id)
    return jsonify(entity_to_dict(entity)), 201


def _entity_or_404(project_id: str, name: str, entity_id: str):
    project = _project_or_404(project_id)
    entity = next((e for e in project.collection(name) if e.id == entity_id), None)
    if entity is None:
        raise NotFoundError(f"'{entity_id}' not found in {name}.")
    return entity


@bp.route("/<project_id>/<collection>/<entity_id>", methods=["PATCH"])
def update_entity(project_id: str, collection: str, entity_id: str):
    name = _collection_or_404(collection)
    _entity_or_404(project_id, name, entity_id)
    patch = PATCH_TYPES[name].from_mapping(request.get_json(silent=True) or {})
    getattr(get_store(), f"update_{_singular(name)}")(project_id, entity_id, patch)
    return jsonify(entity_to_dict(_entity_or_404(project_id, name, entity_id)))


@bp.route("/<project_id>/<collection>/<entity_id>", methods=["DELETE"])
def delete_entity(project_id: str, collection: str, entity_id: str):
    name = _collection_or_404(collection)
    _entity_or_404(project_id, name, entity_id)
    getattr(get_store(), f"delete_{_singular(name)}")(project_id, entity_id)
    return jsonify({"status": "deleted", "id": entity_id})


@bp.route("/<project_id>/episodes/reorder", methods=["POST"])
def reorder_episodes(project_id: str):
    _project_or_404(project_id)
    payload = request.get_json(silent=True) or {}
    episode_ids = payload.get("episodeIds")
    if not isinstance(episode_ids, list) or not all(isinstance(i, str) for i in episode_ids):
        return _error("episodeIds must be a list of ids.", 400)
    store = get_store()
    store.reorder_episodes(project_id, episode_ids)
    return jsonify({"episodes": [entity_to_dict(e) for e in store.get_project(project_id).episodes]})


# ----------------------------------------------------------------------
# generation
# ----------------------------------------------------------------------
def _parse_cut_count(raw) -> int:
    if raw is None or raw == "":
        return DEFAULT_CUT_COUNT
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return DEFAULT_CUT_COUNT
    return max(MIN_CUT_COUNT, min(MAX_CUT_COUNT, value))


@bp.route("/<project_id>/episodes/<episode_id>/novel", methods=["POST"])
def generate_novel(project_id: str, episode_id: str):
    payload = request.get_json(silent=True) or {}
    store = get_store()
    result = generate_novel_content(
        store,
        project_id,
        episode_id,
        writing_style=payload.get("writingStyle"),
    )
    episode = store.get_project(project_id).find_episode(episode_id)
    return jsonify({"content": result.text, "model": result.model, "episode": entity_to_dict(episode)})


@bp.route("/<project_id>/episodes/<episode_id>/storyboard", methods=["POST"])
def generate_storyboard(project_id: str, episode_id: str):
    payload = request.get_json(silent=True) or {}
    store = get_store()
    result = generate_storyboard_content(
        store,
        project_id,
        episode_id,
        _parse_cut_count(payload.get("cutCount")),
    )
    episode = store.get_project(project_id).find_episode(episode_id)
    return jsonify({"content": result.text, "model": result.model, "episode": entity_to_dict(episode)})
