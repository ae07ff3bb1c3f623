from flask import jsonify, request
from flask_wtf.csrf import generate_csrf

from ..catalog import BLOOD_TYPES, GENRE_OPTIONS, MBTI_CODES, WRITING_STYLES
from ..serialization import format_timestamp
from ..store import get_store
from . import bp


def _redact(api_key: str) -> str:
    return (api_key[:4] + "…" + api_key[-4:]) if len(api_key) > 8 else ("…" if api_key else "")


@bp.route("/")
def index():
    store = get_store()
    projects = [
        {
            "id": project.id,
            "title": project.title,
            "genres": project.genres,
            "episodeCount": len(project.episodes),
            "characterCount": len(project.characters),
            "updatedAt": format_timestamp(project.updated_at),
        }
        for project in store.list_projects()
    ]
    return jsonify(
        {
            "projects": projects,
            "currentProjectId": store.current_project_id,
            "writingStyles": list(WRITING_STYLES),
            "genres": list(GENRE_OPTIONS),
            "mbtiTypes": list(MBTI_CODES),
            "bloodTypes": list(BLOOD_TYPES),
        }
    )


@bp.route("/csrf-token")
def csrf_token():
    return jsonify({"csrfToken": generate_csrf()})


@bp.route("/settings/api-key", methods=["GET", "PUT"])
def api_key():
    store = get_store()
    if request.method == "PUT":
        payload = request.get_json(silent=True) or {}
        raw_key = payload.get("apiKey", "")
        if not isinstance(raw_key, str):
            return jsonify({"error": "apiKey must be a string."}), 400
        store.set_grok_api_key(raw_key.strip())

    stored = store.get_grok_api_key()
    return jsonify({"configured": bool(stored), "apiKey": _redact(stored)})


@bp.route("/reset", methods=["POST"])
def reset():
    get_store().clear_all_data()
    return jsonify({"status": "cleared"})
