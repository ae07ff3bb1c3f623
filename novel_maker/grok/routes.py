from flask import current_app, jsonify, request

from ..errors import GatewayError
from ..services import generation
from . import bp


@bp.route("/grok", methods=["POST"])
def grok():
    payload = request.get_json(silent=True) or {}
    prompt = payload.get("prompt")
    if not isinstance(prompt, str) or not prompt.strip():
        return jsonify({"error": "Prompt is required"}), 400

    try:
        response = generation.get_gateway().generate(prompt)
    except GatewayError as exc:
        current_app.logger.warning("Grok proxy failed after trying %s", ", ".join(exc.models_attempted) or "no models")
        return jsonify({"error": str(exc), "modelsAttempted": exc.models_attempted}), 500

    return jsonify({"content": response.content, "model": response.model})
