"""Model-candidate fallthrough over a chat-completion client."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

from ..errors import GatewayError

LOGGER = logging.getLogger(__name__)

DEFAULT_MODEL_CANDIDATES: Tuple[str, ...] = ("grok-3", "grok-3-beta", "grok-beta", "grok")


@dataclass
class GatewayResponse:
    content: str
    model: str


class LLMGateway:
    """Send a prompt to each candidate model in turn until one returns text.

    ``client`` is anything exposing ``generate_response(prompt, *, model=...)``
    and returning a string; :class:`grok_client.GrokChatClient` in production.
    """

    def __init__(self, client: Any, model_candidates: Optional[Sequence[str]] = None) -> None:
        self.client = client
        self.model_candidates: List[str] = list(model_candidates or DEFAULT_MODEL_CANDIDATES)

    def generate(self, prompt: str, model_candidates: Optional[Sequence[str]] = None) -> GatewayResponse:
        candidates = list(model_candidates or self.model_candidates)
        if not candidates:
            raise GatewayError("No model candidates configured.")

        attempts: List[Tuple[str, str]] = []
        for model in candidates:
            LOGGER.info("Requesting completion from model '%s'.", model)
            try:
                text = self.client.generate_response(prompt, model=model)
            except Exception as exc:  # any transport or API failure moves on to the next model
                LOGGER.warning("Model '%s' failed: %s", model, exc)
                attempts.append((model, str(exc)))
                continue

            text = (text or "").strip()
            if not text:
                LOGGER.warning("Model '%s' returned no text.", model)
                attempts.append((model, "empty response"))
                continue
            return GatewayResponse(content=text, model=model)

        raise GatewayError("All model attempts failed", attempts)


__all__ = ["DEFAULT_MODEL_CANDIDATES", "GatewayResponse", "LLMGateway"]
