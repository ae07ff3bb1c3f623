# grok_client.py
from __future__ import annotations
from typing import Any, List, Optional, Tuple

import openai

from system_prompts import get_prompt_max_new_tokens, get_prompt_setting, get_system_prompt

DEFAULT_API_BASE = "https://api.x.ai/v1"
DEFAULT_PROMPT_NAME = "web_novel_assistant"


class GrokChatClient:
    """
    Chat Completions client for the xAI (Grok) API.

    The xAI endpoint speaks the OpenAI wire protocol, so the official
    ``openai`` SDK is used with ``base_url`` pointed at xAI. Every request
    carries the configured system message followed by the user prompt.

    Compatible with OpenAI Python SDK >= 1.0.
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_API_BASE,
        timeout: Optional[float] = None,
        default_max_tokens: Optional[int] = None,
        default_temperature: Optional[float] = None,
        prompt_name: str = DEFAULT_PROMPT_NAME,
    ) -> None:
        self.api_key = (api_key or "").strip()
        if not self.api_key:
            raise ValueError("An API key is required for the Grok client.")
        self.base_url = (base_url or DEFAULT_API_BASE).rstrip("/")
        self.system_prompt = get_system_prompt(prompt_name)
        self.default_max_tokens = int(
            default_max_tokens or get_prompt_max_new_tokens(prompt_name, fallback=8000)
        )
        if default_temperature is None:
            default_temperature = get_prompt_setting(prompt_name, "temperature", 0.8)
        self.default_temperature = float(default_temperature)

        client_kwargs = {"api_key": self.api_key, "base_url": self.base_url}
        if timeout:
            client_kwargs["timeout"] = float(timeout)
        self._client = openai.OpenAI(**client_kwargs)

    # ---------------- public API ----------------
    def generate_response(
        self,
        prompt: str,
        *,
        model: str,
        max_new_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> str:
        if not isinstance(prompt, str) or not prompt.strip():
            raise ValueError("prompt must be a non-empty string.")
        max_tokens = int(max_new_tokens if max_new_tokens is not None else self.default_max_tokens)
        if max_tokens <= 0:
            raise ValueError("max_new_tokens must be positive.")

        messages = []
        if self.system_prompt:
            messages.append({"role": "system", "content": self.system_prompt})
        messages.append({"role": "user", "content": prompt})

        resp = self._client.chat.completions.create(
            model=model,
            messages=messages,
            max_tokens=max_tokens,
            temperature=float(temperature if temperature is not None else self.default_temperature),
        )
        text = self._extract_text_from_chat(resp).strip()
        if text:
            return text
        snippet = self._shorten_debug(str(resp))
        raise RuntimeError(f"Chat completion returned no text. Raw response (truncated): {snippet}")

    def signature(self) -> Tuple[str, str]:
        # Never return raw secrets
        redacted = (self.api_key[:4] + "…" + self.api_key[-4:]) if self.api_key else ""
        return (self.base_url, redacted)

    # ---------------- extractors ----------------
    def _extract_text_from_chat(self, resp: Any) -> str:
        choices = getattr(resp, "choices", []) or []
        if not choices:
            return ""
        first = choices[0]
        msg = getattr(first, "message", None)
        if isinstance(msg, dict):
            content = msg.get("content")
        else:
            content = getattr(msg, "content", None)
        if isinstance(content, list):
            parts: List[str] = []
            for p in content:
                if isinstance(p, dict) and p.get("type") == "text":
                    parts.append(str(p.get("text") or ""))
            return "\n".join([p for p in parts if p])
        return str(content or "")

    @staticmethod
    def _shorten_debug(s: str, limit: int = 1200) -> str:
        s = s.replace("\n", " ")
        return (s[:limit] + "…") if len(s) > limit else s
