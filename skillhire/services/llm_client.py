from __future__ import annotations

import logging
from functools import lru_cache

from openai import OpenAI

from skillhire.config import is_llm_configured, settings


logger = logging.getLogger(__name__)


class ChatCompletionClient:
    """Thin wrapper over an OpenAI-compatible chat completions endpoint."""

    def __init__(self, *, api_key: str, model: str, base_url: str | None = None, timeout: float = 30.0) -> None:
        self.model = model
        self._client = OpenAI(api_key=api_key, base_url=base_url or None, timeout=timeout, max_retries=1)

    def complete_json(self, prompt: str, *, system: str | None = None, max_tokens: int = 4000) -> str:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        r = self._client.chat.completions.create(
            model=self.model,
            messages=messages,
            response_format={"type": "json_object"},
            temperature=0.7,
            max_tokens=max_tokens,
        )
        return (r.choices[0].message.content or "").strip()


@lru_cache
def get_llm_client() -> ChatCompletionClient | None:
    if not is_llm_configured(settings):
        logger.info("No OPENAI_API_KEY configured; quiz questions will be synthesized locally")
        return None
    return ChatCompletionClient(
        api_key=str(settings.openai_api_key).strip(),
        model=settings.llm_model,
        base_url=settings.llm_base_url,
        timeout=settings.llm_timeout_seconds,
    )
