from __future__ import annotations

import logging
from typing import Optional

from openai import OpenAI, OpenAIError

from chaincv.ai.types import ModelError

logger = logging.getLogger(__name__)


def _looks_like_placeholder(value: str) -> bool:
    lower = value.strip().lower()
    return lower.startswith("your_") or lower.startswith("replace_") or lower in {"changeme", "todo"}


class OpenAIProvider:
    def __init__(
        self,
        model: str,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_s: float = 30.0,
        max_retries: int = 2,
        temperature: float = 0.1,
        max_output_tokens: int = 2048,
    ):
        self._model = model
        self._api_key = (api_key or "").strip()
        self._base_url = base_url or None
        self._timeout_s = timeout_s
        self._max_retries = max_retries
        self._temperature = temperature
        self._max_output_tokens = max_output_tokens
        self._client: OpenAI | None = None

    @property
    def model(self) -> str:
        return self._model

    def _get_client(self) -> OpenAI:
        if not self._api_key or _looks_like_placeholder(self._api_key):
            raise ModelError("Model API key is not configured", code="llm_disabled")
        if self._client is None:
            self._client = OpenAI(
                api_key=self._api_key,
                base_url=self._base_url,
                timeout=self._timeout_s,
                max_retries=self._max_retries,
            )
        return self._client

    def generate(self, prompt: str) -> str:
        client = self._get_client()
        try:
            response = client.chat.completions.create(
                model=self._model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self._temperature,
                top_p=0.1,
                max_tokens=self._max_output_tokens,
            )
        except OpenAIError as exc:
            logger.warning("openai_generate_failed model=%s prompt_len=%s: %s", self._model, len(prompt), exc)
            raise ModelError(f"Model request failed: {exc}") from exc

        content = response.choices[0].message.content if response.choices else ""
        if not content:
            raise ModelError("Model returned an empty response", code="empty_response")
        return str(content)
