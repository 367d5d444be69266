"""OpenAI-backed generation service."""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Dict, List, Optional, Tuple

from kpiflow.capabilities.generation import GenerationService
from kpiflow.errors import MalformedGenerationResult
from kpiflow.generation.models import GenerationRequest

logger = logging.getLogger(__name__)

QUERY_SYSTEM_PROMPT = (
    "You write database queries from business questions. "
    "Answer with a single JSON object and nothing else."
)
INSIGHT_SYSTEM_PROMPT = "You are a business analyst who writes concise, data-driven insights."


class OpenAIGenerationService(GenerationService):
    """Generation service using the OpenAI chat completions API.

    Any OpenAI-compatible gateway works by pointing ``base_url`` at it.
    Subclasses for such gateways only swap the class-level defaults and the
    environment variables they are read from.

    Args:
        model: Model id; falls back to ``MODEL_ENV``, then ``DEFAULT_MODEL``.
        api_key: API key; falls back to the first set variable in ``API_KEY_ENVS``.
        base_url: Custom endpoint; falls back to ``BASE_URL_ENV``, then
            ``DEFAULT_BASE_URL``.
        temperature: Sampling temperature for both calls.
        headers: Extra HTTP headers merged over ``default_headers``.
        extra_client_kwargs: Extra kwargs forwarded to `openai.OpenAI()`.
    """

    DEFAULT_MODEL = "gpt-4o-mini"
    DEFAULT_BASE_URL: Optional[str] = None
    MODEL_ENV = "OPENAI_MODEL"
    API_KEY_ENVS: Tuple[str, ...] = ("OPENAI_API_KEY",)
    BASE_URL_ENV = "OPENAI_BASE_URL"

    def __init__(
        self,
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        temperature: float = 0.0,
        headers: Optional[Dict[str, str]] = None,
        **extra_client_kwargs: Any,
    ) -> None:
        import openai

        self.model = model or os.getenv(self.MODEL_ENV) or self.DEFAULT_MODEL
        self.temperature = temperature

        client_kwargs: Dict[str, Any] = dict(extra_client_kwargs)
        client_kwargs["api_key"] = api_key or next(
            (os.environ[name] for name in self.API_KEY_ENVS if os.getenv(name)), None
        )
        base_url = base_url or os.getenv(self.BASE_URL_ENV) or self.DEFAULT_BASE_URL
        if base_url:
            client_kwargs["base_url"] = base_url
        if headers:
            client_kwargs["default_headers"] = {
                **(client_kwargs.get("default_headers") or {}),
                **headers,
            }
        self.client = openai.OpenAI(**client_kwargs)

    def _complete(self, messages: List[Dict[str, str]], **kwargs: Any) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=self.temperature,
            **kwargs,
        )
        if not response.choices:
            raise MalformedGenerationResult("Model returned no choices")
        return response.choices[0].message.content or ""

    async def generate_query(self, request: GenerationRequest) -> str:
        messages = [
            {"role": "system", "content": QUERY_SYSTEM_PROMPT},
            {"role": "user", "content": request.prompt},
        ]
        logger.debug("Requesting %s query from %s", request.dialect.display_name, self.model)
        return await asyncio.to_thread(
            self._complete, messages, response_format={"type": "json_object"}
        )

    async def generate_text(self, prompt: str) -> str:
        messages = [
            {"role": "system", "content": INSIGHT_SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]
        return await asyncio.to_thread(self._complete, messages)
