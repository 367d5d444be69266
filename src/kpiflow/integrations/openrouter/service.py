"""OpenRouter generation service (OpenAI-compatible endpoint)."""

from __future__ import annotations

import os
from typing import Any, Optional

from kpiflow.integrations.openai import OpenAIGenerationService


class OpenRouterGenerationService(OpenAIGenerationService):
    """Reads ``OPENROUTER_*`` settings and sends the identification headers
    OpenRouter uses for app attribution (``HTTP-Referer``, ``X-Title``)."""

    DEFAULT_MODEL = "openai/gpt-4o-mini"
    DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
    MODEL_ENV = "OPENROUTER_MODEL"
    API_KEY_ENVS = ("OPENROUTER_API_KEY", "OPENAI_API_KEY")
    BASE_URL_ENV = "OPENROUTER_BASE_URL"

    def __init__(
        self,
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        http_referer: Optional[str] = None,
        app_title: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        attribution = {
            "HTTP-Referer": http_referer or os.getenv("OPENROUTER_HTTP_REFERER"),
            "X-Title": app_title or os.getenv("OPENROUTER_APP_TITLE"),
        }
        headers = {name: value for name, value in attribution.items() if value}
        headers.update(kwargs.pop("headers", None) or {})
        super().__init__(model, api_key, base_url, headers=headers, **kwargs)
