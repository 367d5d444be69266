"""External generation (LLM) service interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Union

if TYPE_CHECKING:
    from kpiflow.generation.models import GenerationRequest


class GenerationService(ABC):
    """Model-backed service the core delegates generation to."""

    @abstractmethod
    async def generate_query(
        self, request: "GenerationRequest"
    ) -> Union[str, Dict[str, Any]]:
        """Answer a structured query-generation request.

        May return the decoded JSON object or the raw response text; the core
        validates either form.
        """
        pass

    @abstractmethod
    async def generate_text(self, prompt: str) -> str:
        """Free-text completion used for insight generation."""
        pass
