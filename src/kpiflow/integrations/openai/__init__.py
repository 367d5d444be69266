"""OpenAI integration."""

from .service import OpenAIGenerationService

__all__ = ["OpenAIGenerationService"]
