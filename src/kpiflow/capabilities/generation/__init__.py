"""Generation service capability exports."""

from .base import GenerationService

__all__ = ["GenerationService"]
