"""Dialect-aware query generation."""

from .columns import NUMERIC_TYPES, ColumnSelector, is_numeric, normalize_type
from .generator import QueryGenerator
from .models import GenerationRequest, GenerationResult
from .prompts import PromptAssembler
from .validation import parse_raw_response, validate_result

__all__ = [
    "ColumnSelector",
    "NUMERIC_TYPES",
    "is_numeric",
    "normalize_type",
    "QueryGenerator",
    "GenerationRequest",
    "GenerationResult",
    "PromptAssembler",
    "parse_raw_response",
    "validate_result",
]
