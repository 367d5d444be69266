"""Backend dialect registry."""

from .models import BackendId, DialectEntry, QuoteStyle, RowCapStyle
from .registry import DEFAULT_BACKEND, DialectRegistry, default_registry

__all__ = [
    "BackendId",
    "DialectEntry",
    "QuoteStyle",
    "RowCapStyle",
    "DialectRegistry",
    "DEFAULT_BACKEND",
    "default_registry",
]
