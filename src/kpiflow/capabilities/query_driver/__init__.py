"""Query driver capability exports."""

from .base import QueryDriver

__all__ = ["QueryDriver"]
