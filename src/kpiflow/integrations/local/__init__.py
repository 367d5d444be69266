"""Local file system integrations."""

from .file_system_run_store import FileSystemRunStore

__all__ = ["FileSystemRunStore"]
