"""Service-layer utilities."""

from .workflow_service import WorkflowService, build_workflow_service

__all__ = ["WorkflowService", "build_workflow_service"]
