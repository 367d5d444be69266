"""Collaborator interfaces consumed by the kpiflow core."""
