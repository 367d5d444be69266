"""Concrete backends for the capability interfaces."""
