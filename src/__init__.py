# src/__init__.py
"""Persona style capsules and Seven Pools retrieval tools."""

from sevenpools.version import __version__

__all__ = ["__version__"]
