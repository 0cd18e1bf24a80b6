"""Placeholder substitution over file trees."""

from .engine import RenderEngine, RenderReport, is_binary  # noqa: F401

__all__ = ["RenderEngine", "RenderReport", "is_binary"]
