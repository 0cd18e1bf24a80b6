"""Trigger builds in generated customer repositories."""

from .service import DispatchService  # noqa: F401

__all__ = ["DispatchService"]
