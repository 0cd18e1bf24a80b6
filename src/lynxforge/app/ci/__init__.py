"""Reusable CI entry point."""

from .service import CiEntryPoint, CiRunResult, resolve_parameters  # noqa: F401

__all__ = ["CiEntryPoint", "CiRunResult", "resolve_parameters"]
