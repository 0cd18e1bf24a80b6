"""Filesystem-backed template repository."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

from lynxforge.domain.template import TemplateDescriptor
from lynxforge.ports.template_repo import TemplateNotFoundError, TemplateRepository


class FSTemplateRepository(TemplateRepository):
    def __init__(self, base_dir: Path) -> None:
        self._base_dir = base_dir

    def ensure_available(self, name: str) -> TemplateDescriptor:
        root = self._base_dir / name
        if not root.is_dir():
            raise TemplateNotFoundError(f"Template directory not found at {root}")
        descriptor = TemplateDescriptor(name=name, root_dir=root)
        if not descriptor.template_files():
            raise TemplateNotFoundError(f"Template {name} contains no *.tmpl files")
        return descriptor

    def list_templates(self) -> Iterable[str]:
        if not self._base_dir.exists():
            return []
        return sorted(p.name for p in self._base_dir.iterdir() if p.is_dir())
