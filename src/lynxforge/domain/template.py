"""Domain model for template stores kept on disk."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

TEMPLATE_SUFFIX = ".tmpl"


@dataclass(frozen=True)
class TemplateDescriptor:
    name: str
    root_dir: Path

    def validate(self) -> None:
        if not self.root_dir.is_dir():
            raise FileNotFoundError(f"Template directory missing: {self.root_dir}")

    def template_files(self) -> list[Path]:
        return sorted(
            path
            for path in self.root_dir.rglob(f"*{TEMPLATE_SUFFIX}")
            if path.is_file() and ".git" not in path.relative_to(self.root_dir).parts
        )
