"""Packaged resources for lynxforge."""

from __future__ import annotations

import shutil
from importlib import resources
from pathlib import Path

__all__ = ["packaged_templates_dir", "sync_packaged_templates"]


def packaged_templates_dir() -> Path:
    """Return the directory of template stores shipped with the package."""

    return Path(str(resources.files("lynxforge") / "templates"))


def sync_packaged_templates(target_dir: Path) -> list[str]:
    """Refresh packaged template stores under ``target_dir``; other stores are left alone."""

    source_base = packaged_templates_dir()
    if not source_base.is_dir():
        return []
    target_dir.mkdir(parents=True, exist_ok=True)
    synced: list[str] = []
    for entry in sorted(p for p in source_base.iterdir() if p.is_dir()):
        target = target_dir / entry.name
        if target.exists():
            shutil.rmtree(target)
        shutil.copytree(entry, target)
        synced.append(entry.name)
    return synced
