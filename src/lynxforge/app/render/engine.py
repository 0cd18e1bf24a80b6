"""Render file trees through a token ruleset.

Every operation first builds a complete plan (target path, new payload) for
the whole tree and checks it for collisions; only then is anything written.
A failed plan therefore leaves both source and destination untouched.

Symbolic links are recreated (never followed) with their rendered name and
rendered link text, and empty directories are recreated under their rendered
name, so a rendered tree has the same shape as its source.
"""

from __future__ import annotations

import os
import stat
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any, Callable, Iterator, Sequence

from lynxforge.domain.errors import RenderCollisionError
from lynxforge.domain.template import TEMPLATE_SUFFIX
from lynxforge.domain.tokens import CONTENT, PATH, TokenRuleset


SKIPPED_DIRS = frozenset({".git"})
BINARY_SNIFF_BYTES = 8192

FILE = "file"
LINK = "link"
EMPTY_DIR = "dir"


def is_binary(data: bytes) -> bool:
    if b"\0" in data[:BINARY_SNIFF_BYTES]:
        return True
    try:
        data.decode("utf-8")
    except UnicodeDecodeError:
        return True
    return False


@dataclass
class RenderReport:
    rendered: list[PurePosixPath] = field(default_factory=list)
    binary: list[PurePosixPath] = field(default_factory=list)
    renamed: list[tuple[PurePosixPath, PurePosixPath]] = field(default_factory=list)
    links: list[PurePosixPath] = field(default_factory=list)
    directories: list[PurePosixPath] = field(default_factory=list)

    @property
    def files(self) -> list[PurePosixPath]:
        return sorted(self.rendered + self.binary)

    def extend(self, other: "RenderReport") -> None:
        self.rendered.extend(other.rendered)
        self.binary.extend(other.binary)
        self.renamed.extend(other.renamed)
        self.links.extend(other.links)
        self.directories.extend(other.directories)

    def prefixed(self, prefix: str) -> "RenderReport":
        base = PurePosixPath(prefix)
        return RenderReport(
            rendered=[base / p for p in self.rendered],
            binary=[base / p for p in self.binary],
            renamed=[(base / src, base / dst) for src, dst in self.renamed],
            links=[base / p for p in self.links],
            directories=[base / p for p in self.directories],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "rendered": [p.as_posix() for p in self.rendered],
            "binary": [p.as_posix() for p in self.binary],
            "renamed": [[src.as_posix(), dst.as_posix()] for src, dst in self.renamed],
            "links": [p.as_posix() for p in self.links],
            "directories": [p.as_posix() for p in self.directories],
        }


@dataclass(frozen=True)
class _PlannedEntry:
    kind: str
    relative: PurePosixPath
    target: PurePosixPath
    payload: bytes = b""
    binary: bool = False
    changed: bool = False
    mode: int = 0
    link_to: str = ""

    @property
    def moved(self) -> bool:
        return self.relative != self.target


def _iter_entries(root: Path, include: Sequence[str] | None = None) -> Iterator[tuple[str, Path]]:
    """Yield ``(kind, path)`` for files, symlinks and empty directories, sorted, without following links."""

    tops = [root / name for name in include] if include is not None else [root]
    for top in tops:
        if top.is_symlink():
            yield LINK, top
            continue
        if not top.is_dir():
            continue
        for dirpath, dirnames, filenames in os.walk(top):
            current = Path(dirpath)
            linked_dirs = sorted(d for d in dirnames if (current / d).is_symlink())
            dirnames[:] = sorted(d for d in dirnames if d not in SKIPPED_DIRS and d not in linked_dirs)
            for name in linked_dirs:
                if name not in SKIPPED_DIRS:
                    yield LINK, current / name
            for name in sorted(filenames):
                path = current / name
                if path.is_symlink():
                    yield LINK, path
                elif path.is_file():
                    yield FILE, path
            if current != root and not dirnames and not filenames and not linked_dirs:
                yield EMPTY_DIR, current


class RenderEngine:
    """Apply one ruleset to file names and file contents."""

    def __init__(self, ruleset: TokenRuleset) -> None:
        self._ruleset = ruleset

    @property
    def ruleset(self) -> TokenRuleset:
        return self._ruleset

    def render_text(self, text: str) -> str:
        return self._ruleset.substitute(text, scope=CONTENT)

    def render_path(self, relative: PurePosixPath) -> PurePosixPath:
        return PurePosixPath(self._ruleset.substitute(relative.as_posix(), scope=PATH))

    def render_tree(self, source: Path, destination: Path) -> RenderReport:
        """Write a rendered copy of ``source`` under ``destination``; ``source`` is not modified."""

        plan = self._plan(source)
        self._check_destination(plan, destination)
        return self._write(plan, destination)

    def render_templates(self, store_root: Path, destination: Path) -> RenderReport:
        """Render every ``*.tmpl`` file of a template store, stripping the suffix."""

        plan = self._plan(
            store_root,
            select=lambda kind, rel: kind == FILE and rel.name.endswith(TEMPLATE_SUFFIX),
            strip_suffix=TEMPLATE_SUFFIX,
        )
        self._check_destination(plan, destination)
        return self._write(plan, destination)

    def apply_in_place(self, root: Path, *, include: Sequence[str] | None = None) -> RenderReport:
        """Rename and rewrite ``root`` itself, optionally limited to the ``include`` subdirectories."""

        plan = self._plan(root, include=include)
        planned_sources = {item.relative for item in plan}
        for item in plan:
            if not item.moved or item.target in planned_sources:
                continue
            existing = root / item.target
            if item.kind == EMPTY_DIR and existing.is_dir() and not existing.is_symlink():
                continue
            if os.path.lexists(existing):
                raise RenderCollisionError(
                    f"Renaming {item.relative} would overwrite existing {item.target}"
                )

        report = RenderReport()
        for item in plan:
            if not item.moved:
                continue
            old = root / item.relative
            if item.kind == EMPTY_DIR:
                old.rmdir()
            else:
                old.unlink()
        for item in plan:
            if not item.moved and not item.changed:
                continue
            self._write_one(item, root, report)
        for item in plan:
            if item.moved:
                self._prune_empty_parents(root / item.relative, root)
        return report

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _plan(
        self,
        root: Path,
        *,
        select: Callable[[str, PurePosixPath], bool] | None = None,
        strip_suffix: str | None = None,
        include: Sequence[str] | None = None,
    ) -> list[_PlannedEntry]:
        if not root.is_dir():
            raise FileNotFoundError(f"Source directory missing: {root}")
        plan: list[_PlannedEntry] = []
        claimed: dict[PurePosixPath, PurePosixPath] = {}
        for kind, path in _iter_entries(root, include):
            relative = PurePosixPath(path.relative_to(root).as_posix())
            if select is not None and not select(kind, relative):
                continue
            target = self.render_path(relative)
            if strip_suffix and target.name.endswith(strip_suffix):
                target = target.with_name(target.name[: -len(strip_suffix)])
            if target in claimed:
                raise RenderCollisionError(
                    f"{claimed[target]} and {relative} both render to {target}"
                )
            claimed[target] = relative
            plan.append(self._plan_entry(kind, path, relative, target))
        return plan

    def _plan_entry(self, kind: str, path: Path, relative: PurePosixPath, target: PurePosixPath) -> _PlannedEntry:
        if kind == EMPTY_DIR:
            return _PlannedEntry(kind=kind, relative=relative, target=target, mode=stat.S_IMODE(path.stat().st_mode))
        if kind == LINK:
            link_to = os.readlink(path)
            rendered = self._ruleset.substitute(link_to, scope=PATH)
            return _PlannedEntry(
                kind=kind, relative=relative, target=target, changed=rendered != link_to, link_to=rendered
            )
        data = path.read_bytes()
        binary = is_binary(data)
        payload = data if binary else self.render_text(data.decode("utf-8")).encode("utf-8")
        return _PlannedEntry(
            kind=kind,
            relative=relative,
            target=target,
            payload=payload,
            binary=binary,
            changed=payload != data,
            mode=stat.S_IMODE(path.stat().st_mode),
        )

    def _check_destination(self, plan: list[_PlannedEntry], destination: Path) -> None:
        for item in plan:
            existing = destination / item.target
            if item.kind == EMPTY_DIR and existing.is_dir() and not existing.is_symlink():
                continue
            if os.path.lexists(existing):
                raise RenderCollisionError(f"Refusing to overwrite existing {existing}")

    def _write(self, plan: list[_PlannedEntry], destination: Path) -> RenderReport:
        report = RenderReport()
        for item in plan:
            self._write_one(item, destination, report)
        return report

    def _write_one(self, item: _PlannedEntry, root: Path, report: RenderReport) -> None:
        target = root / item.target
        target.parent.mkdir(parents=True, exist_ok=True)
        if item.kind == EMPTY_DIR:
            target.mkdir(exist_ok=True)
            os.chmod(target, item.mode)
            report.directories.append(item.target)
        elif item.kind == LINK:
            if target.is_symlink():
                target.unlink()
            os.symlink(item.link_to, target)
            report.links.append(item.target)
        else:
            target.write_bytes(item.payload)
            os.chmod(target, item.mode)
            if item.binary:
                report.binary.append(item.target)
            else:
                report.rendered.append(item.target)
        if item.moved:
            report.renamed.append((item.relative, item.target))

    def _prune_empty_parents(self, removed: Path, root: Path) -> None:
        parent = removed.parent
        while parent != root and parent.is_dir() and not any(parent.iterdir()):
            parent.rmdir()
            parent = parent.parent


__all__ = ["RenderEngine", "RenderReport", "is_binary"]
