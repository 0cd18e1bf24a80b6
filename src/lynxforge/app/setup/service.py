"""Rename an instantiated scaffold in the current working tree."""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from lynxforge.app.render import RenderEngine, RenderReport
from lynxforge.domain.build import ANDROID, IOS, bundle_destination
from lynxforge.domain.descriptor import AppIdentity
from lynxforge.domain.errors import LynxForgeError, ValidationError
from lynxforge.domain.tokens import legacy_ruleset
from lynxforge.ports.runner import CommandRunner
from lynxforge.settings import RuntimeSettings
from lynxforge.utils.telemetry import record_event


NATIVE_DIRS = (IOS, ANDROID)


@dataclass
class SetupResult:
    root: Path
    identity: AppIdentity
    report: RenderReport
    git_initialised: bool = False
    next_steps: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "root": self.root.as_posix(),
            "app_name": self.identity.app_name,
            "bundle_id": self.identity.bundle_id,
            "team_id": self.identity.team_id,
            "git_initialised": self.git_initialised,
            **self.report.to_dict(),
            "next_steps": list(self.next_steps),
        }


class SetupService:
    def __init__(self, runner: CommandRunner, settings: RuntimeSettings) -> None:
        self._runner = runner
        self._settings = settings

    def configure(self, root: Path, identity: AppIdentity, *, skip_git: bool = False) -> SetupResult:
        identity.validate()
        root = root.resolve()
        present = [name for name in NATIVE_DIRS if (root / name).is_dir()]
        if not present:
            raise ValidationError(f"No ios/ or android/ project found under {root}")

        print("Setting up LynxJS native templates")
        print(f"  App name:   {identity.app_name}")
        print(f"  Package ID: {identity.bundle_id}")
        if identity.team_id:
            print(f"  Team ID:    {identity.team_id}")

        engine = RenderEngine(legacy_ruleset(identity))
        report = engine.apply_in_place(root, include=present)
        for name in present:
            print(f"  {name} project configured")

        result = SetupResult(root=root, identity=identity, report=report)
        if not skip_git:
            self._reinitialise_git(root, identity)
            result.git_initialised = True
        result.next_steps = [
            f"Copy your LynxJS bundle to {bundle_destination(IOS, root, identity.app_name).relative_to(root)}",
            f"Copy your LynxJS bundle to {bundle_destination(ANDROID, root, identity.app_name).relative_to(root)}",
            f"lynxforge build-ios --scheme {identity.app_name}",
            "lynxforge build-android",
        ]
        record_event(
            self._settings,
            "setup",
            {
                "app_name": identity.app_name,
                "bundle_id": identity.bundle_id,
                "files": len(report.files),
                "git": result.git_initialised,
            },
        )
        return result

    def _reinitialise_git(self, root: Path, identity: AppIdentity) -> None:
        print("Reinitializing git repository...")
        git_dir = root / ".git"
        if git_dir.exists():
            shutil.rmtree(git_dir)
        for args in (
            ["git", "init"],
            ["git", "add", "."],
            ["git", "commit", "-m", f"Initial commit: {identity.app_name}"],
        ):
            result = self._runner.run(args, cwd=root, capture=True)
            if not result.ok:
                raise LynxForgeError(f"{' '.join(args[:2])} failed: {result.summary()}")
