"""GitHub repository host driven through the ``gh`` and ``git`` CLIs."""

from __future__ import annotations

from pathlib import Path

from lynxforge.domain.errors import (
    LynxForgeError,
    NetworkFailureError,
    RemoteConflictError,
    ToolingMissingError,
)
from lynxforge.ports.repo_host import RepoHost
from lynxforge.ports.runner import CommandRunner


class GhCliRepoHost(RepoHost):
    def __init__(self, runner: CommandRunner) -> None:
        self._runner = runner

    def ensure_ready(self) -> None:
        if self._runner.which("gh") is None:
            raise ToolingMissingError(
                "GitHub CLI (gh) is required",
                "install it from https://cli.github.com",
            )
        if self._runner.which("git") is None:
            raise ToolingMissingError("git is required", "install git and retry")
        status = self._runner.run(["gh", "auth", "status"], capture=True)
        if not status.ok:
            raise ToolingMissingError(
                "GitHub CLI is not authenticated",
                "run 'gh auth login' first",
            )

    def create(self, full_name: str, *, private: bool = True, description: str = "") -> None:
        existing = self._runner.run(["gh", "repo", "view", full_name, "--json", "name"], capture=True)
        if existing.ok:
            raise RemoteConflictError(f"Repository {full_name} already exists")
        args = ["gh", "repo", "create", full_name, "--private" if private else "--public"]
        if description:
            args.extend(["--description", description])
        result = self._runner.run(args, capture=True)
        if result.ok:
            return
        detail = result.summary()
        if "already exists" in f"{result.stdout}\n{result.stderr}".lower():
            raise RemoteConflictError(f"Repository {full_name} already exists")
        raise NetworkFailureError(f"Failed to create repository {full_name}: {detail}")

    def clone(self, full_name: str, destination: Path) -> None:
        destination.parent.mkdir(parents=True, exist_ok=True)
        result = self._runner.run(["gh", "repo", "clone", full_name, str(destination)], capture=True)
        if not result.ok:
            raise NetworkFailureError(f"Failed to clone {full_name}: {result.summary()}")

    def commit_and_push(self, workspace: Path, message: str) -> None:
        for args in (["git", "add", "."], ["git", "commit", "-m", message]):
            result = self._runner.run(args, cwd=workspace, capture=True)
            if not result.ok:
                raise LynxForgeError(f"{' '.join(args[:2])} failed: {result.summary()}")
        pushed = self._runner.run(
            ["git", "push", "--set-upstream", "origin", "HEAD"], cwd=workspace, capture=True
        )
        if not pushed.ok:
            raise NetworkFailureError(f"git push failed: {pushed.summary()}")
