from __future__ import annotations

import sys
import os
from pathlib import Path
from typing import Callable, Mapping, Sequence

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
SANDBOX_HOME = ROOT / ".test_place" / "global-home"
os.environ.setdefault("LYNXFORGE_HOME", str(SANDBOX_HOME))
SANDBOX_HOME.mkdir(parents=True, exist_ok=True)
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from lynxforge.ports.runner import CommandResult, CommandRunner  # noqa: E402
from lynxforge.settings import RuntimeSettings  # noqa: E402


class ScriptedRunner(CommandRunner):
    """Records every invocation and answers from a prefix table."""

    def __init__(
        self,
        responses: Mapping[tuple[str, ...], CommandResult | Callable[[list[str], Path | None], CommandResult]] | None = None,
        *,
        available: Sequence[str] = ("gh", "git", "bundle", "xcodebuild", "pod"),
    ) -> None:
        self.responses = dict(responses or {})
        self.available = set(available)
        self.calls: list[list[str]] = []
        self.cwds: list[Path | None] = []
        self.envs: list[dict[str, str]] = []

    def run(self, args, *, cwd=None, env=None, capture=False) -> CommandResult:
        args = list(args)
        self.calls.append(args)
        self.cwds.append(cwd)
        self.envs.append(dict(env or {}))
        best: tuple[str, ...] | None = None
        for prefix in self.responses:
            if tuple(args[: len(prefix)]) == prefix and (best is None or len(prefix) > len(best)):
                best = prefix
        if best is None:
            return CommandResult(args=tuple(args), returncode=0)
        response = self.responses[best]
        if callable(response):
            return response(args, cwd)
        return response

    def which(self, executable: str) -> str | None:
        return f"/usr/bin/{executable}" if executable in self.available else None


@pytest.fixture()
def runtime_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> RuntimeSettings:
    monkeypatch.setenv("LYNXFORGE_TELEMETRY", "1")
    base = tmp_path / "runtime"
    home = base / "home"
    template_dir = base / "templates"
    state_dir = base / "state"
    log_dir = base / "logs"
    for directory in (home, template_dir, state_dir, log_dir):
        directory.mkdir(parents=True, exist_ok=True)
    return RuntimeSettings(home_dir=home, template_dir=template_dir, state_dir=state_dir, log_dir=log_dir)


@pytest.fixture()
def scripted_runner() -> Callable[..., ScriptedRunner]:
    return ScriptedRunner
