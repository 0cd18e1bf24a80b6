"""Subprocess-backed command runner."""

from __future__ import annotations

import os
import shutil
import subprocess
from pathlib import Path
from typing import Mapping, Sequence

from lynxforge.domain.errors import ToolingMissingError
from lynxforge.ports.runner import CommandResult, CommandRunner


class SubprocessRunner(CommandRunner):
    def __init__(self, timeout: float | None = None) -> None:
        self._timeout = timeout

    def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        capture: bool = False,
    ) -> CommandResult:
        merged_env = None
        if env is not None:
            merged_env = os.environ.copy()
            merged_env.update(env)
        try:
            result = subprocess.run(
                list(args),
                cwd=cwd,
                env=merged_env,
                text=True,
                capture_output=capture,
                timeout=self._timeout,
            )
        except FileNotFoundError as exc:
            missing = args[0] if args else "<unknown>"
            raise ToolingMissingError(f"Executable not found: {missing}") from exc
        return CommandResult(
            args=tuple(args),
            returncode=result.returncode,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
        )

    def which(self, executable: str) -> str | None:
        return shutil.which(executable)

