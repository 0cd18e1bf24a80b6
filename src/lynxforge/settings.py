"""Runtime settings for the lynxforge CLI."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from lynxforge import __version__


DEFAULT_TEMPLATE_STORE = "customer-repo"
DEFAULT_TEMPLATE_REF = "master"
APP_CONFIG_FILE = "lynx-app.yaml"


@dataclass(frozen=True)
class RuntimeSettings:
    home_dir: Path
    template_dir: Path
    state_dir: Path
    log_dir: Path
    cli_version: str = __version__
    github_api_url: str = "https://api.github.com"
    github_token_env: str = "GITHUB_TOKEN"
    http_timeout: float = 60.0

    @property
    def telemetry_file(self) -> Path:
        return self.log_dir / "telemetry.jsonl"


def _default_home_dir() -> Path:
    override = os.environ.get("LYNXFORGE_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".lynxforge"


def load_settings() -> RuntimeSettings:
    base = _default_home_dir()
    return RuntimeSettings(
        home_dir=base,
        template_dir=base / "templates",
        state_dir=base / "state",
        log_dir=base / "logs",
        github_api_url=os.environ.get("LYNXFORGE_GITHUB_API", "https://api.github.com"),
        github_token_env=os.environ.get("LYNXFORGE_TOKEN_ENV", "GITHUB_TOKEN"),
    )


SETTINGS = load_settings()
