"""Value objects for platform builds and the CI entry point."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import yaml

from lynxforge.domain.descriptor import validate_app_name, validate_bundle_id
from lynxforge.domain.errors import ValidationError


ANDROID = "android"
IOS = "ios"
PLATFORMS = (ANDROID, IOS)

SKIPPED = "skipped"
SUCCEEDED = "succeeded"
FAILED = "failed"

BUNDLE_FILENAME = "main.lynx.bundle"


def bundle_destination(platform: str, root: Path, app_name: str) -> Path:
    """Fixed location where each native host expects the LynxJS bundle."""

    if platform == ANDROID:
        return root / "android" / "app" / "src" / "main" / "assets" / BUNDLE_FILENAME
    if platform == IOS:
        return root / "ios" / app_name / "Resources" / BUNDLE_FILENAME
    raise ValueError(f"Unknown platform: {platform}")


@dataclass(frozen=True)
class AppConfig:
    """Two-key config artifact persisted in every generated repository."""

    app_name: str
    bundle_id: str

    def to_dict(self) -> dict[str, str]:
        return {"app_name": self.app_name, "bundle_id": self.bundle_id}

    def dump(self) -> str:
        return yaml.safe_dump(self.to_dict(), sort_keys=False)

    def store(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.dump(), encoding="utf-8")

    @classmethod
    def load(cls, path: Path) -> "AppConfig":
        if not path.exists():
            raise FileNotFoundError(path)
        try:
            data = yaml.safe_load(path.read_text("utf-8")) or {}
        except yaml.YAMLError as exc:
            detail = " ".join(str(exc).split())
            raise ValidationError(f"{path.name} is not valid YAML: {detail}") from exc
        if not isinstance(data, dict):
            raise ValidationError(f"{path.name} must contain a mapping")
        app_name = data.get("app_name")
        bundle_id = data.get("bundle_id")
        if not isinstance(app_name, str) or not isinstance(bundle_id, str):
            raise ValidationError(f"{path.name} must define app_name and bundle_id")
        return cls(app_name=app_name, bundle_id=bundle_id)


@dataclass(frozen=True)
class BuildParameters:
    app_name: str
    bundle_id: str
    lynx_bundle_url: str
    ios_team_id: str | None = None
    build_android: bool = True
    build_ios: bool = True

    def validate(self) -> None:
        if not self.app_name:
            raise ValidationError("app_name must not be empty")
        validate_app_name(self.app_name)
        validate_bundle_id(self.bundle_id)
        if not self.lynx_bundle_url:
            raise ValidationError("lynx_bundle_url is required")
        parsed = urlparse(self.lynx_bundle_url)
        if parsed.scheme not in {"http", "https", "file"} or not (parsed.netloc or parsed.path):
            raise ValidationError(f"lynx_bundle_url is not a valid URL: {self.lynx_bundle_url}")

    def enabled(self, platform: str) -> bool:
        if platform == ANDROID:
            return self.build_android
        if platform == IOS:
            return self.build_ios
        raise ValueError(f"Unknown platform: {platform}")


@dataclass(frozen=True)
class BuildRequest:
    """What a platform builder needs to produce one artifact."""

    project_root: Path
    app_name: str
    bundle_id: str
    output_dir: Path
    options: dict[str, Any] = field(default_factory=dict)


@dataclass
class BuildResult:
    platform: str
    artifact: Path | None = None
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "platform": self.platform,
            "artifact": self.artifact.as_posix() if self.artifact else None,
            "warnings": list(self.warnings),
        }


@dataclass
class JobOutcome:
    platform: str
    status: str
    artifact: Path | None = None
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "platform": self.platform,
            "status": self.status,
            "artifact": self.artifact.as_posix() if self.artifact else None,
            "message": self.message,
        }


__all__ = [
    "ANDROID",
    "IOS",
    "PLATFORMS",
    "AppConfig",
    "BuildParameters",
    "BuildRequest",
    "BuildResult",
    "JobOutcome",
    "bundle_destination",
]
