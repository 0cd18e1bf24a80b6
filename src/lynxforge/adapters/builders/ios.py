"""iOS builder wrapping xcodebuild archive/export and fastlane lanes."""

from __future__ import annotations

import plistlib
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from lynxforge.domain.build import IOS, BuildRequest, BuildResult
from lynxforge.domain.errors import LynxForgeError, ToolingMissingError, ValidationError
from lynxforge.ports.platform_builder import PlatformBuilder
from lynxforge.ports.runner import CommandRunner


EXPORT_METHODS = ("app-store", "ad-hoc", "development")
FASTLANE_LANES = {"app-store": "release", "ad-hoc": "adhoc"}


@dataclass(frozen=True)
class IosBuildOptions:
    scheme: str | None = None
    export_method: str = "app-store"
    use_fastlane: bool = False
    team_id: str | None = None

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> "IosBuildOptions":
        known = {name: options[name] for name in cls.__dataclass_fields__ if name in options}
        instance = cls(**known)
        if instance.export_method not in EXPORT_METHODS:
            raise ValidationError(f"export method must be one of {', '.join(EXPORT_METHODS)}")
        return instance

    @property
    def fastlane_lane(self) -> str:
        return FASTLANE_LANES.get(self.export_method, "build")


def _find_shallow(ios_dir: Path, suffix: str) -> Path | None:
    if not ios_dir.is_dir():
        return None
    candidates = sorted(p for p in ios_dir.glob(f"*{suffix}"))
    candidates += sorted(p for p in ios_dir.glob(f"*/*{suffix}"))
    return candidates[0] if candidates else None


def detect_scheme(ios_dir: Path) -> str | None:
    """Derive the scheme from the first workspace, falling back to the first project."""

    for suffix in (".xcworkspace", ".xcodeproj"):
        found = _find_shallow(ios_dir, suffix)
        if found is not None:
            return found.name[: -len(suffix)]
    return None


def export_options_plist(method: str, team_id: str | None = None) -> bytes:
    payload: dict[str, Any] = {"method": method, "signingStyle": "manual"}
    if team_id:
        payload["teamID"] = team_id
    return plistlib.dumps(payload)


class IosBuilder(PlatformBuilder):
    platform = IOS

    def __init__(self, runner: CommandRunner) -> None:
        self._runner = runner

    def build(self, request: BuildRequest) -> BuildResult:
        options = IosBuildOptions.from_mapping(request.options)
        root = request.project_root
        ios_dir = root / "ios"
        scheme = options.scheme or detect_scheme(ios_dir)
        if not scheme:
            raise ValidationError("Could not detect scheme. Use --scheme to specify.")

        tool = "bundle" if options.use_fastlane else "xcodebuild"
        if self._runner.which(tool) is None:
            raise ToolingMissingError(
                f"{tool} not found",
                "iOS builds require macOS with Xcode and the command line tools installed",
            )

        print(f"Building iOS app: {scheme}")
        print(f"Export method: {options.export_method}")
        output_dir = request.output_dir
        output_dir.mkdir(parents=True, exist_ok=True)

        workspace = _find_shallow(ios_dir, ".xcworkspace")
        project = _find_shallow(ios_dir, ".xcodeproj")
        if workspace is None and project is None:
            raise LynxForgeError("No Xcode workspace or project found")

        app_dir = ios_dir / scheme
        if (app_dir / "Podfile").exists() and not (app_dir / "Pods").exists():
            print("Installing CocoaPods...")
            self._checked(["pod", "install"], app_dir)
            workspace = app_dir / f"{scheme}.xcworkspace"

        if options.use_fastlane:
            print("Building with fastlane...")
            self._checked(["bundle", "exec", "fastlane", options.fastlane_lane], app_dir)
            fastlane_output = app_dir / "fastlane" / "output"
            if fastlane_output.is_dir():
                shutil.copytree(fastlane_output, output_dir, dirs_exist_ok=True)
        else:
            print("Building with xcodebuild...")
            self._xcodebuild(scheme, workspace, project, output_dir, options)

        result = BuildResult(platform=IOS)
        ipas = sorted(output_dir.rglob("*.ipa"))
        if not ipas:
            result.warnings.append("Could not find output file")
            print("Warning: Could not find output file")
            return result
        result.artifact = ipas[0]
        print(f"Build complete! Output: {result.artifact}")
        return result

    def _xcodebuild(
        self,
        scheme: str,
        workspace: Path | None,
        project: Path | None,
        output_dir: Path,
        options: IosBuildOptions,
    ) -> None:
        archive_path = output_dir / f"{scheme}.xcarchive"
        target = ["-workspace", str(workspace)] if workspace is not None else ["-project", str(project)]
        archive = [
            "xcodebuild",
            *target,
            "-scheme",
            scheme,
            "-configuration",
            "Release",
            "-archivePath",
            str(archive_path),
            "-destination",
            "generic/platform=iOS",
            "archive",
            "CODE_SIGN_STYLE=Manual",
        ]
        if options.team_id:
            archive.append(f"DEVELOPMENT_TEAM={options.team_id}")
        self._checked(archive, output_dir)

        plist_path = output_dir / "ExportOptions.plist"
        plist_path.write_bytes(export_options_plist(options.export_method, options.team_id))
        self._checked(
            [
                "xcodebuild",
                "-exportArchive",
                "-archivePath",
                str(archive_path),
                "-exportPath",
                str(output_dir),
                "-exportOptionsPlist",
                str(plist_path),
            ],
            output_dir,
        )

    def _checked(self, args: list[str], cwd: Path) -> None:
        result = self._runner.run(args, cwd=cwd)
        if not result.ok:
            raise LynxForgeError(f"{' '.join(args[:2])} exited with code {result.returncode}")
