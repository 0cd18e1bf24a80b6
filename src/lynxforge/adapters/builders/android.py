"""Android builder wrapping fastlane lanes and Gradle tasks."""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Sequence

from lynxforge.domain.build import ANDROID, BuildRequest, BuildResult
from lynxforge.domain.errors import LynxForgeError, ToolingMissingError, ValidationError
from lynxforge.ports.platform_builder import PlatformBuilder
from lynxforge.ports.runner import CommandRunner


BUILD_TYPES = ("debug", "release")
OUTPUT_TYPES = ("apk", "bundle")


def _default_sdk_candidates() -> list[Path]:
    home = Path.home()
    return [
        home / "Library" / "Android" / "sdk",
        home / "Android" / "Sdk",
        Path("/usr/local/share/android-sdk"),
    ]


@dataclass(frozen=True)
class AndroidBuildOptions:
    build_type: str = "release"
    output_type: str = "apk"
    use_fastlane: bool = True
    keystore: str | None = None
    keystore_pass: str | None = None
    key_alias: str | None = None
    key_pass: str | None = None

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> "AndroidBuildOptions":
        known = {name: options[name] for name in cls.__dataclass_fields__ if name in options}
        instance = cls(**known)
        instance.validate()
        return instance

    def validate(self) -> None:
        if self.build_type not in BUILD_TYPES:
            raise ValidationError(f"build type must be one of {', '.join(BUILD_TYPES)}")
        if self.output_type not in OUTPUT_TYPES:
            raise ValidationError(f"output type must be one of {', '.join(OUTPUT_TYPES)}")

    @property
    def extension(self) -> str:
        return ".aab" if self.output_type == "bundle" else ".apk"

    @property
    def fastlane_lane(self) -> str:
        if self.output_type == "bundle":
            return "build_bundle"
        return "build_release" if self.build_type == "release" else "build_debug"

    @property
    def gradle_task(self) -> str:
        prefix = "bundle" if self.output_type == "bundle" else "assemble"
        return f"{prefix}{self.build_type.capitalize()}"


def find_android_artifact(android_dir: Path, output_type: str) -> Path | None:
    """Return the first artifact of ``output_type`` under the Gradle outputs tree."""

    if output_type == "bundle":
        search_root, extension = android_dir / "app" / "build" / "outputs" / "bundle", ".aab"
    else:
        search_root, extension = android_dir / "app" / "build" / "outputs" / "apk", ".apk"
    if not search_root.is_dir():
        return None
    matches = sorted(p for p in search_root.rglob(f"*{extension}") if p.is_file())
    return matches[0] if matches else None


class AndroidBuilder(PlatformBuilder):
    platform = ANDROID

    def __init__(
        self,
        runner: CommandRunner,
        *,
        environ: Mapping[str, str] | None = None,
        sdk_candidates: Sequence[Path] | None = None,
    ) -> None:
        self._runner = runner
        self._environ = dict(os.environ if environ is None else environ)
        self._sdk_candidates = list(sdk_candidates) if sdk_candidates is not None else _default_sdk_candidates()

    def build(self, request: BuildRequest) -> BuildResult:
        options = AndroidBuildOptions.from_mapping(request.options)
        android_dir = request.project_root / "android"
        if not android_dir.is_dir():
            raise ValidationError(f"Android project not found at {android_dir}")

        print("Building Android app")
        print(f"Build type: {options.build_type}")
        print(f"Output type: {options.output_type}")

        env = self._prepare_sdk(android_dir)
        request.output_dir.mkdir(parents=True, exist_ok=True)

        if options.use_fastlane:
            print("Using: fastlane")
            if (android_dir / "Gemfile").exists():
                if not self._runner.run(["bundle", "check"], cwd=android_dir, env=env).ok:
                    self._checked(["bundle", "install"], android_dir, env)
            print(f"Running fastlane {options.fastlane_lane}...")
            self._checked(["bundle", "exec", "fastlane", options.fastlane_lane], android_dir, env)
        else:
            self._checked(self._gradle_args(options), android_dir, env)

        result = BuildResult(platform=ANDROID)
        artifact = find_android_artifact(android_dir, options.output_type)
        if artifact is None:
            result.warnings.append("Could not find output file")
            print("Warning: Could not find output file")
            return result
        target = request.output_dir / artifact.name
        shutil.copy2(artifact, target)
        result.artifact = target
        print(f"Build complete! Output: {target}")
        return result

    def _gradle_args(self, options: AndroidBuildOptions) -> list[str]:
        args = ["./gradlew", options.gradle_task]
        if options.keystore and options.build_type == "release":
            keystore_pass = options.keystore_pass or self._environ.get("KEYSTORE_PASSWORD", "")
            key_alias = options.key_alias or self._environ.get("KEY_ALIAS", "")
            key_pass = options.key_pass or self._environ.get("KEY_PASSWORD", "")
            args.extend(
                [
                    f"-Pandroid.injected.signing.store.file={options.keystore}",
                    f"-Pandroid.injected.signing.store.password={keystore_pass}",
                    f"-Pandroid.injected.signing.key.alias={key_alias}",
                    f"-Pandroid.injected.signing.key.password={key_pass}",
                ]
            )
        return args

    def _prepare_sdk(self, android_dir: Path) -> dict[str, str]:
        env: dict[str, str] = {}
        sdk = self._environ.get("ANDROID_HOME") or self._environ.get("ANDROID_SDK_ROOT")
        if not sdk:
            for candidate in self._sdk_candidates:
                if candidate.is_dir():
                    sdk = str(candidate)
                    env["ANDROID_HOME"] = sdk
                    print(f"Auto-detected Android SDK: {sdk}")
                    break
        local_properties = android_dir / "local.properties"
        if sdk and not local_properties.exists():
            local_properties.write_text(f"sdk.dir={sdk}\n", encoding="utf-8")
            print("Created local.properties with SDK path")
        if not sdk and not local_properties.exists():
            raise ToolingMissingError(
                "Android SDK not found",
                "set ANDROID_HOME, install Android Studio, or create android/local.properties with sdk.dir",
            )
        return env

    def _checked(self, args: list[str], cwd: Path, env: Mapping[str, str]) -> None:
        result = self._runner.run(args, cwd=cwd, env=env)
        if not result.ok:
            raise LynxForgeError(f"{' '.join(args)} exited with code {result.returncode}")
