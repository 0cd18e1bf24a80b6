"""Fan a validated parameter set out to independent platform build jobs."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from lynxforge.domain.build import (
    FAILED,
    IOS,
    PLATFORMS,
    SKIPPED,
    SUCCEEDED,
    AppConfig,
    BuildParameters,
    BuildRequest,
    JobOutcome,
    bundle_destination,
)
from lynxforge.domain.errors import LynxForgeError, ValidationError
from lynxforge.ports.bundle_source import BundleSource
from lynxforge.ports.platform_builder import PlatformBuilder
from lynxforge.settings import APP_CONFIG_FILE, RuntimeSettings
from lynxforge.utils.telemetry import record_structured_event


@dataclass
class CiRunResult:
    parameters: BuildParameters
    outcomes: list[JobOutcome] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return any(outcome.status == FAILED for outcome in self.outcomes)

    @property
    def exit_code(self) -> int:
        return 1 if self.failed else 0

    def outcome(self, platform: str) -> JobOutcome:
        for item in self.outcomes:
            if item.platform == platform:
                return item
        raise KeyError(platform)

    def to_dict(self) -> dict[str, Any]:
        return {
            "app_name": self.parameters.app_name,
            "bundle_id": self.parameters.bundle_id,
            "jobs": [outcome.to_dict() for outcome in self.outcomes],
            "status": "failed" if self.failed else "ok",
        }


def resolve_parameters(
    project_root: Path,
    *,
    lynx_bundle_url: str,
    app_name: str | None = None,
    bundle_id: str | None = None,
    ios_team_id: str | None = None,
    build_android: bool = True,
    build_ios: bool = True,
) -> BuildParameters:
    """Combine explicit inputs with the persisted app config; explicit values win."""

    if not app_name or not bundle_id:
        config_path = project_root / APP_CONFIG_FILE
        if not config_path.exists():
            raise ValidationError(
                f"app_name and bundle_id are required: pass them explicitly or provide {config_path}"
            )
        config = AppConfig.load(config_path)
        app_name = app_name or config.app_name
        bundle_id = bundle_id or config.bundle_id
    params = BuildParameters(
        app_name=app_name,
        bundle_id=bundle_id,
        lynx_bundle_url=lynx_bundle_url,
        ios_team_id=ios_team_id or None,
        build_android=build_android,
        build_ios=build_ios,
    )
    params.validate()
    return params


class CiEntryPoint:
    def __init__(
        self,
        builders: Mapping[str, PlatformBuilder],
        bundle_source: BundleSource,
        settings: RuntimeSettings,
    ) -> None:
        self._builders = dict(builders)
        self._bundles = bundle_source
        self._settings = settings

    def run(
        self,
        params: BuildParameters,
        project_root: Path,
        output_dir: Path,
        *,
        platform_options: Mapping[str, Mapping[str, Any]] | None = None,
    ) -> CiRunResult:
        params.validate()
        result = CiRunResult(parameters=params)
        for platform in PLATFORMS:
            if not params.enabled(platform):
                print(f"[{platform}] skipped")
                result.outcomes.append(JobOutcome(platform=platform, status=SKIPPED))
                continue
            options = dict((platform_options or {}).get(platform, {}))
            result.outcomes.append(self._run_job(platform, params, project_root, output_dir, options))
        record_structured_event(
            self._settings,
            "ci.run",
            status="error" if result.failed else "ok",
            level="error" if result.failed else "info",
            component="ci",
            payload=result.to_dict(),
        )
        return result

    def _run_job(
        self,
        platform: str,
        params: BuildParameters,
        project_root: Path,
        output_dir: Path,
        options: dict[str, Any],
    ) -> JobOutcome:
        builder = self._builders.get(platform)
        if builder is None:
            return JobOutcome(platform=platform, status=FAILED, message=f"No builder registered for {platform}")
        if platform == IOS:
            options.setdefault("scheme", params.app_name)
            if params.ios_team_id:
                options.setdefault("team_id", params.ios_team_id)
        start = time.perf_counter()
        try:
            destination = bundle_destination(platform, project_root, params.app_name)
            print(f"[{platform}] downloading bundle to {destination.relative_to(project_root)}")
            self._bundles.fetch(params.lynx_bundle_url, destination)
            request = BuildRequest(
                project_root=project_root,
                app_name=params.app_name,
                bundle_id=params.bundle_id,
                output_dir=output_dir / platform,
                options=options,
            )
            build = builder.build(request)
        except (LynxForgeError, OSError) as exc:
            print(f"[{platform}] failed: {exc}")
            return JobOutcome(platform=platform, status=FAILED, message=str(exc))
        elapsed = (time.perf_counter() - start) * 1000
        message = "; ".join(build.warnings) or None
        print(f"[{platform}] succeeded in {elapsed:.0f} ms")
        return JobOutcome(platform=platform, status=SUCCEEDED, artifact=build.artifact, message=message)


__all__ = ["CiEntryPoint", "CiRunResult", "resolve_parameters"]
