from __future__ import annotations

import json
from pathlib import Path

import pytest

from lynxforge.app.ci import CiEntryPoint, resolve_parameters
from lynxforge.domain.build import ANDROID, FAILED, IOS, SKIPPED, SUCCEEDED, BuildParameters, BuildRequest, BuildResult
from lynxforge.domain.errors import NetworkFailureError, ToolingMissingError, ValidationError
from lynxforge.ports.bundle_source import BundleSource
from lynxforge.ports.platform_builder import PlatformBuilder
from lynxforge.settings import RuntimeSettings

BUNDLE_URL = "https://cdn.example.com/main.lynx.bundle"


class RecordingBundleSource(BundleSource):
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.fetched: list[tuple[str, Path]] = []

    def fetch(self, url: str, destination: Path) -> Path:
        if self.fail:
            raise NetworkFailureError("Bundle download failed: 404")
        self.fetched.append((url, destination))
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(b"bundle")
        return destination


class StubBuilder(PlatformBuilder):
    def __init__(self, platform: str, *, error: Exception | None = None, warnings: list[str] | None = None) -> None:
        self.platform = platform
        self.error = error
        self.warnings = warnings or []
        self.requests: list[BuildRequest] = []

    def build(self, request: BuildRequest) -> BuildResult:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        artifact = request.output_dir / f"{request.app_name}.{self.platform}"
        return BuildResult(platform=self.platform, artifact=artifact, warnings=list(self.warnings))


def _params(**overrides) -> BuildParameters:
    values = {"app_name": "Shop", "bundle_id": "com.acme.shop", "lynx_bundle_url": BUNDLE_URL}
    values.update(overrides)
    return BuildParameters(**values)


def test_both_jobs_fetch_bundle_and_build(tmp_path: Path, runtime_settings: RuntimeSettings) -> None:
    android, ios = StubBuilder(ANDROID), StubBuilder(IOS)
    bundles = RecordingBundleSource()
    entry = CiEntryPoint({ANDROID: android, IOS: ios}, bundles, runtime_settings)

    result = entry.run(_params(ios_team_id="TEAM1"), tmp_path, tmp_path / "build")

    assert result.exit_code == 0
    assert [o.status for o in result.outcomes] == [SUCCEEDED, SUCCEEDED]
    assert [dest for _, dest in bundles.fetched] == [
        tmp_path / "android" / "app" / "src" / "main" / "assets" / "main.lynx.bundle",
        tmp_path / "ios" / "Shop" / "Resources" / "main.lynx.bundle",
    ]
    assert android.requests[0].output_dir == tmp_path / "build" / "android"
    assert ios.requests[0].options == {"scheme": "Shop", "team_id": "TEAM1"}
    events = [json.loads(line) for line in runtime_settings.telemetry_file.read_text(encoding="utf-8").splitlines()]
    assert events[-1]["event"] == "ci.run"
    assert events[-1]["status"] == "ok"


def test_disabled_platform_is_skipped_without_invoking_builder(tmp_path: Path, runtime_settings: RuntimeSettings) -> None:
    android, ios = StubBuilder(ANDROID), StubBuilder(IOS)
    entry = CiEntryPoint({ANDROID: android, IOS: ios}, RecordingBundleSource(), runtime_settings)

    result = entry.run(_params(build_android=False), tmp_path, tmp_path / "build")

    assert result.outcome(ANDROID).status == SKIPPED
    assert result.outcome(IOS).status == SUCCEEDED
    assert android.requests == []
    assert result.exit_code == 0


def test_failed_job_does_not_stop_the_other(tmp_path: Path, runtime_settings: RuntimeSettings) -> None:
    android = StubBuilder(ANDROID, error=ToolingMissingError("Android SDK not found", "set ANDROID_HOME"))
    ios = StubBuilder(IOS)
    entry = CiEntryPoint({ANDROID: android, IOS: ios}, RecordingBundleSource(), runtime_settings)

    result = entry.run(_params(), tmp_path, tmp_path / "build")

    assert result.outcome(ANDROID).status == FAILED
    assert "Android SDK not found" in (result.outcome(ANDROID).message or "")
    assert result.outcome(IOS).status == SUCCEEDED
    assert result.exit_code == 1
    assert result.to_dict()["status"] == "failed"


def test_bundle_download_failure_fails_each_job(tmp_path: Path, runtime_settings: RuntimeSettings) -> None:
    android, ios = StubBuilder(ANDROID), StubBuilder(IOS)
    entry = CiEntryPoint({ANDROID: android, IOS: ios}, RecordingBundleSource(fail=True), runtime_settings)

    result = entry.run(_params(), tmp_path, tmp_path / "build")

    assert [o.status for o in result.outcomes] == [FAILED, FAILED]
    assert android.requests == [] and ios.requests == []


def test_missing_artifact_warning_still_succeeds(tmp_path: Path, runtime_settings: RuntimeSettings) -> None:
    android = StubBuilder(ANDROID, warnings=["Could not find output file"])
    entry = CiEntryPoint({ANDROID: android}, RecordingBundleSource(), runtime_settings)

    result = entry.run(_params(build_ios=False), tmp_path, tmp_path / "build")

    assert result.outcome(ANDROID).status == SUCCEEDED
    assert result.outcome(ANDROID).message == "Could not find output file"
    assert result.exit_code == 0


def test_resolve_parameters_falls_back_to_app_config(tmp_path: Path) -> None:
    (tmp_path / "lynx-app.yaml").write_text("app_name: Shop\nbundle_id: com.acme.shop\n", encoding="utf-8")

    params = resolve_parameters(tmp_path, lynx_bundle_url=BUNDLE_URL)
    assert (params.app_name, params.bundle_id) == ("Shop", "com.acme.shop")

    explicit = resolve_parameters(tmp_path, lynx_bundle_url=BUNDLE_URL, app_name="Other")
    assert (explicit.app_name, explicit.bundle_id) == ("Other", "com.acme.shop")


def test_resolve_parameters_requires_identity(tmp_path: Path) -> None:
    with pytest.raises(ValidationError):
        resolve_parameters(tmp_path, lynx_bundle_url=BUNDLE_URL)
    with pytest.raises(ValidationError):
        resolve_parameters(tmp_path, lynx_bundle_url="", app_name="Shop", bundle_id="com.acme.shop")


def test_filesystem_error_in_one_job_does_not_stop_the_other(tmp_path: Path, runtime_settings: RuntimeSettings) -> None:
    android = StubBuilder(ANDROID, error=PermissionError("cannot copy artifact"))
    ios = StubBuilder(IOS)
    entry = CiEntryPoint({ANDROID: android, IOS: ios}, RecordingBundleSource(), runtime_settings)

    result = entry.run(_params(), tmp_path, tmp_path / "build")

    assert result.outcome(ANDROID).status == FAILED
    assert result.outcome(ANDROID).message == "cannot copy artifact"
    assert len(ios.requests) == 1
    assert result.outcome(IOS).status == SUCCEEDED
    assert result.exit_code == 1
