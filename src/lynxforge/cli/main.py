#!/usr/bin/env python3
"""Entry point for the lynxforge CLI."""

from __future__ import annotations

import argparse
import contextlib
import json
import os
import sys
from collections import deque
from pathlib import Path
from textwrap import dedent
from typing import Any, Iterator

from lynxforge import __version__
from lynxforge.adapters.builders import AndroidBuilder, IosBuilder
from lynxforge.adapters.fs_template_repo import FSTemplateRepository
from lynxforge.adapters.github_api import GitHubApiClient, GitHubAuthConfig
from lynxforge.adapters.github_cli_host import GhCliRepoHost
from lynxforge.adapters.http_bundle import HttpBundleSource
from lynxforge.adapters.process import SubprocessRunner
from lynxforge.app.ci import CiEntryPoint, resolve_parameters
from lynxforge.app.dispatch import DispatchService
from lynxforge.app.provision import ProvisionService
from lynxforge.app.setup import SetupService
from lynxforge.domain.build import ANDROID, IOS, BuildRequest, BuildResult
from lynxforge.domain.descriptor import AppIdentity, CustomerDescriptor
from lynxforge.domain.errors import LynxForgeError
from lynxforge.ports.bundle_source import BundleSource
from lynxforge.ports.repo_host import RepoHost
from lynxforge.ports.runner import CommandRunner
from lynxforge.resources import sync_packaged_templates
from lynxforge.settings import DEFAULT_TEMPLATE_REF, DEFAULT_TEMPLATE_STORE, SETTINGS
from lynxforge.utils.telemetry import clear as telemetry_clear
from lynxforge.utils.telemetry import iter_events as telemetry_iter
from lynxforge.utils.telemetry import record_event, record_failure, summarize as telemetry_summarize


HELP_OVERVIEW = dedent(
    """
    Provision and build LynxJS native app repositories.

    Typical flow:
      - lynxforge provision --org acme-inc --customer acme --app-name ShopApp --bundle-id com.acme.shop
      - lynxforge dispatch --repo acme-inc/acme-shopapp --bundle-url https://cdn.example.com/main.lynx.bundle

    Inside a scaffold checkout:
      - lynxforge setup --name ShopApp --bundle-id com.acme.shop
      - lynxforge build-android --output-type bundle
      - lynxforge build-ios --export-method ad-hoc
    """
)


def _default_project_path(path_arg: str | None) -> Path:
    if path_arg:
        return Path(path_arg).expanduser().resolve()
    return Path(os.getcwd())


def _resolve_output(project_path: Path, output: str) -> Path:
    candidate = Path(output).expanduser()
    return candidate if candidate.is_absolute() else (project_path / candidate).resolve()


def _build_runner() -> CommandRunner:
    return SubprocessRunner()


def _build_repo_host() -> RepoHost:
    return GhCliRepoHost(_build_runner())


def _build_bundle_source() -> BundleSource:
    return HttpBundleSource(timeout=SETTINGS.http_timeout)


def _build_github_client() -> GitHubApiClient:
    return GitHubApiClient(SETTINGS.github_api_url, GitHubAuthConfig(token_env=SETTINGS.github_token_env))


def _build_template_repo() -> FSTemplateRepository:
    sync_packaged_templates(SETTINGS.template_dir)
    return FSTemplateRepository(SETTINGS.template_dir)


@contextlib.contextmanager
def _progress_to_stderr(enabled: bool) -> Iterator[None]:
    if not enabled:
        yield
        return
    with contextlib.redirect_stdout(sys.stderr):
        yield


def _fail(command: str, exc: Exception) -> int:
    print(f"error: {exc}", file=sys.stderr)
    record_failure(SETTINGS, f"error.{command}", exc, component="cli")
    return 1


def _provision_cmd(args: argparse.Namespace) -> int:
    descriptor = CustomerDescriptor(
        organization=args.org,
        customer=args.customer,
        app_name=args.app_name,
        bundle_id=args.bundle_id,
        template_ref=args.template_ref,
    )
    scaffold_root = _default_project_path(args.scaffold)
    try:
        # Validation precedes template sync so a bad descriptor touches nothing.
        descriptor.validate()
        service = ProvisionService(_build_repo_host(), _build_template_repo(), SETTINGS)
        with _progress_to_stderr(args.json):
            result = service.provision(descriptor, scaffold_root, template=args.template)
    except LynxForgeError as exc:
        return _fail("provision", exc)

    if args.json:
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
        return 0
    print("")
    print(f"Customer repo created: {result.repo_full_name}")
    print("")
    print("Next steps:")
    for step in result.next_steps:
        print(f"  {step}")
    return 0


def _setup_cmd(args: argparse.Namespace) -> int:
    identity = AppIdentity(app_name=args.name, bundle_id=args.bundle_id, team_id=args.ios_team_id)
    project_path = _default_project_path(args.path)
    service = SetupService(_build_runner(), SETTINGS)
    try:
        with _progress_to_stderr(args.json):
            result = service.configure(project_path, identity, skip_git=args.skip_git)
    except LynxForgeError as exc:
        return _fail("setup", exc)
    if args.json:
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
        return 0
    print("")
    print("Setup complete!")
    print("Next steps:")
    for step in result.next_steps:
        print(f"  {step}")
    return 0


def _report_build(command: str, result: BuildResult, as_json: bool) -> int:
    record_event(SETTINGS, command, result.to_dict())
    if as_json:
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
    for warning in result.warnings:
        print(f"warning: {warning}", file=sys.stderr)
    return 0


def _build_android_cmd(args: argparse.Namespace) -> int:
    project_path = _default_project_path(args.path)
    request = BuildRequest(
        project_root=project_path,
        app_name=project_path.name,
        bundle_id="",
        output_dir=_resolve_output(project_path, args.output),
        options={
            "build_type": args.build_type,
            "output_type": args.output_type,
            "use_fastlane": not args.no_fastlane,
            "keystore": args.keystore,
            "keystore_pass": args.keystore_pass,
            "key_alias": args.key_alias,
            "key_pass": args.key_pass,
        },
    )
    try:
        with _progress_to_stderr(args.json):
            result = AndroidBuilder(_build_runner()).build(request)
    except LynxForgeError as exc:
        return _fail("build-android", exc)
    return _report_build("build-android", result, args.json)


def _build_ios_cmd(args: argparse.Namespace) -> int:
    project_path = _default_project_path(args.path)
    request = BuildRequest(
        project_root=project_path,
        app_name=args.scheme or project_path.name,
        bundle_id="",
        output_dir=_resolve_output(project_path, args.output),
        options={
            "scheme": args.scheme,
            "export_method": args.export_method,
            "use_fastlane": args.use_fastlane,
            "team_id": args.ios_team_id,
        },
    )
    try:
        with _progress_to_stderr(args.json):
            result = IosBuilder(_build_runner()).build(request)
    except LynxForgeError as exc:
        return _fail("build-ios", exc)
    return _report_build("build-ios", result, args.json)


def _ci_cmd(args: argparse.Namespace) -> int:
    project_path = _default_project_path(args.path)
    try:
        params = resolve_parameters(
            project_path,
            lynx_bundle_url=args.lynx_bundle_url,
            app_name=args.app_name,
            bundle_id=args.bundle_id,
            ios_team_id=args.ios_team_id,
            build_android=not args.skip_android,
            build_ios=not args.skip_ios,
        )
    except LynxForgeError as exc:
        return _fail("ci", exc)

    runner = _build_runner()
    entry = CiEntryPoint(
        {ANDROID: AndroidBuilder(runner), IOS: IosBuilder(runner)},
        _build_bundle_source(),
        SETTINGS,
    )
    platform_options: dict[str, dict[str, Any]] = {
        ANDROID: {"build_type": args.build_type, "output_type": args.output_type},
        IOS: {"export_method": args.export_method, "use_fastlane": args.use_fastlane},
    }
    with _progress_to_stderr(args.json):
        result = entry.run(
            params,
            project_path,
            _resolve_output(project_path, args.output),
            platform_options=platform_options,
        )
    if args.json:
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
    else:
        for outcome in result.outcomes:
            line = f"{outcome.platform}: {outcome.status}"
            if outcome.artifact:
                line += f" -> {outcome.artifact}"
            if outcome.message:
                line += f" ({outcome.message})"
            print(line)
    if result.failed:
        failed = [o.platform for o in result.outcomes if o.status == "failed"]
        print(f"error: build failed for {', '.join(failed)}", file=sys.stderr)
    return result.exit_code


def _dispatch_cmd(args: argparse.Namespace) -> int:
    service = DispatchService(_build_github_client(), SETTINGS)
    try:
        payload = service.dispatch(args.repo, args.bundle_url, event_type=args.event_type)
    except LynxForgeError as exc:
        return _fail("dispatch", exc)
    print(f"Dispatched {payload['event_type']} to {payload['repo']}")
    return 0


def _templates_cmd(args: argparse.Namespace) -> int:
    repo = _build_template_repo()
    names = list(repo.list_templates())
    if not names:
        print("No templates installed", file=sys.stderr)
        return 1
    for name in names:
        print(name)
    record_event(SETTINGS, "templates", {"count": len(names)})
    return 0


def _telemetry_cmd(args: argparse.Namespace) -> int:
    if args.telemetry_command == "report":
        recent = getattr(args, "recent", 0)
        if recent and recent > 0:
            window: deque[dict[str, Any]] = deque(maxlen=recent)
            for evt in telemetry_iter(SETTINGS):
                window.append(evt)
            events = list(window)
        else:
            events = list(telemetry_iter(SETTINGS))
        summary = telemetry_summarize(events)
        print(json.dumps(summary, indent=2, ensure_ascii=False))
        return 0
    if args.telemetry_command == "clear":
        telemetry_clear(SETTINGS)
        print("Telemetry log cleared")
        return 0
    if args.telemetry_command == "tail":
        dq: deque[dict[str, Any]] = deque(maxlen=args.limit)
        for evt in telemetry_iter(SETTINGS, prefix=args.event):
            dq.append(evt)
        for evt in dq:
            print(json.dumps(evt, ensure_ascii=False))
        return 0
    print("Unsupported telemetry command", file=sys.stderr)
    return 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lynxforge",
        description=HELP_OVERVIEW,
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"lynxforge {__version__}")

    sub = parser.add_subparsers(dest="command", required=True)

    provision_cmd = sub.add_parser("provision", help="Create and push a per-customer build repository")
    provision_cmd.add_argument("--org", "-o", required=True, help="GitHub organization or user")
    provision_cmd.add_argument("--customer", "-c", required=True, help="Customer slug (e.g. acme-corp)")
    provision_cmd.add_argument("--app-name", "-n", required=True, help="App name used for builds")
    provision_cmd.add_argument("--bundle-id", "-b", required=True, help="Bundle/package id")
    provision_cmd.add_argument(
        "--template-ref",
        default=DEFAULT_TEMPLATE_REF,
        help=f"Template repo branch/tag to reference (default: {DEFAULT_TEMPLATE_REF})",
    )
    provision_cmd.add_argument(
        "--template",
        default=DEFAULT_TEMPLATE_STORE,
        help=f"Template store to render (default: {DEFAULT_TEMPLATE_STORE})",
    )
    provision_cmd.add_argument("--scaffold", help="Directory holding ios/, android/, scripts/ (default: current directory)")
    provision_cmd.add_argument("--json", action="store_true", help="Emit machine-readable JSON result")
    provision_cmd.set_defaults(func=_provision_cmd)

    setup_cmd = sub.add_parser("setup", help="Rename the native scaffold in place")
    setup_cmd.add_argument("--name", "-n", default="MyApp", help="App name (default: MyApp)")
    setup_cmd.add_argument("--bundle-id", "-b", default="com.example.myapp", help="Bundle/package id")
    setup_cmd.add_argument("--ios-team-id", default=None, help="Apple Developer Team ID")
    setup_cmd.add_argument("--skip-git", action="store_true", help="Skip git re-initialisation")
    setup_cmd.add_argument("--path", help="Scaffold root (default: current directory)")
    setup_cmd.add_argument("--json", action="store_true", help="Emit machine-readable JSON result")
    setup_cmd.set_defaults(func=_setup_cmd)

    android_cmd = sub.add_parser("build-android", help="Build the Android app")
    android_cmd.add_argument("--build-type", choices=["debug", "release"], default="release")
    android_cmd.add_argument("--output-type", choices=["apk", "bundle"], default="apk")
    android_cmd.add_argument("--output", default="build", help="Output directory (default: build)")
    android_cmd.add_argument("--no-fastlane", action="store_true", help="Use Gradle directly instead of fastlane")
    android_cmd.add_argument("--keystore", help="Keystore path for release signing (requires --no-fastlane)")
    android_cmd.add_argument("--keystore-pass", help="Keystore password (default: $KEYSTORE_PASSWORD)")
    android_cmd.add_argument("--key-alias", help="Key alias (default: $KEY_ALIAS)")
    android_cmd.add_argument("--key-pass", help="Key password (default: $KEY_PASSWORD)")
    android_cmd.add_argument("--path", help="Project root (default: current directory)")
    android_cmd.add_argument("--json", action="store_true", help="Emit machine-readable JSON result")
    android_cmd.set_defaults(func=_build_android_cmd)

    ios_cmd = sub.add_parser("build-ios", help="Build the iOS app")
    ios_cmd.add_argument("--scheme", help="Xcode scheme (default: autodetected)")
    ios_cmd.add_argument(
        "--export-method",
        choices=["app-store", "ad-hoc", "development"],
        default="app-store",
    )
    ios_cmd.add_argument("--output", default="build", help="Output directory (default: build)")
    ios_cmd.add_argument("--use-fastlane", action="store_true", help="Use fastlane instead of xcodebuild")
    ios_cmd.add_argument("--ios-team-id", default=None, help="Apple Developer Team ID")
    ios_cmd.add_argument("--path", help="Project root (default: current directory)")
    ios_cmd.add_argument("--json", action="store_true", help="Emit machine-readable JSON result")
    ios_cmd.set_defaults(func=_build_ios_cmd)

    ci_cmd = sub.add_parser("ci", help="Run the reusable CI entry point")
    ci_cmd.add_argument("--lynx-bundle-url", required=True, help="URL of the LynxJS bundle")
    ci_cmd.add_argument("--app-name", help="App name (default: from lynx-app.yaml)")
    ci_cmd.add_argument("--bundle-id", help="Bundle id (default: from lynx-app.yaml)")
    ci_cmd.add_argument("--ios-team-id", default=None)
    ci_cmd.add_argument("--skip-android", action="store_true", help="Do not run the Android job")
    ci_cmd.add_argument("--skip-ios", action="store_true", help="Do not run the iOS job")
    ci_cmd.add_argument("--build-type", choices=["debug", "release"], default="release")
    ci_cmd.add_argument("--output-type", choices=["apk", "bundle"], default="bundle")
    ci_cmd.add_argument(
        "--export-method",
        choices=["app-store", "ad-hoc", "development"],
        default="app-store",
    )
    ci_cmd.add_argument("--use-fastlane", action="store_true", help="Build iOS with fastlane")
    ci_cmd.add_argument("--output", default="build", help="Output directory (default: build)")
    ci_cmd.add_argument("--path", help="Project root (default: current directory)")
    ci_cmd.add_argument("--json", action="store_true", help="Emit machine-readable JSON result")
    ci_cmd.set_defaults(func=_ci_cmd)

    dispatch_cmd = sub.add_parser("dispatch", help="Trigger a build in a customer repository")
    dispatch_cmd.add_argument("--repo", required=True, help="Repository as owner/name")
    dispatch_cmd.add_argument("--bundle-url", required=True, help="URL of the LynxJS bundle")
    dispatch_cmd.add_argument("--event-type", default="build")
    dispatch_cmd.set_defaults(func=_dispatch_cmd)

    templates_cmd = sub.add_parser("templates", help="List available template stores")
    templates_cmd.set_defaults(func=_templates_cmd)

    telemetry_cmd = sub.add_parser("telemetry", help="Inspect local telemetry logs")
    telemetry_sub = telemetry_cmd.add_subparsers(dest="telemetry_command", required=True)

    telemetry_report = telemetry_sub.add_parser("report", help="Print aggregated telemetry stats")
    telemetry_report.add_argument(
        "--recent",
        type=int,
        default=0,
        help="Limit aggregation to the last N telemetry events",
    )
    telemetry_report.set_defaults(func=_telemetry_cmd)

    telemetry_clear_cmd = telemetry_sub.add_parser("clear", help="Remove telemetry log file")
    telemetry_clear_cmd.set_defaults(func=_telemetry_cmd)

    telemetry_tail = telemetry_sub.add_parser("tail", help="Print last N telemetry events")
    telemetry_tail.add_argument("--limit", type=int, default=20)
    telemetry_tail.add_argument("--event", default=None, help="Only events whose name starts with this prefix")
    telemetry_tail.set_defaults(func=_telemetry_cmd)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
