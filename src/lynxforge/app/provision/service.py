"""Application service that turns a customer descriptor into a pushed repository."""

from __future__ import annotations

import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Sequence

from lynxforge.app.render import RenderEngine, RenderReport
from lynxforge.domain.descriptor import CustomerDescriptor
from lynxforge.domain.errors import LynxForgeError, ValidationError
from lynxforge.domain.template import TemplateDescriptor
from lynxforge.domain.tokens import custom_ruleset, legacy_ruleset, placeholder_ruleset
from lynxforge.ports.repo_host import RepoHost
from lynxforge.ports.template_repo import TemplateRepository
from lynxforge.settings import DEFAULT_TEMPLATE_STORE, RuntimeSettings
from lynxforge.utils.telemetry import record_failure, record_structured_event


SCAFFOLD_DIRS = ("ios", "android", "scripts")
# Only the native projects carry the template identity; scripts ship as-is.
RENAMED_DIRS = frozenset({"ios", "android"})
SIGNING_SECRETS = (
    "ANDROID_KEYSTORE_BASE64",
    "ANDROID_KEYSTORE_PASSWORD",
    "ANDROID_KEY_ALIAS",
    "ANDROID_KEY_PASSWORD",
    "APPLE_TEAM_ID",
    "MATCH_GIT_URL",
    "MATCH_PASSWORD",
)


def commit_message(descriptor: CustomerDescriptor) -> str:
    return f"Initial setup: {descriptor.app_name} ({descriptor.bundle_id})"


def next_steps(repo_full_name: str) -> list[str]:
    steps = [f"gh secret set {name} --repo {repo_full_name}" for name in SIGNING_SECRETS]
    steps.append(f"gh workflow run build.yml --repo {repo_full_name} -f lynx_bundle_url=<URL>")
    steps.append(
        f"gh api repos/{repo_full_name}/dispatches -f event_type=build "
        "-f 'client_payload[bundle_url]=<URL>'"
    )
    return steps


@dataclass
class ProvisionResult:
    repo_full_name: str
    commit_message: str
    report: RenderReport
    next_steps: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "repo": self.repo_full_name,
            "commit_message": self.commit_message,
            "files": [p.as_posix() for p in self.report.files],
            "renamed": self.report.to_dict()["renamed"],
            "next_steps": list(self.next_steps),
        }


class ProvisionService:
    def __init__(
        self,
        repo_host: RepoHost,
        template_repo: TemplateRepository,
        settings: RuntimeSettings,
        *,
        scaffold_dirs: Sequence[str] = SCAFFOLD_DIRS,
    ) -> None:
        self._host = repo_host
        self._templates = template_repo
        self._settings = settings
        self._scaffold_dirs = tuple(scaffold_dirs)

    def provision(
        self,
        descriptor: CustomerDescriptor,
        scaffold_root: Path,
        *,
        template: str = DEFAULT_TEMPLATE_STORE,
    ) -> ProvisionResult:
        descriptor.validate()
        self._host.ensure_ready()
        template_descriptor = self._templates.ensure_available(template)
        template_descriptor.validate()
        sources = self._scaffold_sources(scaffold_root)

        full_name = descriptor.repo_full_name
        start = time.perf_counter()
        payload = descriptor.to_dict() | {"template": template}
        record_structured_event(
            self._settings, "provision", status="start", component="provision", payload=payload
        )
        try:
            print(f"Creating private repo {full_name}...")
            self._host.create(
                full_name,
                private=True,
                description=f"Build pipeline for {descriptor.app_name}",
            )
            with tempfile.TemporaryDirectory(prefix="lynxforge-") as tmp:
                workspace = Path(tmp) / "repo"
                print("Cloning repo...")
                self._host.clone(full_name, workspace)
                report = self._render_workspace(descriptor, sources, template_descriptor, workspace)
                message = commit_message(descriptor)
                print("Pushing initial commit...")
                self._host.commit_and_push(workspace, message)
        except LynxForgeError as exc:
            record_failure(
                self._settings,
                "provision",
                exc,
                payload=payload,
                component="provision",
                duration_ms=(time.perf_counter() - start) * 1000,
            )
            raise
        record_structured_event(
            self._settings,
            "provision",
            status="ok",
            component="provision",
            payload=payload | {"files": len(report.files)},
            duration_ms=(time.perf_counter() - start) * 1000,
        )
        return ProvisionResult(
            repo_full_name=full_name,
            commit_message=message,
            report=report,
            next_steps=next_steps(full_name),
        )

    def _scaffold_sources(self, scaffold_root: Path) -> list[Path]:
        if not scaffold_root.is_dir():
            raise ValidationError(f"Scaffold root not found: {scaffold_root}")
        sources = [scaffold_root / name for name in self._scaffold_dirs if (scaffold_root / name).is_dir()]
        if not sources:
            raise ValidationError(
                f"No native scaffold found under {scaffold_root} (expected one of {', '.join(self._scaffold_dirs)})"
            )
        return sources

    def _render_workspace(
        self,
        descriptor: CustomerDescriptor,
        sources: list[Path],
        template: TemplateDescriptor,
        workspace: Path,
    ) -> RenderReport:
        report = RenderReport()
        print("Copying native project files...")
        native = RenderEngine(legacy_ruleset(descriptor.identity()))
        verbatim = RenderEngine(custom_ruleset("verbatim", ()))
        for source in sources:
            engine = native if source.name in RENAMED_DIRS else verbatim
            report.extend(engine.render_tree(source, workspace / source.name).prefixed(source.name))
        print(f"Generating CI files from template {template.name}...")
        templates = RenderEngine(placeholder_ruleset(descriptor))
        rendered = templates.render_templates(template.root_dir, workspace)
        for path in rendered.files:
            print(f"  Created: {path.as_posix()}")
        report.extend(rendered)
        return report
