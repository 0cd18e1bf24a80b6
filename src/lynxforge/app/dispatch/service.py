"""Send ``repository_dispatch`` build events to customer repositories."""

from __future__ import annotations

import re

from lynxforge.adapters.github_api import GitHubApiClient
from lynxforge.domain.errors import ValidationError
from lynxforge.settings import RuntimeSettings
from lynxforge.utils.telemetry import record_event


REPO_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$")


class DispatchService:
    def __init__(self, client: GitHubApiClient, settings: RuntimeSettings) -> None:
        self._client = client
        self._settings = settings

    def dispatch(self, repo_full_name: str, bundle_url: str, *, event_type: str = "build") -> dict[str, str]:
        if not REPO_PATTERN.fullmatch(repo_full_name or ""):
            raise ValidationError(f"Repository must be given as owner/name, got {repo_full_name!r}")
        if not bundle_url or not bundle_url.startswith(("http://", "https://")):
            raise ValidationError("Bundle URL must be an http(s) URL")
        if not event_type:
            raise ValidationError("Event type must not be empty")
        self._client.repository_dispatch(repo_full_name, event_type, {"bundle_url": bundle_url})
        payload = {"repo": repo_full_name, "event_type": event_type, "bundle_url": bundle_url}
        record_event(self._settings, "dispatch", payload)
        return payload
