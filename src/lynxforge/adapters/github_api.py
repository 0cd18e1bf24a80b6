"""Minimal GitHub REST client for triggering customer builds."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict

import requests

from lynxforge.domain.errors import NetworkFailureError, ToolingMissingError


@dataclass
class GitHubAuthConfig:
    token_env: str

    def resolve(self) -> str:
        token = os.environ.get(self.token_env)
        if not token:
            raise ToolingMissingError(
                f"GitHub token missing in environment variable '{self.token_env}'",
                f"export {self.token_env}=<token with repo scope>",
            )
        return token


class GitHubApiClient:
    def __init__(
        self,
        api_url: str,
        auth: GitHubAuthConfig,
        session: requests.Session | None = None,
        *,
        timeout: float = 30.0,
    ) -> None:
        self._api_url = api_url.rstrip("/")
        self._auth = auth
        self._session = session or requests.Session()
        self._timeout = timeout

    def repository_dispatch(self, repo_full_name: str, event_type: str, client_payload: Dict[str, Any]) -> None:
        token = self._auth.resolve()
        url = f"{self._api_url}/repos/{repo_full_name}/dispatches"
        headers = {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {token}",
        }
        body = {"event_type": event_type, "client_payload": client_payload}
        try:
            response = self._session.post(url, json=body, headers=headers, timeout=self._timeout)
        except requests.RequestException as exc:
            raise NetworkFailureError(f"repository dispatch failed: {exc}") from exc
        if response.status_code >= 400:
            raise NetworkFailureError(
                f"repository dispatch failed: {response.status_code} {response.text}"
            )
