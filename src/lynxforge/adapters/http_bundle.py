"""Download LynxJS bundles over HTTP(S) or from local ``file://`` URLs."""

from __future__ import annotations

import shutil
from pathlib import Path
from urllib.parse import unquote, urlparse

import requests

from lynxforge.domain.errors import NetworkFailureError
from lynxforge.ports.bundle_source import BundleSource


CHUNK_SIZE = 64 * 1024


class HttpBundleSource(BundleSource):
    def __init__(self, session: requests.Session | None = None, *, timeout: float = 60.0) -> None:
        self._session = session or requests.Session()
        self._timeout = timeout

    def fetch(self, url: str, destination: Path) -> Path:
        destination.parent.mkdir(parents=True, exist_ok=True)
        parsed = urlparse(url)
        if parsed.scheme == "file":
            source = Path(unquote(parsed.path))
            if not source.is_file():
                raise NetworkFailureError(f"Bundle not found at {source}")
            shutil.copyfile(source, destination)
            return destination

        try:
            response = self._session.get(url, stream=True, timeout=self._timeout)
        except requests.RequestException as exc:
            raise NetworkFailureError(f"Bundle download failed: {exc}") from exc
        with response:
            if response.status_code >= 400:
                raise NetworkFailureError(
                    f"Bundle download failed: {response.status_code} {url}"
                )
            partial = destination.with_name(destination.name + ".part")
            try:
                with partial.open("wb") as fh:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if chunk:
                            fh.write(chunk)
            except requests.RequestException as exc:
                partial.unlink(missing_ok=True)
                raise NetworkFailureError(f"Bundle download interrupted: {exc}") from exc
        partial.replace(destination)
        return destination
