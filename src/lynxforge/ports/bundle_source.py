"""Port for fetching LynxJS bundles."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path


class BundleSource(ABC):
    @abstractmethod
    def fetch(self, url: str, destination: Path) -> Path:
        """Download ``url`` into ``destination`` and return the written path."""
