"""Port for the source-control host that stores customer repositories."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path


class RepoHost(ABC):
    """Create, clone and push repositories on a remote host."""

    @abstractmethod
    def ensure_ready(self) -> None:
        """Raise ToolingMissingError when the host client is unusable."""

    @abstractmethod
    def create(self, full_name: str, *, private: bool = True, description: str = "") -> None:
        """Create ``owner/name``; raise RemoteConflictError when it already exists."""

    @abstractmethod
    def clone(self, full_name: str, destination: Path) -> None:
        """Clone ``owner/name`` into ``destination``."""

    @abstractmethod
    def commit_and_push(self, workspace: Path, message: str) -> None:
        """Stage everything in ``workspace``, commit with ``message`` and push."""
