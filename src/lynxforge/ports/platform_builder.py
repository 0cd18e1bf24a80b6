"""Port for native platform builders."""

from __future__ import annotations

from abc import ABC, abstractmethod

from lynxforge.domain.build import BuildRequest, BuildResult


class PlatformBuilder(ABC):
    platform: str

    @abstractmethod
    def build(self, request: BuildRequest) -> BuildResult:
        """Run the platform toolchain; a missing artifact is reported as a warning."""
