"""Port definitions for template storage."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable

from lynxforge.domain.errors import LynxForgeError
from lynxforge.domain.template import TemplateDescriptor


class TemplateNotFoundError(LynxForgeError):
    pass


class TemplateRepository(ABC):
    @abstractmethod
    def ensure_available(self, name: str) -> TemplateDescriptor:
        """Return the descriptor of the named template store."""

    @abstractmethod
    def list_templates(self) -> Iterable[str]:
        """List installed template stores."""
