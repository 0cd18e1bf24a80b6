"""Error taxonomy shared across lynxforge layers."""

from __future__ import annotations


class LynxForgeError(RuntimeError):
    """Base class for failures reported to the operator as a one-line diagnosis."""


class ValidationError(LynxForgeError):
    """Raised when a name, identifier or parameter is malformed."""


class ToolingMissingError(LynxForgeError):
    """Raised when a required external tool or SDK is absent."""

    def __init__(self, message: str, remediation: str | None = None) -> None:
        super().__init__(message)
        self.remediation = remediation

    def __str__(self) -> str:
        base = super().__str__()
        if self.remediation:
            return f"{base} ({self.remediation})"
        return base


class RemoteConflictError(LynxForgeError):
    """Raised when the target repository name is already taken."""


class NetworkFailureError(LynxForgeError):
    """Raised when a clone, push, download or API call fails."""


class RenderCollisionError(LynxForgeError):
    """Raised when a rendered path would overwrite an existing file."""


__all__ = [
    "LynxForgeError",
    "NetworkFailureError",
    "RemoteConflictError",
    "RenderCollisionError",
    "ToolingMissingError",
    "ValidationError",
]
