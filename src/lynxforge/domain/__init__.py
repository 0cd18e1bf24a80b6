"""Domain layer for lynxforge."""

from .descriptor import AppIdentity, CustomerDescriptor  # noqa: F401
from .errors import (  # noqa: F401
    LynxForgeError,
    NetworkFailureError,
    RemoteConflictError,
    RenderCollisionError,
    ToolingMissingError,
    ValidationError,
)

__all__ = [
    "AppIdentity",
    "CustomerDescriptor",
    "LynxForgeError",
    "NetworkFailureError",
    "RemoteConflictError",
    "RenderCollisionError",
    "ToolingMissingError",
    "ValidationError",
]
