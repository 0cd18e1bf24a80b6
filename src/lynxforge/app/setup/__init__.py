"""In-place configuration of a native scaffold."""

from .service import SetupResult, SetupService  # noqa: F401

__all__ = ["SetupResult", "SetupService"]
