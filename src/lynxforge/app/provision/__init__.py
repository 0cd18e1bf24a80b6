"""Customer repository provisioning."""

from .service import ProvisionResult, ProvisionService  # noqa: F401

__all__ = ["ProvisionResult", "ProvisionService"]
