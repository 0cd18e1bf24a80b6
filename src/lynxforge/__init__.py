"""Provisioning and build tooling for LynxJS native app templates."""

__version__ = "0.1.0"

__all__ = ["__version__"]
