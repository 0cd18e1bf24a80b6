"""Customer and app identity value objects."""

from __future__ import annotations

import re
from dataclasses import dataclass

from lynxforge.domain.errors import ValidationError


APP_NAME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9]*$")
BUNDLE_ID_PATTERN = re.compile(r"^[a-z][a-z0-9]*(\.[a-z][a-z0-9]*)+$")
CUSTOMER_PATTERN = re.compile(r"^[a-z][a-z0-9-]*$")


def validate_app_name(app_name: str) -> None:
    if not isinstance(app_name, str) or not APP_NAME_PATTERN.fullmatch(app_name):
        raise ValidationError("App name must be alphanumeric and start with a letter")


def validate_bundle_id(bundle_id: str) -> None:
    if not isinstance(bundle_id, str) or not BUNDLE_ID_PATTERN.fullmatch(bundle_id):
        raise ValidationError(
            "Bundle ID must be in reverse domain format (e.g. com.example.myapp)"
        )


def validate_customer(customer: str) -> None:
    if not isinstance(customer, str) or not CUSTOMER_PATTERN.fullmatch(customer):
        raise ValidationError(
            "Customer name must be lowercase alphanumeric with hyphens (e.g. acme-corp)"
        )


def bundle_id_path(bundle_id: str) -> str:
    """Return the source directory for a package id (``com.acme.shop`` -> ``com/acme/shop``)."""

    return bundle_id.replace(".", "/")


@dataclass(frozen=True)
class AppIdentity:
    """Name and identifiers baked into a native scaffold."""

    app_name: str
    bundle_id: str
    team_id: str | None = None

    def validate(self) -> None:
        validate_app_name(self.app_name)
        validate_bundle_id(self.bundle_id)
        if self.team_id is not None and not self.team_id.strip():
            raise ValidationError("iOS team id must not be blank")


@dataclass(frozen=True)
class CustomerDescriptor:
    """Everything needed to provision one customer repository."""

    organization: str
    customer: str
    app_name: str
    bundle_id: str
    template_ref: str = "master"

    def validate(self) -> None:
        if not self.organization or not self.organization.strip():
            raise ValidationError("Organization must not be empty")
        validate_customer(self.customer)
        validate_app_name(self.app_name)
        validate_bundle_id(self.bundle_id)
        if not self.template_ref or not self.template_ref.strip():
            raise ValidationError("Template ref must not be empty")

    @property
    def repo_name(self) -> str:
        return f"{self.customer}-{self.app_name.lower()}"

    @property
    def repo_full_name(self) -> str:
        return f"{self.organization}/{self.repo_name}"

    def identity(self) -> AppIdentity:
        return AppIdentity(app_name=self.app_name, bundle_id=self.bundle_id)

    def to_dict(self) -> dict[str, str]:
        return {
            "organization": self.organization,
            "customer": self.customer,
            "app_name": self.app_name,
            "bundle_id": self.bundle_id,
            "template_ref": self.template_ref,
            "repo": self.repo_full_name,
        }


__all__ = [
    "APP_NAME_PATTERN",
    "BUNDLE_ID_PATTERN",
    "CUSTOMER_PATTERN",
    "AppIdentity",
    "CustomerDescriptor",
    "bundle_id_path",
    "validate_app_name",
    "validate_bundle_id",
    "validate_customer",
]
