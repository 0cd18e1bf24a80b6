"""Token vocabularies used to rename scaffolds and render templates."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Iterable

from lynxforge.domain.descriptor import AppIdentity, CustomerDescriptor, bundle_id_path


CONTENT = "content"
PATH = "path"
SCOPES = frozenset({CONTENT, PATH})

LEGACY = "legacy"
PLACEHOLDER = "placeholder"

LEGACY_PRODUCT_TOKEN = "LynxTemplate"
LEGACY_PACKAGE_TOKEN = "com.lynxtemplate"
LEGACY_THEME_TOKEN = "Theme.LynxTemplate"
LEGACY_APP_CLASS_TOKEN = "LynxTemplateApp"
LEGACY_TEAM_ASSIGNMENT = 'DEVELOPMENT_TEAM = ""'
LEGACY_TEAM_PLACEHOLDER = "TEAM_ID_PLACEHOLDER"

ORG_TOKEN = "__ORG__"
APP_NAME_TOKEN = "__APP_NAME__"
BUNDLE_ID_TOKEN = "__BUNDLE_ID__"
TEMPLATE_REF_TOKEN = "__TEMPLATE_REF__"
PLACEHOLDER_TOKENS = (ORG_TOKEN, APP_NAME_TOKEN, BUNDLE_ID_TOKEN, TEMPLATE_REF_TOKEN)


@dataclass(frozen=True)
class TokenRule:
    token: str
    value: str
    scopes: frozenset[str] = SCOPES

    def __post_init__(self) -> None:
        if not self.token:
            raise ValueError("Token must not be empty")
        unknown = set(self.scopes) - SCOPES
        if unknown:
            raise ValueError(f"Unknown token scopes: {sorted(unknown)}")


@dataclass(frozen=True)
class TokenRuleset:
    """A tagged set of token rules applied together in a single pass."""

    kind: str
    rules: tuple[TokenRule, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        for scope in SCOPES:
            tokens = [rule.token for rule in self.rules if scope in rule.scopes]
            if len(tokens) != len(set(tokens)):
                raise ValueError(f"Ruleset {self.kind} declares a token twice for scope {scope}")

    def mapping(self, scope: str = CONTENT) -> dict[str, str]:
        return {rule.token: rule.value for rule in self.rules if scope in rule.scopes}

    def tokens(self, scope: str = CONTENT) -> tuple[str, ...]:
        return tuple(self.mapping(scope))

    def substitute(self, text: str, scope: str = CONTENT) -> str:
        mapping = self.mapping(scope)
        if not mapping or not text:
            return text
        pattern = _compile(tuple(mapping))
        return pattern.sub(lambda match: mapping[match.group(0)], text)

    def residual_tokens(self, text: str, scope: str = CONTENT) -> list[str]:
        return [token for token in self.tokens(scope) if token in text]


@lru_cache(maxsize=32)
def _compile(tokens: tuple[str, ...]) -> re.Pattern[str]:
    # At equal offsets the longest token wins; the scan itself stays leftmost-first.
    ordered = sorted(tokens, key=len, reverse=True)
    return re.compile("|".join(re.escape(token) for token in ordered))


def legacy_ruleset(identity: AppIdentity) -> TokenRuleset:
    """Rules that rename an instantiated ``LynxTemplate`` scaffold."""

    app = identity.app_name
    rules: list[TokenRule] = [
        TokenRule(LEGACY_THEME_TOKEN, f"Theme.{app}", frozenset({CONTENT})),
        TokenRule(LEGACY_APP_CLASS_TOKEN, f"{app}App"),
        TokenRule(LEGACY_PRODUCT_TOKEN, app),
        TokenRule(LEGACY_PACKAGE_TOKEN, identity.bundle_id, frozenset({CONTENT})),
        TokenRule("com/lynxtemplate", bundle_id_path(identity.bundle_id), frozenset({PATH})),
    ]
    if identity.team_id:
        rules.append(
            TokenRule(
                LEGACY_TEAM_ASSIGNMENT,
                f"DEVELOPMENT_TEAM = {identity.team_id}",
                frozenset({CONTENT}),
            )
        )
        rules.append(TokenRule(LEGACY_TEAM_PLACEHOLDER, identity.team_id, frozenset({CONTENT})))
    return TokenRuleset(LEGACY, tuple(rules))


def placeholder_ruleset(descriptor: CustomerDescriptor) -> TokenRuleset:
    """Rules that render ``*.tmpl`` files from a template store."""

    values = {
        ORG_TOKEN: descriptor.organization,
        APP_NAME_TOKEN: descriptor.app_name,
        BUNDLE_ID_TOKEN: descriptor.bundle_id,
        TEMPLATE_REF_TOKEN: descriptor.template_ref,
    }
    return TokenRuleset(PLACEHOLDER, tuple(TokenRule(token, value) for token, value in values.items()))


def custom_ruleset(kind: str, pairs: Iterable[tuple[str, str]]) -> TokenRuleset:
    return TokenRuleset(kind, tuple(TokenRule(token, value) for token, value in pairs))


__all__ = [
    "APP_NAME_TOKEN",
    "BUNDLE_ID_TOKEN",
    "CONTENT",
    "LEGACY",
    "ORG_TOKEN",
    "PATH",
    "PLACEHOLDER",
    "PLACEHOLDER_TOKENS",
    "TEMPLATE_REF_TOKEN",
    "TokenRule",
    "TokenRuleset",
    "custom_ruleset",
    "legacy_ruleset",
    "placeholder_ruleset",
]
