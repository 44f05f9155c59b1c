"""
Operator allow-list checks for selective builds.

Build with `TORCH_OPERATOR_WHITELIST="aten::add;aten::sub"` and only these two
operators are registered. The allow-list records operators only, no overloads:
admitting `aten::add` admits every overload of `aten::add`.

All checks here are pure functions of their arguments and the (immutable)
build configuration, so a build step can evaluate them ahead of compilation and
turn each answer into a constant that guards a registration call.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from selective_build.config import SelectiveBuildConfig, get_build_config


ALLOWLIST_DELIMITER = ";"
NAMESPACE_SEPARATOR = "::"


class InvalidOperatorNameError(AssertionError):
    """Raised when an operator name lacks the `::` namespace separator."""


@dataclass(frozen=True)
class OperatorNameView:
    name: str
    overload_name: str = ""

    @classmethod
    def parse(cls, full_name: str) -> "OperatorNameView":
        name, _, overload = str(full_name).partition(".")
        return cls(name=name, overload_name=overload)

    def __str__(self) -> str:
        return f"{self.name}.{self.overload_name}" if self.overload_name else self.name


def allowlist_contains(allowlist: str, item: str) -> bool:
    """
    Return True iff `item` equals one of the `;`-separated entries of `allowlist`.

    allowlist_contains("a;bc;d", "bc") == True
    allowlist_contains("a;bc;d", "b") == False

    Empty entries (adjacent, leading or trailing delimiters) are ordinary
    empty-string tokens.
    """
    for token in allowlist.split(ALLOWLIST_DELIMITER):
        if token == item:
            return True
    return False


def _config(config: Optional[SelectiveBuildConfig]) -> SelectiveBuildConfig:
    return get_build_config() if config is None else config


def op_allowlist_check(op_name: str, *, config: Optional[SelectiveBuildConfig] = None) -> bool:
    """
    Return True iff the operator `op_name` should be registered.

    `op_name` must be namespace-qualified; an overload suffix is stripped before
    the lookup since the allow-list holds base names only.
    """
    if NAMESPACE_SEPARATOR not in op_name:
        raise InvalidOperatorNameError(f"operator name must contain '{NAMESPACE_SEPARATOR}': {op_name!r}")
    cfg = _config(config)
    if cfg.operator_allowlist is None:
        # No allow-list configured: every operator is registered.
        return True
    return allowlist_contains(cfg.operator_allowlist, OperatorNameView.parse(op_name).name)


def schema_operator_name(schema: str) -> str:
    """Operator-name prefix of a schema string (everything before the first `(`)."""
    paren = schema.find("(")
    return schema if paren < 0 else schema[:paren]


def schema_allowlist_check(schema: str, *, config: Optional[SelectiveBuildConfig] = None) -> bool:
    """Return True iff the operator declared by `schema` should be registered."""
    cfg = _config(config)
    if cfg.force_schema_registration:
        return True
    return op_allowlist_check(schema_operator_name(schema), config=cfg)


__all__ = [
    "ALLOWLIST_DELIMITER",
    "NAMESPACE_SEPARATOR",
    "InvalidOperatorNameError",
    "OperatorNameView",
    "allowlist_contains",
    "op_allowlist_check",
    "schema_operator_name",
    "schema_allowlist_check",
]
