"""
Build-configuration step: evaluate registration sites ahead of compilation.

Each `RegistrationSite` describes one operator registration call. The plan
turns it into a concrete include/exclude decision that codegen emits as a
constant, so excluded registrations become dead code for the linker.

When a site's operator or dispatch key is not statically known, the site is
included anyway (fail-open) and the reason is recorded.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from selective_build.allowlist import OperatorNameView, op_allowlist_check, schema_allowlist_check, schema_operator_name
from selective_build.config import SelectiveBuildConfig, SelectiveBuildConfigError, get_build_config
from selective_build.dispatch_key import (
    MOBILE_DISPATCH_KEY_TABLE_VERSION,
    dispatch_key_allowlist_check,
    find_dispatch_key,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistrationSite:
    schema: Optional[str] = None
    op_name: Optional[str] = None
    dispatch_key: Optional[str] = None
    label: Optional[str] = None

    @property
    def operator_name(self) -> Optional[str]:
        """Full operator name (with overload) if statically known."""
        if self.schema is not None:
            return schema_operator_name(self.schema).strip()
        return self.op_name

    @classmethod
    def from_json_dict(cls, d: Dict[str, Any]) -> "RegistrationSite":
        if not isinstance(d, dict):
            raise SelectiveBuildConfigError(f"registration site must be an object, got {d!r}")
        unknown = sorted(set(d) - {"schema", "op", "op_name", "dispatch_key", "label"})
        if unknown:
            raise SelectiveBuildConfigError(f"unknown registration site keys: {unknown}")
        for k in ("schema", "op", "op_name", "label"):
            if d.get(k) is not None and not isinstance(d[k], str):
                raise SelectiveBuildConfigError(f"registration site field {k!r} must be a string, got {d[k]!r}")
        key = d.get("dispatch_key")
        return cls(
            schema=d.get("schema"),
            op_name=d.get("op_name", d.get("op")),
            dispatch_key=None if key is None else str(key),
            label=d.get("label"),
        )

    def to_json_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for k in ("schema", "op_name", "dispatch_key", "label"):
            v = getattr(self, k)
            if v is not None:
                out[k] = v
        return out


@dataclass(frozen=True)
class RegistrationDecision:
    site: RegistrationSite
    operator_admitted: bool
    backend_admitted: bool
    reasons: Tuple[str, ...] = ()

    @property
    def included(self) -> bool:
        return self.operator_admitted and self.backend_admitted

    @property
    def base_name(self) -> Optional[str]:
        name = self.site.operator_name
        return None if name is None else OperatorNameView.parse(name).name

    def to_json_dict(self) -> Dict[str, Any]:
        return {
            "site": self.site.to_json_dict(),
            "operator": self.site.operator_name,
            "operator_admitted": self.operator_admitted,
            "backend_admitted": self.backend_admitted,
            "included": self.included,
            "reasons": list(self.reasons),
        }


@dataclass
class SelectionPlan:
    config: SelectiveBuildConfig
    decisions: List[RegistrationDecision] = field(default_factory=list)

    def included(self) -> List[RegistrationDecision]:
        return [d for d in self.decisions if d.included]

    def excluded(self) -> List[RegistrationDecision]:
        return [d for d in self.decisions if not d.included]

    def included_ops(self) -> List[str]:
        return sorted({d.base_name for d in self.decisions if d.included and d.base_name is not None})

    def excluded_ops(self) -> List[str]:
        # An operator is excluded only if no site keeps it.
        kept = set(self.included_ops())
        return sorted({d.base_name for d in self.excluded() if d.base_name is not None and d.base_name not in kept})

    def to_json_dict(self) -> Dict[str, Any]:
        return {
            "config": self.config.to_json_dict(),
            "mobile_dispatch_key_table_version": MOBILE_DISPATCH_KEY_TABLE_VERSION,
            "summary": {
                "sites": len(self.decisions),
                "included": len(self.included()),
                "excluded": len(self.excluded()),
            },
            "included_ops": self.included_ops(),
            "excluded_ops": self.excluded_ops(),
            "decisions": [d.to_json_dict() for d in self.decisions],
        }


def decide_registration(site: RegistrationSite, *, config: Optional[SelectiveBuildConfig] = None) -> RegistrationDecision:
    cfg = get_build_config() if config is None else config
    reasons: List[str] = []

    if site.schema is not None:
        op_ok = schema_allowlist_check(site.schema, config=cfg)
        if cfg.force_schema_registration:
            reasons.append("schema registration forced")
    elif site.op_name is not None:
        op_ok = op_allowlist_check(site.op_name, config=cfg)
    else:
        op_ok = True
        reasons.append("operator not statically known; included")
        logger.warning("registration site %s has no operator name; including it", site.label or site)
    if not op_ok:
        reasons.append("operator not in allow-list")

    if site.dispatch_key is None:
        key_ok = True
    else:
        key = find_dispatch_key(site.dispatch_key)
        if key is None:
            key_ok = True
            reasons.append(f"unknown dispatch key {site.dispatch_key!r}; included")
            logger.warning("unknown dispatch key %r at %s; including it", site.dispatch_key, site.operator_name)
        else:
            key_ok = dispatch_key_allowlist_check(key, config=cfg)
            if not key_ok:
                reasons.append(f"dispatch key {key.value} not available on mobile")

    decision = RegistrationDecision(site=site, operator_admitted=op_ok, backend_admitted=key_ok, reasons=tuple(reasons))
    logger.debug("%s [%s] -> %s", site.operator_name, site.dispatch_key, "include" if decision.included else "exclude")
    return decision


def plan_registrations(
    sites: Iterable[RegistrationSite], *, config: Optional[SelectiveBuildConfig] = None
) -> SelectionPlan:
    cfg = get_build_config() if config is None else config
    plan = SelectionPlan(config=cfg)
    for site in sites:
        plan.decisions.append(decide_registration(site, config=cfg))
    logger.info(
        "selective build plan: %d sites, %d included, %d excluded",
        len(plan.decisions),
        len(plan.included()),
        len(plan.excluded()),
    )
    return plan


def load_sites_from_json(path: str | Path) -> List[RegistrationSite]:
    """Read registration sites from `{"sites": [...]}` or a bare JSON list."""
    p = Path(path)
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise SelectiveBuildConfigError(f"invalid JSON in {p}: {e}") from e
    if isinstance(data, dict):
        data = data.get("sites")
    if not isinstance(data, list):
        raise SelectiveBuildConfigError(f"{p}: expected a list of registration sites")
    return [RegistrationSite.from_json_dict(d) for d in data]


__all__ = [
    "RegistrationSite",
    "RegistrationDecision",
    "SelectionPlan",
    "decide_registration",
    "plan_registrations",
    "load_sites_from_json",
]
