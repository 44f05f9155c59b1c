"""
Emit selective-build decisions as compile-time constants.

The generated header defines one macro per (operator, dispatch key) pair:

    #if SELECTIVE_BUILD_aten_Nadd_OTensor_KCPU
      m.impl("aten::add.Tensor", ...);
    #endif

so an excluded registration never reaches the compiler.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from selective_build.dispatch_key import MOBILE_DISPATCH_KEY_TABLE_VERSION
from selective_build.plan import RegistrationDecision, SelectionPlan

logger = logging.getLogger(__name__)

MACRO_PREFIX = "SELECTIVE_BUILD_"

# Escapes used by `_c_ident`. A raw `_` is always escaped, so every `_` in a
# generated identifier starts one of these and the encoding is reversible.
_ESCAPES = {"_": "_u", "::": "_N", ".": "_O"}
_KEY_SEPARATOR = "_K"
_UNKNOWN_OP = "_Unknown"


class MacroCollisionError(ValueError):
    """Raised when two different (operator, dispatch key) pairs map to one macro."""


def _c_ident(name: str) -> str:
    """
    Encode an operator / dispatch key name as a C identifier fragment.

    Case and ASCII alphanumerics are kept; `_`, `::` and `.` become `_u`, `_N`
    and `_O`; any other character becomes `_x` plus six hex digits.
    """
    text = str(name)
    out = []
    i = 0
    while i < len(text):
        if text.startswith("::", i):
            out.append(_ESCAPES["::"])
            i += 2
            continue
        ch = text[i]
        if ch in _ESCAPES:
            out.append(_ESCAPES[ch])
        elif ch.isascii() and ch.isalnum():
            out.append(ch)
        else:
            out.append(f"_x{ord(ch):06X}")
        i += 1
    return "".join(out)


def _macro_identity(decision: RegistrationDecision) -> Tuple[Optional[str], Optional[str]]:
    site = decision.site
    op = site.operator_name
    return (site.label if op is None else op, site.dispatch_key)


def macro_name(decision: RegistrationDecision) -> str:
    op, key = _macro_identity(decision)
    stem = _UNKNOWN_OP if op is None else _c_ident(op)
    if key is not None:
        stem += _KEY_SEPARATOR + _c_ident(key)
    return MACRO_PREFIX + stem


def plan_macros(plan: SelectionPlan) -> Dict[str, bool]:
    """
    Macro name -> value, in first-seen order.

    Sites with the same (operator, dispatch key) share a macro and are OR-ed:
    if any of them is included the macro is 1.
    """
    macros: Dict[str, bool] = {}
    owners: Dict[str, Tuple[Optional[str], Optional[str]]] = {}
    for d in plan.decisions:
        name = macro_name(d)
        identity = _macro_identity(d)
        owner = owners.setdefault(name, identity)
        if owner != identity:
            raise MacroCollisionError(f"{owner} and {identity} both map to macro {name}")
        macros[name] = macros.get(name, False) or d.included
    return macros


def emit_c_header(plan: SelectionPlan) -> str:
    cfg = plan.config
    lines: List[str] = [
        "// @generated by selective_build. Do not edit.",
        "#pragma once",
        "",
        f"// operator allow-list: {'<all>' if cfg.operator_allowlist is None else repr(cfg.operator_allowlist)}",
        f"// force schema registration: {int(cfg.force_schema_registration)}",
        f"// mobile backends: {int(cfg.mobile)} (table v{MOBILE_DISPATCH_KEY_TABLE_VERSION})",
        "",
    ]
    for name, value in plan_macros(plan).items():
        lines.append(f"#define {name} {int(value)}")
    return "\n".join(lines) + "\n"


def write_outputs(
    plan: SelectionPlan,
    *,
    header_path: Optional[str | Path] = None,
    manifest_path: Optional[str | Path] = None,
) -> None:
    if header_path is not None:
        p = Path(header_path)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(emit_c_header(plan), encoding="utf-8")
        logger.info("wrote %s", p)
    if manifest_path is not None:
        p = Path(manifest_path)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(json.dumps(plan.to_json_dict(), indent=2, sort_keys=True) + "\n", encoding="utf-8")
        logger.info("wrote %s", p)


__all__ = ["MACRO_PREFIX", "MacroCollisionError", "macro_name", "plan_macros", "emit_c_header", "write_outputs"]
