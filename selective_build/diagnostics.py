"""
Diagnostics for selective-build configuration.

Allow-list mistakes are silent at build time (a misspelled or
overload-qualified entry simply never matches), so `lint_allowlist` reports
them up front. Formatting is plain text, Clang-like.
"""

from __future__ import annotations

import difflib
from dataclasses import dataclass, field
from typing import Iterable, List, Literal, Optional

from selective_build.allowlist import ALLOWLIST_DELIMITER, NAMESPACE_SEPARATOR, OperatorNameView


Level = Literal["error", "warning", "info"]


@dataclass
class Diagnostic:
    level: Level
    message: str
    entry: Optional[str] = None
    index: Optional[int] = None
    suggestions: List[str] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)


def closest_match(name: str, candidates: Iterable[str], *, n: int = 1) -> List[str]:
    return list(difflib.get_close_matches(str(name), list(candidates), n=n, cutoff=0.6))


def format_diagnostic(diag: Diagnostic) -> str:
    lines: List[str] = [f"{diag.level.upper()}: {diag.message}"]
    if diag.entry is not None:
        prefix = f"entry[{diag.index}]: " if isinstance(diag.index, int) else ""
        lines.append(f"  -> {prefix}{diag.entry!r}")
    for n in diag.notes:
        lines.append(f"Note: {n}")
    for s in diag.suggestions:
        lines.append(f"Hint: {s}")
    return "\n".join(lines)


def lint_allowlist(allowlist: str, *, known_ops: Optional[Iterable[str]] = None) -> List[Diagnostic]:
    known = sorted(set(known_ops)) if known_ops is not None else None
    out: List[Diagnostic] = []
    seen: set[str] = set()
    for i, entry in enumerate(allowlist.split(ALLOWLIST_DELIMITER)):
        if entry == "":
            # Legal, but only ever matches an empty operator name.
            out.append(Diagnostic("info", "empty allow-list entry", entry=entry, index=i))
            continue
        if entry in seen:
            out.append(Diagnostic("warning", "duplicate allow-list entry", entry=entry, index=i))
            continue
        seen.add(entry)
        if entry != entry.strip():
            out.append(
                Diagnostic(
                    "warning",
                    "allow-list entry has surrounding whitespace and will not match",
                    entry=entry,
                    index=i,
                    suggestions=[f"use {entry.strip()!r}"],
                )
            )
        if NAMESPACE_SEPARATOR not in entry:
            out.append(
                Diagnostic(
                    "warning",
                    f"allow-list entry is not namespace-qualified (missing '{NAMESPACE_SEPARATOR}')",
                    entry=entry,
                    index=i,
                    suggestions=[f"use 'aten::{entry}'"] if "." not in entry else [],
                )
            )
        view = OperatorNameView.parse(entry)
        if view.overload_name:
            out.append(
                Diagnostic(
                    "warning",
                    "allow-list entry is overload-qualified and will never match",
                    entry=entry,
                    index=i,
                    suggestions=[f"use {view.name!r}; it admits every overload"],
                    notes=["the allow-list records operators only, no overloads"],
                )
            )
        base = view.name.strip()
        if known is not None and base not in known:
            hint = closest_match(base, known)
            out.append(
                Diagnostic(
                    "warning",
                    "allow-list entry does not name a known operator",
                    entry=entry,
                    index=i,
                    suggestions=[f"did you mean {hint[0]!r}?"] if hint else [],
                )
            )
    return out


__all__ = [
    "Level",
    "Diagnostic",
    "closest_match",
    "format_diagnostic",
    "lint_allowlist",
]
