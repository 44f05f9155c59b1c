"""
Build-time configuration for selective builds.

Three independent parameters decide what gets registered:
- `TORCH_OPERATOR_WHITELIST`: `;`-joined operator base names. Absent means
  "register every operator"; present (even empty) restricts to the listed names.
- `TORCH_FORCE_SCHEMA_REGISTRATION`: register every schema regardless of the
  operator allow-list.
- `C10_MOBILE`: restrict backends to the mobile dispatch-key table.

The configuration is read once per process and never mutated afterwards.
"""

from __future__ import annotations

import dataclasses
import functools
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Optional


ENV_OPERATOR_ALLOWLIST = "TORCH_OPERATOR_WHITELIST"
ENV_FORCE_SCHEMA_REGISTRATION = "TORCH_FORCE_SCHEMA_REGISTRATION"
ENV_MOBILE = "C10_MOBILE"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off", ""}


class SelectiveBuildConfigError(ValueError):
    """Raised when a selective-build configuration source is malformed."""


@dataclass(frozen=True)
class SelectiveBuildConfig:
    operator_allowlist: Optional[str] = None
    force_schema_registration: bool = False
    mobile: bool = False

    @property
    def restricts_operators(self) -> bool:
        return self.operator_allowlist is not None

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "SelectiveBuildConfig":
        env = os.environ if environ is None else environ
        return cls(
            operator_allowlist=env.get(ENV_OPERATOR_ALLOWLIST),
            force_schema_registration=_env_flag(env, ENV_FORCE_SCHEMA_REGISTRATION),
            mobile=_env_flag(env, ENV_MOBILE),
        )

    @classmethod
    def from_json_dict(cls, data: Dict[str, Any]) -> "SelectiveBuildConfig":
        return cls().updated_from_json_dict(data)

    @classmethod
    def from_json_file(cls, path: str | Path) -> "SelectiveBuildConfig":
        return cls().updated_from_json_file(path)

    def updated_from_json_dict(self, data: Dict[str, Any]) -> "SelectiveBuildConfig":
        """Copy of this config with the keys present in `data` replaced."""
        return dataclasses.replace(self, **_json_overrides(data))

    def updated_from_json_file(self, path: str | Path) -> "SelectiveBuildConfig":
        p = Path(path)
        try:
            data = json.loads(p.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise SelectiveBuildConfigError(f"invalid JSON in {p}: {e}") from e
        return self.updated_from_json_dict(data)

    def to_json_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


def _json_overrides(data: Any) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise SelectiveBuildConfigError(f"config must be a JSON object, got {type(data).__name__}")
    unknown = sorted(set(data) - {"operator_allowlist", "force_schema_registration", "mobile"})
    if unknown:
        raise SelectiveBuildConfigError(f"unknown config keys: {unknown}")
    out: Dict[str, Any] = {}
    if "operator_allowlist" in data:
        raw = data["operator_allowlist"]
        if raw is None or isinstance(raw, str):
            out["operator_allowlist"] = raw
        elif isinstance(raw, list) and all(isinstance(x, str) for x in raw):
            out["operator_allowlist"] = join_allowlist(raw)
        else:
            raise SelectiveBuildConfigError("operator_allowlist must be a string or a list of strings")
    for key in ("force_schema_registration", "mobile"):
        if key in data:
            out[key] = _json_flag(data, key)
    return out


def _env_flag(env: Any, name: str) -> bool:
    raw = str(env.get(name, "")).strip().lower()
    if raw in _TRUTHY:
        return True
    if raw in _FALSY:
        return False
    raise SelectiveBuildConfigError(f"{name} must be a boolean flag, got {env.get(name)!r}")


def _json_flag(data: Dict[str, Any], key: str) -> bool:
    v = data.get(key, False)
    if not isinstance(v, bool):
        raise SelectiveBuildConfigError(f"{key} must be a boolean, got {v!r}")
    return v


def join_allowlist(names: Iterable[str]) -> str:
    """Join operator base names into allow-list text."""
    out = []
    for n in names:
        if ";" in n:
            raise SelectiveBuildConfigError(f"';' is reserved and may not appear in an operator name: {n!r}")
        out.append(n)
    return ";".join(out)


def load_allowlist_file(path: str | Path) -> str:
    """
    Read an allow-list file: one or more `;`-separated names per line.

    Blank lines and `#` comments are skipped.
    """
    names = []
    for line in Path(path).read_text(encoding="utf-8").splitlines():
        line = line.split("#", 1)[0].strip()
        if not line:
            continue
        names.extend(part.strip() for part in line.split(";") if part.strip())
    return join_allowlist(names)


@functools.lru_cache(maxsize=1)
def get_build_config() -> SelectiveBuildConfig:
    return SelectiveBuildConfig.from_env()


def reset_build_config() -> None:
    get_build_config.cache_clear()


__all__ = [
    "ENV_OPERATOR_ALLOWLIST",
    "ENV_FORCE_SCHEMA_REGISTRATION",
    "ENV_MOBILE",
    "SelectiveBuildConfigError",
    "SelectiveBuildConfig",
    "join_allowlist",
    "load_allowlist_file",
    "get_build_config",
    "reset_build_config",
]
