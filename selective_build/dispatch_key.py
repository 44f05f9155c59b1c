"""
Dispatch keys and the mobile backend table.

The mobile table is a hard-coded policy, separate from the operator allow-list:
it describes which backends exist on a constrained target, not which operators
are reachable. It must classify every `DispatchKey` member (see
tests/test_dispatch_key.py), so adding a key forces a decision here.
"""

from __future__ import annotations

import enum
from typing import Any, Dict, FrozenSet, Optional

from selective_build.config import SelectiveBuildConfig, get_build_config
from selective_build.diagnostics import closest_match


class UnknownDispatchKeyError(KeyError):
    """Raised by `parse_dispatch_key` for names outside `DispatchKey`."""


class DispatchKey(str, enum.Enum):
    Undefined = "Undefined"
    # Backends.
    CPU = "CPU"
    CUDA = "CUDA"
    HIP = "HIP"
    FPGA = "FPGA"
    XLA = "XLA"
    Vulkan = "Vulkan"
    Metal = "Metal"
    MkldnnCPU = "MkldnnCPU"
    OpenGL = "OpenGL"
    OpenCL = "OpenCL"
    QuantizedCPU = "QuantizedCPU"
    QuantizedCUDA = "QuantizedCUDA"
    SparseCPU = "SparseCPU"
    SparseCUDA = "SparseCUDA"
    Meta = "Meta"
    PrivateUse1 = "PrivateUse1"
    # Dispatch infrastructure.
    BackendSelect = "BackendSelect"
    Named = "Named"
    Autograd = "Autograd"
    Tracer = "Tracer"
    Autocast = "Autocast"
    Batched = "Batched"
    VmapMode = "VmapMode"
    CatchAll = "CatchAll"


# Bump when the mobile table changes; generated headers record it.
MOBILE_DISPATCH_KEY_TABLE_VERSION = 1

MOBILE_DISPATCH_KEY_TABLE: Dict[DispatchKey, bool] = {
    DispatchKey.Undefined: False,
    DispatchKey.CPU: True,
    DispatchKey.CUDA: False,
    DispatchKey.HIP: False,
    DispatchKey.FPGA: False,
    DispatchKey.XLA: False,
    DispatchKey.Vulkan: True,
    DispatchKey.Metal: False,
    DispatchKey.MkldnnCPU: False,
    DispatchKey.OpenGL: False,
    DispatchKey.OpenCL: False,
    DispatchKey.QuantizedCPU: True,
    DispatchKey.QuantizedCUDA: False,
    DispatchKey.SparseCPU: False,
    DispatchKey.SparseCUDA: False,
    DispatchKey.Meta: False,
    DispatchKey.PrivateUse1: False,
    DispatchKey.BackendSelect: True,
    DispatchKey.Named: False,
    DispatchKey.Autograd: False,
    DispatchKey.Tracer: False,
    DispatchKey.Autocast: False,
    DispatchKey.Batched: False,
    DispatchKey.VmapMode: False,
    DispatchKey.CatchAll: True,
}

MOBILE_DISPATCH_KEYS: FrozenSet[DispatchKey] = frozenset(k for k, ok in MOBILE_DISPATCH_KEY_TABLE.items() if ok)


def find_dispatch_key(name: Any) -> Optional[DispatchKey]:
    """
    Best-effort lookup: accepts a `DispatchKey`, its name, or any object with a
    `.name` attribute (e.g. `torch._C.DispatchKey`). Returns None when unknown.
    """
    if isinstance(name, DispatchKey):
        return name
    raw = name if isinstance(name, str) else getattr(name, "name", None)
    if not isinstance(raw, str):
        return None
    try:
        return DispatchKey(raw.strip())
    except ValueError:
        return None


def parse_dispatch_key(name: Any) -> DispatchKey:
    key = find_dispatch_key(name)
    if key is None:
        hint = closest_match(str(name), [k.value for k in DispatchKey])
        suffix = f" (did you mean {hint[0]!r}?)" if hint else ""
        raise UnknownDispatchKeyError(f"unknown dispatch key: {name!r}{suffix}")
    return key


def dispatch_key_allowlist_check(key: DispatchKey | str, *, config: Optional[SelectiveBuildConfig] = None) -> bool:
    """
    Return True iff kernels for dispatch key `key` should be registered.

    Only mobile builds restrict backends; the set is fixed by
    `MOBILE_DISPATCH_KEY_TABLE`.
    """
    cfg = get_build_config() if config is None else config
    if not cfg.mobile:
        return True
    return MOBILE_DISPATCH_KEY_TABLE[parse_dispatch_key(key)]


__all__ = [
    "UnknownDispatchKeyError",
    "DispatchKey",
    "MOBILE_DISPATCH_KEY_TABLE_VERSION",
    "MOBILE_DISPATCH_KEY_TABLE",
    "MOBILE_DISPATCH_KEYS",
    "find_dispatch_key",
    "parse_dispatch_key",
    "dispatch_key_allowlist_check",
]
