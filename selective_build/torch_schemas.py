"""
Registration sites from an installed PyTorch.

Importing this module does not import torch; only the functions below do.
"""

from __future__ import annotations

from typing import Any, List, Optional

from selective_build.dispatch_key import DispatchKey, find_dispatch_key
from selective_build.plan import RegistrationSite


def _import_torch() -> Any:
    try:
        import torch
    except Exception as e:
        raise RuntimeError(f"torch is required for schema discovery: {type(e).__name__}: {e}") from e
    return torch


def torch_schema_strings() -> List[str]:
    torch = _import_torch()
    return sorted({str(s) for s in torch._C._jit_get_all_schemas()})


def registration_sites_from_torch(*, dispatch_key: Optional[str] = None) -> List[RegistrationSite]:
    """
    One site per schema registered in the installed torch.

    Schemas carry no dispatch key; pass `dispatch_key` to evaluate them all
    against one backend.
    """
    return [RegistrationSite(schema=s, dispatch_key=dispatch_key) for s in torch_schema_strings()]


def dispatch_key_from_torch(key: Any) -> Optional[DispatchKey]:
    """Map a `torch._C.DispatchKey` to `DispatchKey`; None when it has no counterpart."""
    return find_dispatch_key(key)


__all__ = ["torch_schema_strings", "registration_sites_from_torch", "dispatch_key_from_torch"]
