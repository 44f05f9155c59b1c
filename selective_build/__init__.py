"""
Selective build: decide which operators and backend kernels get registered.

The checks are pure functions of their inputs and the build configuration
(`SelectiveBuildConfig`), so they can be evaluated by a build step ahead of
compilation and emitted as constants (`selective_build.codegen`).
"""

from .allowlist import (  # noqa: F401
    InvalidOperatorNameError,
    OperatorNameView,
    allowlist_contains,
    op_allowlist_check,
    schema_allowlist_check,
)
from .config import SelectiveBuildConfig, SelectiveBuildConfigError, get_build_config  # noqa: F401
from .dispatch_key import MOBILE_DISPATCH_KEYS, DispatchKey, dispatch_key_allowlist_check  # noqa: F401
from .plan import RegistrationSite, SelectionPlan, plan_registrations  # noqa: F401

__all__ = [
    "InvalidOperatorNameError",
    "OperatorNameView",
    "allowlist_contains",
    "op_allowlist_check",
    "schema_allowlist_check",
    "SelectiveBuildConfig",
    "SelectiveBuildConfigError",
    "get_build_config",
    "MOBILE_DISPATCH_KEYS",
    "DispatchKey",
    "dispatch_key_allowlist_check",
    "RegistrationSite",
    "SelectionPlan",
    "plan_registrations",
]
