from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure repo root is importable without installing the package.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from selective_build.config import (  # noqa: E402
    ENV_FORCE_SCHEMA_REGISTRATION,
    ENV_MOBILE,
    ENV_OPERATOR_ALLOWLIST,
    reset_build_config,
)


@pytest.fixture(autouse=True)
def _clean_build_env(monkeypatch):
    # The process-wide config is cached; isolate every test from the host env.
    for name in (ENV_OPERATOR_ALLOWLIST, ENV_FORCE_SCHEMA_REGISTRATION, ENV_MOBILE):
        monkeypatch.delenv(name, raising=False)
    reset_build_config()
    yield
    reset_build_config()
