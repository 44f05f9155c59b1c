"""
Selective build driver (repo-local wrapper around `selective_build.cli`).

Run from a checkout without installing:
  python scripts/selective_build.py plan --sites sites.json --mobile --out-header build/selected_ops.h
"""

from __future__ import annotations

import sys
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from selective_build.cli import main  # noqa: E402


if __name__ == "__main__":
    raise SystemExit(main())
