"""
Command-line entry point for selective builds.

  selective-build check --allowlist "aten::add" --schema "aten::add.Tensor(Tensor self, Tensor other) -> Tensor"
  selective-build plan --sites sites.json --out-header gen/selected_ops.h --out-json gen/selected_ops.json
  selective-build lint --allowlist-file ops.txt --known-ops all_ops.txt --strict

Configuration is taken from the environment, then `--config`, then flags.
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from selective_build.allowlist import InvalidOperatorNameError, op_allowlist_check, schema_allowlist_check
from selective_build.codegen import MacroCollisionError, write_outputs
from selective_build.config import SelectiveBuildConfig, SelectiveBuildConfigError, load_allowlist_file
from selective_build.diagnostics import format_diagnostic, lint_allowlist
from selective_build.dispatch_key import UnknownDispatchKeyError, dispatch_key_allowlist_check, parse_dispatch_key
from selective_build.plan import SelectionPlan, load_sites_from_json, plan_registrations


def _add_config_args(ap: argparse.ArgumentParser) -> None:
    ap.add_argument("--config", type=Path, default=None, help="JSON config file")
    g = ap.add_mutually_exclusive_group()
    g.add_argument("--allowlist", default=None, help="';'-joined operator base names")
    g.add_argument("--allowlist-file", type=Path, default=None, help="file with one operator name per line")
    ap.add_argument("--force-schema-registration", action=argparse.BooleanOptionalAction, default=None)
    ap.add_argument(
        "--mobile", action=argparse.BooleanOptionalAction, default=None, help="restrict backends to the mobile table"
    )
    ap.add_argument("-v", "--verbose", action="count", default=0)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="selective-build", description="Selective build operator/backend admission")
    sub = ap.add_subparsers(dest="command", required=True)

    check = sub.add_parser("check", help="evaluate individual schemas, operators or dispatch keys")
    _add_config_args(check)
    check.add_argument("--schema", action="append", default=[])
    check.add_argument("--op", action="append", default=[])
    check.add_argument("--dispatch-key", action="append", default=[])

    plan = sub.add_parser("plan", help="evaluate registration sites and emit build constants")
    _add_config_args(plan)
    src = plan.add_mutually_exclusive_group(required=True)
    src.add_argument("--sites", type=Path, default=None, help="JSON file of registration sites")
    src.add_argument("--from-torch", action="store_true", help="use every schema of the installed torch")
    plan.add_argument("--dispatch-key", default=None, help="dispatch key applied to --from-torch sites")
    plan.add_argument("--out-header", type=Path, default=None)
    plan.add_argument("--out-json", type=Path, default=None)

    lint = sub.add_parser("lint", help="report suspicious allow-list entries")
    _add_config_args(lint)
    lint.add_argument("--known-ops", type=Path, default=None, help="file of valid operator base names")
    lint.add_argument("--strict", action="store_true", help="exit 1 on warnings")
    return ap


def resolve_config(args: argparse.Namespace) -> SelectiveBuildConfig:
    cfg = SelectiveBuildConfig.from_env()
    if args.config is not None:
        cfg = cfg.updated_from_json_file(args.config)
    overrides = {}
    if args.allowlist is not None:
        overrides["operator_allowlist"] = args.allowlist
    if args.allowlist_file is not None:
        overrides["operator_allowlist"] = load_allowlist_file(args.allowlist_file)
    if args.force_schema_registration is not None:
        overrides["force_schema_registration"] = args.force_schema_registration
    if args.mobile is not None:
        overrides["mobile"] = args.mobile
    return dataclasses.replace(cfg, **overrides)


def _yes_no(ok: bool) -> str:
    return "include" if ok else "exclude"


def _cmd_check(args: argparse.Namespace, cfg: SelectiveBuildConfig) -> int:
    if not (args.schema or args.op or args.dispatch_key):
        print("nothing to check: pass --schema, --op or --dispatch-key", file=sys.stderr)
        return 2
    for s in args.schema:
        print(f"{_yes_no(schema_allowlist_check(s, config=cfg))}\tschema\t{s}")
    for o in args.op:
        print(f"{_yes_no(op_allowlist_check(o, config=cfg))}\top\t{o}")
    for k in args.dispatch_key:
        key = parse_dispatch_key(k)
        print(f"{_yes_no(dispatch_key_allowlist_check(key, config=cfg))}\tdispatch_key\t{key.value}")
    return 0


def _print_plan(plan: SelectionPlan) -> None:
    rows: List[List[str]] = [["decision", "operator", "dispatch_key", "reasons"]]
    for d in plan.decisions:
        rows.append([_yes_no(d.included), str(d.site.operator_name), str(d.site.dispatch_key or "-"), "; ".join(d.reasons)])
    widths = [max(len(r[i]) for r in rows) for i in range(len(rows[0]))]
    for r in rows:
        print("  " + "  ".join(r[i].ljust(widths[i]) for i in range(len(r))).rstrip())
    print(f"sites={len(plan.decisions)} included={len(plan.included())} excluded={len(plan.excluded())}")


def _cmd_plan(args: argparse.Namespace, cfg: SelectiveBuildConfig) -> int:
    if args.from_torch:
        from selective_build.torch_schemas import registration_sites_from_torch

        sites = registration_sites_from_torch(dispatch_key=args.dispatch_key)
    else:
        sites = load_sites_from_json(args.sites)
    plan = plan_registrations(sites, config=cfg)
    write_outputs(plan, header_path=args.out_header, manifest_path=args.out_json)
    _print_plan(plan)
    return 0


def _read_known_ops(path: Path) -> List[str]:
    names = []
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.split("#", 1)[0].strip()
        if line:
            names.append(line)
    return names


def _cmd_lint(args: argparse.Namespace, cfg: SelectiveBuildConfig) -> int:
    if cfg.operator_allowlist is None:
        print("no operator allow-list configured; every operator is registered")
        return 0
    known = _read_known_ops(args.known_ops) if args.known_ops is not None else None
    diags = lint_allowlist(cfg.operator_allowlist, known_ops=known)
    for d in diags:
        print(format_diagnostic(d))
    warnings = sum(1 for d in diags if d.level in {"warning", "error"})
    print(f"{len(diags)} diagnostic(s), {warnings} warning(s)")
    return 1 if (args.strict and warnings) else 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose > 1 else logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        cfg = resolve_config(args)
        if args.command == "check":
            return _cmd_check(args, cfg)
        if args.command == "plan":
            return _cmd_plan(args, cfg)
        return _cmd_lint(args, cfg)
    except (
        SelectiveBuildConfigError,
        InvalidOperatorNameError,
        UnknownDispatchKeyError,
        MacroCollisionError,
        OSError,
        RuntimeError,
    ) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
