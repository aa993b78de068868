from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any

from .. import __version__
from ..checks.catalog import Catalog
from ..checks.engine import GLOBAL_TIMEOUT_REASON, expand_labels_filter, run_checks
from ..checks.labels import compile_labels_expr
from ..checks.registry import ChecksDB
from ..checks.report import build_summary_payload, render_failed_checks, render_text
from ..claim.builder import ClaimBuilder, StaticClusterInfo, claim_times, read_claim, write_claim
from ..claim.failures import failed_results, render_failures_text
from ..claim.junit import write_junit
from ..claim.model import CLAIM_FORMAT_VERSION
from ..claim.sanitize import sanitize_claim
from ..config import EngineConfig, load_config
from ..core.context import RunContext
from ..core.errors import ClaimError, ConfigError, InternalError, LabelExpressionError, RegistryError, ScriptError
from ..core.exit_codes import ERR_CHECKS_FAILED, ERR_CONFIG, ERR_INTERNAL, ERR_TIMEOUT, ERR_USAGE, ERR_VALIDATION, OK
from ..core.logging import log_event
from ..suites import BUILTIN_SUITES, load_suites
from .output import build_base_payload, emit, render_error


def _version_string() -> str:
    return f"certctl {__version__}"


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="certctl")
    p.add_argument("--version", action="version", version=_version_string())
    p.add_argument("--json", action="store_true", help="emit JSON output")
    p.add_argument("--log-json", action="store_true", help="emit structured logs as JSON lines on stderr")
    p.add_argument("--run-id", help="run identifier used in logs")
    p.add_argument("--profile", help="profile id")
    vg = p.add_mutually_exclusive_group()
    vg.add_argument("--verbose", action="store_true", help="enable debug logs")
    vg.add_argument("--quiet", action="store_true", help="only emit errors")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("version", help="print certctl and claim format versions")

    run_p = sub.add_parser("run", help="run the selected checks and write claim and JUnit reports")
    run_p.add_argument("--config", help="YAML engine configuration")
    run_p.add_argument("--label-filter", help="label expression selecting checks (`all` selects every tag)")
    run_p.add_argument("--timeout", help="global time budget, e.g. 24h, 90m, 300s")
    run_p.add_argument("--output-dir", help="directory receiving claim.json and the JUnit report")
    run_p.add_argument("--suite", action="append", default=[], help="extra suite module exposing load_checks(db, catalog)")
    run_p.add_argument("--abort-on-failure", action="store_true", default=None, help="annotate checks after the first failure")

    list_p = sub.add_parser("list", help="list the check ids selected by a label filter")
    list_p.add_argument("--config", help="YAML engine configuration")
    list_p.add_argument("--label-filter", help="label expression selecting checks")
    list_p.add_argument("--suite", action="append", default=[], help="extra suite module exposing load_checks(db, catalog)")

    claim_p = sub.add_parser("claim", help="inspect and post-process claim files")
    claim_sub = claim_p.add_subparsers(dest="claim_cmd", required=True)
    sanitize_p = claim_sub.add_parser("sanitize", help="drop results that do not match a label filter")
    sanitize_p.add_argument("claim")
    sanitize_p.add_argument("--label-filter", required=True, help="label expression results must satisfy")
    sanitize_p.add_argument("--out", help="output path (defaults to rewriting the claim in place)")
    junit_p = claim_sub.add_parser("junit", help="regenerate JUnit XML from a claim")
    junit_p.add_argument("claim")
    junit_p.add_argument("--out", required=True, help="JUnit XML output path")
    validate_p = claim_sub.add_parser("validate", help="validate a claim against the bundled schema")
    validate_p.add_argument("claim")
    failures_p = claim_sub.add_parser("failures", help="show failed checks and their non-compliant objects")
    failures_p.add_argument("claim")
    failures_p.add_argument("--suite", action="append", default=[], help="only show failures of this suite")
    return p


def _load_engine_config(ns: argparse.Namespace) -> EngineConfig:
    overrides: dict[str, Any] = {"labels_filter": getattr(ns, "label_filter", None)}
    for key in ("timeout", "output_dir", "abort_on_failure"):
        overrides[key] = getattr(ns, key, None)
    return load_config(Path(ns.config) if ns.config else None, overrides)


def _load_registry(ctx: RunContext, config: EngineConfig, extra_suites: list[str]) -> tuple[ChecksDB, Catalog]:
    db = ChecksDB()
    catalog = Catalog.from_yaml(config.catalog_file) if config.catalog_file else Catalog()
    modules = list(config.suites or BUILTIN_SUITES) + [name for name in extra_suites if name not in config.suites]
    load_suites(db, catalog, modules, ctx)
    return db, catalog


def _cmd_run(ctx: RunContext, ns: argparse.Namespace, as_json: bool) -> int:
    config = _load_engine_config(ns)
    db, catalog = _load_registry(ctx, config, ns.suite)
    builder = ClaimBuilder(
        catalog,
        configurations=config.configurations,
        cluster=StaticClusterInfo(config.nodes, config.versions),
        ctx=ctx,
    )
    run = run_checks(db, config.labels_filter, config.timeout, abort_on_failure=config.abort_on_failure, ctx=ctx)
    builder.build(config.claim_path, run)
    builder.to_junit_xml(config.junit_path)
    if run.stop_reason == GLOBAL_TIMEOUT_REASON:
        rc = ERR_TIMEOUT
    else:
        rc = ERR_CHECKS_FAILED if run.failed_checks() else OK
    if as_json:
        payload = build_base_payload(ctx, "ok" if rc == OK else "fail")
        payload.update(build_summary_payload(run))
        payload["claim_file"] = str(config.claim_path)
        payload["junit_file"] = str(config.junit_path)
        emit(payload, as_json)
        return rc
    if not ctx.quiet:
        print(render_text(run))
        failed = render_failed_checks(run)
        if failed:
            print()
            print(failed)
        print(f"claim: {config.claim_path}")
        print(f"junit: {config.junit_path}")
    return rc


def _cmd_list(ctx: RunContext, ns: argparse.Namespace, as_json: bool) -> int:
    config = _load_engine_config(ns)
    db, _catalog = _load_registry(ctx, config, ns.suite)
    ids = db.filter_check_ids(compile_labels_expr(expand_labels_filter(config.labels_filter)))
    if as_json:
        payload = build_base_payload(ctx)
        payload.update({"labels_filter": config.labels_filter, "checks": ids})
        emit(payload, as_json)
    else:
        print("\n".join(ids))
    return OK


def _cmd_claim(ctx: RunContext, ns: argparse.Namespace, as_json: bool) -> int:
    claim_path = Path(ns.claim)
    root = read_claim(claim_path)
    if ns.claim_cmd == "validate":
        if as_json:
            payload = build_base_payload(ctx)
            payload.update({"claim_file": str(claim_path), "results": len(root["claim"]["results"])})
            emit(payload, as_json)
        else:
            print(f"{claim_path}: valid ({len(root['claim']['results'])} results)")
        return OK
    if ns.claim_cmd == "sanitize":
        sanitized = sanitize_claim(root, ns.label_filter)
        out = Path(ns.out) if ns.out else claim_path
        write_claim(out, sanitized)
        removed = len(root["claim"]["results"]) - len(sanitized["claim"]["results"])
        log_event(ctx, "info", "claim", "sanitize", path=str(out), removed=removed)
        if as_json:
            payload = build_base_payload(ctx)
            payload.update({"claim_file": str(out), "removed": removed, "kept": len(sanitized["claim"]["results"])})
            emit(payload, as_json)
        elif not ctx.quiet:
            print(f"{out}: kept {len(sanitized['claim']['results'])}, removed {removed}")
        return OK
    if ns.claim_cmd == "junit":
        start, end = claim_times(root)
        out = write_junit(Path(ns.out), root["claim"]["results"], start, end)
        if as_json:
            payload = build_base_payload(ctx)
            payload.update({"junit_file": str(out)})
            emit(payload, as_json)
        elif not ctx.quiet:
            print(str(out))
        return OK
    rows = failed_results(root, ns.suite)
    if as_json:
        payload = build_base_payload(ctx, "ok" if not rows else "fail")
        payload["failures"] = rows
        emit(payload, as_json)
    else:
        print(render_failures_text(rows))
    return OK


def _as_script_error(exc: InternalError) -> ScriptError:
    if isinstance(exc, LabelExpressionError):
        return ScriptError(str(exc), ERR_USAGE, "label_expression_error")
    if isinstance(exc, (ConfigError, RegistryError)):
        return ScriptError(str(exc), ERR_CONFIG, "config_error")
    if isinstance(exc, ClaimError):
        return ScriptError(str(exc), ERR_VALIDATION, "claim_error")
    return ScriptError(str(exc), ERR_INTERNAL, "internal_error")


_COMMANDS = {"run": _cmd_run, "list": _cmd_list, "claim": _cmd_claim}


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    ns = parser.parse_args(argv)
    if ns.cmd == "version":
        payload = {"schema_version": 1, "tool": "certctl", "status": "ok", "certctl_version": __version__, "claim_format": CLAIM_FORMAT_VERSION}
        if ns.json:
            emit(payload, True)
        else:
            print(f"{_version_string()} (claim format {CLAIM_FORMAT_VERSION})")
        return OK
    ctx = RunContext.from_args(
        ns.run_id,
        ns.profile,
        "json" if ns.json else "text",
        ns.verbose,
        ns.quiet,
        ns.log_json,
    )
    try:
        log_event(ctx, "debug", "cli", "start", cmd=ns.cmd)
        try:
            rc = _COMMANDS[ns.cmd](ctx, ns, ctx.output_format == "json")
        except InternalError as exc:
            raise _as_script_error(exc) from exc
        log_event(ctx, "debug", "cli", "finish", cmd=ns.cmd, rc=rc)
        return rc
    except ScriptError as exc:
        print(
            render_error(
                as_json=(ctx.output_format == "json"),
                message=str(exc),
                code=exc.code,
                kind=exc.kind,
                run_id=ctx.run_id,
            ),
            file=sys.stderr,
        )
        return exc.code
    except Exception as exc:  # pragma: no cover
        print(
            render_error(
                as_json=(ctx.output_format == "json"),
                message=f"internal error: {exc}",
                code=ERR_INTERNAL,
                run_id=ctx.run_id,
            ),
            file=sys.stderr,
        )
        return ERR_INTERNAL


def run() -> None:
    sys.exit(main())
