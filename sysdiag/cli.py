"""Command-line interface and orchestration for sysdiag."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from . import __version__


# ── argument parsing ──────────────────────────────────────────────────────────

def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="sysdiag",
        description="Collect workstation diagnostics with graceful fallbacks.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  sysdiag\n"
            "  sysdiag --output C:\\Support\\diag.json --log-file C:\\Support\\errors.txt\n"
            "  sysdiag --config sysdiag.yaml --parallel\n"
        ),
    )
    parser.add_argument(
        "--output", "-o",
        default=None,
        metavar="PATH",
        help="Destination for the JSON report (default: output.report_file from config)",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        metavar="PATH",
        help="Also export the error log as plain text to PATH",
    )
    parser.add_argument(
        "--config",
        default=None,
        metavar="PATH",
        help="YAML config file (default: SYSDIAG_CONFIG or the system config path)",
    )
    parser.add_argument(
        "--parallel",
        action="store_true",
        default=False,
        help="Collect independent facts concurrently",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Do not run PowerShell or external commands",
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        default=False,
        help="Record collection failures without printing warnings",
    )
    parser.add_argument(
        "--no-pretty",
        action="store_true",
        default=False,
        help="Write compact JSON instead of indented output",
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"sysdiag {__version__}",
    )
    return parser.parse_args(argv)


def _summary_line(summary) -> str:
    return (
        f"Incidents: {summary.total} "
        f"(Critical: {summary.critical} | Error: {summary.error} | "
        f"Warning: {summary.warning} | Info: {summary.info})"
    )


# ── main entry point ──────────────────────────────────────────────────────────

def run(argv=None) -> None:
    args = parse_args(argv)

    from .collectors import _utils
    from .config import load_config
    from .report.json_reporter import write_json
    from .runner import DiagnosticRun

    try:
        config = load_config(args.config)
    except (FileNotFoundError, ValueError) as exc:
        print(f"[error] {exc}", file=sys.stderr)
        sys.exit(1)

    if args.dry_run:
        _utils.DRY_RUN = True

    output = config.get("output") or {}
    report_path = Path(args.output or output.get("report_file") or "diagnostics.json")
    log_path = args.log_file or output.get("log_file")

    try:
        diag = DiagnosticRun(config, console=sys.stdout, quiet=args.quiet)
    except (KeyError, TypeError, ValueError) as exc:
        print(f"[error] Invalid threshold configuration: {exc}", file=sys.stderr)
        sys.exit(1)

    print("[sysdiag] Collecting diagnostics...", flush=True)
    report = diag.run(parallel=args.parallel)

    print("\n[sysdiag] Results:")
    for fact in report.facts:
        tier = fact.tier or "N/A"
        print(f"  {tier:<8} {fact.label}")

    failed = False
    try:
        write_json(report, report_path, pretty=not args.no_pretty)
        print(f"\n[sysdiag] JSON  -> {report_path.resolve()}")
    except OSError as exc:
        print(f"[error] Could not write report to '{report_path}': {exc}", file=sys.stderr)
        failed = True

    if log_path:
        try:
            diag.log.export(Path(log_path))
            print(f"[sysdiag] Log   -> {Path(log_path).resolve()}")
        except OSError as exc:
            print(f"[error] Could not export error log to '{log_path}': {exc}", file=sys.stderr)
            failed = True

    print(f"\n[sysdiag] Done. {_summary_line(report.summary)}")
    if failed:
        sys.exit(1)
