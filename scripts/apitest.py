#!/usr/bin/env python3
"""
API plan runner

Usage:
  apitest run -f <plan.yaml> [-o report.md] [--base-url <url>] [--insecure]
              [--verbose] [--env <vars.yaml>] [--var key=value ...]

Examples:
  apitest run -f plans/login.yaml
  apitest run -f plans/login.yaml --base-url http://localhost:8080 --var user=alice --var password=secret

Exit codes:
  0  every step passed
  1  a step failed (assertion, extraction, render or transport failure)
  2  usage or setup error (bad flags, unreadable plan or vars file, bad report path)
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv

from application.executor.plan_executor import PlanExecutor, RunOptions
from application.ports.requests_client import RequestsHttpClient
from application.services.execution_deps import ExecutionDeps
from domain.context import merge_contexts
from domain.run_result import RunResult
from infrastructure.config.settings import Settings
from infrastructure.logging.log_setup import setup_console_logging
from infrastructure.logging.loguru_logger import LoguruLogger
from infrastructure.plan import PlanLoadError, PlanLoaderRegistry, load_vars_file
from infrastructure.report.markdown_report import MarkdownReportWriter, ReportWriteError
from infrastructure.url.base_url_resolver import BaseUrlResolver

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


class SetupError(Exception):
    pass


def _parse_vars(items: List[str]) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for item in items:
        key, sep, value = item.partition("=")
        if not sep:
            raise SetupError(f"invalid var {item}, expect k=v")
        out[key] = value
    return out


def _build_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="apitest", description="Declarative API plan runner")
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Run a plan file")
    run_parser.add_argument("-f", "--file", dest="plan_file", type=str, required=True, help="Path to plan YAML/JSON file")
    run_parser.add_argument("-o", "--output", type=str, default=settings.report_path, help="Output report markdown path")
    run_parser.add_argument("--base-url", type=str, default="", help="Override base URL")
    run_parser.add_argument("--insecure", action="store_true", help="Skip TLS verification")
    run_parser.add_argument("--verbose", action="store_true", help="Verbose execution log")
    run_parser.add_argument("--env", dest="env_file", type=str, help="Additional vars YAML file")
    run_parser.add_argument("--var", dest="vars", action="append", default=[], help="Extra variable k=v (repeatable)")

    return parser


def _ensure_report_dir(path: str) -> None:
    parent = Path(path).parent
    try:
        parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise SetupError(f"report path: {e}") from e
    if not parent.is_dir():
        raise SetupError(f"report path: {parent} is not a directory")


def _print_summary(result: RunResult, report_path: Optional[Path]) -> None:
    print(f"Plan: {result.plan_name}")
    print(f"Run ID: {result.run_id}")
    for step in result.steps:
        mark = "PASS" if step.ok else "FAIL"
        print(f"  [{mark}] {step.name} ({step.elapsed_ms}ms)")
    print(f"Success: {result.ok}")
    if not result.ok:
        print(f"Failed Step: {result.failed_step}")
        print(f"Error: {result.error_message}")
    if report_path is not None:
        print(f"Report: {report_path}")


def _run(args: argparse.Namespace) -> int:
    plan_path = Path(args.plan_file)
    try:
        plan = PlanLoaderRegistry().get_loader(plan_path).load_from_file(plan_path)
    except PlanLoadError as e:
        raise SetupError(f"load plan: {e}") from e

    cli_vars = _parse_vars(args.vars)

    env_vars: Dict[str, str] = {}
    if args.env_file:
        try:
            env_vars = load_vars_file(args.env_file)
        except (OSError, ValueError) as e:
            raise SetupError(f"env file: {e}") from e

    _ensure_report_dir(args.output)

    deps = ExecutionDeps(
        http_client=RequestsHttpClient(),
        url_resolver=BaseUrlResolver(args.base_url or plan.base_url),
        logger=LoguruLogger(),
    )
    options = RunOptions(vars=merge_contexts(env_vars, cli_vars), insecure=args.insecure)

    result = PlanExecutor().execute(plan, deps, options)

    report_path: Optional[Path] = None
    exit_code = EXIT_OK if result.ok else EXIT_FAILED
    try:
        report_path = MarkdownReportWriter().write(result, args.output)
    except ReportWriteError as e:
        print(f"ERROR: generate report: {e}", file=sys.stderr)
        exit_code = EXIT_FAILED

    _print_summary(result, report_path)
    return exit_code


def main(argv: Optional[List[str]] = None) -> None:
    load_dotenv()
    settings = Settings.from_env()

    parser = _build_parser(settings)
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)

    if args.command != "run":
        parser.print_help(sys.stderr)
        sys.exit(EXIT_USAGE)

    setup_console_logging(level="DEBUG" if args.verbose else settings.log_level)

    try:
        exit_code = _run(args)
    except SetupError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        sys.exit(EXIT_USAGE)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
