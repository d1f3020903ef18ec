#!/usr/bin/env python3
"""
Scenario Runner CLI

Runs the order API acceptance scenarios against a configured environment.
Settings come from HARNESS_* environment variables or a .env file; the
flags below override them.

Usage:
    # List scenarios and suites
    python -m scripts.run_scenarios --list

    # Whole login suite plus one order scenario
    python -m scripts.run_scenarios -s login -s order_past_date

    # Everything, 4 workers, CI exit codes
    python -m scripts.run_scenarios --workers 4 --ci-mode
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Dict

from dotenv import load_dotenv
from pydantic import ValidationError

from harness.config import HarnessConfig, HarnessSettings, SettingsConfigSource
from harness.errors import ConfigurationError
from harness.reporting import LoggingReportSink
from harness.scenario_runner import RunSummary, ScenarioRunner
from harness.scenarios import SCENARIO_REGISTRY, get_scenarios, get_suites

logger = logging.getLogger("run_scenarios")


# ==================== Logging ====================

class ColoredFormatter(logging.Formatter):
    """Colored console output"""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record):
        color = self.COLORS.get(record.levelname, self.RESET)
        record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


def setup_logging(verbose: bool = False, ci_mode: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    if not ci_mode and sys.stderr.isatty():
        handler = logging.StreamHandler()
        handler.setFormatter(ColoredFormatter("%(asctime)s %(levelname)s %(message)s", datefmt="%H:%M:%S"))
        logging.basicConfig(level=level, handlers=[handler], force=True)
    else:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)-8s %(name)s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
            force=True,
        )
    # httpx logs every request at INFO; ours already do
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ==================== Output ====================

def print_scenarios() -> None:
    print("\n📋 Scenarios by suite:")
    for suite, names in get_suites().items():
        print(f"\n  [{suite}]")
        for name in names:
            print(f"    {name:<38} {SCENARIO_REGISTRY[name]().description}")
    print()


def print_summary(summary: RunSummary) -> None:
    print("\n" + "=" * 70)
    print(f"{'Scenario':<40} {'Result':<8} {'Checks':>7} {'Time':>8}")
    print("-" * 70)
    for r in summary.results:
        mark = "PASS" if r.passed else "FAIL"
        checks = f"{len(r.outcomes) - r.failed_checks}/{len(r.outcomes)}"
        print(f"{r.name:<40} {mark:<8} {checks:>7} {r.duration_s:>7.2f}s")
        if r.error:
            print(f"    ↳ {r.error}")
    print("-" * 70)
    print(f"Total: {summary.total}  ✅ {summary.passed}  ❌ {summary.failed}  ⏱️ {summary.duration_s:.2f}s")
    print("=" * 70)


# ==================== CLI ====================

def _build_cli() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="run_scenarios",
        description="Order API acceptance scenarios",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p.add_argument("--list", action="store_true", help="List scenarios and exit")
    p.add_argument("--scenario", "-s", action="append", dest="scenarios",
                   help="Scenario or suite name (repeatable; default: all)")
    p.add_argument("--workers", type=int, help="Worker threads (overrides HARNESS_MAX_WORKERS)")
    p.add_argument("--base-uri", help="API base URI (overrides HARNESS_BASE_URI)")
    p.add_argument("--seed", type=int, help="Seed for generated test data")
    p.add_argument("--json", action="store_true", help="Print the run summary as JSON")
    p.add_argument("--ci-mode", action="store_true", help="CI/CD mode (plain logs, exit code 1 on failure)")
    p.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    return p


def main(argv=None) -> int:
    args = _build_cli().parse_args(argv)
    load_dotenv()
    setup_logging(verbose=args.verbose, ci_mode=args.ci_mode)

    if args.list:
        print_scenarios()
        return 0

    overrides: Dict[str, Any] = {}
    if args.base_uri:
        overrides["base_uri"] = args.base_uri
    if args.workers:
        overrides["max_workers"] = args.workers

    try:
        config = HarnessConfig.from_source(SettingsConfigSource(HarnessSettings(**overrides)))
        scenarios = get_scenarios(args.scenarios)
    except (ConfigurationError, ValidationError) as e:
        logger.error(f"❌ Invalid configuration: {e}")
        return 2
    except KeyError as e:
        logger.error(f"❌ {e.args[0]}")
        return 2

    logger.info(f"🎯 Target: {config.base_uri}")
    summary = ScenarioRunner(config, LoggingReportSink(), seed=args.seed).run(scenarios)

    if args.json:
        print(json.dumps(summary.to_dict(), indent=2, default=str))
    else:
        print_summary(summary)

    if args.ci_mode and not summary.ok:
        return 1
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\n\n👋 Cancelled by user")
        sys.exit(130)
