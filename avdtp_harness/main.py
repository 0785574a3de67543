"""
Conformance harness command line

Runs the registered scenarios against the reference session engine and
reports one PASS/FAIL line per scenario. Exit status is 0 when every
selected scenario passed, 1 otherwise, 2 on a harness setup failure.
"""
import argparse
import sys
from typing import List, Optional, TextIO

import structlog

from avdtp_harness.config import settings
from avdtp_harness.engine.scenario import ScenarioRunner
from avdtp_harness.exceptions import ConfigurationError, SetupError
from avdtp_harness.logging import setup_logging
from avdtp_harness.models import RunSummary
from avdtp_harness.scenarios.catalog import default_registry
from avdtp_harness.sut.session import ReferenceEngine

logger = structlog.get_logger()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="avdtp-harness",
        description="AVDTP signaling conformance scenarios",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Hex-dump every PDU")
    parser.add_argument("-l", "--list", action="store_true", help="List scenario names and exit")
    parser.add_argument(
        "-p",
        "--pattern",
        action="append",
        default=[],
        help="Run only scenarios under this path or matching this wildcard (repeatable)",
    )
    parser.add_argument("--log-level", default=None, help="Log level (default from settings)")
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Fail a scenario that has not finished after this many seconds",
    )
    return parser


def report(summary: RunSummary, verbose: bool, out: TextIO) -> None:
    for result in summary.results:
        status = "PASS" if result.passed else "FAIL"
        print(f"{result.name}: {status}", file=out)
        if result.passed:
            continue
        print(f"  {result.error_type}: {result.error}", file=out)
        if result.details:
            for key, value in sorted(result.details.items()):
                print(f"    {key}={value}", file=out)
        if verbose:
            for line in result.trace:
                print(f"  {line}", file=out)
    print(
        f"{len(summary.results)} scenarios, {summary.passed} passed, {summary.failed} failed",
        file=out,
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    overrides = {}
    if args.verbose:
        overrides["verbose"] = True
    if args.timeout is not None:
        overrides["scenario_timeout_sec"] = args.timeout
    config = settings.model_copy(update=overrides)

    try:
        setup_logging("harness", args.log_level)
    except ConfigurationError as e:
        print(f"Harness setup failed: {e.message}", file=sys.stderr)
        return 2

    registry = default_registry()
    if args.list:
        for name in registry.names():
            print(name)
        return 0

    scenarios = registry.select(args.pattern)
    if not scenarios:
        print(f"No scenarios match {args.pattern}", file=sys.stderr)
        return 1

    runner = ScenarioRunner(ReferenceEngine, config=config)
    try:
        summary = runner.run(scenarios)
    except (SetupError, ConfigurationError) as e:
        logger.error("harness_setup_failed", error=e.message, **e.details)
        print(f"Harness setup failed: {e.message}", file=sys.stderr)
        return 2

    report(summary, config.verbose, sys.stdout)
    return summary.exit_status


if __name__ == "__main__":
    sys.exit(main())
