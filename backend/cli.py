"""
Command-line entry point: run a resilience assessment and print/export
the report.
"""
from __future__ import annotations

import argparse
import logging
from pathlib import Path

import config
from cascade.simulator import get_default_settings
from network.loaders import NETWORK_LOADERS
from resilience.pipeline import assess_resilience
from scenarios.progress import TqdmProgress

logger = logging.getLogger(__name__)


def _parse_cli_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Network theory resilience metric: cascade sampling plus graph metrics."
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--network", default=None, choices=sorted(NETWORK_LOADERS),
                        help=f"Bundled test network (default: {config.DEFAULT_NETWORK})")
    source.add_argument("--case-file", type=Path, default=None,
                        help="pandapower JSON or MATPOWER (.m/.mat) case file")
    parser.add_argument("--fail-min", type=int, default=config.DEFAULT_FAIL_MIN,
                        help="Maximum number of simultaneous initial branch failures")
    parser.add_argument("--sample-size", type=int, default=config.DEFAULT_SAMPLE_SIZE,
                        help="Scenarios to sample; omit for the full enumeration")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for sampling")
    parser.add_argument("--remove-branch", type=int, action="append", default=[],
                        help="Branch position to remove before the run (repeatable)")
    parser.add_argument("--workers", type=int, default=config.CASCADE_WORKERS,
                        help="Processes used by the cascade simulator")
    parser.add_argument("--max-loading", type=float, default=config.MAX_LOADING_PERCENT,
                        help="Loading (percent) above which lines and trafos trip")
    parser.add_argument("--output", type=Path, default=None,
                        help="Write the report to .xlsx, .json or a CSV directory")
    parser.add_argument("--no-progress", action="store_true", help="Disable progress bars")
    parser.add_argument("--verbose", action="store_true", help="Log every cascade scenario")
    parser.add_argument("--log-level", default=config.LOG_LEVEL)
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = _parse_cli_args(argv)
    config.configure_logging(args.log_level)

    settings = get_default_settings()
    settings.verbose = args.verbose
    settings.workers = args.workers
    settings.max_loading_percent = args.max_loading

    source = args.case_file if args.case_file is not None else (args.network or config.DEFAULT_NETWORK)
    report = assess_resilience(
        source,
        fail_min=args.fail_min,
        sample_size=args.sample_size,
        seed=args.seed,
        remove_branches=args.remove_branch,
        settings=settings,
        progress=None if args.no_progress else TqdmProgress(),
    )
    print(report.to_text())

    if args.output is not None:
        suffix = args.output.suffix.lower()
        if suffix == ".xlsx":
            report.to_excel(args.output)
        elif suffix == ".json":
            report.to_json(args.output)
        else:
            report.to_csv(args.output)
        logger.info("Report written to %s", args.output)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
