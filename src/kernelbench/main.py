#!/usr/bin/env python3
"""
===============================================================================
KERNELBENCH - MAIN ENTRY POINT
===============================================================================
Runs the moving-average and multithreaded-kernel benchmarks, writes CSV
tables and plots, and optionally a Markdown report.

USAGE:
    kernelbench                           # All scenarios, default sizes
    kernelbench --scenario threading      # Threaded kernel only
    kernelbench --threads 1 2 4 8         # Override thread counts
    kernelbench --config bench.yaml       # Load parameters from YAML
    kernelbench --quick --report          # Small run plus report.md

OUTPUTS (under --output-dir, default benchmark_results/):
    moving_average.csv, threading.csv, summary.csv
    speedup_bar.png, thread_scaling.png
    report.md                             (with --report)
    kernelbench.log

===============================================================================
"""

import argparse
import logging
import sys
import time
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from kernelbench.config import load_config
from kernelbench.core.constants import LOG_FORMAT
from kernelbench.performance.benchmarks import SCENARIOS, Benchmark

logger = logging.getLogger("kernelbench")


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Configure root logging: stdout plus an optional log file."""
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, mode="w"))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kernelbench",
        description="Benchmark sliding-window and multithreaded nogil kernels",
    )
    parser.add_argument("--config", type=str, default=None,
                        help="YAML file with a 'benchmark:' section")
    parser.add_argument("--output-dir", type=str, default=None,
                        help="Directory for CSV, plots, report and log")
    parser.add_argument("--scenario", choices=list(SCENARIOS) + ["all"], default="all",
                        help="Which benchmark to run")
    parser.add_argument("--threads", type=int, nargs="+", default=None,
                        help="Thread counts for the threading scenario, e.g. 1 2 4")
    parser.add_argument("--quick", action="store_true",
                        help="Reduced sizes and runs for a smoke test")
    parser.add_argument("--report", action="store_true",
                        help="Write report.md after the run")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
        if args.quick:
            config = config.quick()
        if args.threads:
            config = replace(config, thread_counts=tuple(args.threads))
        if args.output_dir:
            config = replace(config, output_dir=args.output_dir)
    except (FileNotFoundError, ValueError) as e:
        setup_logging(args.log_level)
        logger.error(f"Invalid configuration: {e}")
        return 2

    setup_logging(args.log_level, str(Path(config.output_dir) / "kernelbench.log"))
    scenarios = SCENARIOS if args.scenario == "all" else (args.scenario,)

    logger.info("=" * 60)
    logger.info("KERNELBENCH")
    logger.info(f"Scenarios: {', '.join(scenarios)}")
    logger.info(f"Config: {config.to_dict()}")
    logger.info("=" * 60)

    start_time = time.time()
    try:
        Benchmark.run_all_benchmarks(config, output_dir=config.output_dir, scenarios=scenarios)
        if args.report:
            Benchmark.generate_report(config.output_dir)
    except KeyboardInterrupt:
        logger.warning("Benchmark interrupted by user")
        return 130
    except Exception as e:
        logger.error(f"Benchmark error: {e}", exc_info=True)
        return 1

    logger.info(f"Completed in {time.time() - start_time:.1f} seconds")
    logger.info(f"Results saved to {Path(config.output_dir).resolve()}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
