"""
Benchmark configuration.

Defaults live in :mod:`kernelbench.core.constants`; a YAML file can override
any of them under a top-level ``benchmark:`` key::

    benchmark:
      array_size: 2000000
      window: 50
      thread_counts: [1, 2, 4, 8]
      num_runs: 5
      seed: 42
      output_dir: benchmark_results
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from kernelbench.core.constants import (
    DEFAULT_ARRAY_SIZE, DEFAULT_NUM_RUNS, DEFAULT_OUTPUT_DIR, DEFAULT_SEED,
    DEFAULT_THREAD_COUNTS, DEFAULT_WINDOW, QUICK_ARRAY_SIZE, QUICK_NUM_RUNS,
    QUICK_THREAD_COUNTS,
)

logger = logging.getLogger(__name__)


@dataclass
class BenchmarkConfig:
    """Validated benchmark parameters."""

    array_size: int = DEFAULT_ARRAY_SIZE
    window: int = DEFAULT_WINDOW
    thread_counts: Tuple[int, ...] = field(default_factory=lambda: tuple(DEFAULT_THREAD_COUNTS))
    num_runs: int = DEFAULT_NUM_RUNS
    seed: int = DEFAULT_SEED
    output_dir: str = DEFAULT_OUTPUT_DIR

    def __post_init__(self):
        if not isinstance(self.thread_counts, (list, tuple)):
            raise ValueError(f"thread_counts must be a list of integers, got {self.thread_counts!r}.")
        try:
            self.array_size = int(self.array_size)
            self.window = int(self.window)
            self.num_runs = int(self.num_runs)
            self.seed = int(self.seed)
            self.thread_counts = tuple(int(t) for t in self.thread_counts)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Benchmark config values must be integers: {e}") from e
        self.output_dir = str(self.output_dir)
        if self.array_size < 1:
            raise ValueError(f"array_size must be >= 1, got {self.array_size}.")
        if self.window < 1:
            raise ValueError(f"window must be >= 1, got {self.window}.")
        if not self.thread_counts or min(self.thread_counts) < 1:
            raise ValueError(f"thread_counts must be positive integers, got {self.thread_counts}.")
        if self.num_runs < 1:
            raise ValueError(f"num_runs must be >= 1, got {self.num_runs}.")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BenchmarkConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown benchmark config keys: {sorted(unknown)}")
        return cls(**data)

    def quick(self) -> "BenchmarkConfig":
        """Reduced-size copy for smoke runs."""
        return replace(
            self,
            array_size=min(self.array_size, QUICK_ARRAY_SIZE),
            thread_counts=tuple(QUICK_THREAD_COUNTS),
            num_runs=min(self.num_runs, QUICK_NUM_RUNS),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["thread_counts"] = list(self.thread_counts)
        return data


def load_config(config_path: Optional[str] = None) -> BenchmarkConfig:
    """
    Load benchmark configuration from a YAML file.

    Args:
        config_path: Path to YAML config. ``None`` returns the defaults.

    Returns:
        BenchmarkConfig with file values layered over the defaults
    """
    if config_path is None:
        logger.debug("No config file given, using defaults")
        return BenchmarkConfig()

    path = Path(config_path)
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    logger.info(f"Loading configuration from: {path}")
    with open(path, "r") as f:
        try:
            raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"{path}: malformed YAML: {e}") from e
    if not isinstance(raw, dict):
        raise ValueError(f"{path}: expected a mapping at the top level.")

    section = raw.get("benchmark", {}) or {}
    if not isinstance(section, dict):
        raise ValueError(f"{path}: 'benchmark' must be a mapping.")
    return BenchmarkConfig.from_dict(section)
