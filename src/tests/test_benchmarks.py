"""
===============================================================================
KERNELBENCH - Benchmark Harness Test Suite
===============================================================================
Tests for the timing helpers, the two scenarios, CSV / plot / report output,
and one timing assertion that shows the cumsum trick beats a Python loop by
a wide margin.
===============================================================================
"""

import os
import time

import numpy as np
import pandas as pd
import pytest

from kernelbench.config import BenchmarkConfig
from kernelbench.performance.benchmarks import Benchmark
from kernelbench.performance.windows import moving_average_cumsum, moving_average_loop


# =============================================================================
# Helper: timing context manager
# =============================================================================

class Timer:
    """Simple context manager for measuring wall-clock time."""

    def __enter__(self):
        self.start = time.perf_counter()
        return self

    def __exit__(self, *args):
        self.elapsed = time.perf_counter() - self.start


@pytest.fixture
def small_config(tmp_path):
    return BenchmarkConfig(
        array_size=20_000, window=10, thread_counts=(1, 2), num_runs=2,
        output_dir=str(tmp_path),
    )


# =============================================================================
# Measurement helpers
# =============================================================================

class TestMeasurementHelpers:

    def test_time_function_statistics(self):
        calls = []
        stats = Benchmark.time_function(lambda: calls.append(1), num_runs=4, warmup=2)
        assert len(calls) == 6
        assert stats["num_runs"] == 4
        assert stats["min"] <= stats["median"] <= stats["max"]
        assert stats["total"] == pytest.approx(stats["mean"] * 4)

    def test_time_function_single_run_has_zero_std(self):
        assert Benchmark.time_function(lambda: None, num_runs=1)["std"] == 0.0

    def test_time_function_rejects_zero_runs(self):
        with pytest.raises(ValueError):
            Benchmark.time_function(lambda: None, num_runs=0)

    def test_timefunc_checks_result(self):
        a = np.arange(10.0)
        t = Benchmark.timefunc(a * 2, "double", lambda x: x * 2, a, num_runs=2)
        assert t >= 0.0

    def test_timefunc_rejects_wrong_result(self):
        a = np.arange(10.0)
        with pytest.raises(AssertionError):
            Benchmark.timefunc(a * 3, "double", lambda x: x * 2, a, num_runs=2)

    def test_timefunc_without_reference(self):
        assert Benchmark.timefunc(None, "noop", lambda: None, num_runs=1) >= 0.0

    def test_memory_profile(self):
        mem = Benchmark.memory_profile(lambda: np.ones(100_000))
        assert mem["peak_bytes"] >= 100_000 * 8
        assert mem["peak_mb"] == pytest.approx(mem["peak_bytes"] / (1024 * 1024))

    def test_compare_adds_speedup_row(self):
        df = Benchmark.compare(lambda: sum(range(1000)), lambda: sum(range(10)),
                               labels=("slow", "fast"), num_runs=3)
        assert list(df.columns) == ["slow", "fast"]
        assert "speedup" in df.index
        assert df.loc["speedup", "fast"] == 1.0


# =============================================================================
# Scenarios
# =============================================================================

class TestScenarios:

    def test_moving_average_columns(self):
        df = Benchmark.benchmark_moving_average(n=10_000, window=5, num_runs=2)
        assert list(df.columns) == ["loop", "pandas", "cumsum", "numba"]
        assert df.loc["speedup", "cumsum"] == pytest.approx(1.0)

    def test_moving_average_skips_loop_when_asked(self):
        df = Benchmark.benchmark_moving_average(n=10_000, window=5, num_runs=2,
                                                include_loop=False)
        assert "loop" not in df.columns

    def test_threaded_kernel_columns(self):
        df = Benchmark.benchmark_threaded_kernel(n=10_000, thread_counts=(1, 2, 4), num_runs=2)
        assert list(df.columns) == ["numpy", "threads_1", "threads_2", "threads_4"]
        assert df.loc["speedup", "threads_1"] == pytest.approx(1.0)

    def test_threaded_kernel_hypot(self):
        df = Benchmark.benchmark_threaded_kernel(n=5_000, thread_counts=(2,), num_runs=1,
                                                 kernel="hypot")
        assert "threads_2" in df.columns

    def test_threaded_kernel_unknown(self):
        with pytest.raises(ValueError):
            Benchmark.benchmark_threaded_kernel(n=10, kernel="nope")


# =============================================================================
# Orchestration and report
# =============================================================================

class TestRunAll:

    def test_writes_tables_and_plots(self, small_config, tmp_path):
        summary = Benchmark.run_all_benchmarks(small_config)
        assert list(summary.index) == ["moving_average", "threading"]
        for name in ("moving_average.csv", "threading.csv", "summary.csv",
                     "speedup_bar.png", "thread_scaling.png"):
            assert (tmp_path / name).is_file(), name
        saved = pd.read_csv(tmp_path / "summary.csv", index_col="scenario")
        assert saved.loc["moving_average", "baseline"] == "cumsum"
        assert saved.loc["threading", "baseline"] == "threads_1"
        assert (saved["speedup_x"] >= 1.0).all()

    def test_single_scenario(self, small_config, tmp_path):
        summary = Benchmark.run_all_benchmarks(small_config, scenarios=("moving_average",))
        assert list(summary.index) == ["moving_average"]
        assert not (tmp_path / "thread_scaling.png").exists()

    def test_output_dir_override(self, small_config, tmp_path):
        out = tmp_path / "elsewhere"
        Benchmark.run_all_benchmarks(small_config, output_dir=str(out), scenarios=("threading",))
        assert (out / "threading.csv").is_file()

    def test_unknown_scenario(self, small_config):
        with pytest.raises(ValueError):
            Benchmark.run_all_benchmarks(small_config, scenarios=("sorting",))

    def test_report(self, small_config, tmp_path):
        Benchmark.run_all_benchmarks(small_config)
        report = Benchmark.generate_report(str(tmp_path))
        assert report.startswith("# Kernel Benchmark Report")
        assert "| moving_average | cumsum |" in report
        assert "thread_scaling.png" in report
        assert os.path.isfile(tmp_path / "report.md")

    def test_report_requires_summary(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Benchmark.generate_report(str(tmp_path))


# =============================================================================
# Test: cumsum trick faster than Python loop
# =============================================================================

class TestCumsumFasterThanLoop:

    def test_cumsum_faster_than_loop(self):
        """
        The vectorized cumsum moving average should be at least 5x faster
        than the running-sum Python loop.
        """
        a = np.random.default_rng(42).standard_normal(100_000)

        moving_average_loop(a[:100], 10)
        moving_average_cumsum(a[:100], 10)

        with Timer() as t_loop:
            result_loop = moving_average_loop(a, 10)

        with Timer() as t_vec:
            result_vec = moving_average_cumsum(a, 10)

        np.testing.assert_allclose(result_loop, result_vec, rtol=1e-9, atol=1e-12)

        speedup = t_loop.elapsed / max(t_vec.elapsed, 1e-12)
        assert speedup >= 5.0, (
            f"cumsum only {speedup:.1f}x faster than loop "
            f"(loop={t_loop.elapsed*1e3:.1f}ms, cumsum={t_vec.elapsed*1e3:.1f}ms)"
        )
