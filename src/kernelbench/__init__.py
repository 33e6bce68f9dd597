"""
kernelbench - Sliding-window and lock-free multithreaded numeric kernels.

    performance.windows     moving averages: loop, pandas, cumsum trick, and a
                            compiled numba sliding-window kernel
    performance.kernels     elementwise numpy expressions and their nogil
                            numba counterparts
    performance.parallel    drivers that run a nogil kernel on one thread or
                            split it across several threads
    performance.benchmarks  timing harness, scenarios, CSV / plot / report
"""

__version__ = "0.1.0"

from kernelbench.config import BenchmarkConfig, load_config
from kernelbench.performance.kernels import func_np, inner_func_nb
from kernelbench.performance.parallel import (
    ThreadedKernel, make_multithread, make_singlethread,
)
from kernelbench.performance.windows import (
    move_mean, move_sum, moving_average_cumsum,
)

__all__ = [
    "BenchmarkConfig",
    "ThreadedKernel",
    "func_np",
    "inner_func_nb",
    "load_config",
    "make_multithread",
    "make_singlethread",
    "move_mean",
    "move_sum",
    "moving_average_cumsum",
]
