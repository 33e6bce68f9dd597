"""
===============================================================================
KERNELBENCH - Default Benchmark Parameters
===============================================================================
Central repository for the default sizes and coefficients used by the
sliding-window and multithreaded kernel benchmarks. Values can be overridden
from the YAML configuration (see kernelbench.config.load_config).
===============================================================================
"""

import os


# =============================================================================
# RANDOM DATA
# =============================================================================
DEFAULT_SEED = 42
DEFAULT_ARRAY_SIZE = 1_000_000         # elements per benchmark vector
QUICK_ARRAY_SIZE = 100_000             # --quick mode

# =============================================================================
# SLIDING WINDOW
# =============================================================================
DEFAULT_WINDOW = 20                    # moving-average width (samples)

# =============================================================================
# THREADING
# =============================================================================
CPU_COUNT = os.cpu_count() or 4
DEFAULT_THREAD_COUNTS = (1, 2, 4)
QUICK_THREAD_COUNTS = (1, 2)

# =============================================================================
# TIMING
# =============================================================================
DEFAULT_NUM_RUNS = 5
QUICK_NUM_RUNS = 2
WARMUP_RUNS = 1                        # excluded from timing (JIT compile)

# =============================================================================
# ELEMENTWISE KERNEL COEFFICIENTS  exp(A * a + B * b)
# =============================================================================
EXP_COEFF_A = 2.1
EXP_COEFF_B = 3.2

# =============================================================================
# OUTPUT
# =============================================================================
DEFAULT_OUTPUT_DIR = "benchmark_results"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
