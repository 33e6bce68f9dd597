"""
windows.py - Sliding-Window Moving Averages

Four ways to compute a moving average of a float64 series, from slowest to
fastest:

    moving_average_loop     - Pure-Python running-sum loop.  Reference only.
    moving_average_pandas   - ``Series.rolling(n).mean()``.
    moving_average_cumsum   - The cumulative-sum trick: one ``np.cumsum`` and
                              one shifted subtraction, no Python-level loop.
    move_mean               - A compiled sliding-window kernel built with
                              numba's ``guvectorize``.  Keeps a running sum
                              and touches every element exactly twice.

The first three return only the "valid" part of the average
(``len(a) - n + 1`` values).  ``move_mean`` returns an array of the same
shape as its input: positions before the first full window hold the
expanding mean of the samples seen so far.

Why the cumsum trick can lose
-----------------------------
``np.cumsum`` is vectorized, but the subtraction ``ret[n:] - ret[:-n]``
allocates a second full-length temporary and the division a third.  The
compiled kernel streams through the data once with two scalar registers and
writes straight into the output buffer, so for large series it is usually
faster and always lighter on memory.  Because the kernel is a gufunc it also
broadcasts over leading axes: a (rows, n) array gets one window per row.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Dict

import numpy as np
import pandas as pd
from numba import guvectorize

from kernelbench.core.constants import DEFAULT_SEED, DEFAULT_WINDOW

logger = logging.getLogger(__name__)


# ========================================================================
# Validation
# ========================================================================

def _check_window(n: int) -> int:
    n = int(n)
    if n < 1:
        raise ValueError(f"Window width must be >= 1, got {n}.")
    return n


def _as_series(a) -> np.ndarray:
    arr = np.asarray(a, dtype=np.float64)
    if arr.ndim != 1:
        raise ValueError(f"Expected a 1-D series, got an array of shape {arr.shape}.")
    return arr


# ========================================================================
# Vectorized and reference implementations
# ========================================================================

def moving_average_cumsum(a, n: int = 3) -> np.ndarray:
    """
    Moving average of *a* over windows of width *n* via the cumsum trick.

    Parameters
    ----------
    a : array_like, shape (N,)
    n : int
        Window width, >= 1.

    Returns
    -------
    ndarray, shape (max(N - n + 1, 0),)
    """
    n = _check_window(n)
    a = _as_series(a)
    ret = np.cumsum(a, dtype=np.float64)
    ret[n:] = ret[n:] - ret[:-n]
    return ret[n - 1:] / n


def moving_average_loop(a, n: int = 3) -> np.ndarray:
    """One-element-at-a-time running-sum loop for comparison."""
    n = _check_window(n)
    a = _as_series(a)
    length = a.shape[0]
    if n > length:
        return np.empty(0, dtype=np.float64)

    out = np.empty(length - n + 1, dtype=np.float64)
    asum = 0.0
    for i in range(n):
        asum += a[i]
    out[0] = asum / n
    for i in range(n, length):
        asum += a[i] - a[i - n]
        out[i - n + 1] = asum / n
    return out


def moving_average_pandas(a, n: int = 3) -> np.ndarray:
    """``pandas.Series.rolling`` version, valid part only."""
    n = _check_window(n)
    a = _as_series(a)
    rolled = pd.Series(a).rolling(window=n).mean().to_numpy()
    return rolled[n - 1:]


# ========================================================================
# Compiled sliding-window kernels
# ========================================================================

@guvectorize(["void(float64[:], intp[:], float64[:])"], "(n),()->(n)", nopython=True)
def _move_mean_gu(a, window_arr, out):
    window_width = min(window_arr[0], len(a))
    asum = 0.0
    count = 0
    for i in range(window_width):
        asum += a[i]
        count += 1
        out[i] = asum / count
    for i in range(window_width, len(a)):
        asum += a[i] - a[i - window_width]
        out[i] = asum / count


@guvectorize(["void(float64[:], intp[:], float64[:])"], "(n),()->(n)", nopython=True)
def _move_sum_gu(a, window_arr, out):
    window_width = min(window_arr[0], len(a))
    asum = 0.0
    for i in range(window_width):
        asum += a[i]
        out[i] = asum
    for i in range(window_width, len(a)):
        asum += a[i] - a[i - window_width]
        out[i] = asum


def move_mean(a, window: int = DEFAULT_WINDOW) -> np.ndarray:
    """
    Sliding-window mean along the last axis, computed by a compiled kernel.

    ``out[..., i]`` is the mean of ``a[..., max(0, i - window + 1):i + 1]``,
    so the head of the output is an expanding mean and
    ``out[..., window - 1:]`` matches :func:`moving_average_cumsum`.
    A window wider than the series gives a pure expanding mean.
    """
    window = _check_window(window)
    arr = np.asarray(a, dtype=np.float64)
    if arr.size == 0:
        return np.empty_like(arr)
    return _move_mean_gu(arr, window)


def move_sum(a, window: int = DEFAULT_WINDOW) -> np.ndarray:
    """Sliding-window sum along the last axis; partial sums in the head."""
    window = _check_window(window)
    arr = np.asarray(a, dtype=np.float64)
    if arr.size == 0:
        return np.empty_like(arr)
    return _move_sum_gu(arr, window)


def move_mean_valid(a, window: int = DEFAULT_WINDOW) -> np.ndarray:
    """:func:`move_mean` trimmed to full windows, same length as the cumsum version."""
    window = _check_window(window)
    return move_mean(_as_series(a), window)[window - 1:]


# ========================================================================
# SlidingWindowOps -- timing comparison
# ========================================================================

class SlidingWindowOps:
    """
    Side-by-side timing of every moving-average implementation in this module.

    All variants are reduced to their valid part so the outputs can be
    checked against each other before any number is reported.
    """

    VARIANTS: Dict[str, Callable[[np.ndarray, int], np.ndarray]] = {
        "loop": moving_average_loop,
        "pandas": moving_average_pandas,
        "cumsum": moving_average_cumsum,
        "numba": move_mean_valid,
    }

    @classmethod
    def compare_all(
        cls,
        n: int = 1_000_000,
        window: int = DEFAULT_WINDOW,
        seed: int = DEFAULT_SEED,
        include_loop: bool = True,
    ) -> Dict[str, Dict[str, float]]:
        """
        Time each variant once on a random series of length *n*.

        Returns
        -------
        dict mapping variant name -> {"time_s", "speedup"}, where speedup is
        relative to the cumsum trick.
        """
        rng = np.random.default_rng(seed)
        a = rng.standard_normal(n)

        # Compile before timing
        move_mean_valid(a[: window + 1], window)

        reference = moving_average_cumsum(a, window)
        timings: Dict[str, float] = {}
        for name, func in cls.VARIANTS.items():
            if name == "loop" and not include_loop:
                continue
            t0 = time.perf_counter()
            result = func(a, window)
            timings[name] = time.perf_counter() - t0
            np.testing.assert_allclose(result, reference, rtol=1e-7, atol=1e-9)

        base = timings["cumsum"]
        results = {
            name: {"time_s": t, "speedup": base / t if t > 0 else float("inf")}
            for name, t in timings.items()
        }

        logger.info("Moving average (N = %s, window = %d)", f"{n:,}", window)
        for name, d in results.items():
            logger.info("  %-8s %12.6f s  %8.2fx vs cumsum", name, d["time_s"], d["speedup"])
        return results
