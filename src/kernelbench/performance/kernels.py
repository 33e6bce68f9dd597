"""
kernels.py - Elementwise Kernels, numpy vs Compiled

Each kernel comes in two forms:

    func_*_np       - numpy expression.  Allocates a temporary per operator
                      and holds the GIL for the whole call.
    inner_func_*_nb - numba ``njit(nogil=True)`` loop that writes into a
                      caller-provided ``result`` buffer.  Because it is compiled
                      with ``nogil=True`` the interpreter lock is released on
                      entry, so several Python threads can run it at once on
                      different slices of the same arrays.

The ``(result, *inputs)`` calling convention is what lets
:mod:`kernelbench.performance.parallel` hand each thread a view of the output
without any copying or locking.
"""

import math

import numpy as np
from numba import njit

from kernelbench.core.constants import EXP_COEFF_A, EXP_COEFF_B


def func_np(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Reference for :func:`inner_func_nb`: ``exp(2.1 * a + 3.2 * b)``."""
    return np.exp(EXP_COEFF_A * a + EXP_COEFF_B * b)


@njit("void(float64[:], float64[:], float64[:])", nogil=True, cache=True)
def inner_func_nb(result, a, b):
    """Write ``exp(2.1 * a[i] + 3.2 * b[i])`` into ``result[i]``."""
    for i in range(len(result)):
        result[i] = math.exp(EXP_COEFF_A * a[i] + EXP_COEFF_B * b[i])


def func_hypot_np(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Reference for :func:`inner_func_hypot_nb`."""
    return np.sqrt(a * a + b * b)


@njit("void(float64[:], float64[:], float64[:])", nogil=True, cache=True)
def inner_func_hypot_nb(result, a, b):
    for i in range(len(result)):
        result[i] = math.sqrt(a[i] * a[i] + b[i] * b[i])


# Registry used by the CLI and the benchmark harness: name -> (numpy, nogil kernel)
KERNELS = {
    "exp": (func_np, inner_func_nb),
    "hypot": (func_hypot_np, inner_func_hypot_nb),
}
