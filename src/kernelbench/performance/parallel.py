"""
parallel.py - Multithreading Compiled Kernels Without the GIL

Python threads normally cannot speed up CPU-bound work: the GIL lets only one
thread execute bytecode at a time.  A numba kernel compiled with
``nogil=True`` drops the lock on entry, so while it runs other threads are
free to enter the same kernel.  The pattern here is:

    1. Allocate the output buffer once in the calling thread.
    2. Split the output and every input into ``numthreads`` contiguous
       slices.  Slicing a numpy array gives a view, so no data is copied.
    3. Start one ``threading.Thread`` per slice, each running the kernel
       on its own disjoint ``(result, a, b, ...)`` views.
    4. Join every thread, then return the buffer.

Because the slices never overlap, the workers need no locks.  The result is
only read after the last ``join()``, which is the synchronisation point.

Compared to ``multiprocessing`` this avoids process start-up and pickling
the arrays, and all threads share the same address space.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from kernelbench.core.constants import CPU_COUNT, DEFAULT_SEED
from kernelbench.performance.kernels import KERNELS

logger = logging.getLogger(__name__)


class ThreadedKernel:
    """
    Callable wrapper that runs an ``inner_func(result, *args)`` kernel on
    ``numthreads`` threads.

    Parameters
    ----------
    inner_func : callable
        Kernel with the ``(result, *inputs)`` convention.  It should release
        the GIL (numba ``nogil=True``) or the threads will simply take turns.
    numthreads : int
        Number of worker threads, >= 1.  With 1 the kernel runs in the
        calling thread.  Either way an exception from the kernel surfaces as
        a RuntimeError chained from the original.
    """

    def __init__(self, inner_func: Callable[..., Any], numthreads: int = 1):
        if numthreads < 1:
            raise ValueError(f"numthreads must be >= 1, got {numthreads}.")
        self.inner_func = inner_func
        self.numthreads = int(numthreads)

    def __repr__(self) -> str:
        name = getattr(self.inner_func, "__name__", repr(self.inner_func))
        return f"ThreadedKernel({name}, numthreads={self.numthreads})"

    def chunk_bounds(self, length: int) -> List[Tuple[int, int]]:
        """
        ``(start, stop)`` pairs that partition ``[0, length)`` into
        ``numthreads`` contiguous chunks of ``ceil(length / numthreads)``.
        Trailing chunks are empty when there are fewer elements than threads.
        """
        chunklen = (length + self.numthreads - 1) // self.numthreads
        return [
            (min(i * chunklen, length), min((i + 1) * chunklen, length))
            for i in range(self.numthreads)
        ]

    def __call__(self, *args: Any) -> np.ndarray:
        if not args:
            raise ValueError("At least one input array is required.")
        arrays = [np.ascontiguousarray(arg, dtype=np.float64) for arg in args]
        length = len(arrays[0])
        for i, arr in enumerate(arrays):
            if arr.ndim != 1 or len(arr) != length:
                raise ValueError(
                    f"Input {i} has shape {arr.shape}; expected ({length},)."
                )

        result = np.empty(length, dtype=np.float64)
        if self.numthreads == 1:
            try:
                self.inner_func(result, *arrays)
            except Exception as exc:
                raise RuntimeError(f"Kernel run by {self!r} failed: {exc}") from exc
            return result

        buffers = [result] + arrays
        chunks = [
            [buf[start:stop] for buf in buffers]
            for start, stop in self.chunk_bounds(length)
        ]
        errors: List[Optional[BaseException]] = [None] * len(chunks)

        def _worker(idx: int, chunk: Sequence[np.ndarray]) -> None:
            try:
                self.inner_func(*chunk)
            except Exception as exc:
                errors[idx] = exc

        threads = [
            threading.Thread(target=_worker, args=(i, chunk), name=f"kernelbench-worker-{i}")
            for i, chunk in enumerate(chunks)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        for idx, exc in enumerate(errors):
            if exc is not None:
                raise RuntimeError(f"Worker thread {idx} of {self!r} failed: {exc}") from exc
        return result


def make_singlethread(inner_func: Callable[..., Any]) -> ThreadedKernel:
    """Run *inner_func* once over the whole arrays in the calling thread."""
    return ThreadedKernel(inner_func, numthreads=1)


def make_multithread(inner_func: Callable[..., Any], numthreads: int) -> ThreadedKernel:
    """Run *inner_func* over *numthreads* disjoint slices, one thread each."""
    return ThreadedKernel(inner_func, numthreads=numthreads)


def compare_single_vs_multi(
    n: int = 1_000_000,
    numthreads: Optional[int] = None,
    kernel: str = "exp",
    seed: int = DEFAULT_SEED,
) -> Dict[str, float]:
    """
    Time numpy, single-threaded and multi-threaded runs of one kernel.

    Every result is checked against the numpy reference before the timings
    are reported.

    Returns
    -------
    dict with keys: numpy_s, single_s, multi_s, speedup_vs_numpy,
    speedup_vs_single, numthreads
    """
    if kernel not in KERNELS:
        raise ValueError(f"Unknown kernel '{kernel}'. Choose from {sorted(KERNELS)}.")
    numthreads = numthreads or CPU_COUNT
    func_np, inner_func = KERNELS[kernel]

    rng = np.random.default_rng(seed)
    a = rng.random(n)
    b = rng.random(n)

    func_nb = make_singlethread(inner_func)
    func_nb_mt = make_multithread(inner_func, numthreads)

    t0 = time.perf_counter()
    correct = func_np(a, b)
    t_np = time.perf_counter() - t0

    t0 = time.perf_counter()
    single = func_nb(a, b)
    t_single = time.perf_counter() - t0

    t0 = time.perf_counter()
    multi = func_nb_mt(a, b)
    t_multi = time.perf_counter() - t0

    np.testing.assert_allclose(single, correct, rtol=1e-12)
    np.testing.assert_allclose(multi, correct, rtol=1e-12)

    results = {
        "numpy_s": t_np,
        "single_s": t_single,
        "multi_s": t_multi,
        "speedup_vs_numpy": t_np / t_multi if t_multi > 0 else float("inf"),
        "speedup_vs_single": t_single / t_multi if t_multi > 0 else float("inf"),
        "numthreads": float(numthreads),
    }
    logger.info("Kernel '%s' (N = %s, %d threads)", kernel, f"{n:,}", numthreads)
    logger.info("  numpy          : %.6f s", t_np)
    logger.info("  numba (1 thr)  : %.6f s", t_single)
    logger.info("  numba (%d thr)  : %.6f s  (%.2fx vs 1 thread)",
                numthreads, t_multi, results["speedup_vs_single"])
    return results
