"""
performance - Vectorization and lock-free multithreading for numeric kernels

    windows     - Moving averages four ways.  The cumsum trick removes the
                  Python loop; a compiled sliding-window kernel also removes
                  the full-length temporaries.

    kernels     - Elementwise math as a numpy expression and as a numba
                  kernel compiled with nogil=True.

    parallel    - Runs a nogil kernel on disjoint slices from several Python
                  threads, joining them all before the result is returned.

    benchmarks  - Timing harness that checks every variant against a reference
                  before timing it, and saves tables, plots and a report.
"""
