"""
===============================================================================
KERNELBENCH - Sliding-Window Test Suite
===============================================================================
Tests for the moving-average implementations: known values for the cumsum
trick, agreement between the loop / pandas / cumsum / compiled variants, the
expanding head of the compiled kernel, broadcasting over rows, and argument
validation.
===============================================================================
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from kernelbench.performance.windows import (
    SlidingWindowOps, move_mean, move_mean_valid, move_sum,
    moving_average_cumsum, moving_average_loop, moving_average_pandas,
)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def series():
    """Reproducible random series."""
    return np.random.default_rng(7).standard_normal(5_000)


# =============================================================================
# Cumsum trick
# =============================================================================

class TestCumsumMovingAverage:

    def test_known_values(self):
        assert_allclose(moving_average_cumsum(np.arange(1, 6), 3), [2.0, 3.0, 4.0])

    def test_default_window_is_three(self):
        assert_allclose(moving_average_cumsum([3.0, 6.0, 9.0, 12.0]), [6.0, 9.0])

    def test_window_one_is_identity(self, series):
        assert_allclose(moving_average_cumsum(series, 1), series)

    def test_window_equal_to_length(self):
        assert_allclose(moving_average_cumsum([1.0, 2.0, 3.0, 6.0], 4), [3.0])

    def test_window_longer_than_series_is_empty(self):
        out = moving_average_cumsum([1.0, 2.0], 5)
        assert out.shape == (0,)

    def test_output_length(self, series):
        assert moving_average_cumsum(series, 20).shape == (len(series) - 19,)

    def test_input_not_mutated(self, series):
        before = series.copy()
        moving_average_cumsum(series, 10)
        np.testing.assert_array_equal(series, before)

    @pytest.mark.parametrize("bad_window", [0, -3])
    def test_rejects_non_positive_window(self, bad_window):
        with pytest.raises(ValueError):
            moving_average_cumsum([1.0, 2.0, 3.0], bad_window)

    def test_rejects_2d_input(self):
        with pytest.raises(ValueError):
            moving_average_cumsum(np.ones((3, 4)), 2)


# =============================================================================
# Reference implementations agree with the cumsum trick
# =============================================================================

class TestReferenceImplementations:

    @pytest.mark.parametrize("window", [1, 2, 20, 333])
    def test_loop_matches_cumsum(self, series, window):
        assert_allclose(moving_average_loop(series, window),
                        moving_average_cumsum(series, window), rtol=1e-9, atol=1e-12)

    @pytest.mark.parametrize("window", [1, 2, 20, 333])
    def test_pandas_matches_cumsum(self, series, window):
        assert_allclose(moving_average_pandas(series, window),
                        moving_average_cumsum(series, window), rtol=1e-9, atol=1e-12)

    @pytest.mark.parametrize("func", [
        moving_average_cumsum, moving_average_loop, moving_average_pandas,
    ])
    def test_empty_input_gives_empty_output(self, func):
        assert func(np.array([]), 3).shape == (0,)

    def test_loop_window_longer_than_series(self):
        assert moving_average_loop([1.0, 2.0], 3).shape == (0,)

    def test_pandas_window_longer_than_series(self):
        assert moving_average_pandas([1.0, 2.0], 3).shape == (0,)


# =============================================================================
# Compiled sliding-window kernel
# =============================================================================

class TestMoveMean:

    def test_expanding_head_then_full_windows(self):
        out = move_mean(np.arange(1.0, 6.0), 3)
        assert_allclose(out, [1.0, 1.5, 2.0, 3.0, 4.0])

    def test_same_shape_as_input(self, series):
        assert move_mean(series, 20).shape == series.shape

    @pytest.mark.parametrize("window", [1, 5, 20, 1000])
    def test_valid_part_matches_cumsum(self, series, window):
        out = move_mean(series, window)
        assert_allclose(out[window - 1:], moving_average_cumsum(series, window),
                        rtol=1e-9, atol=1e-9)

    def test_move_mean_valid_trims_head(self, series):
        assert_allclose(move_mean_valid(series, 20),
                        moving_average_cumsum(series, 20), rtol=1e-9, atol=1e-9)

    def test_window_wider_than_series_is_expanding_mean(self):
        a = np.array([2.0, 4.0, 6.0, 8.0])
        expected = np.cumsum(a) / np.arange(1, 5)
        assert_allclose(move_mean(a, 10), expected)

    def test_broadcasts_over_rows(self):
        rows = np.random.default_rng(3).random((4, 200))
        out = move_mean(rows, 7)
        assert out.shape == rows.shape
        for i in range(rows.shape[0]):
            assert_allclose(out[i], move_mean(rows[i], 7))

    def test_integer_input_is_cast(self):
        assert_allclose(move_mean(np.array([1, 2, 3, 4]), 2), [1.0, 1.5, 2.5, 3.5])

    def test_empty_input(self):
        assert move_mean(np.array([]), 3).shape == (0,)

    def test_input_not_mutated(self, series):
        before = series.copy()
        move_mean(series, 20)
        np.testing.assert_array_equal(series, before)

    def test_rejects_zero_window(self):
        with pytest.raises(ValueError):
            move_mean([1.0, 2.0], 0)


class TestMoveSum:

    def test_partial_then_full_sums(self):
        assert_allclose(move_sum(np.arange(1.0, 6.0), 3), [1.0, 3.0, 6.0, 9.0, 12.0])

    def test_is_window_times_mean(self, series):
        assert_allclose(move_sum(series, 25)[24:], 25 * move_mean(series, 25)[24:],
                        rtol=1e-9, atol=1e-9)


# =============================================================================
# Timing comparison
# =============================================================================

class TestSlidingWindowOps:

    def test_compare_all_reports_every_variant(self):
        results = SlidingWindowOps.compare_all(n=20_000, window=10)
        assert set(results) == {"loop", "pandas", "cumsum", "numba"}
        assert results["cumsum"]["speedup"] == pytest.approx(1.0)
        for d in results.values():
            assert d["time_s"] >= 0.0

    def test_compare_all_can_skip_loop(self):
        results = SlidingWindowOps.compare_all(n=20_000, window=10, include_loop=False)
        assert "loop" not in results
