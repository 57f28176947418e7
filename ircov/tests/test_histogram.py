# This file is part of IRCov.
#
# Licensed under MIT License.

"""Tests for depth histogram statistics."""

from collections import Counter

import pytest

from ircov.core.histogram import coverage_fraction, hist_size, mean, percentile, trimmed_mean


@pytest.fixture
def two_level():
    """100 bases: 50 at depth 1, 50 at depth 2."""
    return Counter({1: 50, 2: 50})


class TestMeanAndCoverage:
    def test_mean(self, two_level):
        assert mean(two_level) == pytest.approx(1.5)

    def test_size_ignores_empty_bins(self):
        assert hist_size(Counter({0: 0, 3: 4})) == 4

    def test_coverage_without_zero_bin(self, two_level):
        assert coverage_fraction(two_level) == 1.0

    def test_coverage_with_zero_bin(self):
        assert coverage_fraction(Counter({0: 25, 3: 75})) == pytest.approx(0.75)

    def test_coverage_with_empty_zero_bin(self):
        assert coverage_fraction(Counter({0: 0, 3: 5})) == 1.0

    def test_coverage_of_empty_histogram(self):
        assert coverage_fraction(Counter()) == 1.0

    def test_all_zero(self):
        assert coverage_fraction(Counter({0: 10})) == 0.0
        assert mean(Counter({0: 10})) == 0.0


class TestPercentile:
    def test_single_base(self):
        assert percentile(Counter({5: 1}), 50) == 5

    def test_lower_bound(self):
        assert percentile(Counter({1: 2, 3: 2}), 0) == 1

    def test_upper_bound_is_max(self):
        assert percentile(Counter({1: 2, 3: 2}), 100) == 3

    def test_interpolates_between_bins(self):
        # rank 1.5 falls between the only two observations
        assert percentile(Counter({1: 1, 3: 1}), 50) == pytest.approx(2.0)

    def test_quartile_interpolation(self):
        hist = Counter({1: 1, 2: 1, 3: 1, 4: 1})
        assert percentile(hist, 25) == pytest.approx(1.25)
        assert percentile(hist, 75) == pytest.approx(3.75)

    def test_inside_bin(self, two_level):
        assert percentile(two_level, 25) == 1
        assert percentile(two_level, 75) == 2


class TestTrimmedMean:
    def test_no_trim_equals_mean(self):
        hist = Counter({0: 3, 2: 5, 7: 2})
        assert trimmed_mean(hist, 100) == pytest.approx(mean(hist))

    def test_no_trim_equals_mean_two_level(self, two_level):
        assert trimmed_mean(two_level, 100) == pytest.approx(1.5)

    def test_partial_bins(self):
        # 1,1,2,2,2,2,10,10,10,10 minus two from each tail
        hist = Counter({1: 2, 2: 4, 10: 4})
        assert trimmed_mean(hist, 50) == pytest.approx(28 / 6)

    def test_single_depth(self):
        assert trimmed_mean(Counter({4: 10}), 40) == 4.0

    def test_single_base(self):
        assert trimmed_mean(Counter({5: 1}), 40) == 5.0

    def test_zero_depth(self):
        assert trimmed_mean(Counter({0: 100}), 40) == 0.0


class TestUndefined:
    def test_empty_mean(self):
        assert mean(Counter()) is None

    def test_empty_percentile(self):
        assert percentile(Counter(), 50) is None

    def test_empty_trimmed_mean(self):
        assert trimmed_mean(Counter(), 40) is None

    def test_only_empty_bins(self):
        assert trimmed_mean(Counter({0: 0}), 40) is None
        assert percentile(Counter({0: 0}), 0) is None

    @pytest.mark.parametrize('hist', [Counter({3: 2}), Counter({1: 1, 5: 1}), Counter({2: 4, 7: 6})])
    def test_zero_width_window(self, hist):
        assert trimmed_mean(hist, 0) is None
