# This file is part of IRCov.
#
# Licensed under MIT License.

"""Summary statistics over depth histograms.

A histogram maps depth -> number of bases observed at that depth, usually a
``collections.Counter`` filled by :meth:`CoverageMap.update_histogram`. Every
function treats the histogram as a multiset of ``size`` depth observations.

Statistics that have no value (mean or percentile of an empty histogram,
trimmed window of zero width) return ``None`` rather than a number.
"""

import math


def _bins(hist):
    """Non-empty (depth, count) bins in ascending depth order."""
    return [(d, n) for d, n in sorted(hist.items()) if n > 0]


def hist_size(hist):
    return sum(n for n in hist.values() if n > 0)


def mean(hist):
    size = hist_size(hist)
    if size == 0:
        return None
    return sum(d * n for d, n in _bins(hist)) / size


def coverage_fraction(hist):
    """Fraction of bases with non-zero depth; 1.0 when no base is at depth 0."""
    zero = hist.get(0, 0)
    if zero <= 0:
        return 1.0
    size = hist_size(hist)
    return (size - zero) / size


def percentile(hist, p):
    """Interpolated percentile using the (size + 1) * p / 100 rank."""
    bins = _bins(hist)
    if not bins:
        return None
    size = sum(n for _, n in bins)
    rank = (size + 1) * p / 100.0
    idx = math.floor(rank)
    frac = rank - idx

    count = 0
    for i, (depth, n) in enumerate(bins):
        count += n
        if count >= idx:
            if count > idx or frac == 0:
                return float(depth)
            if i + 1 == len(bins):
                return float(depth)
            return depth * (1 - frac) + bins[i + 1][0] * frac
    # Rank past the last observation (e.g. p=100)
    return float(bins[-1][0])


def trimmed_mean(hist, center_percent):
    """Mean of the central ``center_percent`` of observations.

    ``floor(size * (100 - center_percent) / 200)`` observations are dropped
    from each tail; bins straddling either boundary contribute only the part
    inside the retained window. A window of zero width has no mean.
    """
    bins = _bins(hist)
    size = sum(n for _, n in bins)
    skip = math.floor(size * (100.0 - center_percent) / 200.0)
    width = size - 2 * skip
    if width <= 0:
        return None

    total = 0
    count = 0
    for depth, n in bins:
        if count + n > size - skip:
            if count > skip:
                total += depth * (size - skip - count)
            else:
                # whole retained window sits inside this bin
                return float(depth)
            break
        if count > skip:
            total += depth * n
        elif count + n > skip:
            total += depth * (count + n - skip)
        count += n
    return total / width
