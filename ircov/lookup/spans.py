# This file is part of IRCov.
#
# Licensed under MIT License.

"""Counts of aligned blocks spanning exon-intron boundary points."""

import numpy as np

from ..core.blocks import ReadBlockProcessor
from .abc import SpanLookup

# Minimum aligned bases required on each side of a point
OVERHANG_LEFT = 5
OVERHANG_RIGHT = 4


class SpanCounts(ReadBlockProcessor, SpanLookup):
    """Per-strand counts of blocks crossing registered points.

    A block ``[s, e)`` spans point ``p`` when ``s + OVERHANG_LEFT <= p`` and
    ``p + OVERHANG_RIGHT <= e``.

    Args:
        registry: :class:`ChromosomeRegistry`.
        points: ``{chrom: iterable of positions}``; chromosomes unknown to the
            registry are ignored.
    """

    def __init__(self, registry, points, overhang_left=OVERHANG_LEFT, overhang_right=OVERHANG_RIGHT):
        self.registry = registry
        self.overhang_left = overhang_left
        self.overhang_right = overhang_right
        self._points = [np.zeros(0, dtype=np.int64) for _ in range(len(registry))]
        for chrom, pos in points.items():
            ref = registry.ref_index(chrom)
            if ref is not None:
                self._points[ref] = np.unique(np.asarray(list(pos), dtype=np.int64))
        # counts[ref][direction, point]
        self._counts = [np.zeros((2, len(p)), dtype=np.int64) for p in self._points]

    @classmethod
    def from_catalog(cls, registry, catalog, **kwargs):
        return cls(registry, catalog.boundaries(), **kwargs)

    def process_fragment(self, fragment):
        pts = self._points[fragment.ref_index]
        if len(pts) == 0:
            return
        counts = self._counts[fragment.ref_index][int(fragment.direction)]
        for start, length in fragment.iter_blocks():
            lo = np.searchsorted(pts, start + self.overhang_left, side='left')
            hi = np.searchsorted(pts, start + length - self.overhang_right, side='right')
            if hi > lo:
                counts[lo:hi] += 1

    def combine(self, other):
        if self.registry != other.registry or any(
                not np.array_equal(a, b) for a, b in zip(self._points, other._points)):
            raise ValueError('Cannot combine span counts built on different points')
        for mine, theirs in zip(self._counts, other._counts):
            mine += theirs
            theirs[:] = 0

    def lookup(self, chrom, pos, direction=None):
        ref = self.registry.ref_index(chrom)
        if ref is None:
            return 0
        pts = self._points[ref]
        i = np.searchsorted(pts, pos)
        if i == len(pts) or pts[i] != pos:
            return 0
        counts = self._counts[ref]
        if direction is None:
            return int(counts[0, i] + counts[1, i])
        return int(counts[int(bool(direction)), i])
