# This file is part of IRCov.
#
# Licensed under MIT License.

"""Splice junction counts collected from fragment blocks."""

from collections import Counter

import pandas as pd

from ..core.blocks import ReadBlockProcessor
from .abc import JunctionLookup


class JunctionCounts(ReadBlockProcessor, JunctionLookup):
    """Counts the gaps between consecutive aligned blocks of each mate.

    Blocks are expected to be split only at skipped (``N``) reference
    regions, so every gap is a splice junction ``[start, end)``.
    """

    def __init__(self, registry):
        self.registry = registry
        self._exact = Counter()   # (ref, start, end, direction)
        self._left = Counter()    # (ref, start, direction)
        self._right = Counter()   # (ref, end, direction)

    def process_fragment(self, fragment):
        ref, direction = fragment.ref_index, fragment.direction
        for mate in fragment.mates:
            for (s1, l1), (s2, _l2) in zip(mate, mate[1:]):
                j_start, j_end = s1 + l1, s2
                if j_end <= j_start:
                    continue
                self._exact[(ref, j_start, j_end, direction)] += 1
                self._left[(ref, j_start, direction)] += 1
                self._right[(ref, j_end, direction)] += 1

    def combine(self, other):
        if self.registry != other.registry:
            raise ValueError('Cannot combine junction counts built on different chromosome registries')
        self._exact.update(other._exact)
        self._left.update(other._left)
        self._right.update(other._right)
        other._exact, other._left, other._right = Counter(), Counter(), Counter()

    @staticmethod
    def _strands(direction):
        return (True, False) if direction is None else (bool(direction),)

    def lookup_left(self, chrom, start, direction=None):
        ref = self.registry.ref_index(chrom)
        return sum(self._left[(ref, start, d)] for d in self._strands(direction))

    def lookup_right(self, chrom, end, direction=None):
        ref = self.registry.ref_index(chrom)
        return sum(self._right[(ref, end, d)] for d in self._strands(direction))

    def lookup(self, chrom, start, end, direction=None):
        ref = self.registry.ref_index(chrom)
        return sum(self._exact[(ref, start, end, d)] for d in self._strands(direction))

    def __len__(self):
        return len(self._exact)

    def to_frame(self):
        """Junction table sorted in chromosome presentation order."""
        _order = {c.ref_index: i for i, c in enumerate(self.registry)}
        rows = sorted(self._exact.items(), key=lambda kv: (_order[kv[0][0]], kv[0][1], kv[0][2], not kv[0][3]))
        return pd.DataFrame(
            [(self.registry.by_ref_index(ref).name, s, e, '+' if d else '-', n)
             for (ref, s, e, d), n in rows],
            columns=['chrom', 'start', 'end', 'strand', 'count'],
        )
