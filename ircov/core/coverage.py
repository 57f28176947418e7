# This file is part of IRCov.
#
# Licensed under MIT License.

"""Strand-aware per-base coverage depth store.

Fragments are ingested as +1/-1 depth events at block starts and ends. Events
are periodically collapsed into net deltas per position to bound memory, and
finally prefix-summed into canonical run-length sequences of
``(position, depth)`` segments: positions strictly increasing from 0, no two
adjacent segments with the same depth.

A map is either accumulating (deltas only) or finalized (run-length sequences
only). Maps can only be combined while accumulating.
"""

import logging as lg
from concurrent.futures import ThreadPoolExecutor

import numpy as np

from .blocks import ReadBlockProcessor

# Channel indices
REVERSE = 0
FORWARD = 1
UNSTRANDED = 2
N_CHANNELS = 3

# Fragments between compactions of the ingest buffers
COMPACT_INTERVAL = 1000000


class CoverageStateError(RuntimeError):
    """Operation not valid in the coverage map's current mode."""


class CombineError(CoverageStateError):
    """Attempt to combine coverage maps that are not both accumulating."""


def collapse_deltas(positions, deltas):
    """Sum deltas that share a position.

    Returns:
        (positions, net_deltas): sorted unique positions with non-zero net
        delta.
    """
    positions = np.asarray(positions, dtype=np.int64)
    deltas = np.asarray(deltas, dtype=np.int64)
    if len(positions) == 0:
        return positions, deltas

    order = np.argsort(positions, kind='stable')
    positions = positions[order]
    deltas = deltas[order]

    # Group boundaries: where position changes
    boundaries = np.concatenate(([0], np.flatnonzero(np.diff(positions)) + 1))
    net = np.add.reduceat(deltas, boundaries)
    keep = net != 0
    return positions[boundaries][keep], net[keep]


def canonical_segments(positions, depths):
    """Drop redundant segments and anchor the sequence at position 0."""
    positions = np.asarray(positions, dtype=np.int64)
    depths = np.asarray(depths, dtype=np.int64)
    if len(positions) == 0 or positions[0] != 0:
        positions = np.concatenate((np.zeros(1, dtype=np.int64), positions))
        depths = np.concatenate((np.zeros(1, dtype=np.int64), depths))
    keep = np.ones(len(depths), dtype=bool)
    keep[1:] = depths[1:] != depths[:-1]
    return positions[keep], depths[keep]


def run_length(positions, deltas):
    """Run-length depth segments from unordered delta events."""
    positions, net = collapse_deltas(positions, deltas)
    return canonical_segments(positions, np.cumsum(net))


class CoverageMap(ReadBlockProcessor):
    """Depth store with forward, reverse and unstranded channels.

    Args:
        registry: :class:`ChromosomeRegistry`; per-chromosome buffers are
            indexed by ``ref_index``.
        compact_interval: Number of fragments between compactions.
    """

    def __init__(self, registry, compact_interval=COMPACT_INTERVAL):
        self.registry = registry
        self.compact_interval = compact_interval
        self.frag_count = 0
        self.finalized = False

        _n = len(registry)
        self._pending_pos = [[[] for _ in range(_n)] for _ in range(N_CHANNELS)]
        self._pending_delta = [[[] for _ in range(_n)] for _ in range(N_CHANNELS)]
        # Compacted (positions, net_deltas) chunks awaiting finalization
        self._accum = [[[] for _ in range(_n)] for _ in range(N_CHANNELS)]
        # Finalized (positions, depths) arrays
        self._final = [[None] * _n for _ in range(N_CHANNELS)]

    @classmethod
    def from_segments(cls, registry, segments):
        """Finalized map from ``(channel, ref_index, positions, depths)`` records."""
        obj = cls(registry)
        empty = canonical_segments([], [])
        for ch in range(N_CHANNELS):
            for ref in range(len(registry)):
                obj._final[ch][ref] = empty
        for channel, ref_index, positions, depths in segments:
            obj._final[channel][ref_index] = canonical_segments(positions, depths)
        obj.finalized = True
        return obj

    def _units(self):
        return [(ch, ref) for ch in range(N_CHANNELS) for ref in range(len(self.registry))]

    # -- Ingest ---------------------------------------------------------------

    def process_fragment(self, fragment):
        if self.finalized:
            raise CoverageStateError('Cannot ingest into a finalized coverage map; call reopen() first')
        ref = fragment.ref_index
        stranded = FORWARD if fragment.direction else REVERSE
        s_pos, s_delta = self._pending_pos[stranded][ref], self._pending_delta[stranded][ref]
        u_pos, u_delta = self._pending_pos[UNSTRANDED][ref], self._pending_delta[UNSTRANDED][ref]
        for start, length in fragment.iter_blocks():
            s_pos.extend((start, start + length))
            s_delta.extend((1, -1))
            u_pos.extend((start, start + length))
            u_delta.extend((1, -1))

        self.frag_count += 1
        if self.frag_count % self.compact_interval == 0:
            self.compact()

    def compact(self):
        """Collapse ingest buffers into net deltas per position."""
        for ch, ref in self._units():
            _pos = self._pending_pos[ch][ref]
            if not _pos:
                continue
            self._accum[ch][ref].append(collapse_deltas(_pos, self._pending_delta[ch][ref]))
            self._pending_pos[ch][ref] = []
            self._pending_delta[ch][ref] = []

    # -- Mode transitions -----------------------------------------------------

    def finalize(self, ncpu=1):
        """Build canonical run-length sequences. No-op if already finalized."""
        if self.finalized:
            return
        self.compact()
        lg.debug('Performing final sort of fragment maps')

        def _finalize_unit(unit):
            ch, ref = unit
            chunks = self._accum[ch][ref]
            if chunks:
                _pos = np.concatenate([c[0] for c in chunks])
                _delta = np.concatenate([c[1] for c in chunks])
            else:
                _pos, _delta = [], []
            return unit, run_length(_pos, _delta)

        units = self._units()
        if ncpu > 1:
            with ThreadPoolExecutor(max_workers=ncpu) as pool:
                results = list(pool.map(_finalize_unit, units))
        else:
            results = list(map(_finalize_unit, units))

        for (ch, ref), seq in results:
            self._final[ch][ref] = seq
            self._accum[ch][ref] = []
        self.finalized = True

    def reopen(self):
        """Return a finalized map to accumulating mode so it can be combined."""
        if not self.finalized:
            return
        for ch, ref in self._units():
            positions, depths = self._final[ch][ref]
            self._accum[ch][ref] = [(positions, np.diff(depths, prepend=0))]
            self._final[ch][ref] = None
        self.finalized = False

    def combine(self, other):
        """Add all of ``other``'s coverage to this map; ``other`` is consumed."""
        if self.finalized or other.finalized:
            raise CombineError(
                'Coverage maps can only be combined while accumulating; '
                'call reopen() on finalized maps first')
        if self.registry != other.registry:
            raise ValueError('Cannot combine coverage maps built on different chromosome registries')
        self.compact()
        other.compact()
        for ch, ref in self._units():
            self._accum[ch][ref].extend(other._accum[ch][ref])
            other._accum[ch][ref] = []
        self.frag_count += other.frag_count

    # -- Queries --------------------------------------------------------------

    def _require_final(self):
        if not self.finalized:
            raise CoverageStateError('Coverage map must be finalized before it can be queried')

    def update_histogram(self, hist, channel, ref_index, start, end):
        """Add the depth of every base in ``[start, end)`` to ``hist``.

        A chromosome absent from the map (``ref_index`` is ``None`` or out of
        range) counts as depth 0 over the whole range.
        """
        if end <= start:
            return hist
        self._require_final()
        if ref_index is None or not 0 <= ref_index < len(self.registry):
            hist[0] += end - start
            return hist

        positions, depths = self._final[channel][ref_index]
        # Last segment at or before start; segments beginning before end
        first = int(np.searchsorted(positions, start, side='right')) - 1
        last = int(np.searchsorted(positions, end, side='left'))
        cursor = start
        if first < 0:
            stop = min(int(positions[0]), end) if len(positions) else end
            hist[0] += stop - cursor
            cursor = stop
            first = 0
        if cursor < end:
            bounds = np.concatenate(([cursor], positions[first + 1:last], [end]))
            for depth, span in zip(depths[first:last].tolist(), np.diff(bounds).tolist()):
                hist[depth] += span
        return hist

    def fill_histogram(self, hist, channel, ref_index, blocks):
        for start, end in blocks:
            self.update_histogram(hist, channel, ref_index, start, end)
        return hist

    def segments(self, channel, ref_index):
        """Finalized ``(position, depth)`` segments for one channel and chromosome."""
        self._require_final()
        positions, depths = self._final[channel][ref_index]
        return list(zip(positions.tolist(), depths.tolist()))

    def low_coverage_intervals(self, threshold, ncpu=1):
        """Maximal ``(chrom, start, end)`` ranges with unstranded depth <= threshold."""
        self.finalize(ncpu)
        ret = []
        for chrom in self.registry:
            positions, depths = self._final[UNSTRANDED][chrom.ref_index]
            low = depths <= threshold
            prev_low = np.concatenate(([False], low[:-1]))
            starts = positions[low & ~prev_low].tolist()
            ends = positions[~low & prev_low].tolist()
            if len(ends) < len(starts):
                ends.append(chrom.length)
            for s, e in zip(starts, ends):
                s, e = min(s, chrom.length), min(e, chrom.length)
                if e > s:
                    ret.append((chrom.name, s, e))
        return ret

    def export(self, ncpu=1):
        """Finalized sequences for serialization.

        Returns:
            List of ``(channel, ChromosomeEntry, positions, depths)`` in
            channel order, chromosomes in presentation order.
        """
        self.finalize(ncpu)
        ret = []
        for ch in range(N_CHANNELS):
            for chrom in self.registry:
                positions, depths = self._final[ch][chrom.ref_index]
                ret.append((ch, chrom, positions, depths))
        return ret
