# This file is part of IRCov.
#
# Licensed under MIT License.

"""Per-region depth summaries for intron retention.

For every relevant region of a :class:`RegionCatalog` the engine builds a
depth histogram from the finalized :class:`CoverageMap`, summarizes it, looks
up splice junction and span counts at the intron boundaries, and derives the
IR ratio and a warning label. The catalog is split into contiguous chunks,
one per worker, and rows are returned in catalog order.
"""

import logging as lg
import threading
from collections import Counter, namedtuple
from concurrent.futures import ThreadPoolExecutor

from .coverage import FORWARD, REVERSE, UNSTRANDED
from .histogram import coverage_fraction, hist_size, mean, percentile, trimmed_mean
from .regions import IntronKey, RegionFormatError

# Directionality of the library
NONDIRECTIONAL = 0
SAME_STRAND = 1
REVERSE_STRAND = -1

# Central percentage kept for intron depth
INTRON_CENTER = 40
# Edge depth windows: EDGE_WINDOW bases starting EDGE_OFFSET inside each boundary
EDGE_OFFSET = 5
EDGE_WINDOW = 50

IRRow = namedtuple('IRRow', [
    'chrom', 'start', 'end', 'name', 'null', 'strand', 'excluded_bases',
    'coverage', 'intron_depth', 'depth_p25', 'depth_p50', 'depth_p75',
    'span_left', 'span_right', 'depth_first50', 'depth_last50',
    'splice_left', 'splice_right', 'splice_exact', 'ir_ratio', 'warning',
])

BlockRow = namedtuple('BlockRow', [
    'chrom', 'start', 'end', 'length', 'bases', 'bins', 'trimmed_mean50',
    'trimmed_mean20', 'coverage', 'mean', 'strand', 'name',
    'depth_p25', 'depth_p50', 'depth_p75',
])

# Result of summarizing one region: exactly one of row/error is set
RegionOutcome = namedtuple('RegionOutcome', ['index', 'row', 'error'])


class IntronDepthSums:
    """Running intron depth totals by region classification.

    Additions are serialized with a lock so the instance can be shared by
    workers; the result does not depend on the order of additions.
    """

    BUCKETS = ('clean', 'known_exon', 'anti_sense')

    def __init__(self):
        self._lock = threading.Lock()
        self._sums = dict.fromkeys(self.BUCKETS, 0.0)

    def add(self, bucket, value):
        with self._lock:
            self._sums[bucket] += value

    def merge(self, other):
        for bucket, value in other.as_dict().items():
            self.add(bucket, value)

    def as_dict(self):
        with self._lock:
            return dict(self._sums)

    def __getitem__(self, bucket):
        return self.as_dict()[bucket]


def classification_bucket(classification, directionality):
    """Sum bucket for a region classification, or ``None`` if not summed."""
    if classification == 'clean':
        return 'clean'
    if 'known-exon' in classification:
        return 'known_exon'
    if directionality == NONDIRECTIONAL:
        return 'anti_sense'
    return None


def ir_ratio(depth, coverage, junction_left, junction_right):
    """Fraction of intronic versus spliced evidence."""
    if depth is None:
        return None
    spliced = max(junction_left, junction_right)
    if depth == 0 and junction_left == 0 and junction_right == 0:
        return 0.0
    if depth < 1:
        return coverage / (coverage + spliced)
    return depth / (depth + spliced)


def warning_label(depth, exact, junction_left, junction_right, span_left, span_right):
    """Classify the reliability of an IR measurement; ``-`` when no warning."""
    if exact + depth < 10:
        return 'LowCover'
    if exact < 4:
        return 'LowSplicing'
    if exact * 1.33333333 < max(junction_left, junction_right):
        return 'MinorIsoform'
    # Crossings must differ from intron depth by more than 2 and more than 50%
    span_max, span_min = max(span_left, span_right), min(span_left, span_right)
    if (span_max > depth + 2 and span_max > depth * 1.5) or \
            (span_min + 2 < depth and span_min * 1.5 < depth):
        return 'NonUniformIntronCover'
    return '-'


def _fan_out(func, chunks, ncpu):
    """Run ``func`` on every chunk, one task per chunk, results in chunk order."""
    if ncpu <= 1 or len(chunks) <= 1:
        return [func(c) for c in chunks]
    with ThreadPoolExecutor(max_workers=ncpu) as pool:
        futures = [pool.submit(func, c) for c in chunks]
        return [f.result() for f in futures]


class _RefCache:
    """Remembers the ref index of the last chromosome looked up."""

    def __init__(self, registry):
        self.registry = registry
        self.chrom = None
        self.ref = None

    def __call__(self, chrom):
        if chrom != self.chrom:
            self.chrom = chrom
            self.ref = self.registry.ref_index(chrom)
        return self.ref


class IRSummary:
    """Intron retention summary over a region catalog.

    Args:
        catalog: :class:`RegionCatalog`.
        coverage: finalized :class:`CoverageMap`.
        junctions: :class:`JunctionLookup`.
        spans: :class:`SpanLookup`.
        directionality: ``0`` non-directional, ``1`` reads on the region
            strand, ``-1`` reads on the opposite strand.
        ncpu: Number of worker threads.
    """

    def __init__(self, catalog, coverage, junctions, spans, directionality=NONDIRECTIONAL, ncpu=1):
        if directionality not in (NONDIRECTIONAL, SAME_STRAND, REVERSE_STRAND):
            raise ValueError(f'Invalid directionality: {directionality}')
        self.catalog = catalog
        self.coverage = coverage
        self.registry = coverage.registry
        self.junctions = junctions
        self.spans = spans
        self.directionality = directionality
        self.ncpu = max(1, ncpu)

    @property
    def directional(self):
        return self.directionality != NONDIRECTIONAL

    def is_relevant(self, region):
        return region.name.startswith('dir/' if self.directional else 'nd/')

    def summarize_region(self, index, region, ref_index, sums=None):
        """Summarize one region.

        Returns:
            :data:`RegionOutcome` with either a populated :data:`IRRow` or the
            :class:`RegionFormatError` raised while parsing the name.
        """
        try:
            key = IntronKey.parse(region.name, index)
        except RegionFormatError as exc:
            return RegionOutcome(index, None, exc)

        if self.directional:
            direction = region.strand if self.directionality == SAME_STRAND else not region.strand
            channel = FORWARD if direction else REVERSE
        else:
            direction = None
            channel = UNSTRANDED

        hist = self.coverage.fill_histogram(Counter(), channel, ref_index, region.blocks)
        depth = trimmed_mean(hist, INTRON_CENTER)
        coverage = coverage_fraction(hist)

        if sums is not None and depth is not None:
            bucket = classification_bucket(key.classification, self.directionality)
            if bucket is not None:
                sums.add(bucket, depth)

        chrom = region.chrom
        span_left = self.spans.lookup(chrom, key.intron_start, direction)
        span_right = self.spans.lookup(chrom, key.intron_end, direction)

        _s = key.intron_start + EDGE_OFFSET
        first50 = self.coverage.update_histogram(Counter(), channel, ref_index, _s, _s + EDGE_WINDOW)
        _e = key.intron_end - EDGE_OFFSET
        last50 = self.coverage.update_histogram(Counter(), channel, ref_index, _e - EDGE_WINDOW, _e)

        j_left = self.junctions.lookup_left(chrom, key.intron_start, direction)
        j_right = self.junctions.lookup_right(chrom, key.intron_end, direction)
        j_exact = self.junctions.lookup(chrom, key.intron_start, key.intron_end, direction)

        # An empty histogram has no depth; it is judged as zero evidence
        _depth = 0.0 if depth is None else depth
        row = IRRow(
            chrom=chrom,
            start=key.intron_start,
            end=key.intron_end,
            name=key.label,
            null=0,
            strand=region.strand_char,
            excluded_bases=key.excl_bases,
            coverage=coverage,
            intron_depth=depth,
            depth_p25=percentile(hist, 25),
            depth_p50=percentile(hist, 50),
            depth_p75=percentile(hist, 75),
            span_left=span_left,
            span_right=span_right,
            depth_first50=trimmed_mean(first50, INTRON_CENTER),
            depth_last50=trimmed_mean(last50, INTRON_CENTER),
            splice_left=j_left,
            splice_right=j_right,
            splice_exact=j_exact,
            ir_ratio=ir_ratio(depth, coverage, j_left, j_right),
            warning=warning_label(_depth, j_exact, j_left, j_right, span_left, span_right),
        )
        return RegionOutcome(index, row, None)

    def _run_chunk(self, indices):
        outcomes = []
        sums = IntronDepthSums()
        ref_of = _RefCache(self.registry)
        for i in indices:
            region = self.catalog[i]
            if not self.is_relevant(region):
                continue
            outcomes.append(self.summarize_region(i, region, ref_of(region.chrom), sums))
        return outcomes, sums

    def run(self, on_error='skip'):
        """Summarize every relevant region.

        Args:
            on_error: ``'skip'`` logs and drops regions with malformed names;
                ``'raise'`` raises the first :class:`RegionFormatError`.

        Returns:
            (rows, sums, errors): :data:`IRRow` list in catalog order,
            :class:`IntronDepthSums`, and the skipped format errors.
        """
        if on_error not in ('skip', 'raise'):
            raise ValueError(f'Invalid on_error: {on_error}')
        self.coverage.finalize(self.ncpu)

        chunks = self.catalog.partition(self.ncpu)
        results = _fan_out(self._run_chunk, chunks, self.ncpu)

        rows, errors = [], []
        sums = IntronDepthSums()
        for outcomes, chunk_sums in results:
            sums.merge(chunk_sums)
            for outcome in outcomes:
                if outcome.error is None:
                    rows.append(outcome.row)
                    continue
                if on_error == 'raise':
                    raise outcome.error
                lg.warning(f'Format error in name attribute - column 4 - of reference file. '
                           f'Record/line number: {outcome.index}')
                errors.append(outcome.error)
        lg.info(f'Summarized {len(rows)} regions ({len(errors)} skipped)')
        return rows, sums, errors


def block_summary(catalog, coverage, ncpu=1):
    """Generic unstranded depth summary of every region in a catalog.

    Returns:
        List of :data:`BlockRow` in catalog order.
    """
    coverage.finalize(ncpu)

    def _run_chunk(indices):
        ref_of = _RefCache(coverage.registry)
        rows = []
        for i in indices:
            region = catalog[i]
            hist = coverage.fill_histogram(Counter(), UNSTRANDED, ref_of(region.chrom), region.blocks)
            rows.append(BlockRow(
                chrom=region.chrom,
                start=region.start,
                end=region.end,
                length=region.end - region.start,
                bases=hist_size(hist),
                bins=sum(1 for n in hist.values() if n > 0),
                trimmed_mean50=trimmed_mean(hist, 50),
                trimmed_mean20=trimmed_mean(hist, 20),
                coverage=coverage_fraction(hist),
                mean=mean(hist),
                strand=region.strand_char,
                name=region.name,
                depth_p25=percentile(hist, 25),
                depth_p50=percentile(hist, 50),
                depth_p75=percentile(hist, 75),
            ))
        return rows

    chunks = catalog.partition(max(1, ncpu))
    return [row for rows in _fan_out(_run_chunk, chunks, ncpu) for row in rows]
