# This file is part of IRCov.
#
# Licensed under MIT License.

"""Blocked-region catalog and its reference file format.

The reference is a BED12-like, tab-separated file. Each region has a list of
sub-blocks (``blockSizes``/``blockStarts``) which are the intervals actually
measured, e.g. an intron after trimming overlapping exons. The region name
carries slash-delimited metadata parsed by :class:`IntronKey`.
"""

import logging as lg
from collections import namedtuple
from collections.abc import Sequence
from dataclasses import dataclass

BEDRow = namedtuple('BEDRow', ['chrom', 'start', 'end', 'name', 'score', 'strand', 'thick_start',
                               'thick_end', 'color', 'block_count', 'block_sizes', 'block_starts'])


class ReferenceFormatError(ValueError):
    """Malformed line in the blocked-region reference."""

    def __init__(self, lineno, message):
        super().__init__(f'Reference line {lineno}: {message}')
        self.lineno = lineno


class RegionFormatError(ValueError):
    """Unparseable metadata in a region name."""

    def __init__(self, index, name, message):
        super().__init__(f'Format error in name attribute of record {index} ({name!r}): {message}')
        self.index = index
        self.name = name


@dataclass(frozen=True)
class BlockedRegion:
    chrom: str
    start: int
    end: int
    name: str
    strand: bool
    blocks: tuple

    @property
    def strand_char(self):
        return '+' if self.strand else '-'


@dataclass(frozen=True)
class IntronKey:
    """Metadata encoded in a region name.

    Format: ``tag/gene/gene_id/strand/index/start/end/length/excl_bases/classification``
    where ``tag`` is ``dir`` or ``nd``. For example
    ``nd/SAMD11/ENSG00000187634/+/2/860569/861301/732/121/anti-over``.
    """
    tag: str
    gene_name: str
    gene_id: str
    intron_start: int
    intron_end: int
    excl_bases: int
    classification: str

    @classmethod
    def parse(cls, name, index=None):
        fields = name.split('/')
        if len(fields) < 10:
            raise RegionFormatError(index, name, f'expected 10 fields, found {len(fields)}')
        try:
            return cls(
                tag=fields[0],
                gene_name=fields[1],
                gene_id=fields[2],
                intron_start=int(fields[5]),
                intron_end=int(fields[6]),
                excl_bases=int(fields[8]),
                classification=fields[9],
            )
        except ValueError as exc:
            raise RegionFormatError(index, name, str(exc)) from exc

    @property
    def label(self):
        return f'{self.gene_name}/{self.gene_id}/{self.classification}'


def _parse_list(field):
    return [int(v) for v in field.split(',') if v.strip()]


def read_reference(fh):
    """Parse blocked regions from an open reference file.

    A line without the trailing block size/offset fields ends the input.
    """
    for lineno, line in enumerate(fh, start=1):
        if line.startswith('#'):
            continue
        fields = line.rstrip('\n').split('\t')
        if len(fields) < 12:
            break
        f = BEDRow(*fields[:12])
        try:
            start, end = int(f.start), int(f.end)
            n_blocks = int(f.block_count)
            sizes = _parse_list(f.block_sizes)
            offsets = _parse_list(f.block_starts)
        except ValueError as exc:
            raise ReferenceFormatError(lineno, str(exc)) from exc
        if len(sizes) < n_blocks or len(offsets) < n_blocks:
            raise ReferenceFormatError(lineno, f'{n_blocks} blocks declared, '
                                       f'{len(sizes)} sizes and {len(offsets)} offsets given')
        blocks = tuple((start + o, start + o + s) for o, s in zip(offsets[:n_blocks], sizes[:n_blocks]))
        yield BlockedRegion(f.chrom, start, end, f.name, f.strand == '+', blocks)


class RegionCatalog(Sequence):
    """Ordered, immutable collection of :class:`BlockedRegion`."""

    def __init__(self, regions):
        self._regions = tuple(regions)

    @classmethod
    def load(cls, filename):
        with open(filename) as fh:
            catalog = cls(read_reference(fh))
        lg.info(f'Loaded {len(catalog)} regions from {filename}')
        return catalog

    def __getitem__(self, i):
        return self._regions[i]

    def __len__(self):
        return len(self._regions)

    def partition(self, n):
        """Split into ``n`` contiguous index ranges covering the catalog in order."""
        if n < 1:
            raise ValueError('Number of partitions must be at least 1')
        size = 1 + len(self._regions) // n
        return [range(i * size, min((i + 1) * size, len(self._regions))) for i in range(n)]

    def boundaries(self):
        """Intron start and end positions per chromosome, from region names.

        Regions whose names do not carry intron metadata are skipped.
        """
        points = {}
        for i, region in enumerate(self._regions):
            try:
                key = IntronKey.parse(region.name, i)
            except RegionFormatError:
                continue
            points.setdefault(region.chrom, set()).update((key.intron_start, key.intron_end))
        return {chrom: sorted(p) for chrom, p in points.items()}
