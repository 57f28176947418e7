# This file is part of IRCov.
#
# Licensed under MIT License.

"""Chromosome registry shared by every coverage component.

Two orderings matter: ``ref_index`` follows the aligner (BAM header) and is
used to index every per-chromosome array, while iteration over the registry
follows the name-sorted presentation order used for all output.
"""

from dataclasses import dataclass

import pysam


@dataclass(frozen=True)
class ChromosomeEntry:
    name: str
    length: int
    ref_index: int


class ChromosomeRegistry:
    """Build-once, read-many mapping between chromosome names and ref indices."""

    def __init__(self, entries):
        self._by_ref = sorted(entries, key=lambda e: e.ref_index)
        if [e.ref_index for e in self._by_ref] != list(range(len(self._by_ref))):
            raise ValueError('Chromosome ref indices must be contiguous from 0')
        self._presentation = sorted(self._by_ref, key=lambda e: e.name)
        self._index = {e.name: e.ref_index for e in self._by_ref}
        if len(self._index) != len(self._by_ref):
            raise ValueError('Duplicate chromosome names in registry')

    @classmethod
    def from_references(cls, names, lengths):
        """Registry from parallel name/length lists in aligner order."""
        return cls([ChromosomeEntry(n, int(l), i) for i, (n, l) in enumerate(zip(names, lengths))])

    @classmethod
    def from_bam(cls, samfile):
        with pysam.AlignmentFile(samfile, check_sq=False) as sf:
            return cls.from_references(sf.references, sf.lengths)

    def __len__(self):
        return len(self._by_ref)

    def __iter__(self):
        return iter(self._presentation)

    def __eq__(self, other):
        if not isinstance(other, ChromosomeRegistry):
            return NotImplemented
        return self._by_ref == other._by_ref

    def __hash__(self):
        return hash(tuple(self._by_ref))

    def ref_index(self, name):
        """Aligner index for ``name``, or ``None`` if the chromosome is unknown."""
        return self._index.get(name)

    def by_ref_index(self, ref_index):
        return self._by_ref[ref_index]
