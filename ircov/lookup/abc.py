# This file is part of IRCov.
#
# Licensed under MIT License.

"""Abstract lookup interfaces queried by the region summary engine.

``direction`` selects the strand: ``True`` forward, ``False`` reverse, and
``None`` sums both strands (non-directional runs).
"""

from abc import ABC, abstractmethod


class JunctionLookup(ABC):
    """Spliced read counts keyed by intron coordinates."""

    @abstractmethod
    def lookup_left(self, chrom: str, start: int, direction=None) -> int:
        """Reads spliced at ``start`` (any right end)."""

    @abstractmethod
    def lookup_right(self, chrom: str, end: int, direction=None) -> int:
        """Reads spliced at ``end`` (any left end)."""

    @abstractmethod
    def lookup(self, chrom: str, start: int, end: int, direction=None) -> int:
        """Reads spliced exactly from ``start`` to ``end``."""


class SpanLookup(ABC):
    """Counts of reads continuously spanning a reference point."""

    @abstractmethod
    def lookup(self, chrom: str, pos: int, direction=None) -> int:
        """Reads spanning ``pos``."""
