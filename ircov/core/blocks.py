# This file is part of IRCov.
#
# Licensed under MIT License.

"""Fragment block records and the processor interface that consumes them."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class FragmentBlocks:
    """Aligned blocks of one sequenced fragment.

    ``mates`` holds one tuple per mate, each a tuple of ``(start, length)``
    aligned blocks in reference coordinates. ``direction`` is ``True`` when
    the fragment maps to the forward strand.
    """
    ref_index: int
    direction: bool
    mates: tuple

    def iter_blocks(self):
        for mate in self.mates:
            yield from mate


class ReadBlockProcessor(ABC):
    """Consumes fragment blocks during alignment loading.

    Each loading worker owns private processor instances; the parent combines
    them in a fixed order once all workers have finished, then finalizes.
    """

    @abstractmethod
    def process_fragment(self, fragment) -> None:
        """Ingest one :class:`FragmentBlocks`."""

    @abstractmethod
    def combine(self, other) -> None:
        """Absorb ``other`` (same type) into this instance; ``other`` is consumed."""

    def compact(self) -> None:
        """Release transient ingest buffers; called before handing off to the parent."""

    def finalize(self, ncpu=1) -> None:
        """Prepare for read-only queries."""
