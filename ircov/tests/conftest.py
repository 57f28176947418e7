# This file is part of IRCov.
#
# Licensed under MIT License.

"""Shared fixtures: a small chromosome registry and an indexed test BAM."""

import pysam
import pytest

from ircov.core.chromosomes import ChromosomeRegistry
from ircov.tests import make_segment


@pytest.fixture
def registry():
    """chr2 is first in aligner order, chr1 first in presentation order."""
    return ChromosomeRegistry.from_references(['chr2', 'chr1'], [1000, 500])


# Region used with the test BAM: intron chr1:150-350 measured in full
REFERENCE_LINES = [
    'chr1\t150\t350\tnd/GENE1/ID1/+/1/150/350/200/0/clean\t0\t+\t150\t350\t255,0,0\t1\t200\t0\n',
    'chr1\t150\t350\tdir/GENE1/ID1/+/1/150/350/200/0/clean\t0\t+\t150\t350\t255,0,0\t1\t200\t0\n',
]


@pytest.fixture
def bam_file(tmp_path):
    """Indexed BAM: one spliced pair on chr1, one single read on chr2.

    A duplicate and a secondary alignment on chr2 must be ignored.
    """
    path = str(tmp_path / 'test.bam')
    header = {
        'HD': {'VN': '1.6', 'SO': 'coordinate'},
        'SQ': [{'SN': 'chr1', 'LN': 5000}, {'SN': 'chr2', 'LN': 3000}],
    }
    with pysam.AlignmentFile(path, 'wb', header=header) as out:
        # read1 forward, spliced 100-150 ^ 350-400
        out.write(make_segment(out.header, 'pair1', 99, 0, 100, [(0, 50), (3, 200), (0, 50)], 0, 500))
        # read2 reverse
        out.write(make_segment(out.header, 'pair1', 147, 0, 500, [(0, 100)], 0, 100))
        out.write(make_segment(out.header, 'single1', 0, 1, 10, [(0, 50)]))
        out.write(make_segment(out.header, 'dup1', 1024, 1, 20, [(0, 50)]))
        out.write(make_segment(out.header, 'sec1', 256, 1, 30, [(0, 50)]))
    pysam.index(path)
    return path


@pytest.fixture
def reference_file(tmp_path):
    path = tmp_path / 'reference.bed'
    path.write_text(''.join(REFERENCE_LINES))
    return str(path)
