# This file is part of IRCov.
#
# Licensed under MIT License.

import pysam

from ircov.core.blocks import FragmentBlocks


def frag(ref, direction, *blocks):
    """Single-mate fragment from (start, length) blocks."""
    return FragmentBlocks(ref, direction, (tuple(blocks),))


def make_segment(header, name, flag, ref_id, start, cigar, mate_ref=-1, mate_start=-1):
    a = pysam.AlignedSegment(header)
    a.query_name = name
    a.flag = flag
    a.reference_id = ref_id
    a.reference_start = start
    a.mapping_quality = 60
    a.cigartuples = cigar
    qlen = sum(n for op, n in cigar if op in (0, 1, 4, 7, 8))
    a.query_sequence = 'A' * qlen
    a.query_qualities = pysam.qualitystring_to_array('I' * qlen)
    a.next_reference_id = mate_ref
    a.next_reference_start = mate_start
    return a
