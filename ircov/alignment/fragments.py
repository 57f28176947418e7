# This file is part of IRCov.
#
# Licensed under MIT License.

"""Alignment loading: BAM records to :class:`FragmentBlocks`.

Only primary, mapped, non-duplicate, QC-passing alignments are used. Mates
on the same chromosome are paired by query name; anything left unpaired is
emitted as a single-mate fragment. The fragment strand is the strand of
read 1 (read 2 is flipped).
"""

import functools
import logging as lg
from multiprocessing import Pool

import pysam

from ..core.blocks import FragmentBlocks

# CIGAR operations that advance along the reference inside an aligned block
_BLOCK_OPS = {pysam.CMATCH, pysam.CEQUAL, pysam.CDIFF, pysam.CDEL}


def read_blocks(aln):
    """``(start, length)`` blocks of an alignment, split only at skipped regions."""
    blocks = []
    pos = block_start = aln.reference_start
    for op, length in aln.cigartuples or ():
        if op in _BLOCK_OPS:
            pos += length
        elif op == pysam.CREF_SKIP:
            if pos > block_start:
                blocks.append((block_start, pos - block_start))
            pos += length
            block_start = pos
    if pos > block_start:
        blocks.append((block_start, pos - block_start))
    return tuple(blocks)


def is_usable(aln):
    return not (aln.is_unmapped or aln.is_secondary or aln.is_supplementary
                or aln.is_duplicate or aln.is_qcfail)


def fragment_direction(aln):
    """Fragment strand implied by one mate: ``True`` for forward."""
    if aln.is_paired and aln.is_read2:
        return aln.is_reverse
    return not aln.is_reverse


def fetch_fragments(sf, registry, chrom=None):
    """Yield fragments from an open alignment file.

    Args:
        sf: Open ``pysam.AlignmentFile``.
        registry: :class:`ChromosomeRegistry` matching the file header.
        chrom: Restrict to one chromosome (requires an index); ``None``
            reads the whole file sequentially.
    """
    _iter = sf.fetch(chrom) if chrom is not None else sf.fetch(until_eof=True)
    pending = {}
    for aln in _iter:
        if not is_usable(aln):
            continue
        ref = registry.ref_index(aln.reference_name)
        blocks = read_blocks(aln)
        if not aln.is_paired or aln.mate_is_unmapped or aln.next_reference_id != aln.reference_id:
            yield FragmentBlocks(ref, fragment_direction(aln), (blocks,))
            continue

        key = (aln.query_name, ref)
        mate = pending.pop(key, None)
        if mate is None:
            pending[key] = (aln.is_read1, fragment_direction(aln), blocks)
            continue
        mate_is_read1, mate_direction, mate_blocks = mate
        if mate_is_read1:
            yield FragmentBlocks(ref, mate_direction, (mate_blocks, blocks))
        else:
            yield FragmentBlocks(ref, fragment_direction(aln), (blocks, mate_blocks))

    for (_qname, ref), (_r1, direction, blocks) in pending.items():
        yield FragmentBlocks(ref, direction, (blocks,))


def _print_progress(nfrags, infolev=2500000):
    msg = f'...processed {nfrags / 1e6:.1f}M fragments'
    if nfrags % infolev == 0:
        lg.info(msg)
    else:
        lg.debug(msg)


def fetch_region(samfile, registry, processor_factory, chrom=None):
    """Run fresh processors over one chromosome (or the whole file).

    Returns:
        (processors, nfrags)
    """
    processors = processor_factory()
    nfrags = 0
    with pysam.AlignmentFile(samfile, check_sq=False) as sf:
        for frag in fetch_fragments(sf, registry, chrom):
            nfrags += 1
            if nfrags % 1000000 == 0:
                _print_progress(nfrags)
            for p in processors:
                p.process_fragment(frag)
    for p in processors:
        p.compact()
    return processors, nfrags


def load_processors(samfile, registry, processor_factory, ncpu=1):
    """Ingest an alignment file into combined processors.

    With an index and ``ncpu > 1`` each chromosome is loaded by a separate
    worker process into private processors; the parent combines them in
    aligner order once every worker has finished.

    Args:
        samfile: Path to a SAM/BAM file.
        registry: :class:`ChromosomeRegistry` for the file.
        processor_factory: Picklable callable returning a list of
            :class:`ReadBlockProcessor`.
        ncpu: Number of worker processes.

    Returns:
        (processors, nfrags): combined, not yet finalized processors and the
        number of fragments read.
    """
    with pysam.AlignmentFile(samfile, check_sq=False) as sf:
        has_index = sf.has_index()

    if not has_index or ncpu <= 1:
        if ncpu > 1:
            lg.info('Alignment file has no index; loading sequentially')
        return fetch_region(samfile, registry, processor_factory)

    lg.info('Loading alignments in parallel...')
    chroms = [registry.by_ref_index(i).name for i in range(len(registry))]
    with Pool(processes=ncpu) as pool:
        _loadfunc = functools.partial(fetch_region, samfile, registry, processor_factory)
        result = pool.map_async(_loadfunc, chroms)
        parts = result.get()

    processors = processor_factory()
    total = 0
    for part, nfrags in parts:
        total += nfrags
        for mine, theirs in zip(processors, part):
            mine.combine(theirs)
    return processors, total
