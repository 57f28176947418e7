# This file is part of IRCov.
#
# Licensed under MIT License.

"""Report writers and coverage export.

Functions accept plain result objects (rows, sums, maps) so they can be
called once all computation has completed.
"""

import logging as lg

import numpy as np
import pandas as pd

from .chromosomes import ChromosomeRegistry
from .coverage import N_CHANNELS, CoverageMap
from .summary import NONDIRECTIONAL, BlockRow, IRRow

IR_HEADER = [
    'Chr', 'Start', 'End', 'Name', 'Null', 'Strand', 'ExcludedBases', 'Coverage',
    'IntronDepth', 'IntronDepth25Percentile', 'IntronDepth50Percentile',
    'IntronDepth75Percentile', 'ExonToIntronReadsLeft', 'ExonToIntronReadsRight',
    'IntronDepthFirst50bp', 'IntronDepthLast50bp', 'SpliceLeft', 'SpliceRight',
    'SpliceExact', 'IRratio', 'Warnings',
]

BLOCK_HEADER = [
    'Chr', 'Start', 'End', 'Length', 'Bases', 'HistBins', 'TrimmedMean50',
    'TrimmedMean20', 'Coverage', 'Mean', 'Strand', 'Name',
    'Depth25Percentile', 'Depth50Percentile', 'Depth75Percentile',
]

NA_REP = 'NA'


def ir_report_frame(rows, directionality):
    """IR rows as a DataFrame with the report header."""
    header = list(IR_HEADER)
    header[0] = ('Dir_' if directionality != NONDIRECTIONAL else 'Nondir_') + header[0]
    df = pd.DataFrame(list(rows), columns=IRRow._fields)
    df.columns = header
    return df


def write_ir_report(rows, directionality, filename):
    ir_report_frame(rows, directionality).to_csv(filename, sep='\t', index=False, na_rep=NA_REP)


def qc_lines(sums, directionality):
    _s = sums.as_dict()
    if directionality == NONDIRECTIONAL:
        return [
            ('Non-Directional Clean IntronDepth Sum', _s['clean']),
            ('Non-Directional Known-Exon IntronDepth Sum', _s['known_exon']),
            ('Non-Directional Anti-Sense IntronDepth Sum', _s['anti_sense']),
        ]
    return [
        ('Directional Clean IntronDepth Sum', _s['clean']),
        ('Directional Known-Exon IntronDepth Sum', _s['known_exon']),
    ]


def write_qc(sums, directionality, filename):
    with open(filename, 'w') as outh:
        for label, value in qc_lines(sums, directionality):
            print(f'{label}\t{value}', file=outh)


def write_block_report(rows, filename):
    df = pd.DataFrame(list(rows), columns=BlockRow._fields)
    df.columns = BLOCK_HEADER
    df.to_csv(filename, sep='\t', index=False, na_rep=NA_REP)


def write_low_coverage(intervals, filename):
    """Tab-separated (chrom, start, end) rows without header."""
    df = pd.DataFrame(list(intervals), columns=['chrom', 'start', 'end'])
    df.to_csv(filename, sep='\t', index=False, header=False)


def write_junctions(junctions, filename):
    junctions.to_frame().to_csv(filename, sep='\t', index=False)


def save_coverage(coverage, filename, ncpu=1):
    """Write every finalized run-length sequence to a compressed npz archive."""
    registry = coverage.registry
    _by_ref = [registry.by_ref_index(i) for i in range(len(registry))]
    arrays = {
        '_chrom_names': np.array([c.name for c in _by_ref], dtype=str),
        '_chrom_lengths': np.array([c.length for c in _by_ref], dtype=np.int64),
    }
    for channel, chrom, positions, depths in coverage.export(ncpu):
        arrays[f'_pos_{channel}_{chrom.ref_index}'] = positions
        arrays[f'_depth_{channel}_{chrom.ref_index}'] = depths
    np.savez_compressed(filename, **arrays)
    lg.info(f'Saved coverage for {len(registry)} chromosomes to {filename}')


def load_coverage(filename):
    """Finalized :class:`CoverageMap` from a :func:`save_coverage` archive."""
    with np.load(filename) as loader:
        registry = ChromosomeRegistry.from_references(
            [str(n) for n in loader['_chrom_names']],
            loader['_chrom_lengths'].tolist(),
        )
        segments = [
            (ch, ref, loader[f'_pos_{ch}_{ref}'], loader[f'_depth_{ch}_{ref}'])
            for ch in range(N_CHANNELS) for ref in range(len(registry))
        ]
    return CoverageMap.from_segments(registry, segments)
