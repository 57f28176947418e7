# -*- coding: utf-8 -*-

# This file is part of IRCov.
#
# Licensed under MIT License.

""" IRCov count

"""
import functools
import logging as lg
import os
import sys
from time import time

from . import SubcommandOptions, collect_output_files, configure_logging
from .console import Stopwatch
from ..alignment.fragments import load_processors
from ..core.chromosomes import ChromosomeRegistry
from ..core.coverage import CoverageMap
from ..core.regions import RegionCatalog
from ..core.reporter import save_coverage, write_block_report, write_ir_report, write_junctions, write_qc
from ..core.summary import NONDIRECTIONAL, IRSummary, block_summary
from ..lookup import JunctionCounts, SpanCounts
from ..utils.helpers import format_minutes as fmtmins


class IRCovOptions(SubcommandOptions):

    def __init__(self, args):
        super().__init__(args)
        if getattr(self, 'logfile', None) is None:
            self.logfile = sys.stderr

    def outfile_path(self, suffix):
        basename = '%s-%s' % (self.exp_tag, suffix)
        return os.path.join(self.outdir, basename)


class CountOptions(IRCovOptions):

    OPTS = """
    - Input Options:
        - samfile:
            positional: True
            help: Path to alignment file (SAM or BAM). With an index, each
                  chromosome is loaded by a separate worker.
        - reference:
            positional: True
            help: Path to the blocked-region reference (BED12-like, region
                  names carry intron metadata).
        - ncpu:
            default: 1
            type: int
            help: Number of worker processes/threads.
    - Reporting Options:
        - quiet:
            action: store_true
            help: Silence (most) output.
        - verbose:
            action: store_true
            help: Show detailed progress.
        - debug:
            action: store_true
            help: Print debug messages.
        - logfile:
            type: argparse.FileType('w')
            help: Log output to this file.
        - outdir:
            default: .
            help: Output directory.
        - exp_tag:
            default: ircov
            help: Experiment tag
        - no_coverage:
            action: store_true
            help: Do not write the coverage archive.
    - Run Modes:
        - directionality:
            type: int
            default: 0
            choices:
                - 0
                - 1
                - -1
            help: >
                  Library strandedness. 0 - non-directional, coverage from
                  both strands and only "nd/" regions are reported; 1 - reads
                  map to the strand of the region; -1 - reads map to the
                  opposite strand. Directional runs report only "dir/"
                  regions.
        - report_mode:
            default: ir
            choices:
                - ir
                - generic
            help: >
                  "ir" - intron retention report with splice counts, IR ratio
                  and warnings; "generic" - unstranded depth summary of every
                  region (50% and 20% trimmed means, coverage, mean).
    """


def make_processors(registry, points):
    """Fresh coverage, junction and span processors for one loading worker."""
    return [CoverageMap(registry), JunctionCounts(registry), SpanCounts(registry, points)]


def run(args):
    """Load alignments, build coverage and write region summaries.

    Args:
        args: Parsed argparse namespace.
    """
    opts = CountOptions(args)
    console = configure_logging(opts)
    lg.info('\n{}\n'.format(opts))
    total_time = time()
    stopwatch = Stopwatch()

    console.banner(opts.version, 'count')
    console.section('Input')
    console.item('BAM', os.path.basename(opts.samfile))
    console.item('Reference', os.path.basename(opts.reference))
    console.item('Mode', '{} ({})'.format(
        opts.report_mode,
        'non-directional' if opts.directionality == NONDIRECTIONAL else 'directional'))
    console.blank()

    stopwatch.start('Reference')
    lg.info('Loading reference...')
    catalog = RegionCatalog.load(opts.reference)
    registry = ChromosomeRegistry.from_bam(opts.samfile)
    console.verbose('Loaded {:,} regions on {:,} chromosomes'.format(len(catalog), len(registry)))

    stopwatch.start('Alignment')
    lg.info('Loading alignments...')
    stime = time()
    _factory = functools.partial(make_processors, registry, catalog.boundaries())
    (coverage, junctions, spans), nfrags = load_processors(opts.samfile, registry, _factory, opts.ncpu)
    lg.info('Loaded alignment in {}'.format(fmtmins(time() - stime)))
    console.status('Loading alignment... done ({:.1f}s)'.format(time() - stime))
    console.detail('{:,} fragments, {:,} distinct junctions'.format(nfrags, len(junctions)))
    console.blank()

    stopwatch.start('Finalize')
    coverage.finalize(opts.ncpu)

    stopwatch.start('Summarize')
    if opts.report_mode == 'ir':
        summary = IRSummary(catalog, coverage, junctions, spans,
                            directionality=opts.directionality, ncpu=opts.ncpu)
        rows, sums, errors = summary.run()
        console.status('Summarized {:,} regions'.format(len(rows)))
        if errors:
            console.detail('{:,} regions skipped with malformed names'.format(len(errors)))
    else:
        rows = block_summary(catalog, coverage, ncpu=opts.ncpu)
        console.status('Summarized {:,} regions'.format(len(rows)))

    stopwatch.start('Output')
    os.makedirs(opts.outdir, exist_ok=True)
    if opts.report_mode == 'ir':
        write_ir_report(rows, opts.directionality, opts.outfile_path('IntronDepth.txt'))
        write_qc(sums, opts.directionality, opts.outfile_path('IntronDepth-QC.txt'))
    else:
        write_block_report(rows, opts.outfile_path('CoverageBlocks.txt'))
    write_junctions(junctions, opts.outfile_path('junctions.txt'))
    if not opts.no_coverage:
        save_coverage(coverage, opts.outfile_path('coverage.npz'), ncpu=opts.ncpu)
    stopwatch.stop()

    console.blank()
    console.section('Output')
    for f in collect_output_files(opts.outdir, opts.exp_tag):
        console.output_file(f)
    console.blank()
    console.timing_table(stopwatch)
    console.blank()
    lg.info('ircov count complete (%s)' % fmtmins(time() - total_time))
