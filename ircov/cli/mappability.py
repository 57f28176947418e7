# -*- coding: utf-8 -*-

# This file is part of IRCov.
#
# Licensed under MIT License.

""" IRCov mappability

Reports genome ranges whose unstranded depth is at or below a threshold,
typically from alignments of synthetic reads tiled across the genome.
"""
import functools
import logging as lg
import os
from time import time

from . import configure_logging
from .console import Stopwatch
from .count import IRCovOptions
from ..alignment.fragments import load_processors
from ..core.chromosomes import ChromosomeRegistry
from ..core.coverage import CoverageMap
from ..core.reporter import load_coverage, write_low_coverage
from ..utils.helpers import format_minutes as fmtmins


class MappabilityOptions(IRCovOptions):

    OPTS = """
    - Input Options:
        - infile:
            positional: True
            help: Alignment file (SAM/BAM) or a coverage archive (.npz)
                  written by "ircov count".
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
    - Run Modes:
        - threshold:
            type: int
            default: 4
            help: Ranges with depth at or below this value are excluded.
    """


def make_coverage(registry):
    return [CoverageMap(registry)]


def run(args):
    opts = MappabilityOptions(args)
    console = configure_logging(opts)
    lg.info('\n{}\n'.format(opts))
    total_time = time()
    stopwatch = Stopwatch()

    console.banner(opts.version, 'mappability')
    console.item('Input', os.path.basename(opts.infile))
    console.item('Threshold', opts.threshold)
    console.blank()

    stopwatch.start('Coverage')
    if opts.infile.endswith('.npz'):
        coverage = load_coverage(opts.infile)
    else:
        registry = ChromosomeRegistry.from_bam(opts.infile)
        (coverage,), nfrags = load_processors(
            opts.infile, registry, functools.partial(make_coverage, registry), opts.ncpu)
        console.detail('{:,} fragments'.format(nfrags))

    stopwatch.start('Exclusions')
    intervals = coverage.low_coverage_intervals(opts.threshold, ncpu=opts.ncpu)
    os.makedirs(opts.outdir, exist_ok=True)
    outfile = opts.outfile_path('MappabilityExclusion.bed')
    write_low_coverage(intervals, outfile)
    stopwatch.stop()

    console.status('{:,} excluded ranges'.format(len(intervals)))
    console.output_file(os.path.basename(outfile))
    console.blank()
    console.timing_table(stopwatch)
    lg.info('ircov mappability complete (%s)' % fmtmins(time() - total_time))
