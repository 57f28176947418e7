#! /usr/bin/env python
# -*- coding: utf-8 -*-

# This file is part of IRCov.
#
# Licensed under MIT License.

""" Main functionality of IRCov

"""
import sys
import argparse

from ircov import __version__
from .cli import count as cli_count
from .cli import mappability as cli_mappability


USAGE = ''' %(prog)s <command> [<args>]

The most commonly used commands are:
   count          Build coverage from alignments and summarize intron depth
   mappability    Report low-coverage (unmappable) genome ranges

'''


def main():
    if len(sys.argv) == 1:
        empty_parser = argparse.ArgumentParser(
            description='Coverage depth summaries for intron retention analysis',
            usage=USAGE,
        )
        empty_parser.print_help(sys.stderr)
        sys.exit(1)

    parser = argparse.ArgumentParser(
        description='Coverage depth summaries for intron retention analysis',
    )
    parser.add_argument('--version',
        action='version',
        version=__version__,
        default=__version__,
    )

    subparser = parser.add_subparsers(help='Sub-command help', dest='subcommand')

    ''' Parser for count '''
    count_parser = subparser.add_parser('count',
        description='''Build coverage from alignments and summarize intron depth''',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    cli_count.CountOptions.add_arguments(count_parser)
    count_parser.set_defaults(func=cli_count.run)

    ''' Parser for mappability '''
    mappability_parser = subparser.add_parser('mappability',
        description='''Report genome ranges at or below a depth threshold''',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    cli_mappability.MappabilityOptions.add_arguments(mappability_parser)
    mappability_parser.set_defaults(func=cli_mappability.run)

    args = parser.parse_args()
    args.func(args)


if __name__ == '__main__':
    main()
