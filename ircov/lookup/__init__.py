# This file is part of IRCov.
#
# Licensed under MIT License.

"""Splice junction and span-point lookups used by the region summary."""

from .abc import JunctionLookup, SpanLookup  # noqa: F401
from .junctions import JunctionCounts  # noqa: F401
from .spans import SpanCounts  # noqa: F401
