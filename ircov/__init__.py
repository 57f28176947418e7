# -*- coding: utf-8 -*-

# This file is part of IRCov.
#
# Licensed under MIT License.

__version__ = '0.1.0'
