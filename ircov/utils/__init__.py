# This file is part of IRCov.
#
# Licensed under MIT License.
