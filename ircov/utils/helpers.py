# This file is part of IRCov.
#
# Licensed under MIT License.


def format_minutes(seconds):
    """Format elapsed seconds as ``'M minutes and S secs'``."""
    mins, secs = divmod(int(seconds), 60)
    if mins == 0:
        return f'{secs} secs'
    return f'{mins} minutes and {secs} secs'
