# destchoice
# See full license in LICENSE.txt.
from __future__ import annotations

from typing import NamedTuple


class ModeRestrictionCounts(NamedTuple):
    """persons of one mode restriction choice task"""

    chosen: int = 0
    failed: int = 0
    non_mobile: int = 0


class DistributionCounts(NamedTuple):
    """trips of one destination choice task"""

    distributed: int = 0
    failed: int = 0


def sum_counts(counts, counts_type):
    """
    Field-wise sum of the counts returned by the tasks of a phase.

    Parameters
    ----------
    counts : iterable of counts_type
    counts_type : NamedTuple class

    Returns
    -------
    counts_type
    """
    total = counts_type()
    for c in counts:
        total = counts_type(*(a + b for a, b in zip(total, c)))
    return total
