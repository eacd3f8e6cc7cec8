# destchoice
# See full license in LICENSE.txt.
from __future__ import annotations

import pandas as pd

from destchoice.core.exceptions import InputTableError


def simple_table_join(
    left: pd.DataFrame, right: pd.DataFrame, left_on: str
) -> pd.DataFrame:
    """
    Many-to-one join of right (by its index) onto the left_on column of left.

    The left index and row order are kept.  Columns of right that left already
    has are dropped rather than renamed.  Every left_on value must be found
    in the right index.

    Parameters
    ----------
    left, right : DataFrame
    left_on : str
        The name of the column of the left

    Returns
    -------
    DataFrame
    """
    intersection = set(left.columns).intersection(right.columns)
    intersection.discard(left_on)

    right = right.drop(list(intersection), axis=1)

    missing = ~left[left_on].isin(right.index)
    if missing.any():
        raise InputTableError(
            f"{missing.sum()} of {len(left)} rows have a {left_on} not in {right.index.name} "
            f"(e.g. {left[left_on][missing].iloc[0]})"
        )

    return left.join(right, on=left_on, how="left")
