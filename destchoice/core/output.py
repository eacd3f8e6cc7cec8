# destchoice
# See full license in LICENSE.txt.
from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd

from destchoice.abm.tables.constants import as_mode_restriction, as_purpose

logger = logging.getLogger(__name__)

LOGSUM_COLUMNS = ["purpose", "modeRestriction", "origin", "destination", "logsum"]


def logsum_matrix_frame(purpose, mode_restriction, matrix):
    """
    Long form of one logsum matrix with purpose and mode restriction columns

    Parameters
    ----------
    purpose : Purpose, int or str
    mode_restriction : ModeRestriction, int or str
    matrix : IndexedMatrix2D

    Returns
    -------
    pandas.DataFrame
        one row per origin destination pair, columns LOGSUM_COLUMNS
    """
    df = matrix.to_long_frame(value_name="logsum")
    df.insert(0, "modeRestriction", as_mode_restriction(mode_restriction).name)
    df.insert(0, "purpose", as_purpose(purpose).name)
    return df[LOGSUM_COLUMNS]


def write_logsum_matrices(logsums, file_path):
    """
    Write logsum matrices of many (purpose, mode restriction) pairs to one csv file.

    Parameters
    ----------
    logsums : dict
        maps (purpose, mode_restriction) to IndexedMatrix2D, rows are written in dict order
    file_path : Path-like

    Returns
    -------
    Path
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    frames = [
        logsum_matrix_frame(purpose, mode_restriction, matrix)
        for (purpose, mode_restriction), matrix in logsums.items()
    ]
    df = pd.concat(frames, ignore_index=True) if frames else pd.DataFrame(columns=LOGSUM_COLUMNS)

    logger.info(f"writing {len(frames)} logsum matrices ({len(df)} rows) to {file_path}")
    df.to_csv(file_path, mode="w", index=False)

    return file_path


def write_logsum_matrix(purpose, mode_restriction, matrix, output_dir):
    """
    Write a single logsum matrix to <output_dir>/<purpose>_<mode_restriction>_logsums.csv

    Returns
    -------
    Path
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    file_path = output_dir.joinpath(
        f"{as_purpose(purpose).name}_{as_mode_restriction(mode_restriction).name}_logsums.csv"
    )
    matrix.to_long_frame(value_name="logsum").to_csv(file_path, mode="w", index=False)

    logger.debug(f"wrote logsum matrix to {file_path}")
    return file_path
