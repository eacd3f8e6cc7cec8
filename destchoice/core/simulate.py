# destchoice
# See full license in LICENSE.txt.
from __future__ import annotations

import logging

import numpy as np
import pandas as pd

from destchoice.core import tracing
from destchoice.core.exceptions import (
    InvalidUtilityError,
    MissingCoefficientError,
    ModelConfigurationError,
)

logger = logging.getLogger(__name__)

INTERCEPT = "INTERCEPT"
COEFFICIENT_NAME = "coefficient_name"


def read_model_coefficients(file_path, alternatives=None):
    """
    Read a coefficients file with one row per predictor and one column per alternative

    Parameters
    ----------
    file_path : Path-like
    alternatives : list of str, optional
        alternative columns the table must provide, other columns are dropped

    Returns
    -------
    coefficients : pandas.DataFrame
        index is coefficient_name, columns are alternatives
    """

    logger.debug(f"read_model_coefficients file_path {file_path}")
    try:
        coefficients = pd.read_csv(file_path, comment="#", index_col=COEFFICIENT_NAME)
    except ValueError:
        logger.exception("Coefficient File Invalid: %s" % str(file_path))
        raise

    coefficients.columns = coefficients.columns.str.strip()
    coefficients.index = coefficients.index.str.strip()

    if alternatives is not None:
        missing = [a for a in alternatives if a not in coefficients.columns]
        if missing:
            raise ModelConfigurationError(
                f"coefficients file {file_path} has no column for alternatives {missing}"
            )
        coefficients = coefficients[list(alternatives)]

    return validate_coefficients(coefficients, label=str(file_path))


def validate_coefficients(coefficients, label=None):
    """
    Check a coefficient table for duplicate or null coefficients and a missing intercept.
    """
    if coefficients.index.duplicated().any():
        logger.warning(
            f"duplicate coefficients in {label}\n"
            f"{coefficients[coefficients.index.duplicated(keep=False)]}"
        )
        raise ModelConfigurationError(f"duplicate coefficients in {label}")

    if coefficients.isnull().any(axis=None):
        logger.warning(
            f"null coefficients in {label}\n"
            f"{coefficients[coefficients.isnull().any(axis=1)]}"
        )
        raise ModelConfigurationError(f"null coefficients in {label}")

    if INTERCEPT not in coefficients.index:
        raise MissingCoefficientError(f"{INTERCEPT} coefficient missing in {label}")

    return coefficients.astype(np.float64)


def coefficient_for(coefficients, coefficient_name, alternatives=None):
    """
    Return one required coefficient row as a float array ordered like alternatives

    Parameters
    ----------
    coefficients : pandas.DataFrame
        coefficient table (coefficient_name index, alternative columns)
    coefficient_name : str
    alternatives : list of str, optional
        defaults to all columns of coefficients

    Returns
    -------
    numpy.ndarray
    """
    if coefficient_name not in coefficients.index:
        raise MissingCoefficientError(
            f"required coefficient '{coefficient_name}' not in coefficients"
        )
    alternatives = coefficients.columns if alternatives is None else alternatives
    return coefficients.loc[coefficient_name, list(alternatives)].to_numpy(dtype=np.float64)


def eval_utilities(
    predictors, coefficients, alternatives=None, required=True, trace_label=None
):
    """
    Evaluate linear-in-parameters utilities for a table of choosers.

    Each predictor column is multiplied by the coefficient of the same name,
    the intercept is added and the products are summed for each alternative.

    Parameters
    ----------
    predictors : pandas.DataFrame
        one row per chooser, one column per predictor name
    coefficients : pandas.DataFrame
        coefficient_name index, one column per alternative
    alternatives : list of str, optional
        alternative columns to evaluate, defaults to all columns of coefficients
    required : bool
        if True, every predictor must have a coefficient (MissingCoefficientError otherwise),
        if False predictors without a coefficient contribute nothing.
        The intercept is always required.
    trace_label : str

    Returns
    -------
    utilities : pandas.DataFrame
        same index as predictors, one column per alternative
    """
    trace_label = tracing.extend_trace_label(trace_label, "eval_utilities")

    if INTERCEPT not in coefficients.index:
        raise MissingCoefficientError(f"{trace_label}: {INTERCEPT} coefficient missing")

    alternatives = list(coefficients.columns if alternatives is None else alternatives)
    predictor_names = [c for c in predictors.columns if c != INTERCEPT]

    if required:
        missing = [c for c in predictor_names if c not in coefficients.index]
        if missing:
            raise MissingCoefficientError(
                f"{trace_label}: required coefficients {missing} missing"
            )

    # predictors without coefficient default to 0.0
    coefficient_values = coefficients.reindex(
        index=predictor_names, columns=alternatives, fill_value=0.0
    ).to_numpy(dtype=np.float64)
    intercept = coefficients.loc[INTERCEPT, alternatives].to_numpy(dtype=np.float64)

    with np.errstate(invalid="ignore", over="ignore"):
        utils_arr = predictors[predictor_names].to_numpy(dtype=np.float64) @ coefficient_values
        utils_arr = utils_arr + intercept

    utilities = pd.DataFrame(utils_arr, index=predictors.index, columns=alternatives)

    report_bad_utilities(utilities, trace_label)

    return utilities


def report_bad_utilities(utilities, trace_label, msg="non-finite utilities"):
    """
    Raise InvalidUtilityError if any utility is NaN or infinite.
    """
    MAX_PRINT = 10

    bad = ~np.isfinite(utilities.to_numpy())
    if not bad.any():
        return

    rows, cols = np.nonzero(bad)
    msg_with_count = "%s %s for %s of %s rows" % (
        trace_label,
        msg,
        len(np.unique(rows)),
        len(utilities),
    )
    logger.warning(msg_with_count)

    for row, col in list(zip(rows, cols))[:MAX_PRINT]:
        logger.warning(
            "%s : %s in: %s = %s alternative = %s utility = %s"
            % (
                trace_label,
                msg,
                utilities.index.name,
                utilities.index[row],
                utilities.columns[col],
                utilities.iat[row, col],
            )
        )

    row, col = rows[0], cols[0]
    raise InvalidUtilityError(
        "%s (first at %s %s, alternative %s)"
        % (msg_with_count, utilities.index.name, utilities.index[row], utilities.columns[col])
    )
