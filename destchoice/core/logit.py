# destchoice
# See full license in LICENSE.txt.
from __future__ import annotations

import logging
import warnings

import numpy as np
import pandas as pd

from destchoice.core import tracing
from destchoice.core.exceptions import (
    InvalidUtilityError,
    MissingCoefficientError,
    ProbabilitySumWarning,
)

logger = logging.getLogger(__name__)

EXP_UTIL_MIN = 1e-300
EXP_UTIL_MAX = np.inf

PROB_MIN = 0.0
PROB_MAX = 1.0

# probabilities deviating more than this from 1 are logged
BAD_PROB_THRESHOLD = 0.1

NESTING_COEFFICIENT = "nestingCoefficient"


def utils_to_probs(utils, trace_label=None):
    """
    Convert a table of utilities to multinomial logit probabilities.

    Unavailable alternatives carry a utility of -inf and get a probability of 0.
    Utilities are shifted by their row maximum before exponentiation, so rows
    of very large or very small finite utilities still sum to 1.

    Parameters
    ----------
    utils : pandas.DataFrame
        Rows should be choosers and columns should be alternatives.
    trace_label : str
        label for reporting bad utility values

    Returns
    -------
    probs : pandas.DataFrame
        Will have the same index and columns as `utils`.
        Rows in which every alternative is unavailable have all zero
        probabilities (and do not sum to 1.0), callers treat them as failed choices.
    """
    trace_label = tracing.extend_trace_label(trace_label, "utils_to_probs")

    utils_arr = utils.to_numpy(dtype=np.float64)

    if np.isnan(utils_arr).any() or np.isposinf(utils_arr).any():
        raise InvalidUtilityError(
            "%s: NaN or infinite utilities for %s rows"
            % (trace_label, (np.isnan(utils_arr) | np.isposinf(utils_arr)).any(axis=1).sum())
        )

    # shift each row by its largest available utility, all unavailable rows stay -inf
    row_max = utils_arr.max(axis=1, initial=-np.inf, keepdims=True)
    row_max[np.isneginf(row_max)] = 0.0
    utils_arr = np.exp(utils_arr - row_max)

    np.clip(utils_arr, EXP_UTIL_MIN, EXP_UTIL_MAX, out=utils_arr)

    utils_arr = np.where(utils_arr == EXP_UTIL_MIN, 0.0, utils_arr)

    arr_sum = utils_arr.sum(axis=1)

    zero_probs = arr_sum == 0.0
    if zero_probs.any():
        logger.debug(
            "%s: all alternatives unavailable for %s rows" % (trace_label, zero_probs.sum())
        )

    with np.errstate(invalid="ignore", divide="ignore"):
        np.divide(utils_arr, arr_sum.reshape(len(utils_arr), 1), out=utils_arr)

    # all zero rows divide to NaN
    utils_arr[np.isnan(utils_arr)] = PROB_MIN

    np.clip(utils_arr, PROB_MIN, PROB_MAX, out=utils_arr)

    probs = pd.DataFrame(utils_arr, columns=utils.columns, index=utils.index)

    return probs


mnl_probabilities = utils_to_probs


def select(weights, prng):
    """
    Weighted random draw of one index from an array of non-negative weights.

    The weights need not sum to 1, they are normalized by their sum.

    Parameters
    ----------
    weights : 1-D array-like of float
    prng : numpy.random.RandomState

    Returns
    -------
    int
        index of the selected weight, or -1 if the weights do not sum to a positive value
    """
    weights = np.asanyarray(weights, dtype=np.float64)
    cum_weights = np.cumsum(weights)
    total = cum_weights[-1] if len(cum_weights) else 0.0
    if not total > 0.0:
        return -1
    rand = prng.random_sample() * total
    choice = int(np.searchsorted(cum_weights, rand, side="right"))
    # guard against rand landing on total through rounding
    return min(choice, len(weights) - 1)


def make_choices(probs, prng, trace_label=None):
    """
    Make choices for each chooser from among a set of alternatives.

    Parameters
    ----------
    probs : pandas.DataFrame
        Rows for choosers and columns for the alternatives from which they
        are choosing. Rows are expected to sum to 1, rows that deviate by more
        than BAD_PROB_THRESHOLD raise a ProbabilitySumWarning but are still sampled (the draw
        renormalizes by the row sum).
    prng : numpy.random.RandomState
        task owned random state, one rand is drawn for every row with a positive sum

    Returns
    -------
    choices : pandas.Series
        Maps chooser IDs (from `probs` index) to a choice, where the choice
        is an index into the columns of `probs`, or -1 for rows whose
        probabilities sum to zero or less.
    """
    trace_label = tracing.extend_trace_label(trace_label, "make_choices")

    probs_arr = probs.to_numpy(dtype=np.float64)
    prob_sums = probs_arr.sum(axis=1)

    bad_probs = (np.abs(prob_sums - 1.0) > BAD_PROB_THRESHOLD) & (prob_sums > 0)
    if bad_probs.any():
        warnings.warn(
            "%s: probabilities do not add up to 1 for %s of %s rows (first %s %s)"
            % (
                trace_label,
                bad_probs.sum(),
                len(probs),
                probs.index.name,
                probs.index[np.argmax(bad_probs)],
            ),
            ProbabilitySumWarning,
            stacklevel=2,
        )

    choices = np.full(len(probs_arr), -1, dtype=np.int64)
    for i in range(len(probs_arr)):
        choices[i] = select(probs_arr[i], prng)

    return pd.Series(choices, index=probs.index)


class Nest(object):
    """
    A nest of a two level nested logit model: the elemental alternatives
    sharing one nesting coefficient.
    """

    def __init__(self, alternatives, coefficient):
        self.alternatives = tuple(alternatives)
        self.coefficient = float(coefficient)

    def __repr__(self):
        return "Nest(%s, coefficient=%s)" % (list(self.alternatives), self.coefficient)

    def __eq__(self, other):
        return (
            isinstance(other, Nest)
            and self.alternatives == other.alternatives
            and self.coefficient == other.coefficient
        )

    def scale(self, top_scale=1.0):
        """nest scale parameter of this nest under a top level scale parameter"""
        return top_scale / self.coefficient


def identify_nests(coefficients, alternatives=None, nest_key=NESTING_COEFFICIENT):
    """
    Group alternatives with numerically equal nesting coefficients into nests.

    Parameters
    ----------
    coefficients : pandas.DataFrame
        coefficient table with a nest_key row and one column per elemental alternative
    alternatives : list, optional
        alternatives to group, defaults to all columns of coefficients
    nest_key : str
        coefficient row holding the nesting coefficient

    Returns
    -------
    list of Nest
        in order of first encounter of each distinct coefficient
    """
    if nest_key not in coefficients.index:
        raise MissingCoefficientError(f"nesting coefficient '{nest_key}' not in coefficients")
    alternatives = list(coefficients.columns if alternatives is None else alternatives)

    nests = {}
    for alternative in alternatives:
        coefficient = float(coefficients.at[nest_key, alternative])
        if not np.isfinite(coefficient) or coefficient == 0.0:
            raise InvalidUtilityError(
                f"{nest_key} of {alternative} is {coefficient}"
            )
        nests.setdefault(coefficient, []).append(alternative)
    return [Nest(alts, coefficient) for coefficient, alts in nests.items()]


def restrict_nests(nests, available, top_scale=1.0):
    """
    Intersect nests with the available alternatives.

    Parameters
    ----------
    nests : list of Nest
    available : collection of alternatives
    top_scale : float

    Returns
    -------
    list of (tuple of alternatives, nest scale)
        empty nests are dropped (they add nothing to the aggregate)
    """
    available = set(available)
    restricted = []
    for nest in nests:
        alternatives = tuple(a for a in nest.alternatives if a in available)
        if alternatives:
            restricted.append((alternatives, nest.scale(top_scale)))
    return restricted


def nested_logsum_aggregate(
    utilities, distance_coefficients, nests, log_distance, top_scale=1.0
):
    """
    Nested logit aggregate over modes for each element of an array of log distances.

    For every element computes

        (sum over nests of exp(top_scale * log(nest_sum) / nest_scale)) ** (1 / top_scale)

    where nest_sum is the sum over the nest's modes of

        exp(nest_scale * (utility + log_distance * distance_coefficient))

    This is the exponentiated logsum, not its log.

    Parameters
    ----------
    utilities : mapping of alternative to float
    distance_coefficients : mapping of alternative to float
    nests : list of (tuple of alternatives, nest scale)
        as returned by restrict_nests
    log_distance : numpy.ndarray
        log of distances (any shape)
    top_scale : float

    Returns
    -------
    numpy.ndarray
        same shape as log_distance
    """
    exp_sum_root = np.zeros_like(log_distance, dtype=np.float64)
    with np.errstate(over="ignore", invalid="ignore", divide="ignore"):
        for alternatives, nest_scale in nests:
            exp_nest_sum = np.zeros_like(exp_sum_root)
            for alternative in alternatives:
                exp_nest_sum += np.exp(
                    nest_scale
                    * (
                        utilities[alternative]
                        + log_distance * distance_coefficients[alternative]
                    )
                )
            exp_sum_root += np.exp(top_scale * np.log(exp_nest_sum) / nest_scale)
        return np.power(exp_sum_root, 1.0 / top_scale)
