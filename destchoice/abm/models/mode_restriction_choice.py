# destchoice
# See full license in LICENSE.txt.
from __future__ import annotations

import logging
from functools import partial

import numpy as np
import pandas as pd

from destchoice.abm.models.util.counts import ModeRestrictionCounts, sum_counts
from destchoice.abm.models.util.predictors import mode_restriction_predictors
from destchoice.abm.tables.constants import (
    MODE_RESTRICTION_NAMES,
    RESTRICTED_MODES,
    RRT_MODE_RESTRICTIONS,
    Mode,
    Purpose,
)
from destchoice.abm.tables.persons import has_trips, trip_count_column
from destchoice.core import concurrency, config, logit, simulate, tracing

logger = logging.getLogger(__name__)

STEP_NAME = "mode_restriction_choice"


def read_mode_restriction_coefficients(configs_dir, settings):
    """coefficient table with one column per mode restriction"""
    file_path = config.config_file_path(configs_dir, settings.MODE_RESTRICTION_COEFFICIENTS)
    return simulate.read_model_coefficients(file_path, alternatives=MODE_RESTRICTION_NAMES)


def available_mode_restrictions(persons_merged: pd.DataFrame) -> pd.DataFrame:
    """
    Mode restrictions each person may choose from.

    Persons with round trip recreation trips only consider the mode restrictions
    in RRT_MODE_RESTRICTIONS.  Persons with a dominant commute mode only keep the
    mode restrictions that include it.

    Returns
    -------
    pandas.DataFrame
        bool, indexed like persons_merged, one column per mode restriction
    """
    available = np.ones((len(persons_merged), len(MODE_RESTRICTION_NAMES)), dtype=bool)

    rrt_options = np.zeros(len(MODE_RESTRICTION_NAMES), dtype=bool)
    rrt_options[list(RRT_MODE_RESTRICTIONS)] = True
    has_rrt = persons_merged[trip_count_column(Purpose.RRT)].to_numpy() > 0
    available[has_rrt] &= rrt_options

    commute_mode = persons_merged.dominant_commute_mode.to_numpy()
    for mode in Mode:
        commuters = commute_mode == mode.name
        available[commuters] &= RESTRICTED_MODES[:, mode]

    return pd.DataFrame(
        available, index=persons_merged.index, columns=MODE_RESTRICTION_NAMES
    )


def choose_mode_restrictions(choosers, coefficients, prng, trace_label=None):
    """
    Choose a mode restriction for each mobile person of choosers.

    Persons without any trip are skipped and counted as non-mobile.

    Parameters
    ----------
    choosers : pandas.DataFrame
        slice of persons_merged
    coefficients : pandas.DataFrame
        mode restriction coefficients, shared read-only with other tasks
    prng : numpy.random.RandomState
        owned by this task
    trace_label : str

    Returns
    -------
    choices : pandas.Series
        mode restriction name per person of choosers, None if not chosen
    counts : ModeRestrictionCounts
    """
    choices = pd.Series(None, index=choosers.index, dtype=object)

    mobile = has_trips(choosers)
    non_mobile = int((~mobile).sum())
    choosers = choosers[mobile]

    if choosers.empty:
        return choices, ModeRestrictionCounts(non_mobile=non_mobile)

    predictors = mode_restriction_predictors(choosers)
    utilities = simulate.eval_utilities(
        predictors,
        coefficients,
        alternatives=MODE_RESTRICTION_NAMES,
        required=True,
        trace_label=trace_label,
    )

    # unavailable mode restrictions get probability 0
    utilities = utilities.where(available_mode_restrictions(choosers), -np.inf)

    probs = logit.utils_to_probs(utilities, trace_label=trace_label)
    positions = logit.make_choices(probs, prng, trace_label=trace_label)

    failed = positions < 0
    for person_id in positions.index[failed]:
        logger.error(f"{trace_label}: zero/negative probabilities for person {person_id}")

    names = np.array(MODE_RESTRICTION_NAMES, dtype=object)
    choices.loc[positions.index[~failed]] = names[positions[~failed].to_numpy()]

    counts = ModeRestrictionCounts(
        chosen=int((~failed).sum()), failed=int(failed.sum()), non_mobile=non_mobile
    )
    return choices, counts


def mode_restriction_choice(
    persons,
    persons_merged,
    coefficients,
    rng,
    num_threads=None,
    trace_label=STEP_NAME,
):
    """
    Choose and assign persons' mode restrictions, in parallel over contiguous person chunks.

    Writes the mode_restriction column of persons (and persons_merged).

    Parameters
    ----------
    persons : pandas.DataFrame
    persons_merged : pandas.DataFrame
    coefficients : pandas.DataFrame
    rng : destchoice.core.random.Random
    num_threads : int
    trace_label : str

    Returns
    -------
    ModeRestrictionCounts
    """
    if "mode_restriction" in persons.columns and persons.mode_restriction.notnull().any():
        raise RuntimeError("mode restrictions were already chosen")

    logger.info("Running %s with %d persons", trace_label, len(persons_merged))

    chunks = concurrency.partition(persons_merged, num_threads or 1)
    tasks = [
        partial(
            choose_mode_restrictions,
            chunk,
            coefficients,
            rng.get_task_rng(STEP_NAME, i),
            trace_label=tracing.extend_trace_label(trace_label, str(i)),
        )
        for i, chunk in enumerate(chunks)
    ]
    results = concurrency.run_tasks(tasks, num_threads, trace_label)

    if results:
        choices = pd.concat([choices for choices, _ in results])
    else:
        choices = pd.Series(None, index=persons_merged.index[:0], dtype=object)
    counts = sum_counts([counts for _, counts in results], ModeRestrictionCounts)

    persons["mode_restriction"] = choices.reindex(persons.index)
    persons_merged["mode_restriction"] = choices.reindex(persons_merged.index)

    logger.info(f"{counts.non_mobile} non-mobile persons skipped")
    if counts.failed:
        logger.warning(f"no mode restriction chosen for {counts.failed} persons")

    tracing.print_summary("mode_restriction", persons.mode_restriction, value_counts=True)

    return counts
