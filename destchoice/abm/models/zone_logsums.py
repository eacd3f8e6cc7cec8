# destchoice
# See full license in LICENSE.txt.
from __future__ import annotations

import logging
from functools import partial

import numpy as np

from destchoice.abm.models.util.purpose_models import log_distances
from destchoice.abm.tables.constants import MODE_RESTRICTIONS, as_mode_restriction
from destchoice.abm.tables.persons import travel_time_budget_column, trip_count_column
from destchoice.core import concurrency, tracing
from destchoice.core.exceptions import InsufficientPopulationError, InvalidUtilityError
from destchoice.core.skim import IndexedMatrix2D

logger = logging.getLogger(__name__)

STEP_NAME = "zone_logsums"


def qualifying_persons(persons_merged, purpose, mode_restriction):
    """
    persons holding mode_restriction with trips of purpose and a positive travel time budget
    """
    trips = persons_merged[trip_count_column(purpose)]
    budget = persons_merged[travel_time_budget_column(purpose)].fillna(0)
    return persons_merged[
        (persons_merged.mode_restriction == mode_restriction.name)
        & (trips > 0)
        & (budget > 0)
    ]


def average_mode_utilities(purpose_model, mode_restriction, persons_merged, trace_label=None):
    """
    Mean utility of each mode of mode_restriction over the qualifying persons.
    Purpose mode exclusions apply to destination choice only.

    Returns
    -------
    pandas.Series
        indexed by mode name
    """
    mode_restriction = as_mode_restriction(mode_restriction)
    choosers = qualifying_persons(persons_merged, purpose_model.purpose, mode_restriction)
    if choosers.empty:
        raise InsufficientPopulationError(
            f"no persons with {purpose_model.name} trips, a positive budget "
            f"and mode restriction {mode_restriction.name} to average utilities over"
        )

    modes = purpose_model.available_modes(mode_restriction, exclude_purpose_modes=False)
    utilities = purpose_model.mode_utilities(choosers, trace_label=trace_label)[modes]
    average_utilities = utilities.mean()

    for mode, utility in average_utilities.items():
        logger.info(
            f"Avg. utility {purpose_model.name} || {mode_restriction.name} || {mode} = {utility}"
        )

    return average_utilities


def zone_logsum_matrix(
    purpose_model, mode_restriction, persons_merged, distances, trace_label=None
):
    """
    Zone x zone nested logit aggregate of one (purpose, mode restriction) pair.

    The cells hold the aggregate itself, take the log for a true logsum.

    Parameters
    ----------
    purpose_model : PurposeModel
    mode_restriction : ModeRestriction, int or str
    persons_merged : pandas.DataFrame
        with mode_restriction column
    distances : IndexedMatrix2D
        non-motorized distances
    trace_label : str

    Returns
    -------
    IndexedMatrix2D
    """
    mode_restriction = as_mode_restriction(mode_restriction)
    trace_label = tracing.extend_trace_label(
        trace_label, f"{purpose_model.name}.{mode_restriction.name}"
    )

    average_utilities = average_mode_utilities(
        purpose_model, mode_restriction, persons_merged, trace_label
    )
    modes = list(average_utilities.index)

    cells = purpose_model.aggregate(
        average_utilities, modes, log_distances(distances.to_numpy())
    )

    bad_cells = ~np.isfinite(cells)
    if bad_cells.any():
        o, d = np.argwhere(bad_cells)[0]
        raise InvalidUtilityError(
            f"{trace_label}: logsum is {cells[o, d]} for {bad_cells.sum()} cells "
            f"(purpose {purpose_model.name}, mode restriction {mode_restriction.name}, "
            f"first origin {distances.id_for_offset(o)} "
            f"destination {distances.id_for_offset(d)} "
            f"distance {distances.to_numpy()[o, d]})"
        )

    return IndexedMatrix2D(distances.zone_ids, cells)


def zone_logsums(
    purpose_models,
    persons_merged,
    distances,
    mode_restrictions=None,
    num_threads=None,
    trace_label=STEP_NAME,
):
    """
    Compute the logsum matrix of every (purpose, mode restriction) pair, one task per pair.

    Parameters
    ----------
    purpose_models : list of PurposeModel
    persons_merged : pandas.DataFrame
    distances : IndexedMatrix2D
    mode_restrictions : list, optional
        defaults to all mode restrictions
    num_threads : int
    trace_label : str

    Returns
    -------
    dict
        maps (Purpose, ModeRestriction) to IndexedMatrix2D, in task order
    """
    if mode_restrictions is None:
        mode_restrictions = MODE_RESTRICTIONS
    mode_restrictions = [as_mode_restriction(r) for r in mode_restrictions]

    keys = []
    tasks = []
    for purpose_model in purpose_models:
        for mode_restriction in mode_restrictions:
            keys.append((purpose_model.purpose, mode_restriction))
            tasks.append(
                partial(
                    zone_logsum_matrix,
                    purpose_model,
                    mode_restriction,
                    persons_merged,
                    distances,
                    trace_label=trace_label,
                )
            )

    logger.info(f"Calculating {len(tasks)} logsum matrices")
    results = concurrency.run_tasks(tasks, num_threads, trace_label)

    return dict(zip(keys, results))
