# destchoice
# See full license in LICENSE.txt.
from __future__ import annotations

import logging

import numpy as np
import pandas as pd

from destchoice.abm.models.util.counts import DistributionCounts
from destchoice.abm.models.util.purpose_models import log_distances
from destchoice.abm.tables.persons import travel_time_budget_column, trip_count_column
from destchoice.core import logit, tracing
from destchoice.core.exceptions import InvalidUtilityError

logger = logging.getLogger(__name__)

ASSIGNMENT_COLUMNS = ["origin_zone_id", "destination_zone_id"]


def destination_weights(purpose_model, utilities, modes, home_distances):
    """
    Destination choice weight of every zone for trips from one home zone.

    The weight of a zone is its attraction rate times the nested logit aggregate
    of the available modes at the distance from home.

    Parameters
    ----------
    purpose_model : PurposeModel
        with attractions
    utilities : mapping of mode name to float
        person level mode utilities
    modes : list of str
        available modes
    home_distances : numpy.ndarray
        distances from the home zone, in zone order

    Returns
    -------
    numpy.ndarray
    """
    aggregate = purpose_model.aggregate(utilities, modes, log_distances(home_distances))
    return purpose_model.attractions.to_numpy() * aggregate


def empty_assignments():
    return pd.DataFrame(
        {c: pd.Series(dtype=np.int64) for c in ASSIGNMENT_COLUMNS},
        index=pd.Index([], name="trip_id", dtype=np.int64),
    )


def choose_destinations(
    purpose_model, persons_merged, purpose_trips, distances, prng, trace_label=None
):
    """
    Choose destinations for the trips of one purpose of a partition of households.

    Trips of persons with a positive budget and a mode restriction start at home
    and go to a zone drawn by destination_weights.  A trip whose draw fails
    because all weights are zero keeps its home origin, gets no destination and
    counts as failed, as do the unset trips of persons without a budget or a
    mode restriction.

    Parameters
    ----------
    purpose_model : PurposeModel
    persons_merged : pandas.DataFrame
        persons of the household partition
    purpose_trips : pandas.DataFrame
        trips of purpose_model.purpose, indexed by trip_id
    distances : IndexedMatrix2D
        non-motorized distances
    prng : numpy.random.RandomState
        owned by this task
    trace_label : str

    Returns
    -------
    assignments : pandas.DataFrame
        origin_zone_id and destination_zone_id (-1 for failed draws) of the
        drawn trips, indexed by trip_id
    counts : DistributionCounts
    """
    trace_label = tracing.extend_trace_label(trace_label, purpose_model.name)

    choosers = persons_merged[persons_merged[trip_count_column(purpose_model.purpose)] > 0]
    if choosers.empty:
        return empty_assignments(), DistributionCounts()

    trips_by_person = purpose_trips[purpose_trips.person_id.isin(choosers.index)].groupby(
        "person_id", sort=False
    ).groups

    budget = choosers[travel_time_budget_column(purpose_model.purpose)].fillna(0)
    has_mode_restriction = choosers.mode_restriction.notnull()
    distributable = (budget > 0) & has_mode_restriction

    for person_id in choosers.index[(budget <= 0)]:
        logger.warning(
            f"Person {person_id} has {purpose_model.name} trips but no travel time budget"
        )
    for person_id in choosers.index[(budget > 0) & ~has_mode_restriction]:
        logger.warning(
            f"Person {person_id} has {purpose_model.name} trips but no mode restriction"
        )

    failed = int(choosers.loc[~distributable, trip_count_column(purpose_model.purpose)].sum())
    distributed = 0

    choosers = choosers[distributable]
    utilities = purpose_model.mode_utilities(choosers, trace_label=trace_label)

    zone_ids = distances.zone_ids
    trip_ids = []
    origins = []
    destinations = []

    for i, (person_id, person) in enumerate(choosers.iterrows()):
        if tracing.is_power_of_two(i):
            logger.debug(f"{trace_label}: {i} persons done")

        home_zone_id = person.home_zone_id
        modes = purpose_model.available_modes(person.mode_restriction)
        weights = destination_weights(
            purpose_model, utilities.loc[person_id], modes, distances.row(home_zone_id)
        )

        bad_weights = ~np.isfinite(weights)
        if bad_weights.any():
            zone = np.argmax(bad_weights)
            raise InvalidUtilityError(
                f"{trace_label}: destination weight {weights[zone]} for person {person_id} "
                f"(purpose {purpose_model.name}, origin {home_zone_id}, "
                f"destination {zone_ids[zone]}, "
                f"attraction {purpose_model.attractions.to_numpy()[zone]})"
            )

        for trip_id in trips_by_person.get(person_id, []):
            zone = logit.select(weights, prng)
            trip_ids.append(trip_id)
            origins.append(home_zone_id)
            if zone < 0:
                logger.warning(f"No destination found for trip {trip_id}")
                destinations.append(-1)
                failed += 1
                continue
            destinations.append(zone_ids[zone])
            distributed += 1

    assignments = pd.DataFrame(
        {
            "origin_zone_id": np.asarray(origins, dtype=np.int64),
            "destination_zone_id": np.asarray(destinations, dtype=np.int64),
        },
        index=pd.Index(trip_ids, name="trip_id"),
    )

    return assignments, DistributionCounts(distributed=distributed, failed=failed)
