# destchoice
# See full license in LICENSE.txt.
from __future__ import annotations

import logging
import time
from functools import partial
from typing import NamedTuple

import pandas as pd

from destchoice.abm.models import airport_destination, zone_logsums
from destchoice.abm.models.discretionary_destination import (
    ASSIGNMENT_COLUMNS,
    choose_destinations,
)
from destchoice.abm.models.mode_restriction_choice import (
    mode_restriction_choice,
    read_mode_restriction_coefficients,
)
from destchoice.abm.models.util.counts import (
    DistributionCounts,
    ModeRestrictionCounts,
    sum_counts,
)
from destchoice.abm.models.util.purpose_models import (
    PurposeModel,
    read_mode_choice_coefficients,
)
from destchoice.abm.tables import persons as persons_table
from destchoice.abm.tables import trips as trips_table
from destchoice.abm.tables import zones as zones_table
from destchoice.abm.tables.constants import Purpose, as_purpose
from destchoice.core import concurrency, config, output, tracing
from destchoice.core.exceptions import InputTableError, ModelConfigurationError
from destchoice.core.random import Random
from destchoice.core.skim import IndexedMatrix2D

logger = logging.getLogger(__name__)

MODE_RESTRICTION_COEFFICIENTS_KEY = "mode_restriction"


class TripDistributionResult(NamedTuple):
    mode_restriction_counts: ModeRestrictionCounts
    distribution_counts: DistributionCounts
    logsums: dict


def model_purposes(settings):
    """purposes whose mode choice coefficients the run needs, in Purpose order"""
    purposes = set(as_purpose(p) for p in settings.logsum_purposes)
    if settings.distribute_trips:
        purposes.update(as_purpose(p) for p in settings.destination_purposes)
    return sorted(purposes)


def read_coefficients(configs_dir, settings):
    """
    Read all coefficient tables of a run.

    Returns
    -------
    dict
        mode restriction coefficients under MODE_RESTRICTION_COEFFICIENTS_KEY and
        mode choice coefficients under each purpose name
    """
    coefficients = {
        MODE_RESTRICTION_COEFFICIENTS_KEY: read_mode_restriction_coefficients(
            configs_dir, settings
        )
    }
    for purpose in model_purposes(settings):
        coefficients[purpose.name] = read_mode_choice_coefficients(
            configs_dir, settings, purpose
        )
    return coefficients


def distance_snapshot(distances, zone_ids):
    """zone indexed copy of the non-motorized distances, in zone table order"""
    if isinstance(distances, IndexedMatrix2D):
        if list(distances.zone_ids) != list(zone_ids):
            raise InputTableError("distance matrix zone ids differ from the zone table")
        return IndexedMatrix2D(zone_ids, distances.to_numpy().copy())
    return IndexedMatrix2D.from_frame(distances, zone_ids)


def load_purpose_models(settings, zones, coefficients):
    """PurposeModel of every purpose of the run, keyed by Purpose"""
    purpose_models = {}
    for purpose in model_purposes(settings):
        if purpose.name not in coefficients:
            raise ModelConfigurationError(f"no mode choice coefficients for {purpose.name}")

        needs_attractions = settings.distribute_trips and purpose.name in settings.destination_purposes
        logger.info("Processing purpose: %s" % purpose.name)
        purpose_models[purpose] = PurposeModel(
            purpose,
            coefficients[purpose.name],
            attractions=(
                zones_table.get_attraction_rates(zones, purpose) if needs_attractions else None
            ),
            top_scale=settings.top_scale_parameter,
        )
    return purpose_models


def distribute_trips(
    settings,
    purpose_models,
    households,
    persons_merged,
    trips,
    distances,
    rng,
    num_threads,
    trace_label="trip_distribution",
):
    """
    Destination tasks per household partition and purpose, plus one airport task.

    Returns
    -------
    assignments : pandas.DataFrame
    counts : DistributionCounts
    """
    household_chunks = concurrency.partition(households, num_threads)
    logger.info(
        f"Using {num_threads} thread(s) with {len(household_chunks)} household partitions"
    )

    person_chunks = [
        persons_merged[persons_merged.household_id.isin(chunk.index)]
        for chunk in household_chunks
    ]

    tasks = []
    for purpose_name in settings.destination_purposes:
        purpose_model = purpose_models[as_purpose(purpose_name)]
        purpose_trips = trips[trips.purpose == purpose_model.name]
        step_name = f"destination_{purpose_model.name}"
        for i, person_chunk in enumerate(person_chunks):
            tasks.append(
                partial(
                    choose_destinations,
                    purpose_model,
                    person_chunk,
                    purpose_trips,
                    distances,
                    rng.get_task_rng(step_name, i),
                    trace_label=tracing.extend_trace_label(trace_label, str(i)),
                )
            )

    airport_trips = trips[trips.purpose == Purpose.AIRPORT.name]
    if len(airport_trips):
        tasks.append(
            partial(
                airport_destination.choose_airport_trips,
                airport_trips,
                persons_merged.home_zone_id,
                settings.airport_zone_id,
                rng.get_task_rng(airport_destination.STEP_NAME, 0),
            )
        )

    results = concurrency.run_tasks(tasks, num_threads, trace_label)

    frames = [assignments for assignments, _ in results if len(assignments)]
    if frames:
        assignments = pd.concat(frames)
    else:
        assignments = pd.DataFrame(columns=ASSIGNMENT_COLUMNS, dtype="int64")
    counts = sum_counts([counts for _, counts in results], DistributionCounts)

    return assignments, counts


def run_trip_distribution(
    settings,
    zones,
    households,
    persons,
    trips,
    distances,
    coefficients=None,
    configs_dir=None,
    rng=None,
):
    """
    Choose mode restrictions, compute zone logsums and distribute discretionary trips.

    Phases run one after the other, the tasks of each phase in parallel.
    persons gets a mode_restriction column, distributed trips get their
    origin_zone_id and destination_zone_id.  Failed trips are not retried.

    Parameters
    ----------
    settings : Settings
    zones, households, persons, trips : pandas.DataFrame
    distances : pandas.DataFrame or IndexedMatrix2D
        non-motorized zone to zone distances
    coefficients : dict, optional
        as returned by read_coefficients, read from configs_dir if not given
    configs_dir : Path-like, optional
    rng : Random, optional
        defaults to Random(settings.rng_base_seed)

    Returns
    -------
    TripDistributionResult
    """
    t0 = time.time()

    if coefficients is None:
        if configs_dir is None:
            raise ModelConfigurationError("either coefficients or configs_dir is required")
        coefficients = read_coefficients(configs_dir, settings)

    if rng is None:
        rng = Random(settings.rng_base_seed)

    num_threads = config.num_threads(settings)

    zones = zones_table.check_zones(zones)
    persons_table.check_persons(persons, households)
    trips_table.check_trips(trips, persons)

    if settings.airport_zone_id is not None and settings.airport_zone_id not in zones.index:
        raise ModelConfigurationError(f"airport zone {settings.airport_zone_id} not in zones")

    logger.info("Preparing travel distance matrix")
    distances = distance_snapshot(distances, zones.index)

    persons_merged = persons_table.persons_merged(persons, households, zones, trips, distances)

    logger.info("Calculating mode restriction")
    mode_restriction_counts = mode_restriction_choice(
        persons,
        persons_merged,
        coefficients[MODE_RESTRICTION_COEFFICIENTS_KEY],
        rng,
        num_threads=num_threads,
    )

    logger.info("Loading mode choice model coefficients and zone attractions")
    purpose_models = load_purpose_models(settings, zones, coefficients)

    logger.info("Calculating logsum matrices")
    logsums = zone_logsums.zone_logsums(
        [purpose_models[as_purpose(p)] for p in settings.logsum_purposes],
        persons_merged,
        distances,
        mode_restrictions=settings.logsum_mode_restrictions,
        num_threads=num_threads,
    )

    if settings.write_logsums:
        output.write_logsum_matrices(
            logsums, settings.output_dir.joinpath(settings.logsum_file_name)
        )
    if settings.write_logsum_matrix_files:
        for (purpose, mode_restriction), matrix in logsums.items():
            output.write_logsum_matrix(purpose, mode_restriction, matrix, settings.output_dir)

    distribution_counts = DistributionCounts()
    if settings.distribute_trips:
        logger.info("Distributing trips for households...")
        assignments, distribution_counts = distribute_trips(
            settings,
            purpose_models,
            households,
            persons_merged,
            trips,
            distances,
            rng,
            num_threads,
        )
        if len(assignments):
            trips.loc[assignments.index, ASSIGNMENT_COLUMNS] = assignments[ASSIGNMENT_COLUMNS]

    logger.info(
        "Distributed: %s, failed: %s"
        % (distribution_counts.distributed, distribution_counts.failed)
    )
    tracing.print_elapsed_time("run_trip_distribution", t0)

    return TripDistributionResult(
        mode_restriction_counts=mode_restriction_counts,
        distribution_counts=distribution_counts,
        logsums=logsums,
    )
