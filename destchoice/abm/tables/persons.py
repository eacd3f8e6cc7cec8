# destchoice
# See full license in LICENSE.txt.
from __future__ import annotations

import io
import logging

import numpy as np
import pandas as pd

from destchoice.abm.tables import trips as trips_table
from destchoice.abm.tables.constants import (
    CHILD_MAX_AGE,
    MODE_NAMES,
    Purpose,
    as_purpose,
)
from destchoice.abm.tables.util import simple_table_join
from destchoice.core.exceptions import InputTableError

logger = logging.getLogger(__name__)

NO_OCCUPATION_ZONE_ID = -1


def check_persons(persons: pd.DataFrame, households: pd.DataFrame) -> pd.DataFrame:
    """
    Check persons against their households, as the loader hands them over.
    """
    assert not households.index.duplicated().any()
    assert not persons.index.duplicated().any()

    persons_without_households = ~persons.household_id.isin(households.index)
    if persons_without_households.any():
        logger.error(
            f"{persons_without_households.sum()} persons out of {len(persons)} without households\n"
            f"{pd.Series({'person_id': persons_without_households.index.values})}"
        )
        raise InputTableError(
            f"{persons_without_households.sum()} persons with bad household_id"
        )

    households_without_persons = (
        persons.groupby("household_id").size().reindex(households.index).isnull()
    )
    if households_without_persons.any():
        logger.warning(
            f"{households_without_persons.sum()} households out of {len(households.index)} without persons"
        )

    if "dominant_commute_mode" in persons.columns:
        commute_modes = persons.dominant_commute_mode.dropna()
        bad_modes = ~commute_modes.isin(MODE_NAMES)
        if bad_modes.any():
            raise InputTableError(
                f"unknown dominant_commute_mode {commute_modes[bad_modes].unique().tolist()}"
            )

    logger.info("checked persons %s" % (persons.shape,))
    buffer = io.StringIO()
    persons.info(buf=buffer)
    logger.debug("persons.info:\n" + buffer.getvalue())

    return persons


def household_children(persons: pd.DataFrame, households: pd.DataFrame) -> pd.Series:
    """number of persons younger than 18 in each household"""
    return (
        (persons.age <= CHILD_MAX_AGE)
        .groupby(persons.household_id)
        .sum()
        .reindex(households.index, fill_value=0)
        .astype(np.int64)
    )


def travel_time_budget_column(purpose):
    return f"ttb_{as_purpose(purpose).name}"


def trip_count_column(purpose):
    return f"trips_{as_purpose(purpose).name}"


def persons_merged(persons, households, zones, trips, distances=None):
    """
    Persons joined with their household, home zone and occupation zone attributes,
    their trip counts per purpose and their mean commute distance.

    Parameters
    ----------
    persons : pandas.DataFrame
    households : pandas.DataFrame
    zones : pandas.DataFrame
    trips : pandas.DataFrame
    distances : IndexedMatrix2D, optional
        non-motorized distances, commute_distance is all NaN without them

    Returns
    -------
    pandas.DataFrame
        same index and order as persons
    """
    n_persons = len(persons)

    households = households.assign(
        hh_children=household_children(persons, households),
    )
    households["hh_adults"] = households.hh_size - households.hh_children

    home_zones = zones[["distance_to_rail", "area_type"]].rename(
        columns={
            "distance_to_rail": "home_distance_to_rail",
            "area_type": "home_area_type",
        }
    )
    households = simple_table_join(households, home_zones, left_on="home_zone_id")

    df = simple_table_join(persons, households, left_on="household_id")

    # persons without occupation have no occupation zone
    occupation_zone_id = df.occupation_zone_id.fillna(NO_OCCUPATION_ZONE_ID).astype(np.int64)
    df["occupation_distance_to_rail"] = zones.distance_to_rail.reindex(
        occupation_zone_id
    ).to_numpy()
    has_occupation = occupation_zone_id != NO_OCCUPATION_ZONE_ID
    unknown_occupation_zones = has_occupation & df.occupation_distance_to_rail.isnull()
    if unknown_occupation_zones.any():
        raise InputTableError(
            f"{unknown_occupation_zones.sum()} persons with occupation_zone_id not in zones"
        )

    counts = trips_table.trip_counts(trips, df.index)
    counts.columns = [trip_count_column(c) for c in counts.columns]
    df = pd.concat([df, counts], axis=1)

    if distances is not None:
        df["commute_distance"] = trips_table.commute_distances(trips, distances).reindex(
            df.index
        )
    else:
        df["commute_distance"] = np.nan

    if n_persons != len(df):
        raise RuntimeError("number of persons changed")

    return df


def has_trips(persons_merged: pd.DataFrame) -> pd.Series:
    """persons with at least one trip of any purpose"""
    return persons_merged[[trip_count_column(p) for p in Purpose]].sum(axis=1) > 0
