# destchoice
# See full license in LICENSE.txt.
from __future__ import annotations

import logging

import numpy as np
import pandas as pd

from destchoice.abm.tables.constants import MANDATORY_PURPOSES, Purpose
from destchoice.core.exceptions import InputTableError
from destchoice.core.skim import NOT_IN_SKIM_ZONE_ID

logger = logging.getLogger(__name__)

UNSET_ZONE_ID = -1


def check_trips(trips: pd.DataFrame, persons: pd.DataFrame) -> pd.DataFrame:
    """
    Check the trips table and add unset origin and destination columns where missing.

    The table is modified in place (only columns are added) and returned.
    """
    unknown_purposes = ~trips.purpose.isin(list(Purpose.__members__))
    if unknown_purposes.any():
        raise InputTableError(
            f"unknown trip purposes {trips.purpose[unknown_purposes].unique().tolist()}"
        )

    trips_without_persons = ~trips.person_id.isin(persons.index)
    if trips_without_persons.any():
        logger.error(
            f"{trips_without_persons.sum()} trips out of {len(trips)} without persons"
        )
        raise InputTableError(
            f"{trips_without_persons.sum()} trips with bad person_id"
        )

    for c in ["origin_zone_id", "destination_zone_id"]:
        if c not in trips.columns:
            trips[c] = UNSET_ZONE_ID
        else:
            trips[c] = trips[c].fillna(UNSET_ZONE_ID).astype(np.int64)

    return trips


def trip_counts(trips: pd.DataFrame, person_ids) -> pd.DataFrame:
    """
    Number of trips per person and purpose

    Returns
    -------
    pandas.DataFrame
        indexed by person_id (in person_ids order), one int column per Purpose name
    """
    columns = [p.name for p in Purpose]
    person_ids = pd.Index(person_ids, name="person_id")
    if trips.empty:
        return pd.DataFrame(0, index=person_ids, columns=columns, dtype=np.int64)

    counts = (
        trips.groupby(["person_id", "purpose"]).size().unstack("purpose", fill_value=0)
    )
    counts = counts.reindex(index=person_ids, columns=columns, fill_value=0)
    counts.columns.name = None
    return counts.astype(np.int64)


def commute_distances(trips: pd.DataFrame, distances) -> pd.Series:
    """
    Mean distance of each person's already distributed mandatory (HBW, HBE) trips

    Parameters
    ----------
    trips : pandas.DataFrame
    distances : IndexedMatrix2D
        non-motorized distances

    Returns
    -------
    pandas.Series
        indexed by person_id, only persons with at least one distributed commute trip
    """
    commute = trips[trips.purpose.isin([p.name for p in MANDATORY_PURPOSES])]

    orig = distances.offset_mapper.map(commute.origin_zone_id.to_numpy())
    dest = distances.offset_mapper.map(commute.destination_zone_id.to_numpy())
    distributed = (orig != NOT_IN_SKIM_ZONE_ID) & (dest != NOT_IN_SKIM_ZONE_ID)

    if (~distributed).any():
        logger.debug(
            f"{(~distributed).sum()} commute trips without origin or destination "
            f"ignored for commute distances"
        )

    commute_distance = pd.Series(
        distances.to_numpy()[orig[distributed], dest[distributed]],
        index=commute.person_id[distributed].to_numpy(),
    )
    return commute_distance.groupby(level=0).mean().rename_axis("person_id")
