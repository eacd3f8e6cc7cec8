# destchoice
# See full license in LICENSE.txt.
from __future__ import annotations

import logging

import numpy as np
import pandas as pd

from destchoice.abm.models.util.counts import DistributionCounts
from destchoice.core.exceptions import ModelConfigurationError

logger = logging.getLogger(__name__)

STEP_NAME = "airport_destination"

# share of airport trips that go from home to the airport
HOME_TO_AIRPORT_SHARE = 0.5


def choose_airport_trips(airport_trips, home_zone_ids, airport_zone_id, prng):
    """
    Orient airport trips by a coin flip, either home to airport or airport to home.

    Parameters
    ----------
    airport_trips : pandas.DataFrame
        AIRPORT trips, indexed by trip_id
    home_zone_ids : pandas.Series
        home zone id of every person of airport_trips, indexed by person_id
    airport_zone_id : int
    prng : numpy.random.RandomState
        owned by this task, one draw per trip

    Returns
    -------
    assignments : pandas.DataFrame
        origin_zone_id and destination_zone_id indexed by trip_id
    counts : DistributionCounts
    """
    if len(airport_trips) and airport_zone_id is None:
        raise ModelConfigurationError(
            f"{len(airport_trips)} airport trips but no airport_zone_id in settings"
        )

    home = home_zone_ids.reindex(airport_trips.person_id).to_numpy(dtype=np.int64)
    to_airport = prng.random_sample(len(airport_trips)) < HOME_TO_AIRPORT_SHARE

    assignments = pd.DataFrame(
        {
            "origin_zone_id": np.where(to_airport, home, airport_zone_id),
            "destination_zone_id": np.where(to_airport, airport_zone_id, home),
        },
        index=airport_trips.index,
    ).astype(np.int64)

    logger.info(
        f"{to_airport.sum()} of {len(airport_trips)} airport trips go from home to the airport"
    )

    return assignments, DistributionCounts(distributed=len(airport_trips))
