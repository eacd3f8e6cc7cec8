# destchoice
# See full license in LICENSE.txt.
"""
Predictor tables of the person level utility models.

Each builder returns one float column per predictor (the coefficient_name the
coefficient files use) and one row per person of persons_merged.  Dummy
predictors are 0.0 or 1.0.  The INTERCEPT is not a column, eval_utilities adds it.
"""
from __future__ import annotations

import logging

import numpy as np
import pandas as pd

from destchoice.abm.tables.constants import (
    WALK_SPEED_KMH,
    WALK_TO_PT_MAX_MINUTES,
    Mode,
    Purpose,
)
from destchoice.abm.tables.persons import trip_count_column

logger = logging.getLogger(__name__)

# persons with more trips of a mandatory purpose than this fall in the top bucket
MANDATORY_TRIPS_TOP_BUCKET = 5

# age band predictors, persons aged 30 to 49 are the reference
AGE_BANDS = [
    ("p.age_gr_1", 0, 18),
    ("p.age_gr_2", 19, 29),
    ("p.age_gr_4", 50, 59),
    ("p.age_gr_5", 60, 69),
    ("p.age_gr_6", 70, np.inf),
]

COMMUTE_MODE_PREDICTORS = {
    Mode.auto_driver: "p.usualCommuteMode_carD",
    Mode.auto_passenger: "p.usualCommuteMode_carP",
    Mode.public_transport: "p.usualCommuteMode_PT",
    Mode.bicycle: "p.usualCommuteMode_cycle",
    Mode.walk: "p.usualCommuteMode_walk",
}

# discretionary trip counts enter the mode restriction model as sqrt(count)
SQRT_TRIP_PURPOSES = [Purpose.HBS, Purpose.HBR, Purpose.HBO, Purpose.NHBW, Purpose.NHBO]


def dummy(condition):
    return np.asanyarray(condition, dtype=bool).astype(np.float64)


def near_rail(distance_to_rail):
    """walk to the nearest rail stop takes at most WALK_TO_PT_MAX_MINUTES (NaN is not near)"""
    walk_minutes = np.asanyarray(distance_to_rail, dtype=np.float64) * (60 / WALK_SPEED_KMH)
    with np.errstate(invalid="ignore"):
        return walk_minutes <= WALK_TO_PT_MAX_MINUTES


def autos_per_adult(df):
    """
    Household autos per adult, capped at 1.0.

    Households without adults count as fully motorized if they have any auto.
    """
    autos = df.autos.to_numpy(dtype=np.float64)
    adults = df.hh_adults.to_numpy(dtype=np.float64)
    with np.errstate(divide="ignore", invalid="ignore"):
        ratio = np.where(adults > 0, autos / adults, np.where(autos > 0, 1.0, 0.0))
    return np.minimum(ratio, 1.0)


def household_person_predictors(df, children_buckets):
    """
    Household and person attribute predictors common to both models

    Parameters
    ----------
    df : pandas.DataFrame
        persons_merged
    children_buckets : list of int
        child count buckets with a predictor, the last one is open ended

    Returns
    -------
    dict of str to numpy.ndarray
    """
    predictors = {}

    children = df.hh_children.to_numpy()
    for n in children_buckets[:-1]:
        predictors[f"hh.children_{n}"] = dummy(children == n)
    predictors[f"hh.children_{children_buckets[-1]}"] = dummy(children >= children_buckets[-1])

    economic_status = df.economic_status.to_numpy()
    for status in [2, 3, 4]:
        predictors[f"hh.econStatus_{status}"] = dummy(economic_status == status)

    predictors["hh.urban"] = dummy(df.home_area_type.to_numpy() != "rural")

    autos = df.autos.to_numpy()
    predictors["hh.cars_1"] = dummy(autos == 1)
    predictors["hh.cars_2"] = dummy(autos == 2)
    predictors["hh.cars_3"] = dummy(autos >= 3)
    predictors["hh.autosPerAdult"] = autos_per_adult(df)

    predictors["hh.homePT"] = dummy(near_rail(df.home_distance_to_rail))
    # occupation_distance_to_rail is NaN for persons without occupation
    predictors["p.workPT_12"] = dummy(near_rail(df.occupation_distance_to_rail))

    age = df.age.to_numpy()
    for name, low, high in AGE_BANDS:
        predictors[name] = dummy((age >= low) & (age <= high))

    predictors["p.female"] = dummy(df.gender.to_numpy() == "female")
    predictors["p.driversLicense"] = dummy(df.driver_license.fillna(False).to_numpy())
    predictors["p.ownBicycle"] = dummy(df.has_bicycle.fillna(False).to_numpy())

    return predictors


def commute_mode_predictors(df, reference=None):
    predictors = {}
    commute_mode = df.dominant_commute_mode.to_numpy()
    for mode, name in COMMUTE_MODE_PREDICTORS.items():
        if mode != reference:
            predictors[name] = dummy(commute_mode == mode.name)
    return predictors


def mode_restriction_predictors(df: pd.DataFrame) -> pd.DataFrame:
    """
    Predictors of the mode restriction model, all of them required coefficients.

    Parameters
    ----------
    df : pandas.DataFrame
        persons_merged

    Returns
    -------
    pandas.DataFrame
    """
    predictors = household_person_predictors(df, children_buckets=[2, 3])

    for purpose, label in [(Purpose.HBW, "work"), (Purpose.HBE, "edu")]:
        count = df[trip_count_column(purpose)].to_numpy()
        predictors[f"p.{label}Trips_1234"] = dummy(
            (count > 0) & (count < MANDATORY_TRIPS_TOP_BUCKET)
        )
        predictors[f"p.{label}Trips_5"] = dummy(count >= MANDATORY_TRIPS_TOP_BUCKET)

    for purpose in SQRT_TRIP_PURPOSES:
        predictors[f"p.trips_{purpose.name}_T"] = np.sqrt(
            df[trip_count_column(purpose)].to_numpy(dtype=np.float64)
        )
    predictors["p.isMobile_RRT"] = dummy(df[trip_count_column(Purpose.RRT)].to_numpy() > 0)

    # persons without distributed commute trips contribute nothing
    predictors["p.m_km_mode_T"] = np.sqrt(
        df.commute_distance.fillna(0.0).to_numpy(dtype=np.float64)
    )

    predictors.update(commute_mode_predictors(df, reference=Mode.auto_driver))

    return pd.DataFrame(predictors, index=df.index)


def mode_choice_predictors(df: pd.DataFrame) -> pd.DataFrame:
    """
    Predictors of the per purpose mode choice models.

    Coefficient files only list the predictors a mode uses, the others count as 0.

    Parameters
    ----------
    df : pandas.DataFrame
        persons_merged

    Returns
    -------
    pandas.DataFrame
    """
    predictors = {}

    hh_size = df.hh_size.to_numpy()
    for n in [1, 2, 3, 4]:
        predictors[f"hh.size_{n}"] = dummy(hh_size == n)
    predictors["hh.size_5"] = dummy(hh_size >= 5)

    predictors.update(household_person_predictors(df, children_buckets=[1, 2, 3]))

    hbw = df[trip_count_column(Purpose.HBW)].to_numpy()
    predictors["p.trips_HBW_0"] = dummy(hbw == 0)
    predictors["p.trips_HBW_1234"] = dummy((hbw > 0) & (hbw < MANDATORY_TRIPS_TOP_BUCKET))
    predictors["p.trips_HBW_5"] = dummy(hbw >= MANDATORY_TRIPS_TOP_BUCKET)
    predictors["p.isMobile_HBW"] = dummy(hbw > 0)

    hbe = df[trip_count_column(Purpose.HBE)].to_numpy()
    predictors["p.trips_HBE_1234"] = dummy((hbe > 0) & (hbe < MANDATORY_TRIPS_TOP_BUCKET))
    predictors["p.trips_HBE_5"] = dummy(hbe >= MANDATORY_TRIPS_TOP_BUCKET)
    predictors["p.isMobile_HBE"] = dummy(hbe > 0)

    predictors.update(commute_mode_predictors(df))

    return pd.DataFrame(predictors, index=df.index)
