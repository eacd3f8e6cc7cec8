# destchoice
# See full license in LICENSE.txt.
from __future__ import annotations

import numpy as np
import numpy.testing as npt
import pandas as pd
import pytest

from destchoice.abm.tables import persons as persons_table
from destchoice.abm.tables import trips as trips_table
from destchoice.abm.tables import zones as zones_table
from destchoice.abm.tables.constants import (
    RESTRICTED_MODES,
    Mode,
    ModeRestriction,
    Purpose,
    restricted_modes,
)
from destchoice.abm.tables.util import simple_table_join
from destchoice.core.exceptions import AttractionRateNotSetError, InputTableError


def test_restricted_modes():
    assert RESTRICTED_MODES.shape == (len(ModeRestriction), len(Mode))
    assert RESTRICTED_MODES[ModeRestriction.auto].tolist() == [True, True, False, False, False]
    assert RESTRICTED_MODES[ModeRestriction.pt_walk].tolist() == [
        False,
        False,
        True,
        False,
        True,
    ]
    assert RESTRICTED_MODES[ModeRestriction.auto_pt_walk_cycle].all()

    # round trip recreation never uses motorized modes
    assert restricted_modes("auto_pt_walk_cycle", "RRT").tolist() == [
        False,
        False,
        False,
        True,
        True,
    ]
    assert not restricted_modes(ModeRestriction.auto_pt, Purpose.RRT).any()


def test_attraction_rates(zones):
    rates = zones_table.get_attraction_rates(zones, "HBS")
    assert rates.get(2) == 80.0

    zones = zones.drop(columns="attraction_HBO")
    assert not zones_table.attraction_rates_are_set(zones, Purpose.HBO)
    with pytest.raises(AttractionRateNotSetError):
        zones_table.get_attraction_rates(zones, Purpose.HBO)

    zones_table.set_attraction_rates(zones, "HBO", pd.Series({1: 1.0, 2: 2.0, 3: 3.0, 4: 4.0}))
    npt.assert_array_equal(
        zones_table.get_attraction_rates(zones, "HBO").to_numpy(), [1.0, 2.0, 3.0, 4.0]
    )

    # set once
    with pytest.raises(AttractionRateNotSetError):
        zones_table.set_attraction_rates(zones, "HBO", pd.Series({1: 1.0, 2: 2.0, 3: 3.0, 4: 4.0}))


def test_attraction_rates_partially_set(zones):
    zones.loc[3, "attraction_HBR"] = np.nan
    with pytest.raises(AttractionRateNotSetError):
        zones_table.get_attraction_rates(zones, "HBR")

    zones = zones.drop(columns="attraction_HBR")
    with pytest.raises(InputTableError):
        zones_table.set_attraction_rates(zones, "HBR", pd.Series({1: 1.0, 2: 2.0}))


def test_check_zones(zones):
    shuffled = zones.iloc[[2, 0, 3, 1]]
    assert zones_table.check_zones(shuffled).index.tolist() == [1, 2, 3, 4]

    zones.loc[4, "area_type"] = "metropolitan"
    with pytest.raises(InputTableError):
        zones_table.check_zones(zones)


def test_check_trips(persons):
    trips = pd.DataFrame(
        {"person_id": [1, 1, 2], "purpose": ["HBW", "HBS", "AIRPORT"]},
        index=pd.Index([1, 2, 3], name="trip_id"),
    )
    trips = trips_table.check_trips(trips, persons)

    assert (trips.origin_zone_id == trips_table.UNSET_ZONE_ID).all()
    assert (trips.destination_zone_id == trips_table.UNSET_ZONE_ID).all()
    assert trips.origin_zone_id.dtype == np.int64


def test_check_trips_bad_purpose(persons):
    trips = pd.DataFrame({"person_id": [1], "purpose": ["SHOPPING"]})
    with pytest.raises(InputTableError):
        trips_table.check_trips(trips, persons)


def test_check_trips_bad_person(persons):
    trips = pd.DataFrame({"person_id": [persons.index.max() + 1], "purpose": ["HBS"]})
    with pytest.raises(InputTableError):
        trips_table.check_trips(trips, persons)


def test_trip_counts(trips, persons):
    counts = trips_table.trip_counts(trips, persons.index)

    assert counts.index.tolist() == persons.index.tolist()
    assert list(counts.columns) == [p.name for p in Purpose]
    assert counts.to_numpy().sum() == len(trips)
    # the last person has no trips
    assert (counts.iloc[-1] == 0).all()

    empty = trips_table.trip_counts(trips.iloc[:0], [7, 8])
    assert empty.to_numpy().tolist() == [[0] * len(Purpose)] * 2


def test_commute_distances(distances):
    trips = pd.DataFrame(
        {
            "person_id": [1, 1, 2, 3, 3],
            "purpose": ["HBW", "HBW", "HBE", "HBS", "HBW"],
            "origin_zone_id": [1, 1, 2, 1, 1],
            "destination_zone_id": [2, 3, 2, 4, -1],
        }
    )
    commute = trips_table.commute_distances(trips, distances)

    assert commute.index.tolist() == [1, 2]
    assert commute.loc[1] == pytest.approx((distances.get(1, 2) + distances.get(1, 3)) / 2)
    assert commute.loc[2] == pytest.approx(0.6)


def test_check_persons(persons, households):
    assert persons_table.check_persons(persons, households) is persons

    bad = persons.copy()
    bad.loc[1, "household_id"] = 999
    with pytest.raises(InputTableError):
        persons_table.check_persons(bad, households)

    bad = persons.copy()
    bad.loc[1, "dominant_commute_mode"] = "horse"
    with pytest.raises(InputTableError):
        persons_table.check_persons(bad, households)


def test_persons_merged(persons, households, zones, trips, distances):
    df = persons_table.persons_merged(persons, households, zones, trips, distances)

    assert df.index.tolist() == persons.index.tolist()

    children = (persons.age <= 17).groupby(persons.household_id).sum()
    npt.assert_array_equal(df.hh_children, children.reindex(df.household_id).to_numpy())
    npt.assert_array_equal(df.hh_adults, df.hh_size - df.hh_children)

    npt.assert_array_equal(
        df.home_distance_to_rail, zones.distance_to_rail.reindex(df.home_zone_id).to_numpy()
    )

    workers = df.occupation_zone_id != persons_table.NO_OCCUPATION_ZONE_ID
    assert df.occupation_distance_to_rail[~workers].isnull().all()
    npt.assert_array_equal(
        df.occupation_distance_to_rail[workers],
        zones.distance_to_rail.reindex(df.occupation_zone_id[workers]).to_numpy(),
    )

    hbs_trips = trips[trips.purpose == "HBS"].groupby("person_id").size()
    npt.assert_array_equal(
        df[persons_table.trip_count_column("HBS")],
        hbs_trips.reindex(df.index, fill_value=0).to_numpy(),
    )

    # distributed HBW/HBE trips define the commute distance
    commuters = df[["trips_HBW", "trips_HBE"]].sum(axis=1) > 0
    assert df.commute_distance[commuters].notnull().all()
    assert df.commute_distance[~commuters].isnull().all()

    assert not persons_table.has_trips(df).iloc[-1]
    assert persons_table.has_trips(df).iloc[:-1].any()


def test_persons_merged_unknown_occupation_zone(persons, households, zones, trips):
    persons = persons.copy()
    persons.loc[persons.index[0], "occupation_zone_id"] = 99
    with pytest.raises(InputTableError):
        persons_table.persons_merged(persons, households, zones, trips)


def test_simple_table_join():
    left = pd.DataFrame({"zone_id": [2, 1, 2], "x": [1, 2, 3]}, index=[10, 11, 12])
    right = pd.DataFrame(
        {"x": [7, 8], "area_type": ["urban", "rural"]}, index=pd.Index([1, 2], name="zone_id")
    )

    df = simple_table_join(left, right, left_on="zone_id")
    assert df.index.tolist() == [10, 11, 12]
    assert df.x.tolist() == [1, 2, 3]
    assert df.area_type.tolist() == ["rural", "urban", "rural"]

    left.loc[12, "zone_id"] = 3
    with pytest.raises(InputTableError):
        simple_table_join(left, right, left_on="zone_id")
