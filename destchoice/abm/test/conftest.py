from __future__ import annotations

from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from destchoice.abm.models.trip_distribution import read_coefficients
from destchoice.abm.tables import persons as persons_table
from destchoice.abm.tables.constants import MODE_NAMES
from destchoice.core import config
from destchoice.core.skim import IndexedMatrix2D

ZONE_IDS = [1, 2, 3, 4]

DISCRETIONARY_TRIP_RATES = {"HBS": 3, "HBR": 2, "HBO": 2, "NHBW": 1, "NHBO": 1}


@pytest.fixture(scope="module")
def configs_dir():
    return Path(__file__).parent.joinpath("configs")


@pytest.fixture
def settings(configs_dir, tmp_path):
    settings = config.read_settings_file(configs_dir)
    settings.output_dir = tmp_path.joinpath("output")
    return settings


@pytest.fixture
def coefficients(configs_dir, settings):
    return read_coefficients(configs_dir, settings)


@pytest.fixture
def dominant_coefficients(coefficients):
    """everybody chooses auto_pt_walk_cycle"""
    mode_restriction = coefficients["mode_restriction"].copy()
    mode_restriction.loc["INTERCEPT", "auto_pt_walk_cycle"] = 30.0
    return dict(coefficients, mode_restriction=mode_restriction)


@pytest.fixture
def zones():
    return pd.DataFrame(
        {
            "distance_to_rail": [0.5, 1.2, 3.0, 8.0],
            "area_type": ["urban", "urban", "suburban", "rural"],
            "attraction_HBS": [120.0, 80.0, 30.0, 5.0],
            "attraction_HBR": [40.0, 60.0, 50.0, 20.0],
            "attraction_HBO": [90.0, 70.0, 25.0, 10.0],
            "attraction_RRT": [10.0, 30.0, 60.0, 90.0],
        },
        index=pd.Index(ZONE_IDS, name="zone_id"),
    )


@pytest.fixture
def distance_frame():
    coords = np.array([[0.0, 0.0], [2.0, 1.0], [5.0, 4.0], [12.0, 3.0]])
    d = np.sqrt(((coords[:, None, :] - coords[None, :, :]) ** 2).sum(axis=2))
    # intra-zonal distances
    np.fill_diagonal(d, 0.6)
    return pd.DataFrame(d, index=ZONE_IDS, columns=ZONE_IDS)


@pytest.fixture
def distances(distance_frame):
    return IndexedMatrix2D.from_frame(distance_frame, ZONE_IDS)


@pytest.fixture
def population():
    """
    households, persons and trips of a small synthetic population

    The last household is a single person without any trips.
    """
    prng = np.random.RandomState(0)

    households = []
    persons = []
    trips = []

    num_households = 24
    for household_id in range(1, num_households + 1):
        hh_size = 1 if household_id == num_households else prng.randint(1, 6)
        households.append(
            {
                "household_id": household_id,
                "home_zone_id": ZONE_IDS[prng.randint(len(ZONE_IDS))],
                "hh_size": hh_size,
                "autos": prng.randint(0, 4),
                "economic_status": prng.randint(1, 5),
            }
        )
        for i in range(hh_size):
            person_id = len(persons) + 1
            age = prng.randint(30, 75) if i == 0 else prng.randint(0, 85)
            works = 18 <= age <= 65 and prng.rand() < 0.7
            occupation_zone_id = ZONE_IDS[prng.randint(len(ZONE_IDS))] if works else -1
            persons.append(
                {
                    "person_id": person_id,
                    "household_id": household_id,
                    "age": age,
                    "gender": "female" if prng.rand() < 0.5 else "male",
                    "driver_license": bool(age >= 18 and prng.rand() < 0.8),
                    "has_bicycle": bool(prng.rand() < 0.5),
                    "occupation_zone_id": occupation_zone_id,
                    "dominant_commute_mode": (
                        MODE_NAMES[prng.randint(len(MODE_NAMES))] if works else None
                    ),
                    "ttb_HBS": 30.0,
                    "ttb_HBR": 45.0,
                    "ttb_HBO": 25.0,
                    "ttb_RRT": 60.0,
                }
            )
            if household_id == num_households:
                continue

            home_zone_id = households[-1]["home_zone_id"]
            if works:
                for _ in range(prng.randint(1, 6)):
                    trips.append((person_id, "HBW", home_zone_id, occupation_zone_id))
            if age < 25 and age >= 6:
                school_zone_id = ZONE_IDS[prng.randint(len(ZONE_IDS))]
                for _ in range(prng.randint(1, 6)):
                    trips.append((person_id, "HBE", home_zone_id, school_zone_id))
            for purpose, max_trips in DISCRETIONARY_TRIP_RATES.items():
                for _ in range(prng.randint(0, max_trips + 1)):
                    trips.append((person_id, purpose, -1, -1))
            if prng.rand() < 0.2:
                trips.append((person_id, "RRT", -1, -1))
            if prng.rand() < 0.1:
                trips.append((person_id, "AIRPORT", -1, -1))

    households = pd.DataFrame(households).set_index("household_id")
    persons = pd.DataFrame(persons).set_index("person_id")
    trips = pd.DataFrame(
        trips, columns=["person_id", "purpose", "origin_zone_id", "destination_zone_id"]
    )
    trips.index = pd.Index(np.arange(1, len(trips) + 1), name="trip_id")

    return households, persons, trips


@pytest.fixture
def households(population):
    return population[0]


@pytest.fixture
def persons(population):
    return population[1]


@pytest.fixture
def trips(population):
    return population[2]


@pytest.fixture
def walk_coefficients():
    """walk has utility 0, every mode has distance coefficient -1, a single nest"""
    coefficients = pd.DataFrame(
        0.0,
        index=pd.Index(["INTERCEPT", "t.distance_T", "nestingCoefficient"], name="coefficient_name"),
        columns=MODE_NAMES,
    )
    coefficients.loc["INTERCEPT", ["auto_driver", "auto_passenger", "public_transport"]] = -2.0
    coefficients.loc["t.distance_T"] = -1.0
    coefficients.loc["nestingCoefficient"] = 1.0
    return coefficients


@pytest.fixture
def two_zones():
    """
    two zones 5 km apart, one walking shopper living in zone 1 and a non-mobile person
    """
    zones = pd.DataFrame(
        {"distance_to_rail": [1.0, 9.0], "area_type": ["urban", "rural"]},
        index=pd.Index([1, 2], name="zone_id"),
    )
    households = pd.DataFrame(
        {"home_zone_id": [1, 2], "hh_size": [1, 1], "autos": [0, 1], "economic_status": [2, 3]},
        index=pd.Index([1, 2], name="household_id"),
    )
    persons = pd.DataFrame(
        {
            "household_id": [1, 2],
            "age": [35, 60],
            "gender": ["female", "male"],
            "driver_license": [False, True],
            "has_bicycle": [False, False],
            "occupation_zone_id": [-1, -1],
            "dominant_commute_mode": [None, None],
            "ttb_HBS": [30.0, 30.0],
        },
        index=pd.Index([1, 2], name="person_id"),
    )
    trips = pd.DataFrame(
        {
            "person_id": [1, 1],
            "purpose": ["HBS", "HBS"],
            "origin_zone_id": [-1, -1],
            "destination_zone_id": [-1, -1],
        },
        index=pd.Index([1, 2], name="trip_id"),
    )
    distances = IndexedMatrix2D([1, 2], np.array([[2.0, 5.0], [5.0, 2.0]]))

    persons_merged = persons_table.persons_merged(persons, households, zones, trips, distances)
    persons_merged["mode_restriction"] = ["walk", None]

    return persons_merged, distances


