# destchoice
# See full license in LICENSE.txt.
from __future__ import annotations

import numpy as np
import pandas as pd
import pandas.testing as pdt
import pytest

from destchoice.abm.models import trip_distribution
from destchoice.abm.tables import persons as persons_table
from destchoice.abm.tables.constants import ModeRestriction, Purpose
from destchoice.core.exceptions import ModelConfigurationError
from destchoice.core.output import LOGSUM_COLUMNS

DISTRIBUTED_PURPOSES = ["HBS", "HBR", "HBO", "RRT", "AIRPORT"]


def run(settings, zones, households, persons, trips, distance_frame, coefficients):
    persons = persons.copy()
    trips = trips.copy()
    result = trip_distribution.run_trip_distribution(
        settings,
        zones,
        households,
        persons,
        trips,
        distance_frame,
        coefficients=coefficients,
    )
    return result, persons, trips


def test_model_purposes(settings):
    assert trip_distribution.model_purposes(settings) == [
        Purpose.HBS,
        Purpose.HBR,
        Purpose.HBO,
        Purpose.RRT,
    ]

    settings.distribute_trips = False
    assert trip_distribution.model_purposes(settings) == [Purpose.HBS]


def test_read_coefficients(configs_dir, settings):
    coefficients = trip_distribution.read_coefficients(configs_dir, settings)

    assert sorted(coefficients.keys()) == sorted(["mode_restriction", "HBS", "HBR", "HBO", "RRT"])
    assert coefficients["mode_restriction"].shape[1] == len(ModeRestriction)
    assert "nestingCoefficient" in coefficients["HBS"].index


def test_run_trip_distribution(
    settings, zones, households, persons, trips, distance_frame, dominant_coefficients
):
    result, persons_out, trips_out = run(
        settings, zones, households, persons, trips, distance_frame, dominant_coefficients
    )

    # everybody with trips gets the unrestricted mode restriction
    counts = result.mode_restriction_counts
    assert counts.non_mobile >= 1
    assert counts.chosen + counts.non_mobile == len(persons)
    chosen = persons_out.mode_restriction.dropna()
    assert len(chosen) == counts.chosen
    assert (chosen == ModeRestriction.auto_pt_walk_cycle.name).all()

    assert list(result.logsums.keys()) == [(Purpose.HBS, ModeRestriction.auto_pt_walk_cycle)]
    logsums = result.logsums[(Purpose.HBS, ModeRestriction.auto_pt_walk_cycle)]
    assert logsums.shape == (4, 4)
    assert (np.isfinite(logsums.to_numpy()) & (logsums.to_numpy() > 0)).all()

    distributed = trips_out.purpose.isin(DISTRIBUTED_PURPOSES)
    assert result.distribution_counts.distributed == distributed.sum()
    assert result.distribution_counts.failed == 0
    assert (trips_out.destination_zone_id[distributed] != -1).all()
    assert trips_out.destination_zone_id[distributed].isin(zones.index).all()

    # discretionary trips start at home
    home_zone_id = households.home_zone_id.reindex(
        persons.household_id.reindex(trips_out.person_id)
    ).to_numpy()
    discretionary = trips_out.purpose.isin(["HBS", "HBR", "HBO", "RRT"]).to_numpy()
    assert (trips_out.origin_zone_id.to_numpy()[discretionary] == home_zone_id[discretionary]).all()

    airport = trips_out[trips_out.purpose == "AIRPORT"]
    assert ((airport.origin_zone_id == 4) | (airport.destination_zone_id == 4)).all()

    # mandatory trips are not touched, non home based trips are not distributed
    untouched = ~distributed
    pdt.assert_frame_equal(trips_out[untouched], trips[untouched])
    assert (trips_out.destination_zone_id[trips_out.purpose.isin(["NHBW", "NHBO"])] == -1).all()


def test_run_trip_distribution_repeatable(
    settings, zones, households, persons, trips, distance_frame, coefficients
):
    settings.logsum_purposes = []

    result_a, persons_a, trips_a = run(
        settings, zones, households, persons, trips, distance_frame, coefficients
    )
    result_b, persons_b, trips_b = run(
        settings, zones, households, persons, trips, distance_frame, coefficients
    )

    assert result_a.logsums == {}
    assert result_a.mode_restriction_counts == result_b.mode_restriction_counts
    assert result_a.distribution_counts == result_b.distribution_counts
    pdt.assert_series_equal(persons_a.mode_restriction, persons_b.mode_restriction)
    pdt.assert_frame_equal(trips_a, trips_b)

    counts = result_a.distribution_counts
    assert counts.distributed + counts.failed == trips.purpose.isin(DISTRIBUTED_PURPOSES).sum()


def test_write_logsums(
    settings, zones, households, persons, trips, distance_frame, dominant_coefficients
):
    settings.write_logsums = True
    settings.distribute_trips = False

    result, _, trips_out = run(
        settings, zones, households, persons, trips, distance_frame, dominant_coefficients
    )

    file_path = settings.output_dir.joinpath(settings.logsum_file_name)
    with open(file_path) as f:
        assert f.readline().strip() == ",".join(LOGSUM_COLUMNS)

    df = pd.read_csv(file_path)
    assert len(df) == 16
    assert (df.purpose == "HBS").all()
    assert (df.modeRestriction == "auto_pt_walk_cycle").all()

    assert result.distribution_counts.distributed == 0
    pdt.assert_frame_equal(trips_out, trips)

    assert not settings.output_dir.joinpath("HBS_auto_pt_walk_cycle_logsums.csv").exists()


def test_write_logsum_matrix_files(
    settings, zones, households, persons, trips, distance_frame, dominant_coefficients
):
    settings.write_logsum_matrix_files = True
    settings.distribute_trips = False

    result, _, _ = run(
        settings, zones, households, persons, trips, distance_frame, dominant_coefficients
    )

    assert not settings.output_dir.joinpath(settings.logsum_file_name).exists()

    df = pd.read_csv(settings.output_dir.joinpath("HBS_auto_pt_walk_cycle_logsums.csv"))
    assert list(df.columns) == ["origin", "destination", "logsum"]
    assert len(df) == 16
    logsums = result.logsums[(Purpose.HBS, ModeRestriction.auto_pt_walk_cycle)]
    assert df.logsum.to_numpy() == pytest.approx(logsums.to_numpy().ravel())


def test_run_with_configs_dir(
    configs_dir, settings, zones, households, persons, trips, distance_frame
):
    settings.logsum_purposes = []
    persons = persons.copy()

    result = trip_distribution.run_trip_distribution(
        settings, zones, households, persons, trips.copy(), distance_frame, configs_dir=configs_dir
    )

    mobile = persons_table.has_trips(
        persons_table.persons_merged(persons, households, zones, trips)
    )
    assert persons.mode_restriction[mobile].notnull().all()
    assert persons.mode_restriction[~mobile].isnull().all()
    assert result.distribution_counts.distributed > 0


def test_configuration_errors(settings, zones, households, persons, trips, distance_frame):
    with pytest.raises(ModelConfigurationError):
        trip_distribution.run_trip_distribution(
            settings, zones, households, persons.copy(), trips.copy(), distance_frame
        )


def test_unknown_airport_zone(
    settings, zones, households, persons, trips, distance_frame, coefficients
):
    settings.airport_zone_id = 99
    with pytest.raises(ModelConfigurationError):
        run(settings, zones, households, persons, trips, distance_frame, coefficients)
