# destchoice
# See full license in LICENSE.txt.
from __future__ import annotations

import io
import logging

import numpy as np
import pandas as pd

from destchoice.abm.tables.constants import as_purpose
from destchoice.core.exceptions import AttractionRateNotSetError, InputTableError
from destchoice.core.skim import IndexedMatrix1D

logger = logging.getLogger(__name__)

AREA_TYPES = ["urban", "suburban", "rural"]


def check_zones(zones: pd.DataFrame) -> pd.DataFrame:
    """
    Check the zone table handed over by the loader and put it in canonical order.
    """
    for c in ["distance_to_rail", "area_type"]:
        if c not in zones.columns:
            raise InputTableError(f"zones table has no column '{c}'")

    if zones.index.duplicated().any():
        raise InputTableError("zones table has duplicate zone ids")

    bad_area_types = ~zones.area_type.isin(AREA_TYPES)
    if bad_area_types.any():
        raise InputTableError(
            f"unknown area_type {zones.area_type[bad_area_types].unique().tolist()}"
        )

    if not zones.index.is_monotonic_increasing:
        logger.info("sorting zones index")
        zones = zones.sort_index()

    logger.info("checked zones %s" % (zones.shape,))
    buffer = io.StringIO()
    zones.info(buf=buffer)
    logger.debug("zones.info:\n" + buffer.getvalue())

    return zones


def attraction_column(purpose):
    return f"attraction_{as_purpose(purpose).name}"


def attraction_rates_are_set(zones, purpose):
    column = attraction_column(purpose)
    return column in zones.columns and zones[column].notnull().all()


def get_attraction_rates(zones, purpose) -> IndexedMatrix1D:
    """
    Zone attraction rates of a purpose as a zone indexed vector.

    Raises AttractionRateNotSetError if trip generation has not set them.
    """
    column = attraction_column(purpose)
    if not attraction_rates_are_set(zones, purpose):
        raise AttractionRateNotSetError(
            f"attraction rates {column} not set for "
            f"{zones[column].isnull().sum() if column in zones.columns else len(zones)} zones"
        )
    return IndexedMatrix1D(zones.index, zones[column].to_numpy(dtype=np.float64))


def set_attraction_rates(zones, purpose, rates):
    """
    Set the attraction rates of a purpose, once.

    Parameters
    ----------
    zones : pandas.DataFrame
        modified in place
    purpose : Purpose, int or str
    rates : pandas.Series
        indexed by zone id, must cover every zone
    """
    column = attraction_column(purpose)
    if column in zones.columns and zones[column].notnull().any():
        raise AttractionRateNotSetError(f"attraction rates {column} already set")

    rates = pd.Series(rates).reindex(zones.index)
    if rates.isnull().any():
        raise InputTableError(
            f"{column}: no attraction rate for {rates.isnull().sum()} zones"
        )
    zones[column] = rates.astype(np.float64)
