# destchoice
# See full license in LICENSE.txt.
from __future__ import annotations

import logging

import numpy as np
import pandas as pd

from destchoice.abm.models.util.predictors import mode_choice_predictors
from destchoice.abm.tables.constants import (
    DISTANCE_COEFFICIENT,
    MODE_NAMES,
    NESTING_COEFFICIENT,
    as_purpose,
    restricted_modes,
)
from destchoice.core import config, logit, simulate, tracing

logger = logging.getLogger(__name__)


def read_mode_choice_coefficients(configs_dir, settings, purpose):
    """mode choice coefficient table of a purpose, one column per mode"""
    file_name = settings.mode_choice_coefficients_file(purpose)
    file_path = config.config_file_path(configs_dir, file_name)
    return simulate.read_model_coefficients(file_path, alternatives=MODE_NAMES)


class PurposeModel(object):
    """
    Everything the zone logsum and destination steps need about one purpose,
    loaded once and shared read-only by all tasks of the purpose.

    Parameters
    ----------
    purpose : Purpose, int or str
    coefficients : pandas.DataFrame
        mode choice coefficients, one column per mode, with the distance and nesting
        coefficient rows
    attractions : IndexedMatrix1D, optional
        zone attraction rates, needed for destination choice only
    top_scale : float
        top level scale parameter of the nested logit
    """

    def __init__(self, purpose, coefficients, attractions=None, top_scale=1.0):
        self.purpose = as_purpose(purpose)
        self.coefficients = coefficients
        self.distance_coefficients = pd.Series(
            simulate.coefficient_for(coefficients, DISTANCE_COEFFICIENT, MODE_NAMES),
            index=MODE_NAMES,
        )
        self.nests = logit.identify_nests(coefficients, MODE_NAMES, NESTING_COEFFICIENT)
        self.attractions = attractions
        self.top_scale = top_scale

        logger.debug(f"{self.purpose.name} nests: {self.nests}")

    @property
    def name(self):
        return self.purpose.name

    def available_modes(self, mode_restriction, exclude_purpose_modes=True):
        """
        names of the modes of a mode restriction that trips of this purpose may use

        Zone logsums pass exclude_purpose_modes=False and aggregate over every
        mode of the mode restriction.
        """
        purpose = self.purpose if exclude_purpose_modes else None
        mask = restricted_modes(mode_restriction, purpose)
        return [m for m, available in zip(MODE_NAMES, mask) if available]

    def restricted_nests(self, modes):
        return logit.restrict_nests(self.nests, modes, self.top_scale)

    def mode_utilities(self, persons_merged, trace_label=None):
        """
        Person level utility of every mode (distance term excluded)

        Returns
        -------
        pandas.DataFrame
            indexed like persons_merged, one column per mode name
        """
        trace_label = tracing.extend_trace_label(trace_label, "mode_utilities")
        return simulate.eval_utilities(
            mode_choice_predictors(persons_merged),
            self.coefficients,
            alternatives=MODE_NAMES,
            required=False,
            trace_label=trace_label,
        )

    def aggregate(self, utilities, modes, log_distance):
        """
        Nested logit aggregate of the modes for an array of log distances.

        Parameters
        ----------
        utilities : mapping of mode name to float
        modes : list of str
            available modes
        log_distance : numpy.ndarray

        Returns
        -------
        numpy.ndarray
        """
        return logit.nested_logsum_aggregate(
            utilities,
            self.distance_coefficients,
            self.restricted_nests(modes),
            log_distance,
            self.top_scale,
        )


def log_distances(distances):
    """elementwise log of a distance array, log(0) is -inf"""
    with np.errstate(divide="ignore"):
        return np.log(distances)
