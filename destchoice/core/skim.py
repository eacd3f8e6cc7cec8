# destchoice
# See full license in LICENSE.txt.
from __future__ import annotations

import logging

import numpy as np
import pandas as pd

from destchoice.core.exceptions import InputTableError

logger = logging.getLogger(__name__)

NOT_IN_SKIM_ZONE_ID = -1


class OffsetMapper(object):
    """
    Utility to map zone ids to ordinal offsets (e.g. numpy array indices)

    Maps either by a fixed offset (e.g. -1 to map 1-based to 0-based)
    or by an explicit mapping of zone id to offset (slower but more flexible)

    offset_int:
        int offset which when added to zone_id yields array index (e.g. -1 to map 1-based to 0-based)
    offset_series:
        pandas series with zone_id index and array offset values
    """

    def __init__(self, offset_list):
        self.offset_int = self.offset_series = None
        self.set_offset_list(list(offset_list))

    def set_offset_list(self, offset_list):
        """
        offset_list
            list the same size as target dimension with zone_id values corresponding to the array index

        set_offset_list([10, 20, 30, 40])
        map([30, 10, 40])
        returns offsets [2, 0, 3]

        Parameters
        ----------
        offset_list : list of int
        """
        assert isinstance(offset_list, list)

        if len(set(offset_list)) != len(offset_list):
            raise InputTableError("zone ids are not unique")

        self.zone_ids = np.asanyarray(offset_list)

        # - for performance, check if this is a simple range that can be represented by an int offset
        if offset_list:
            first_offset = offset_list[0]
            if offset_list == list(range(first_offset, len(offset_list) + first_offset)):
                self.offset_int = -1 * int(first_offset)
                return

        self.offset_series = pd.Series(
            data=np.arange(len(offset_list)), index=offset_list
        )

    def __len__(self):
        return len(self.zone_ids)

    def map(self, zone_ids):
        """
        map zone_ids to offsets

        Parameters
        ----------
        zone_ids : scalar or array-like of int

        Returns
        -------
        offsets : int or numpy array of int (NOT_IN_SKIM_ZONE_ID for unknown zone ids)
        """

        scalar = np.isscalar(zone_ids)
        zone_ids = np.atleast_1d(np.asanyarray(zone_ids))

        if self.offset_series is not None:
            offsets = (
                self.offset_series.reindex(zone_ids)
                .fillna(NOT_IN_SKIM_ZONE_ID)
                .astype(int)
                .values
            )
        else:
            offsets = zone_ids.astype(int) + self.offset_int
            offsets = np.where(
                (offsets >= 0) & (offsets < len(self.zone_ids)),
                offsets,
                NOT_IN_SKIM_ZONE_ID,
            )

        return int(offsets[0]) if scalar else offsets

    def checked_offset(self, zone_id):
        offset = self.map(zone_id)
        if offset == NOT_IN_SKIM_ZONE_ID:
            raise KeyError("zone id %s not in zone system" % zone_id)
        return offset


class IndexedMatrix1D(object):
    """
    Dense vector of floats addressed by zone id.
    """

    def __init__(self, zone_ids, data=None, dtype=np.float64):
        self.offset_mapper = OffsetMapper(zone_ids)
        if data is None:
            data = np.zeros(len(self.offset_mapper), dtype=dtype)
        self.data = np.ascontiguousarray(data, dtype=dtype)
        assert self.data.shape == (len(self.offset_mapper),)

    @property
    def zone_ids(self):
        return self.offset_mapper.zone_ids

    def get(self, zone_id):
        return self.data[self.offset_mapper.checked_offset(zone_id)]

    def set(self, zone_id, value):
        self.data[self.offset_mapper.checked_offset(zone_id)] = value

    def id_for_offset(self, offset):
        return self.zone_ids[offset]

    def to_numpy(self):
        return self.data

    def to_series(self, name=None):
        return pd.Series(self.data, index=pd.Index(self.zone_ids, name="zone_id"), name=name)


class IndexedMatrix2D(object):
    """
    Dense zone x zone matrix of floats addressed by (origin id, destination id).

    Rows and columns share one zone id ordering, established at construction.
    """

    def __init__(self, zone_ids, data=None, dtype=np.float64):
        self.offset_mapper = OffsetMapper(zone_ids)
        n = len(self.offset_mapper)
        if data is None:
            data = np.zeros((n, n), dtype=dtype)
        self.data = np.ascontiguousarray(data, dtype=dtype)
        assert self.data.shape == (n, n)

    @classmethod
    def from_frame(cls, df, zone_ids):
        """
        Snapshot a square zone x zone DataFrame into zone-indexed form.

        Parameters
        ----------
        df : pandas.DataFrame
            origin zone ids as index, destination zone ids as columns
        zone_ids : array-like of int
            zone id ordering of the snapshot

        Returns
        -------
        IndexedMatrix2D
        """
        zone_ids = list(zone_ids)
        missing_rows = pd.Index(zone_ids).difference(df.index)
        missing_cols = pd.Index(zone_ids).difference(df.columns)
        if len(missing_rows) or len(missing_cols):
            raise InputTableError(
                "distance matrix lacks zones: rows %s columns %s"
                % (list(missing_rows[:10]), list(missing_cols[:10]))
            )
        data = df.reindex(index=zone_ids, columns=zone_ids).to_numpy(dtype=np.float64)
        return cls(zone_ids, data)

    @property
    def zone_ids(self):
        return self.offset_mapper.zone_ids

    @property
    def shape(self):
        return self.data.shape

    def get(self, origin_id, destination_id):
        return self.data[
            self.offset_mapper.checked_offset(origin_id),
            self.offset_mapper.checked_offset(destination_id),
        ]

    def set(self, origin_id, destination_id, value):
        self.data[
            self.offset_mapper.checked_offset(origin_id),
            self.offset_mapper.checked_offset(destination_id),
        ] = value

    def row(self, origin_id):
        """contiguous array of the values from origin_id to every zone"""
        return self.data[self.offset_mapper.checked_offset(origin_id)]

    def column(self, destination_id):
        return np.ascontiguousarray(
            self.data[:, self.offset_mapper.checked_offset(destination_id)]
        )

    def id_for_offset(self, offset):
        return self.zone_ids[offset]

    def to_numpy(self):
        return self.data

    def to_long_frame(self, value_name="value"):
        n = len(self.zone_ids)
        return pd.DataFrame(
            {
                "origin": np.repeat(self.zone_ids, n),
                "destination": np.tile(self.zone_ids, n),
                value_name: self.data.ravel(),
            }
        )
