# destchoice
# See full license in LICENSE.txt.
from __future__ import annotations

from enum import IntEnum

import numpy as np


class Mode(IntEnum):
    auto_driver = 0
    auto_passenger = 1
    public_transport = 2
    bicycle = 3
    walk = 4


class Purpose(IntEnum):
    HBW = 0
    HBE = 1
    HBS = 2
    HBR = 3
    HBO = 4
    RRT = 5
    NHBW = 6
    NHBO = 7
    AIRPORT = 8


class ModeRestriction(IntEnum):
    auto = 0
    auto_pt = 1
    auto_walk = 2
    auto_cycle = 3
    auto_pt_walk = 4
    auto_pt_cycle = 5
    auto_walk_cycle = 6
    auto_pt_walk_cycle = 7
    pt = 8
    pt_walk = 9
    pt_cycle = 10
    pt_walk_cycle = 11
    walk = 12
    cycle = 13
    walk_cycle = 14


MODE_NAMES = [m.name for m in Mode]
MODE_RESTRICTIONS = list(ModeRestriction)
MODE_RESTRICTION_NAMES = [r.name for r in ModeRestriction]

# mode groups spelled in mode restriction names
MODE_GROUPS = {
    "auto": (Mode.auto_driver, Mode.auto_passenger),
    "pt": (Mode.public_transport,),
    "walk": (Mode.walk,),
    "cycle": (Mode.bicycle,),
}


def _restricted_modes():
    restricted = np.zeros((len(ModeRestriction), len(Mode)), dtype=bool)
    for mode_restriction in ModeRestriction:
        for group in mode_restriction.name.split("_"):
            for mode in MODE_GROUPS[group]:
                restricted[mode_restriction, mode] = True
    restricted.flags.writeable = False
    return restricted


# RESTRICTED_MODES[mode_restriction, mode] is True if mode is in the restricted mode set
RESTRICTED_MODES = _restricted_modes()

# persons with round trip recreation trips only consider these
RRT_MODE_RESTRICTIONS = (
    ModeRestriction.auto_pt_walk,
    ModeRestriction.auto_pt_walk_cycle,
    ModeRestriction.pt_walk,
    ModeRestriction.pt_walk_cycle,
)

# modes that are never available for trips of a purpose
PURPOSE_EXCLUDED_MODES = {
    Purpose.RRT: (Mode.auto_driver, Mode.auto_passenger, Mode.public_transport),
}

MANDATORY_PURPOSES = (Purpose.HBW, Purpose.HBE)

# walk time to the nearest rail stop counts as close to PT
WALK_SPEED_KMH = 4.8
WALK_TO_PT_MAX_MINUTES = 20

CHILD_MAX_AGE = 17

# coefficient table rows that are model parameters rather than predictors
NESTING_COEFFICIENT = "nestingCoefficient"
DISTANCE_COEFFICIENT = "t.distance_T"


def restricted_modes(mode_restriction, purpose=None):
    """
    Boolean mask over Mode of the modes available under a mode restriction,
    less the modes excluded for purpose.
    """
    available = RESTRICTED_MODES[as_mode_restriction(mode_restriction)].copy()
    if purpose is not None:
        for mode in PURPOSE_EXCLUDED_MODES.get(as_purpose(purpose), ()):
            available[mode] = False
    return available


def as_purpose(purpose):
    """Purpose member for a Purpose, its ordinal or its name."""
    if isinstance(purpose, str):
        return Purpose[purpose]
    return Purpose(purpose)


def as_mode_restriction(mode_restriction):
    """ModeRestriction member for a ModeRestriction, its ordinal or its name."""
    if isinstance(mode_restriction, str):
        return ModeRestriction[mode_restriction]
    return ModeRestriction(mode_restriction)
