# destchoice
# See full license in LICENSE.txt.
from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel as PydanticBase
from pydantic import field_validator

from destchoice.abm.tables.constants import ModeRestriction, Purpose, as_purpose


class Settings(PydanticBase, extra="forbid", validate_assignment=True):
    """
    The overall settings for a trip distribution run.

    The input for these settings is typically stored in one main YAML file,
    usually called ``settings.yaml``.
    """

    rng_base_seed: int | None = 0
    """
    Base seed for all random streams.

    Every parallel task draws from its own stream seeded from this value,
    the step name and the task index.  Use None for a fresh seed every run.
    """

    num_threads: int | None = None
    """
    Size of the worker thread pool of each phase.

    If not given or set to 0, the number of available CPU cores is used.
    """

    top_scale_parameter: float = 1.0
    """Top level scale parameter of the nested logit destination model."""

    logsum_purposes: list[str] = ["HBS", "HBR", "HBO"]
    """Purposes for which zone logsum matrices are aggregated."""

    logsum_mode_restrictions: list[str] | None = None
    """
    Mode restrictions for which zone logsum matrices are aggregated.

    If omitted, every mode restriction is aggregated for every logsum purpose.
    """

    destination_purposes: list[str] = ["HBS", "HBR", "HBO", "RRT"]
    """Home based discretionary purposes whose trips get a sampled destination."""

    distribute_trips: bool = True
    """Sample destinations for discretionary and airport trips."""

    write_logsums: bool = False
    """Write the zone logsum matrices to ``output_dir``."""

    logsum_file_name: str = "logsumMatrices.csv"
    """File name of the combined logsum matrix output."""

    write_logsum_matrix_files: bool = False
    """Also write each logsum matrix to its own ``<purpose>_<mode restriction>_logsums.csv``."""

    airport_zone_id: int | None = None
    """Zone id of the airport, required when the population has airport trips."""

    MODE_RESTRICTION_COEFFICIENTS: str = "mode_restriction_coefficients.csv"
    """Coefficients file of the mode restriction model, one column per mode restriction."""

    MODE_CHOICE_COEFFICIENTS: str = "mode_choice_coefficients_{purpose}.csv"
    """File name template of the per purpose mode choice coefficients, one column per mode."""

    output_dir: Path = Path("output")
    """Directory for logsum output files."""

    @field_validator("logsum_purposes", "destination_purposes")
    @classmethod
    def known_purposes(cls, purposes):
        for purpose in purposes:
            if purpose not in Purpose.__members__:
                raise ValueError(f"unknown purpose '{purpose}'")
        return purposes

    @field_validator("logsum_mode_restrictions")
    @classmethod
    def known_mode_restrictions(cls, mode_restrictions):
        for mode_restriction in mode_restrictions or []:
            if mode_restriction not in ModeRestriction.__members__:
                raise ValueError(f"unknown mode restriction '{mode_restriction}'")
        return mode_restrictions

    def mode_choice_coefficients_file(self, purpose) -> str:
        return self.MODE_CHOICE_COEFFICIENTS.format(purpose=as_purpose(purpose).name)
