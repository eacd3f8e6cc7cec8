# destchoice
# See full license in LICENSE.txt.
from __future__ import annotations


class StateAccessError(ValueError):
    """Error trying to access a value that is not yet initialized."""


class AttractionRateNotSetError(StateAccessError):
    """A zone attraction rate was read before trip generation set it, or set twice."""


class SettingsFileNotFoundError(FileNotFoundError):
    def __init__(self, file_name, configs_dir):
        self.file_name = file_name
        self.configs_dir = configs_dir

    def __str__(self):
        return repr(f"Settings file '{self.file_name}' not found in {self.configs_dir}")


class MissingCoefficientError(KeyError):
    """A predictor required by a utility model is absent from its coefficient table."""


class ModelConfigurationError(RuntimeError):
    """An error in the model configuration was found."""


class InputTableError(RuntimeError):
    """An issue with the input population or zone system was found."""


class InvalidUtilityError(RuntimeError):
    """A utility, logsum cell or destination weight is not finite."""


class InsufficientPopulationError(RuntimeError):
    """No persons qualify for averaging the utilities of a logsum segment."""


class ProbabilitySumWarning(RuntimeWarning):
    """Choice probabilities do not add up to one (logged, never raised)."""
