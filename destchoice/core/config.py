# destchoice
# See full license in LICENSE.txt.
from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml

from destchoice.core.configuration import Settings
from destchoice.core.exceptions import SettingsFileNotFoundError

logger = logging.getLogger(__name__)

SETTINGS_FILE_NAME = "settings.yaml"


def config_file_path(configs_dir, file_name, mandatory=True):
    """
    Find the first matching file among config directories.

    Parameters
    ----------
    configs_dir : Path-like or list of Path-like
        directories searched in order
    file_name : Path-like
        The name of the file to match.
    mandatory : bool, default True
        Raise SettingsFileNotFoundError if no match is found.  If set to False,
        this function returns None when there is no match.

    Returns
    -------
    Path or None
    """
    if isinstance(configs_dir, (str, Path)):
        configs_dir = [configs_dir]

    for directory in configs_dir:
        file_path = Path(directory).joinpath(file_name)
        if file_path.exists():
            return file_path

    if mandatory:
        raise SettingsFileNotFoundError(file_name, configs_dir)
    return None


def read_settings_file(configs_dir, file_name=SETTINGS_FILE_NAME, mandatory=True):
    """
    Load run settings from a yaml file.

    Parameters
    ----------
    configs_dir : Path-like or list of Path-like
    file_name : str
    mandatory : bool, default True
        If false and no settings file is found, all-default settings are returned.

    Returns
    -------
    Settings
    """
    file_path = config_file_path(configs_dir, file_name, mandatory=mandatory)
    if file_path is None:
        logger.info("no %s found, using default settings" % file_name)
        return Settings()

    with open(file_path) as f:
        settings_dict = yaml.load(f, Loader=yaml.SafeLoader) or {}

    logger.info("Read settings from %s" % file_path)
    return Settings(**settings_dict)


def num_threads(settings):
    # 0 or None means all cores
    return settings.num_threads or os.cpu_count() or 1
