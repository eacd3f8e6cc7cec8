# destchoice
# See full license in LICENSE.txt.
from __future__ import annotations

import logging
import logging.config
import os
import sys
import time

import yaml

# Configurations
DESTCHOICE_LOGGER = "destchoice"
LOGGING_CONF_FILE_NAME = "logging.yaml"

logger = logging.getLogger(__name__)


class ElapsedTimeFormatter(logging.Formatter):
    def format(self, record):
        duration_milliseconds = record.relativeCreated
        hours, rem = divmod(duration_milliseconds / 1000, 3600)
        minutes, seconds = divmod(rem, 60)
        if hours:
            record.elapsedTime = "{:0>2}:{:0>2}:{:05.2f}".format(
                int(hours), int(minutes), seconds
            )
        else:
            record.elapsedTime = "{:0>2}:{:05.2f}".format(int(minutes), seconds)
        return super(ElapsedTimeFormatter, self).format(record)


def config_logger(configs_dir=None, basic=False):
    """
    Configure logger

    look for conf file in configs_dir, if not found use basicConfig

    Parameters
    ----------
    configs_dir : str or Path, optional
        directory searched for logging.yaml
    basic : bool or int, default False
        When set, ignore configuration file and just set logging to
        use streaming to stdout.  True implies logging level INFO,
        or set to a different integer for that level.
    """

    log_config_file = None
    if not basic and configs_dir is not None:
        candidate = os.path.join(configs_dir, LOGGING_CONF_FILE_NAME)
        if os.path.isfile(candidate):
            log_config_file = candidate

    if log_config_file:
        try:
            with open(log_config_file) as f:
                config_dict = yaml.load(f, Loader=yaml.SafeLoader)
        except Exception as e:
            print(f"Unable to read logging config file {log_config_file}")
            raise e

        try:
            config_dict = config_dict["logging"]
            config_dict.setdefault("version", 1)
            logging.config.dictConfig(config_dict)
        except Exception as e:
            logging.warning(
                f"Unable to config logging as specified in {log_config_file}"
            )
            raise e
    else:
        if basic is True or not basic:
            basic = logging.INFO
        logging.basicConfig(level=basic, stream=sys.stdout)

    # log warnings such as ProbabilitySumWarning
    logging.captureWarnings(capture=True)

    logger = logging.getLogger(DESTCHOICE_LOGGER)

    if log_config_file:
        logger.info("Read logging configuration from: %s" % log_config_file)
    else:
        logger.log(basic, "Configured logging using basicConfig")


def extend_trace_label(trace_label: str = None, extension: str = None) -> str | None:
    if trace_label:
        trace_label = "%s.%s" % (trace_label, extension)
    return trace_label


def format_elapsed_time(t):
    return "%s seconds (%s minutes)" % (round(t, 3), round(t / 60.0, 1))


def print_elapsed_time(msg=None, t0=None, debug=False):
    t1 = time.time()
    if msg:
        assert t0 is not None
        t = t1 - (t0 or t1)
        msg = "Time to execute %s : %s" % (msg, format_elapsed_time(t))
        if debug:
            logger.debug(msg)
        else:
            logger.info(msg)
    return t1


def print_summary(label, df, describe=False, value_counts=False):
    """
    Print summary

    Parameters
    ----------
    label: str
        tracer name
    df: pandas.DataFrame or pandas.Series
        traced dataframe
    describe: boolean
        print describe?
    value_counts: boolean
        print value counts?

    Returns
    -------
    Nothing
    """

    if not (value_counts or describe):
        logger.error("print_summary neither value_counts nor describe")

    if value_counts:
        n = 16
        logger.info(
            "%s top %s value counts:\n%s"
            % (label, n, df.value_counts(dropna=False).nlargest(n))
        )

    if describe:
        logger.info("%s summary:\n%s" % (label, df.describe()))


def is_power_of_two(n):
    # progress is logged at 1, 2, 4, 8, ... records
    return n > 0 and (n & (n - 1)) == 0
