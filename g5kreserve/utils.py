import os
import re
import time
import yaml
import logging
import datetime


logger_singleton = list()


def get_logger(log_level=logging.INFO):
    '''Create a custom logger

    Parameters
    ----------
    log_level: int
        the level of log from `logging` module

    Returns
    -------
    Logger
        a custom Logger object with custom format and logging level
    '''
    global logger_singleton
    if len(logger_singleton) > 0:
        logger = logger_singleton[0]
    else:
        logger = logging.getLogger(__name__)
        log_format = "%(asctime)s [%(threadName)s] %(levelname)s: %(message)s"
        handler = logging.StreamHandler()
        formatter = logging.Formatter(log_format)
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(log_level)
        logger_singleton.append(logger)

        try:
            import coloredlogs
            coloredlogs.install(logger=logger, fmt=log_format)
        except Exception as e:
            logger.error('Exception: %s' % e, exc_info=True)
    return logger


logger = get_logger()


def parse_config_file(config_file_path):
    if config_file_path is None or config_file_path == "":
        raise IOError("Please enter the configuration file path.")
    elif not os.path.exists(config_file_path):
        raise IOError("Please enter an existing configuration file path.")
    else:
        with open(config_file_path, 'r') as f:
            content = yaml.full_load(f)
            if not isinstance(content, dict):
                raise IOError("The configuration file must contain a mapping of options.")
            return {key: str(value) if isinstance(value, str) else value for key, value in content.items()}


def walltime_to_seconds(walltime):
    """Convert a walltime to a number of seconds

    Parameters
    ----------
    walltime: int, datetime.timedelta or str
        a number of seconds, a timedelta or a string in the format of H:MM:SS (MM:SS and
        plain seconds are also accepted)

    Returns
    -------
    int
        the duration in seconds
    """
    if isinstance(walltime, bool):
        raise ValueError('Walltime cannot be a boolean: %r' % walltime)
    if isinstance(walltime, datetime.timedelta):
        return int(walltime.total_seconds())
    if isinstance(walltime, int):
        if walltime < 0:
            raise ValueError('Walltime cannot be negative: %s' % walltime)
        return walltime
    if isinstance(walltime, str) and re.match(r'^\d+(:\d{1,2}){0,2}$', walltime.strip()):
        secs = 0
        for part in walltime.strip().split(':'):
            secs = secs * 60 + int(part)
        return secs
    raise ValueError('Unrecognized walltime format: %r' % walltime)


def format_walltime(seconds):
    """Format a number of seconds as H:MM:SS, the walltime grammar of OAR"""
    hours, rest = divmod(int(seconds), 3600)
    minutes, secs = divmod(rest, 60)
    return '%d:%02d:%02d' % (hours, minutes, secs)


def date_to_epoch(date):
    """Convert a start date to epoch seconds

    Parameters
    ----------
    date: int, float, datetime.datetime or str
        epoch seconds, a datetime (naive datetimes are local time) or a string in
        the format of YYYY-MM-DD HH:MM:SS

    Returns
    -------
    int
        the number of seconds since epoch
    """
    if isinstance(date, bool):
        raise ValueError('Date cannot be a boolean: %r' % date)
    if isinstance(date, (int, float)):
        return int(date)
    if isinstance(date, datetime.datetime):
        return int(date.timestamp())
    if isinstance(date, str):
        for fmt in ('%Y-%m-%d %H:%M:%S', '%Y-%m-%d %H:%M', '%Y-%m-%dT%H:%M:%S'):
            try:
                return int(datetime.datetime.strptime(date.strip(), fmt).timestamp())
            except ValueError:
                continue
    raise ValueError('Unrecognized date format: %r' % date)


def format_date(epoch):
    return time.strftime('%Y-%m-%d %H:%M:%S', time.localtime(epoch))
