from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional, Union


class StdOutFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno in (logging.DEBUG, logging.INFO, logging.WARNING)


class StdErrFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno not in (logging.DEBUG, logging.INFO, logging.WARNING)


LINE = "-" * 100
ERR_FMT = (
    f"{LINE}\n%(asctime)s -> %(processName)s -> %(module)s -> %(funcName)s(%(lineno)d): "
    f"%(message)s\n{LINE}"
)
DEBUG_FMT = "%(asctime)s -> %(processName)s -> %(module)s -> %(funcName)s: %(message)s"


def setup_logger(
    logger: Union[str, logging.Logger],
    is_main: bool = False,
    log_file: Optional[Union[str, Path]] = None,
    debug: bool = False,
) -> logging.Logger:
    """Attach console (and optionally file) handlers to a logger.

    Debug, info and warning records go to stdout; errors go to stderr in a
    framed format through the root logger. ``is_main`` clears handlers left
    on the root logger by an earlier setup.

    Args:
        logger: Logger or logger name, e.g. ``"ionchannel"``.
        is_main: Whether this is the entry point of the process.
        log_file: File that also receives info and above, overwritten on setup.
        debug: Whether stdout shows debug records.

    Returns:
        The configured logger.
    """
    if not isinstance(logger, (str, logging.Logger)):
        raise TypeError(f"Provided logger not correct type: {type(logger).__name__}")

    if isinstance(logger, str):
        logger = logging.getLogger(logger)

    root_logger = logging.root
    if is_main:
        root_logger.handlers = []

    err_formatter = logging.Formatter(fmt=ERR_FMT)
    debug_formatter = logging.Formatter(fmt=DEBUG_FMT)

    cli_err = logging.StreamHandler(stream=sys.stderr)
    cli_err.setLevel(logging.ERROR)
    cli_err.setFormatter(err_formatter)
    cli_err.addFilter(StdErrFilter())

    cli_out = logging.StreamHandler(stream=sys.stdout)
    cli_out.setLevel(logging.DEBUG if debug else logging.INFO)
    cli_out.setFormatter(debug_formatter)
    cli_out.addFilter(StdOutFilter())

    root_logger.setLevel(logging.ERROR)
    root_logger.addHandler(cli_err)

    logger.setLevel(logging.DEBUG)
    logger.addHandler(cli_out)

    if log_file is not None:
        file_log = logging.FileHandler(filename=str(log_file), mode="w+")
        file_log.setLevel(logging.INFO)
        file_log.setFormatter(err_formatter)
        logger.addHandler(file_log)

    return logger
