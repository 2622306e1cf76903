"""
Module: logging

Logging setup for the hookdrop CLI and the notifier Lambda.
"""

from __future__ import annotations

import logging
import sys
from os import PathLike

from tqdm.auto import tqdm

LOGGING_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOGGING_DATEFMT = "%Y-%m-%d %I:%M %p"


class TqdmLoggingHandler(logging.Handler):
    """Writes records to stderr with ``tqdm.write`` so they land above active progress bars."""

    def emit(self, record):
        try:
            tqdm.write(self.format(record), file=sys.stderr)
        except Exception:
            self.handleError(record)


def setup_cli_logging(log_file: str | PathLike | None, log_level: str):
    """
    Configure the root logger for a CLI run, replacing any handlers installed before.

    :param log_file: Optional; records are also appended to this file.
    :param log_level: Name of the level for the root logger.
    """
    handlers: list[logging.Handler] = [TqdmLoggingHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=log_level.upper(),
        format=LOGGING_FORMAT,
        datefmt=LOGGING_DATEFMT,
        handlers=handlers,
        force=True,
    )


def setup_lambda_logging(log_level: str = "INFO"):
    """
    Setup logging inside AWS Lambda.
    The Lambda runtime pre-installs a handler on the root logger; only the level and format are adjusted.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level.upper())
    if not root_logger.handlers:
        root_logger.addHandler(logging.StreamHandler(sys.stderr))
    for handler in root_logger.handlers:
        handler.setFormatter(logging.Formatter(fmt=LOGGING_FORMAT, datefmt=LOGGING_DATEFMT))
