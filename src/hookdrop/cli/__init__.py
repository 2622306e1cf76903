"""
Common click options for the CLI commands.
"""

from os import sched_getaffinity
from pathlib import Path

import click
import platformdirs

from ..constants import DEFAULT_CONCURRENCY

DEFAULT_CONFIG_PATH = Path(platformdirs.user_config_dir("hookdrop")) / "config.yaml"

# Naming convention: FILE_{Read,Write}_{Exists,Create}
FILE_R_E = click.Path(exists=True, file_okay=True, dir_okay=False, readable=True, resolve_path=True, path_type=Path)

config_file = click.option(
    "--config-file",
    metavar="STRING",
    type=FILE_R_E,
    required=False,
    default=DEFAULT_CONFIG_PATH,
    help="Path to config file",
)

config_files = click.option(
    "--config-file",
    "config_files",
    metavar="STRING",
    type=FILE_R_E,
    multiple=True,
    required=True,
    help="Path to a config file. May be given multiple times; later files override earlier ones.",
)

threads = click.option(
    "--threads",
    default=min(len(sched_getaffinity(0)), DEFAULT_CONCURRENCY),
    type=click.IntRange(min=1),
    show_default=True,
    help="Number of parts to upload in parallel",
)
