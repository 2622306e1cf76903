"""Command for dumping the configuration."""

import json
import logging
from pathlib import Path

import click

from ..utils.config import load_config_files
from . import config_files as config_files_option

log = logging.getLogger(__name__)


@click.command("dump-config")
@config_files_option
def dump_config(config_files: tuple[Path, ...]):
    """
    Dump the merged configuration as read from config files.
    """
    log.info(f"Configuration files to load: {json.dumps([str(p.absolute()) for p in config_files], indent=2)}")

    config = load_config_files(config_files)
    click.echo(json.dumps(config, indent=2, default=str))

    log.info(
        "Note this only dumps the merged configuration as read from the files. "
        "It does not validate or process the configuration and ignores any environment variables."
    )
