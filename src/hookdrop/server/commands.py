import logging

import click
import uvicorn

from . import config
from .config import get_api_config
from .dependencies import get_files_store
from .main import app

log = logging.getLogger(__name__)


@click.command()
@click.option("--config-file", help="Path to the configuration file.", required=True)
@click.option("--host", default="127.0.0.1")
@click.option("--port", default=8000)
def serve(config_file, host, port):
    """Start the hookdrop API server."""
    # Set the global config path before the app starts
    config.CONFIG_FILE_PATH = config_file
    get_api_config.cache_clear()

    # Validate config and open the metadata tables on startup to fail early
    api_config = get_api_config()
    get_files_store(api_config)
    log.info(f"Starting server with config from: {config.CONFIG_FILE_PATH}")

    uvicorn.run(app, host=host, port=port)
