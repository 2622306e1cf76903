import json
import logging

import click

from ..models.config import NotifierConfig
from .executor import build_executor

log = logging.getLogger(__name__)


@click.command("process-event")
@click.option("--config-file", help="Path to the configuration file.", required=True)
@click.option(
    "--event-file",
    type=click.File("r"),
    required=True,
    help="S3 event notification as JSON, '-' for stdin.",
)
def process_event(config_file, event_file):
    """
    Announce the objects of an S3 event notification on their webhooks.
    """
    notifier_config = NotifierConfig.from_path(config_file)
    event = json.load(event_file)

    counts = build_executor(notifier_config).handle_event(event)
    log.info(f"Processed {sum(counts.values())} event records.")
    click.echo(json.dumps(counts))
