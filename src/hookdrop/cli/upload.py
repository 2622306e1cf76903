"""Command for uploading a file to a webhook."""

import logging
import mimetypes
from os.path import getsize
from pathlib import Path

import click
import requests
from tqdm.auto import tqdm

from ..constants import DEFAULT_CONTENT_TYPE, TQDM_DEFAULTS
from ..exceptions import HookdropError
from ..models.config import ClientConfig
from ..upload.api_client import HookdropApiClient
from ..upload.part_uploader import PartUploader
from ..upload.worker import MultipartUploadWorker
from . import FILE_R_E, config_file, threads

log = logging.getLogger(__name__)


@click.command()
@click.argument("file", type=FILE_R_E)
@click.option("--webhook-id", required=True, metavar="STRING", help="ID of the webhook to announce the file on.")
@click.option("--message", "custom_message", metavar="STRING", help="Text posted along with the file's URL.")
@click.option("--content-type", metavar="STRING", help="Content type of the file. Guessed from its name by default.")
@config_file
@threads
def upload(file: Path, webhook_id, custom_message, content_type, config_file, threads):  # noqa: PLR0913
    """
    Upload a file and announce it on a webhook.

    Prints the ID of the file record on success.
    """
    config = ClientConfig.from_path(config_file)
    content_type = content_type or mimetypes.guess_type(file.name)[0] or DEFAULT_CONTENT_TYPE

    api = HookdropApiClient(api_base_url=str(config.api_base_url), token=config.token)
    worker = MultipartUploadWorker(
        api,
        part_size=config.part_size,
        multipart_threshold=config.multipart_threshold,
        concurrency=threads,
        uploader=PartUploader(max_attempts=config.max_retries, base_delay=config.retry_base_delay),
    )

    size = getsize(file)
    log.info(f"Uploading {file} ({size} bytes, {content_type})...")
    with tqdm(total=size, desc="UPLOAD  ", **TQDM_DEFAULTS) as pbar:  # type: ignore[call-overload]

        def on_progress(fraction: float):
            pbar.n = round(fraction * size)
            pbar.refresh()

        try:
            file_id = worker.upload_file(
                file,
                webhook_id=webhook_id,
                content_type=content_type,
                custom_message=custom_message,
                progress_callback=on_progress,
            )
        except (HookdropError, requests.exceptions.RequestException) as e:
            raise click.ClickException(f"Upload of {file.name} failed: {e}") from e

    log.info("Upload finished!")
    click.echo(file_id)
