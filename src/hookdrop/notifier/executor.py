"""
Announces uploaded objects on their webhooks.

Runs on S3 ``ObjectCreated`` event notifications, either as an AWS Lambda function
(``handler``) or through ``hookdrop process-event``.
"""

import logging
import os
from typing import Any
from urllib.parse import unquote_plus

from ..constants import UPLOAD_KEY_PREFIX
from ..exceptions import HookdropError
from ..logging import setup_lambda_logging
from ..models.config import NotifierConfig
from ..models.records import FileRecord, FileStatus, WebhookRecord, iso_timestamp
from ..stores import MetadataStore, init_metadata_stores
from .discord import DiscordWebhookSink

log = logging.getLogger(__name__)


def parse_object_key(raw_key: str) -> tuple[str, str] | None:
    """
    Decode an object key from an S3 event.

    :return: ``(key, file_id)``, or ``None`` if the key is not an upload
    """
    key = unquote_plus(raw_key)
    segments = key.split("/", 2)
    if len(segments) != 3 or segments[0] != UPLOAD_KEY_PREFIX or not segments[1] or not segments[2]:
        return None
    return key, segments[1]


def build_message(record: FileRecord, url: str) -> dict[str, Any]:
    content = f"{record.custom_message}\n{url}" if record.custom_message else url
    return {"content": content}


class NotificationExecutor:
    """Posts the public URL of each uploaded file to the webhook chosen at upload time."""

    __log = log.getChild("NotificationExecutor")

    def __init__(
        self,
        files: MetadataStore,
        webhooks: MetadataStore,
        sink: DiscordWebhookSink,
        cdn_domain: str,
    ):
        self._files = files
        self._webhooks = webhooks
        self._sink = sink
        self._cdn_domain = cdn_domain

    def _find_file(self, file_id: str) -> FileRecord | None:
        # the partition key (user) is unknown here
        items = self._files.scan({"fileId": file_id}, limit=1)
        return FileRecord.model_validate(items[0]) if items else None

    def _set_status(self, record: FileRecord, fields: dict[str, Any]):
        self._files.update({"userId": record.user_id, "fileId": record.file_id}, fields)

    def notify(self, key: str, file_id: str) -> FileStatus | None:
        """
        Announce a single uploaded object.

        :return: the new status of the file record, or ``None`` if the object has no record
        """
        record = self._find_file(file_id)
        if record is None:
            self.__log.warning(f"No file record for uploaded object {key}")
            return None

        item = self._webhooks.get({"userId": record.user_id, "webhookId": record.webhook_id})
        if item is None:
            self.__log.error(f"Webhook {record.webhook_id} of file {file_id} no longer exists")
            self._set_status(record, {"status": FileStatus.ERROR.value, "errorMessage": "Webhook not found"})
            return FileStatus.ERROR
        webhook = WebhookRecord.model_validate(item)

        url = f"https://{self._cdn_domain}/{key}"
        try:
            message_id = self._sink.post(webhook.webhook_url, build_message(record, url))
        except HookdropError as e:
            self.__log.error(f"Posting {key} to webhook {webhook.webhook_id} failed: {e}")
            self._set_status(record, {"status": FileStatus.ERROR.value, "errorMessage": str(e)})
            return FileStatus.ERROR

        self._set_status(
            record,
            {
                "status": FileStatus.POSTED.value,
                "discordMessageId": message_id,
                "postedAt": iso_timestamp(),
                "cloudFrontUrl": url,
            },
        )
        self.__log.info(f"Posted {key} to webhook {webhook.webhook_id} (message {message_id})")
        return FileStatus.POSTED

    def handle_event(self, event: dict[str, Any]) -> dict[str, int]:
        """
        Process every record of an S3 event notification.
        A failing record is logged and does not stop the others.

        :return: counts of ``posted``, ``error`` and ``skipped`` records
        """
        counts = {"posted": 0, "error": 0, "skipped": 0}
        for event_record in event.get("Records", []):
            raw_key = event_record.get("s3", {}).get("object", {}).get("key", "")
            parsed = parse_object_key(raw_key)
            if parsed is None:
                self.__log.info(f"Ignoring object outside of uploads: {raw_key}")
                counts["skipped"] += 1
                continue
            key, file_id = parsed
            try:
                result = self.notify(key, file_id)
            except Exception:
                self.__log.error(f"Error processing object {key}", exc_info=True)
                counts["error"] += 1
                continue
            if result is None:
                counts["skipped"] += 1
            else:
                counts[str(result)] += 1
        return counts


def build_executor(config: NotifierConfig, sink: DiscordWebhookSink | None = None) -> NotificationExecutor:
    files, webhooks = init_metadata_stores(config.metadata)
    return NotificationExecutor(files, webhooks, sink or DiscordWebhookSink(), config.cdn_domain)


def handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """AWS Lambda entry point. Configuration comes from ``HOOKDROP_*`` environment variables."""
    setup_lambda_logging(os.environ.get("LOG_LEVEL", "INFO"))
    executor = build_executor(NotifierConfig())
    counts = executor.handle_event(event)
    log.info(f"Processed S3 event: {counts}")
    return {"statusCode": 200, **counts}
