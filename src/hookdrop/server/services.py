import logging
import re
import uuid

from fastapi import HTTPException, status

from ..constants import UPLOAD_KEY_PREFIX
from ..exceptions import RecordNotFoundError
from ..models.api import (
    AbortUploadRequest,
    CompleteUploadRequest,
    CreateWebhookRequest,
    InitiateUploadRequest,
    InitiateUploadResponse,
    PartUrlRequest,
    PartUrlResponse,
    UploadUrlRequest,
    UploadUrlResponse,
)
from ..models.records import FileRecord, FileStatus, WebhookRecord, iso_timestamp
from ..notifier.discord import DiscordWebhookSink
from ..stores import MetadataStore
from .blobstore import S3BlobStore

log = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^\w\-.]", re.ASCII)


def sanitize_filename(filename: str) -> str:
    """Replace every character outside ``[A-Za-z0-9_.-]`` with an underscore."""
    return _UNSAFE_FILENAME_CHARS.sub("_", filename)


def build_object_key(file_id: str, filename: str) -> str:
    return f"{UPLOAD_KEY_PREFIX}/{file_id}/{sanitize_filename(filename)}"


def public_url(cdn_domain: str, key: str) -> str:
    return f"https://{cdn_domain}/{key}"


# webhooks


def list_webhooks(webhooks: MetadataStore, user_id: str) -> list[WebhookRecord]:
    return [WebhookRecord.model_validate(item) for item in webhooks.query(user_id)]


def get_webhook(webhooks: MetadataStore, user_id: str, webhook_id: str) -> WebhookRecord | None:
    item = webhooks.get({"userId": user_id, "webhookId": webhook_id})
    return WebhookRecord.model_validate(item) if item else None


def require_webhook(webhooks: MetadataStore, user_id: str, webhook_id: str) -> WebhookRecord:
    webhook = get_webhook(webhooks, user_id, webhook_id)
    if webhook is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Webhook not found")
    return webhook


def create_webhook(webhooks: MetadataStore, user_id: str, request: CreateWebhookRequest) -> WebhookRecord:
    webhook = WebhookRecord(
        user_id=user_id,
        webhook_id=str(uuid.uuid4()),
        name=request.name,
        webhook_url=str(request.webhook_url),
        server_name=request.server_name,
        channel_name=request.channel_name,
        created_at=iso_timestamp(),
    )
    webhooks.put(webhook.to_item())
    log.info(f"Created webhook {webhook.webhook_id} for user '{user_id}'")
    return webhook


def delete_webhook(webhooks: MetadataStore, user_id: str, webhook_id: str) -> bool:
    return webhooks.delete({"userId": user_id, "webhookId": webhook_id})


# files


def list_files(files: MetadataStore, user_id: str, webhook_id: str | None = None) -> list[FileRecord]:
    items = files.query(user_id, {"webhookId": webhook_id} if webhook_id else None)
    records = [FileRecord.model_validate(item) for item in items]
    return sorted(records, key=lambda record: record.created_at, reverse=True)


def get_file(files: MetadataStore, user_id: str, file_id: str) -> FileRecord | None:
    item = files.get({"userId": user_id, "fileId": file_id})
    return FileRecord.model_validate(item) if item else None


def require_file(files: MetadataStore, user_id: str, file_id: str) -> FileRecord:
    record = get_file(files, user_id, file_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    return record


def mark_file_failed(files: MetadataStore, record: FileRecord, reason: str):
    try:
        files.update(
            {"userId": record.user_id, "fileId": record.file_id},
            {"status": FileStatus.ERROR.value, "errorMessage": reason},
        )
    except RecordNotFoundError:
        log.warning(f"File record {record.file_id} vanished before it could be marked as failed")


def _new_file_record(
    user_id: str, request: UploadUrlRequest | InitiateUploadRequest, cdn_domain: str
) -> FileRecord:
    file_id = str(uuid.uuid4())
    key = build_object_key(file_id, request.filename)
    return FileRecord(
        user_id=user_id,
        file_id=file_id,
        filename=request.filename,
        s3_key=key,
        webhook_id=request.webhook_id,
        status=FileStatus.UPLOADING,
        content_type=request.content_type,
        size=request.size,
        created_at=iso_timestamp(),
        custom_message=request.custom_message or None,
        cloud_front_url=public_url(cdn_domain, key),
    )


def create_upload_url(
    files: MetadataStore, blob_store: S3BlobStore, user_id: str, request: UploadUrlRequest, cdn_domain: str
) -> UploadUrlResponse:
    record = _new_file_record(user_id, request, cdn_domain)
    files.put(record.to_item())

    upload_url = blob_store.presign_put(record.s3_key, record.content_type)
    log.info(f"Issued single upload URL for {record.s3_key}")
    return UploadUrlResponse(upload_url=upload_url, file_id=record.file_id, s3_key=record.s3_key)


def delete_file(  # noqa: PLR0913
    files: MetadataStore,
    webhooks: MetadataStore,
    blob_store: S3BlobStore,
    sink: DiscordWebhookSink,
    user_id: str,
    record: FileRecord,
) -> bool:
    """Delete a file's object, its webhook message and its record. Returns ``False`` on failure."""
    webhook = get_webhook(webhooks, user_id, record.webhook_id)
    try:
        blob_store.delete_object(record.s3_key)
        if record.discord_message_id and webhook is not None:
            sink.delete_message(webhook.webhook_url, record.discord_message_id)
        files.delete({"userId": user_id, "fileId": record.file_id})
    except Exception:
        log.error(f"Error deleting file {record.file_id}", exc_info=True)
        return False
    return True


# multipart uploads


def initiate_multipart_upload(
    files: MetadataStore, blob_store: S3BlobStore, user_id: str, request: InitiateUploadRequest, cdn_domain: str
) -> InitiateUploadResponse:
    record = _new_file_record(user_id, request, cdn_domain)
    files.put(record.to_item())

    try:
        upload_id = blob_store.create_session(record.s3_key, record.content_type)
    except Exception as e:
        log.error(f"Failed to create multipart upload for {record.s3_key}: {e}", exc_info=True)
        mark_file_failed(files, record, "Failed to initiate multipart upload")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to initiate multipart upload"
        ) from e

    log.info(f"Multipart upload initiated for {record.s3_key} (UploadId: {upload_id})")
    return InitiateUploadResponse(upload_id=upload_id, file_id=record.file_id, s3_key=record.s3_key)


def complete_multipart_upload(
    files: MetadataStore, blob_store: S3BlobStore, user_id: str, request: CompleteUploadRequest
):
    record = require_file(files, user_id, request.file_id)
    if record.s3_key != request.s3_key:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")

    try:
        blob_store.complete_session(request.upload_id, request.s3_key, request.parts)
    except Exception as e:
        log.error(f"Failed to complete S3 multipart upload for {request.s3_key}: {e}", exc_info=True)
        mark_file_failed(files, record, "Failed to complete S3 upload")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Failed to finalize file: {record.filename}"
        ) from e


def abort_multipart_upload(files: MetadataStore, blob_store: S3BlobStore, user_id: str, request: AbortUploadRequest):
    record = require_file(files, user_id, request.file_id) if request.file_id else None

    blob_store.abort_session(request.upload_id, request.s3_key)
    if record is not None:
        mark_file_failed(files, record, "Upload aborted")


def get_part_url(blob_store: S3BlobStore, request: PartUrlRequest) -> PartUrlResponse:
    return blob_store.authorize_part(request.upload_id, request.s3_key, request.part_number)
